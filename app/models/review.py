import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from app.database import Base


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    whop_id = Column(String, ForeignKey("whops.id"), nullable=False, index=True)
    author = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    rating = Column(Float, default=0, index=True)
    verified = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    whop = relationship("Whop", back_populates="reviews")
