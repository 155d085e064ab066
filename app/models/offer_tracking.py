import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String

from app.database import Base

ACTION_CODE_COPY = "code_copy"


class OfferTracking(Base):
    __tablename__ = "offer_tracking"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    action_type = Column(String, nullable=False, index=True)
    path = Column(String, nullable=True)
    whop_id = Column(String, nullable=True, index=True)
    promo_code_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
