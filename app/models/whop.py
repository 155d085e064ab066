import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import relationship

from app.database import Base

INDEXING_INDEX = "INDEX"

RETIREMENT_NONE = "NONE"
RETIREMENT_GONE = "GONE"


class Whop(Base):
    __tablename__ = "whops"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)  # stored lowercase
    logo = Column(String)
    description = Column(Text)
    category = Column(String, index=True)
    price = Column(String)  # free text, e.g. "$49/month" or "Free"
    rating = Column(Float, default=0)
    display_order = Column(Integer, default=0)
    affiliate_link = Column(String)
    website = Column(String)

    indexing = Column(String, default=INDEXING_INDEX, index=True)  # INDEX or NOINDEX
    retirement = Column(String, default=RETIREMENT_NONE, index=True)  # NONE, REDIRECT or GONE

    # Rich-text sections shown on the detail page
    about_content = Column(Text)
    how_to_redeem_content = Column(Text)
    promo_details_content = Column(Text)
    features_content = Column(Text)
    terms_content = Column(Text)
    faq_content = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    published_at = Column(DateTime, nullable=True)

    promo_codes = relationship("PromoCode", back_populates="whop", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="whop", cascade="all, delete-orphan")
