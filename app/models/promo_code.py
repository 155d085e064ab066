import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from app.database import Base


# Community submissions are tagged by id prefix, not by a column.
COMMUNITY_PREFIX = "community_"


def community_promo_id(submission_id: str) -> str:
    return f"{COMMUNITY_PREFIX}{submission_id}"


def is_community_promo_id(promo_id: str | None) -> bool:
    return bool(promo_id) and promo_id.startswith(COMMUNITY_PREFIX)


class PromoCode(Base):
    __tablename__ = "promo_codes"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    whop_id = Column(String, ForeignKey("whops.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    code = Column(String, nullable=True)  # None = no code required
    # DISCOUNT, FREE_TRIAL, EXCLUSIVE_ACCESS, BUNDLE_DEAL or LIMITED_TIME
    type = Column(String, nullable=False, default="DISCOUNT", index=True)
    value = Column(String, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    whop = relationship("Whop", back_populates="promo_codes")
