import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from app.database import Base

STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
STATUS_DUPLICATE = "DUPLICATE"
STATUS_SPAM = "SPAM"

SUBMISSION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_DUPLICATE, STATUS_SPAM)


class PromoCodeSubmission(Base):
    __tablename__ = "promo_code_submissions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    code = Column(String(100), nullable=True)
    value = Column(String(200), nullable=True)

    submitter_name = Column(String(200), nullable=False)
    submitter_email = Column(String(320), nullable=False)
    submitter_message = Column(Text, nullable=True)

    is_general = Column(Boolean, default=False)
    whop_id = Column(String, ForeignKey("whops.id"), nullable=True, index=True)
    custom_course_name = Column(String(200), nullable=True)

    status = Column(String, default=STATUS_PENDING, nullable=False, index=True)
    admin_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String, nullable=True)

    # Spam triage
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    whop = relationship("Whop")
