import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String

from app.database import Base

STATUS_ACTIVE = "ACTIVE"
STATUS_UNSUBSCRIBED = "UNSUBSCRIBED"


class MailingListSubscriber(Base):
    __tablename__ = "mailing_list"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(320), unique=True, index=True, nullable=False)  # lowercase
    name = Column(String(80), nullable=True)
    status = Column(String, default=STATUS_ACTIVE, nullable=False)  # ACTIVE, UNSUBSCRIBED or BOUNCED
    source = Column(String, nullable=True)
    subscribed_at = Column(DateTime, default=datetime.utcnow)
    unsubscribed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
