import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.mailing_list import MailingListSubscriber, STATUS_ACTIVE, STATUS_UNSUBSCRIBED

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mailing-list", tags=["mailing-list"])


class SubscribeRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(default=None, max_length=80)
    source: str = "vip"  # vip | blog | ...

    @field_validator("name")
    @classmethod
    def blank_name_is_none(cls, v):
        v = (v or "").strip()
        return v or None


class EmailRequest(BaseModel):
    email: EmailStr


def normalize_email(email) -> str:
    return str(email).strip().lower()


@router.post("/subscribe")
def subscribe(data: SubscribeRequest, db: Session = Depends(get_db)):
    """Subscribe, or reactivate a previous subscription for the same email."""
    email = normalize_email(data.email)
    logger.info("Processing mailing list subscription email=%s source=%s", email, data.source)

    try:
        subscriber = db.query(MailingListSubscriber).filter(MailingListSubscriber.email == email).first()
        now = datetime.utcnow()
        if subscriber:
            if data.name:
                subscriber.name = data.name
            subscriber.source = data.source
            subscriber.status = STATUS_ACTIVE
            subscriber.subscribed_at = now
            subscriber.unsubscribed_at = None
        else:
            subscriber = MailingListSubscriber(
                email=email,
                name=data.name,
                source=data.source,
                status=STATUS_ACTIVE,
                subscribed_at=now,
            )
            db.add(subscriber)

        db.commit()
        db.refresh(subscriber)
    except IntegrityError:
        # concurrent subscribe for the same address
        db.rollback()
        return {"ok": True, "duplicate": True, "message": "Already subscribed to mailing list"}
    except Exception as e:
        logger.exception("Subscribe route error: %s", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Server error")

    return {
        "ok": True,
        "subscriberId": subscriber.id,
        "message": "Successfully subscribed to VIP mailing list!",
        "subscriber": {
            "id": subscriber.id,
            "email": subscriber.email,
            "name": subscriber.name,
            "status": subscriber.status,
            "subscribedAt": subscriber.subscribed_at.isoformat(),
        },
    }


@router.post("/unsubscribe")
def unsubscribe(data: EmailRequest, db: Session = Depends(get_db)):
    email = normalize_email(data.email)
    try:
        subscriber = db.query(MailingListSubscriber).filter(MailingListSubscriber.email == email).first()
        if not subscriber:
            return {"success": True, "message": "Email not found in mailing list", "notFound": True}

        if subscriber.status == STATUS_UNSUBSCRIBED:
            return {"success": True, "message": "Already unsubscribed from mailing list", "alreadyUnsubscribed": True}

        subscriber.status = STATUS_UNSUBSCRIBED
        subscriber.unsubscribed_at = datetime.utcnow()
        db.commit()
    except Exception as e:
        logger.exception("Unsubscribe route error: %s", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Server error")

    return {"success": True, "message": "Successfully unsubscribed from mailing list"}


@router.post("/check")
def check(data: EmailRequest, db: Session = Depends(get_db)):
    subscriber = db.query(MailingListSubscriber).filter(
        MailingListSubscriber.email == normalize_email(data.email)
    ).first()

    return {
        "exists": subscriber is not None,
        "isSubscribed": bool(subscriber and subscriber.status == STATUS_ACTIVE),
        "status": subscriber.status if subscriber else None,
    }
