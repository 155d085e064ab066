import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.offer_tracking import OfferTracking, ACTION_CODE_COPY
from app.models.whop import Whop

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tracking"])

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}
PUBLIC_CACHE = "public, max-age=60, stale-while-revalidate=300"


class TrackingRequest(BaseModel):
    actionType: str = Field(min_length=1, max_length=50)
    whopId: Optional[str] = None
    promoCodeId: Optional[str] = None
    path: Optional[str] = Field(default=None, max_length=2000)
    # Older cards still send the casino-era names
    casinoId: Optional[str] = None
    bonusId: Optional[str] = None


def start_of_today_utc() -> datetime:
    return datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)


def usage_payload(today: int, total: int, last_used: Optional[datetime]) -> dict:
    return {
        "usage": {
            "todayCount": today,
            "totalCount": total,
            "todayClicks": today,
            "lastUsed": last_used.isoformat() if last_used else None,
        },
        "overallStats": {"todayClicks": today},
    }


def count_usage(db: Session, *conditions) -> tuple[int, int, Optional[datetime]]:
    base = db.query(OfferTracking).filter(OfferTracking.action_type == ACTION_CODE_COPY, *conditions)
    total = base.count()
    today = base.filter(OfferTracking.created_at >= start_of_today_utc()).count()
    last = base.order_by(OfferTracking.created_at.desc()).first()
    return today, total, last.created_at if last else None


@router.post("/tracking", status_code=status.HTTP_201_CREATED)
def track_offer(data: TrackingRequest, db: Session = Depends(get_db)):
    """Record a click / code copy on an offer."""
    event = OfferTracking(
        action_type=data.actionType,
        whop_id=data.whopId or data.casinoId,
        promo_code_id=data.promoCodeId or data.bonusId,
        path=data.path,
    )
    try:
        db.add(event)
        db.commit()
        db.refresh(event)
    except Exception as e:
        logger.exception("Error recording offer tracking: %s", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to record tracking event")

    return {"success": True, "id": event.id}


@router.get("/promo-stats")
def promo_stats(
    response: Response,
    promoCodeId: Optional[str] = Query(None),
    whopId: Optional[str] = Query(None),
    slug: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Usage counters for the "used today / total / last used" badge.

    Id-based counts win when they are non-zero; otherwise events are matched by
    the whop page path. Errors degrade to zeros.
    """
    try:
        if promoCodeId or whopId:
            condition = (
                OfferTracking.promo_code_id == promoCodeId if promoCodeId
                else OfferTracking.whop_id == whopId
            )
            today, total, last = count_usage(db, condition)
            if total > 0:
                response.headers.update(NO_STORE_HEADERS)
                return usage_payload(today, total, last)

        if not slug and whopId:
            whop = db.query(Whop).filter(Whop.id == whopId).first()
            slug = whop.slug if whop else None

        if slug:
            needle = f"/whop/{slug.strip().lower()}"
            today, total, last = count_usage(db, func.lower(OfferTracking.path).contains(needle, autoescape=True))
            response.headers.update(NO_STORE_HEADERS)
            return usage_payload(today, total, last)
    except Exception as e:
        logger.exception("[promo-stats] error: %s", e)

    response.headers["Cache-Control"] = PUBLIC_CACHE
    return usage_payload(0, 0, None)
