"""
Public whop reviews.

GET  /api/reviews?whopId=   reviews for one whop (id or slug), verified first
POST /api/reviews           review form with honeypot; whop by slug or id
POST /api/reviews/submit    minimal form used by the legacy review widget
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.review import Review
from app.models.whop import Whop
from app.services.recommendations import find_whop

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


def serialize_review(r: Review, include_whop: bool = True) -> dict:
    data = {
        "id": r.id,
        "whopId": r.whop_id,
        "author": r.author,
        "content": r.content,
        "rating": r.rating,
        "verified": bool(r.verified),
        "createdAt": r.created_at.isoformat() if r.created_at else None,
    }
    if include_whop and r.whop is not None:
        data["whop"] = {
            "id": r.whop.id,
            "name": r.whop.name,
            "slug": r.whop.slug,
            "logo": r.whop.logo,
        }
    return data


class ReviewCreate(BaseModel):
    whopSlug: Optional[str] = None
    whopId: Optional[str] = None
    author: str = Field(min_length=2, max_length=100)
    content: str = Field(min_length=1, max_length=2000)
    rating: int = Field(ge=1, le=5)
    website: Optional[str] = None  # honeypot, humans leave it empty

    @field_validator("whopSlug", "whopId", "author", "content", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def require_whop(self):
        if not (self.whopId or self.whopSlug):
            raise ValueError("Either whopId or whopSlug is required")
        return self


class ReviewSubmit(BaseModel):
    author: str = Field(min_length=1)
    content: str = Field(min_length=3)
    rating: float = Field(ge=1, le=5)
    whopId: str = Field(min_length=1)


@router.get("")
def list_reviews(whopId: Optional[str] = Query(None), db: Session = Depends(get_db)):
    query = db.query(Review)
    if whopId:
        whop = db.query(Whop).filter(or_(Whop.id == whopId, Whop.slug == whopId)).first()
        if whop is None:
            return []
        query = query.filter(Review.whop_id == whop.id)

    reviews = query.order_by(Review.verified.desc(), Review.created_at.desc()).all()
    return [serialize_review(r) for r in reviews]


@router.post("")
def create_review(data: ReviewCreate, db: Session = Depends(get_db)):
    if data.website:
        logger.info("Honeypot filled, rejecting review from %s", data.author)
        raise HTTPException(status_code=400, detail="Invalid review data")

    if data.whopSlug:
        whop = find_whop(db, data.whopSlug)
    else:
        whop = db.query(Whop).filter(Whop.id == data.whopId).first()
    if whop is None:
        raise HTTPException(status_code=404, detail="Whop not found")

    try:
        review = Review(
            whop_id=whop.id,
            author=data.author,
            content=data.content,
            rating=data.rating,
            verified=False,
        )
        db.add(review)
        db.commit()
        db.refresh(review)
    except Exception as e:
        db.rollback()
        logger.exception("Review creation failed for whop %s: %s", whop.id, e)
        raise HTTPException(status_code=500, detail="Server error")

    logger.info("Review %s posted for whop %s", review.id, whop.slug)
    return {
        "success": True,
        "message": "Review posted successfully",
        "review": serialize_review(review, include_whop=False),
    }


@router.post("/submit")
def submit_review(data: ReviewSubmit, db: Session = Depends(get_db)):
    whop = db.query(Whop).filter(Whop.id == data.whopId).first()
    if whop is None:
        raise HTTPException(status_code=404, detail="Whop not found")

    try:
        review = Review(
            whop_id=whop.id,
            author=data.author,
            content=data.content,
            rating=data.rating,
            verified=False,
        )
        db.add(review)
        db.commit()
        db.refresh(review)
    except Exception as e:
        db.rollback()
        logger.exception("Error submitting review: %s", e)
        raise HTTPException(status_code=500, detail="Failed to submit review")

    return {"success": True, "message": "Review submitted successfully", "reviewId": review.id}
