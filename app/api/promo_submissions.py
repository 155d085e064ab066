"""
Community promo-code submissions and their moderation.

Public:  POST /api/promo-submissions, GET /api/promo-submissions
Admin:   POST /api/admin/promo-submissions/update-status
         GET/DELETE /api/admin/promo-submissions/{submission_id}
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request, status
from pydantic import BaseModel, EmailStr, Field, model_validator
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.promo_submission import PromoCodeSubmission, STATUS_APPROVED, SUBMISSION_STATUSES
from app.models.whop import Whop
from app.services.moderation import (
    DuplicatePromoCode,
    InvalidStatus,
    SubmissionNotFound,
    update_submission_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["promo-submissions"])

TYPE_ALIASES = {"General Promo": "GENERAL", "Course-Specific": "COURSE"}


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip")


def serialize_submission(s: PromoCodeSubmission) -> dict:
    return {
        "id": s.id,
        "status": s.status,
        "title": s.title,
        "description": s.description,
        "code": s.code,
        "value": s.value,
        "submitterName": s.submitter_name,
        "submitterEmail": s.submitter_email,
        "submitterMessage": s.submitter_message,
        "isGeneral": s.is_general,
        "whopId": s.whop_id,
        "customCourseName": s.custom_course_name,
        "adminNotes": s.admin_notes,
        "reviewedAt": s.reviewed_at.isoformat() if s.reviewed_at else None,
        "reviewedBy": s.reviewed_by,
        "createdAt": s.created_at.isoformat() if s.created_at else None,
        "whop": {"name": s.whop.name, "slug": s.whop.slug} if s.whop else None,
    }


class SubmissionCreateRequest(BaseModel):
    type: Literal["GENERAL", "COURSE", "General Promo", "Course-Specific"] = "GENERAL"
    title: str = Field(min_length=2, max_length=200)
    description: str = Field(min_length=2, max_length=4000)
    code: Optional[str] = Field(default=None, max_length=100)  # "No code required" is allowed
    value: Optional[str] = Field(default=None, max_length=200)

    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    email: Optional[EmailStr] = None
    message: Optional[str] = Field(default=None, max_length=4000)

    # Legacy field names from the old form
    submitterName: Optional[str] = Field(default=None, min_length=2, max_length=200)
    submitterEmail: Optional[EmailStr] = None
    submitterMessage: Optional[str] = Field(default=None, max_length=4000)

    isGeneral: Optional[bool] = None
    whopId: Optional[str] = None
    customCourseName: Optional[str] = Field(default=None, max_length=200)

    @model_validator(mode="after")
    def require_submitter(self):
        if not ((self.name and self.email) or (self.submitterName and self.submitterEmail)):
            raise ValueError("Either 'name' and 'email' OR 'submitterName' and 'submitterEmail' are required")
        return self

    @property
    def promo_type(self) -> str:
        return TYPE_ALIASES.get(self.type, self.type)


class UpdateStatusRequest(BaseModel):
    submissionId: Optional[str] = None
    status: Optional[str] = None
    adminNotes: Optional[str] = None


@router.post("/promo-submissions", status_code=status.HTTP_201_CREATED)
def create_submission(data: SubmissionCreateRequest, request: Request, db: Session = Depends(get_db)):
    """Queue a community promo code for review."""
    is_general = data.isGeneral if data.isGeneral is not None else data.promo_type == "GENERAL"

    if not is_general:
        if not data.whopId and not data.customCourseName:
            raise HTTPException(status_code=400, detail="Course selection required for course-specific promo codes")

        if data.whopId:
            exists = db.query(Whop.id).filter(Whop.id == data.whopId).first()
            if not exists:
                raise HTTPException(status_code=400, detail="Selected course not found")

    submission = PromoCodeSubmission(
        title=data.title,
        description=data.description,
        code=data.code or None,
        value=data.value or None,
        submitter_name=data.name or data.submitterName,
        submitter_email=str(data.email or data.submitterEmail),
        submitter_message=data.message or data.submitterMessage,
        is_general=is_general,
        whop_id=None if is_general else data.whopId,
        custom_course_name=data.customCourseName or None,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    try:
        db.add(submission)
        db.commit()
        db.refresh(submission)
    except Exception as e:
        logger.exception("Promo submission failed: %s", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Server error")

    logger.info(
        "New promo code submission id=%s title=%r general=%s submitter=%s",
        submission.id, submission.title, submission.is_general, submission.submitter_email,
    )
    return {"ok": True, "submission": serialize_submission(submission)}


@router.get("/promo-submissions")
def list_submissions(
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List submissions, newest first. Unknown status values are ignored."""
    query = db.query(PromoCodeSubmission)
    if status in SUBMISSION_STATUSES:
        query = query.filter(PromoCodeSubmission.status == status)

    total = query.count()
    submissions = query.order_by(PromoCodeSubmission.created_at.desc()).offset(offset).limit(limit).all()

    return {
        "submissions": [serialize_submission(s) for s in submissions],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/admin/promo-submissions/update-status")
def update_status(data: UpdateStatusRequest, db: Session = Depends(get_db)):
    """
    Approve / reject a submission.

    Approving a course-specific submission also creates the promo code
    ``community_<submissionId>`` in the same transaction.

    Example:
    POST /api/admin/promo-submissions/update-status
    {
        "submissionId": "6f1c...",
        "status": "APPROVED",
        "adminNotes": "Verified on checkout"
    }
    """
    # No admin auth yet; this sits behind the admin panel's basic auth.
    if not data.submissionId or not data.status:
        raise HTTPException(status_code=400, detail="Missing required fields")

    try:
        submission, promo = update_submission_status(db, data.submissionId, data.status, data.adminNotes)
    except InvalidStatus as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubmissionNotFound:
        raise HTTPException(status_code=404, detail="Submission not found")
    except DuplicatePromoCode:
        raise HTTPException(status_code=409, detail="A promo code with this ID already exists")
    except Exception as e:
        logger.exception("Error updating submission status: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")

    if promo is not None:
        message = "Submission approved and promo code created"
    elif data.status == STATUS_APPROVED:
        message = "Submission approved"
    else:
        message = f"Submission {data.status.lower()}"

    return {
        "success": True,
        "message": message,
        "submission": serialize_submission(submission),
        "promoCodeId": promo.id if promo is not None else None,
    }


@router.get("/admin/promo-submissions/{submission_id}")
def get_submission(submission_id: str, db: Session = Depends(get_db)):
    submission = db.query(PromoCodeSubmission).filter(PromoCodeSubmission.id == submission_id).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    return serialize_submission(submission)


@router.delete("/admin/promo-submissions/{submission_id}")
def delete_submission(submission_id: str, db: Session = Depends(get_db)):
    """Hard delete. A promo code already created from it is kept."""
    submission = db.query(PromoCodeSubmission).filter(PromoCodeSubmission.id == submission_id).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")

    db.delete(submission)
    db.commit()

    return {"message": f"Submission '{submission_id}' deleted successfully"}
