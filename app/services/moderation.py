"""
Moderation of community promo-code submissions.

Approving a course-specific submission promotes it to a live PromoCode whose
id is derived from the submission id (``community_<submissionId>``). The
status update and the insert commit together, and a second promotion of the
same submission collides on that id.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import FlushError

from app.models.promo_code import PromoCode, community_promo_id
from app.models.promo_submission import PromoCodeSubmission, STATUS_APPROVED, SUBMISSION_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_REVIEWER = "Admin"
COMMUNITY_PROMO_TYPE = "DISCOUNT"


class ModerationError(Exception):
    pass


class SubmissionNotFound(ModerationError):
    pass


class InvalidStatus(ModerationError):
    pass


class DuplicatePromoCode(ModerationError):
    pass


def should_promote(submission: PromoCodeSubmission, status: str) -> bool:
    return status == STATUS_APPROVED and not submission.is_general and bool(submission.whop_id)


def update_submission_status(
    db: Session,
    submission_id: str,
    status: str,
    admin_notes: str | None = None,
    reviewed_by: str = DEFAULT_REVIEWER,
):
    """
    Set the review status of a submission, creating the community promo code on approval.

    Returns ``(submission, promo_code_or_None)``.
    Raises SubmissionNotFound, InvalidStatus or DuplicatePromoCode; any other
    database error is rolled back and re-raised.
    """
    if status not in SUBMISSION_STATUSES:
        raise InvalidStatus(f"Invalid status: {status}")

    submission = db.query(PromoCodeSubmission).filter(PromoCodeSubmission.id == submission_id).first()
    if not submission:
        raise SubmissionNotFound(f"Submission {submission_id} not found")

    now = datetime.utcnow()
    submission.status = status
    submission.reviewed_at = now
    submission.reviewed_by = reviewed_by
    submission.admin_notes = admin_notes

    promo = None
    if should_promote(submission, status):
        promo = PromoCode(
            id=community_promo_id(submission.id),
            title=submission.title,
            description=submission.description,
            code=submission.code,
            type=COMMUNITY_PROMO_TYPE,
            value=submission.value or "",
            whop_id=submission.whop_id,
            created_at=now,
            updated_at=now,
        )
        db.add(promo)

    try:
        db.commit()
    except (IntegrityError, FlushError) as e:
        db.rollback()
        promo_id = community_promo_id(submission_id)
        # Only a collision on the derived id is a duplicate; FK and other failures propagate.
        if promo is not None and db.get(PromoCode, promo_id) is not None:
            logger.warning("Promo code %s already exists: %s", promo_id, e)
            raise DuplicatePromoCode(f"A promo code with id {promo_id} already exists") from e
        logger.error("Could not update submission %s: %s", submission_id, e)
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(submission)
    return submission, promo


def submission_counts(db: Session) -> dict:
    counts = {status: 0 for status in SUBMISSION_STATUSES}
    for (status,) in db.query(PromoCodeSubmission.status).all():
        counts[status] = counts.get(status, 0) + 1
    return counts
