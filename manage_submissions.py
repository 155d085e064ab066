"""
PROMO SUBMISSION MODERATION HELPER
Review community promo-code submissions from the command line.

Usage:
    python manage_submissions.py --list [PENDING|APPROVED|REJECTED|DUPLICATE|SPAM]
    python manage_submissions.py --approve <submission_id> [--notes "Verified at checkout"]
    python manage_submissions.py --reject <submission_id> [--notes "Expired"]
    python manage_submissions.py --stats
"""

import sys

from app.database import SessionLocal, Base, engine
# All mapped classes must be imported so relationships resolve
from app.models.whop import Whop
from app.models.review import Review
from app.models.promo_code import COMMUNITY_PREFIX, PromoCode
from app.models.promo_submission import (
    PromoCodeSubmission,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    SUBMISSION_STATUSES,
)
from app.services.moderation import (
    DuplicatePromoCode,
    SubmissionNotFound,
    submission_counts,
    update_submission_status,
)

CLI_REVIEWER = "CLI"


def list_submissions(status=STATUS_PENDING):
    """List submissions with the given status, oldest first"""
    db = SessionLocal()

    try:
        submissions = db.query(PromoCodeSubmission).filter(
            PromoCodeSubmission.status == status
        ).order_by(PromoCodeSubmission.created_at.asc()).all()

        if not submissions:
            print(f"No {status.lower()} submissions.")
            return

        print(f"\n{status} SUBMISSIONS:\n")
        print(f"{'ID':<38} {'Code':<16} {'Offer':<24} {'Submitted':<12} {'Title':<30}")
        print("-" * 122)

        for s in submissions:
            offer = s.whop.slug if s.whop else ("(general)" if s.is_general else s.custom_course_name or "-")
            submitted = s.created_at.strftime("%Y-%m-%d") if s.created_at else "-"
            print(f"{s.id:<38} {(s.code or '-'):<16} {offer[:24]:<24} {submitted:<12} {s.title[:30]:<30}")

        print()
    finally:
        db.close()


def set_status(submission_id, status, notes=None):
    """Approve or reject a submission through the same path as the admin API"""
    db = SessionLocal()

    try:
        _, promo = update_submission_status(db, submission_id, status, notes, reviewed_by=CLI_REVIEWER)
        promo_id = promo.id if promo is not None else None
    except SubmissionNotFound:
        print(f"Submission '{submission_id}' not found!")
        return False
    except DuplicatePromoCode:
        print(f"Submission '{submission_id}' was already promoted to a promo code.")
        return False
    finally:
        db.close()

    print(f"Submission '{submission_id}' marked {status}")
    if promo_id:
        print(f"   Promo code created: {promo_id}")
    return True


def show_stats():
    """Submission counts per status"""
    db = SessionLocal()

    try:
        counts = submission_counts(db)
        community = db.query(PromoCode).filter(PromoCode.id.startswith(COMMUNITY_PREFIX, autoescape=True)).count()

        print("\nSUBMISSION STATS\n")
        for status in SUBMISSION_STATUSES:
            print(f"{status.title() + ':':<16} {counts.get(status, 0)}")
        print(f"{'Community codes:':<16} {community}")
        print()
    finally:
        db.close()


def _option(args, name, default=None):
    if name in args:
        i = args.index(name)
        if i + 1 < len(args):
            return args[i + 1]
    return default


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)

    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    command = sys.argv[1]

    if command == "--list":
        status = sys.argv[2].upper() if len(sys.argv) > 2 else STATUS_PENDING
        if status not in SUBMISSION_STATUSES:
            print(f"Unknown status: {status}")
            sys.exit(1)
        list_submissions(status)

    elif command in ("--approve", "--reject"):
        if len(sys.argv) < 3:
            print(f"Usage: python manage_submissions.py {command} <submission_id> [--notes TEXT]")
            sys.exit(1)
        status = STATUS_APPROVED if command == "--approve" else STATUS_REJECTED
        ok = set_status(sys.argv[2], status, _option(sys.argv[3:], "--notes"))
        sys.exit(0 if ok else 1)

    elif command == "--stats":
        show_stats()

    else:
        print(f"Unknown command: {command}")
        print(__doc__)
        sys.exit(1)
