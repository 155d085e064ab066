import logging
import re
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr

from app.database import get_db
from app.models.blog import BlogPost
from app.models.comment import Comment, STATUS_APPROVED, STATUS_FLAGGED, STATUS_PENDING, STATUS_REJECTED
from app.models.comment_vote import CommentVote, UPVOTE, DOWNVOTE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["comments"])

MAX_COMMENT_LENGTH = 5000
MAX_REPLY_DEPTH = 5

# Partial patterns to keep false positives down
BLOCKED_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    # slurs
    r"n[i1!]gg[e3]r",
    r"f[a@]gg[o0]t",
    r"k[i1!]ke",
    r"ch[i1!]nk",
    r"sp[i1!]c",
    r"w[e3]tb[a@]ck",
    r"r[a@]gh[e3][a@]d",
    r"tr[a@]nn[y1!]",
    r"d[y1!]ke",
    # extremist
    r"h[i1!]tl[e3]r",
    r"n[a@]z[i1!]",
    r"14/88",
    r"wh[i1!]t[e3]\s*p[o0]w[e3]r",
    r"s[i1!]eg\s*h[e3][i1!]l",
    # threats
    r"k[i1!]ll\s*y[o0]urs[e3]lf",
    r"k[y1!]s",
    r"d[i1!][e3]\s*(sl[o0]wly|p[a@][i1!]nfully)",
    r"r[a@]p[e3]\s*(y[o0]u|h[e3]r|h[i1!]m)",
)]


def contains_hate_speech(content: str) -> Optional[str]:
    """Return a flag reason if the content matches a blocked pattern."""
    normalized = re.sub(r"[^a-z0-9\s]", "", content.lower())
    for pattern in BLOCKED_PATTERNS:
        if pattern.search(normalized):
            return "Contains hate speech or harmful content"
    return None


def voter_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or "unknown"


def serialize_comment(c: Comment, user_vote: Optional[str] = None) -> dict:
    return {
        "id": c.id,
        "content": c.content,
        "authorName": c.author_name,
        "createdAt": c.created_at.isoformat() if c.created_at else None,
        "upvotes": c.upvotes or 0,
        "downvotes": c.downvotes or 0,
        "userVote": user_vote,
        "replies": [],
    }


class CommentCreate(BaseModel):
    content: str
    authorName: str
    authorEmail: EmailStr
    blogPostId: int
    parentId: Optional[int] = None


class VoteRequest(BaseModel):
    voteType: Optional[str] = None


class CommentStatusRequest(BaseModel):
    status: str


@router.post("/comments")
def create_comment(comment: CommentCreate, db: Session = Depends(get_db)):
    """Submit a comment. Auto-approved unless it trips the content filter."""
    try:
        if not comment.content.strip() or not comment.authorName.strip():
            raise HTTPException(status_code=400, detail="Missing required fields")

        if len(comment.content) > MAX_COMMENT_LENGTH:
            raise HTTPException(status_code=400, detail=f"Comment is too long (max {MAX_COMMENT_LENGTH} characters)")

        post = db.query(BlogPost).filter(
            BlogPost.id == comment.blogPostId,
            BlogPost.published == True
        ).first()
        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")

        if comment.parentId:
            parent = db.query(Comment).filter(Comment.id == comment.parentId).first()
            if not parent:
                raise HTTPException(status_code=404, detail="Parent comment not found")
            if parent.status != STATUS_APPROVED:
                raise HTTPException(status_code=400, detail="Cannot reply to non-approved comments")

        flagged_reason = contains_hate_speech(comment.content)

        new_comment = Comment(
            post_id=comment.blogPostId,
            parent_id=comment.parentId,
            author_name=comment.authorName.strip(),
            author_email=str(comment.authorEmail).strip(),
            content=comment.content.strip(),
            status=STATUS_FLAGGED if flagged_reason else STATUS_APPROVED,
            flagged_reason=flagged_reason,
        )

        db.add(new_comment)
        db.commit()
        db.refresh(new_comment)

        return {
            "success": True,
            "message": "Comment flagged for review due to content policy violation"
            if flagged_reason else "Comment posted successfully",
            "comment": serialize_comment(new_comment),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error creating comment: %s", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/comments")
def get_post_comments(request: Request, blogPostId: Optional[int] = Query(None), db: Session = Depends(get_db)):
    """Approved comments for a post: top level newest first, replies oldest first."""
    if blogPostId is None:
        raise HTTPException(status_code=400, detail="blogPostId is required")

    try:
        comments = db.query(Comment).filter(
            Comment.post_id == blogPostId,
            Comment.status == STATUS_APPROVED
        ).order_by(Comment.created_at.asc(), Comment.id.asc()).all()

        ids = [c.id for c in comments]
        votes = {}
        if ids:
            ip = voter_ip(request)
            for v in db.query(CommentVote).filter(CommentVote.comment_id.in_(ids), CommentVote.voter_ip == ip).all():
                votes[v.comment_id] = v.vote_type

        nodes = {c.id: serialize_comment(c, votes.get(c.id)) for c in comments}
        depth = {}
        top_level = []
        for c in comments:
            if c.parent_id is None:
                depth[c.id] = 0
                top_level.append(nodes[c.id])
            elif c.parent_id in nodes and depth.get(c.parent_id, MAX_REPLY_DEPTH) < MAX_REPLY_DEPTH:
                depth[c.id] = depth[c.parent_id] + 1
                nodes[c.parent_id]["replies"].append(nodes[c.id])

        top_level.reverse()
        return top_level
    except Exception as e:
        logger.exception("Error fetching comments: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/comments/{comment_id}/vote")
def vote_on_comment(comment_id: int, vote: VoteRequest, request: Request, db: Session = Depends(get_db)):
    """Add, switch or (same type again) remove the caller's vote."""
    if vote.voteType not in (UPVOTE, DOWNVOTE):
        raise HTTPException(status_code=400, detail="Valid vote type required (UPVOTE or DOWNVOTE)")

    ip = voter_ip(request)
    try:
        comment = db.query(Comment).filter(Comment.id == comment_id).first()
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")
        if comment.status != STATUS_APPROVED:
            raise HTTPException(status_code=400, detail="Cannot vote on non-approved comments")

        existing = db.query(CommentVote).filter(
            CommentVote.comment_id == comment_id,
            CommentVote.voter_ip == ip
        ).first()

        if existing and existing.vote_type == vote.voteType:
            db.delete(existing)
            _adjust(comment, vote.voteType, -1)
            action, user_vote = "removed", None
        elif existing:
            _adjust(comment, existing.vote_type, -1)
            existing.vote_type = vote.voteType
            _adjust(comment, vote.voteType, 1)
            action, user_vote = "changed", vote.voteType
        else:
            db.add(CommentVote(comment_id=comment_id, voter_ip=ip, vote_type=vote.voteType))
            _adjust(comment, vote.voteType, 1)
            action, user_vote = "added", vote.voteType

        db.commit()
        db.refresh(comment)

        return {
            "success": True,
            "action": action,
            "userVote": user_vote,
            "upvotes": comment.upvotes or 0,
            "downvotes": comment.downvotes or 0,
        }
    except HTTPException:
        raise
    except IntegrityError:
        # double click raced another insert for the same voter
        db.rollback()
        raise HTTPException(status_code=409, detail="Vote already recorded")
    except Exception as e:
        logger.exception("Error voting on comment: %s", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")


def _adjust(comment: Comment, vote_type: str, delta: int):
    if vote_type == UPVOTE:
        comment.upvotes = max((comment.upvotes or 0) + delta, 0)
    else:
        comment.downvotes = max((comment.downvotes or 0) + delta, 0)


@router.get("/admin/comments")
def list_comments_for_review(status: Optional[str] = None, db: Session = Depends(get_db)):
    """Comments awaiting moderation (pending + flagged by default), oldest first."""
    query = db.query(Comment)
    if status:
        query = query.filter(Comment.status == status)
    else:
        query = query.filter(Comment.status.in_((STATUS_PENDING, STATUS_FLAGGED)))

    return [
        {
            "id": c.id,
            "postId": c.post_id,
            "parentId": c.parent_id,
            "authorName": c.author_name,
            "authorEmail": c.author_email,
            "content": c.content,
            "status": c.status,
            "flaggedReason": c.flagged_reason,
            "createdAt": c.created_at.isoformat() if c.created_at else None,
        }
        for c in query.order_by(Comment.created_at.asc()).all()
    ]


@router.put("/admin/comments/{comment_id}")
def set_comment_status(comment_id: int, data: CommentStatusRequest, db: Session = Depends(get_db)):
    if data.status not in (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_FLAGGED):
        raise HTTPException(status_code=400, detail="Invalid status")

    try:
        comment = db.query(Comment).filter(Comment.id == comment_id).first()
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")

        comment.status = data.status
        if data.status == STATUS_APPROVED:
            comment.flagged_reason = None
        db.commit()

        return {"message": f"Comment {data.status.lower()}"}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error updating comment: %s", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update comment")


@router.delete("/admin/comments/{comment_id}")
def delete_comment(comment_id: int, db: Session = Depends(get_db)):
    try:
        comment = db.query(Comment).filter(Comment.id == comment_id).first()
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")

        db.query(CommentVote).filter(CommentVote.comment_id == comment_id).delete()
        db.query(Comment).filter(Comment.parent_id == comment_id).update({Comment.parent_id: None})
        db.delete(comment)
        db.commit()

        return {"message": "Comment deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error deleting comment: %s", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete comment")
