from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base

UPVOTE = "UPVOTE"
DOWNVOTE = "DOWNVOTE"


class CommentVote(Base):
    __tablename__ = "comment_votes"

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey("comments.id"), nullable=False)
    voter_ip = Column(String(64), nullable=False)
    vote_type = Column(String(10), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # One vote per voter per comment
    __table_args__ = (UniqueConstraint('comment_id', 'voter_ip', name='uq_comment_voter_ip'),)
