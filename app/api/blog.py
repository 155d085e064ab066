import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel

from app.database import get_db
from app.models.blog import BlogPost

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog", tags=["blog"])

def serialize_blog_post(post):
    """Convert BlogPost ORM object to dict for JSON serialization"""
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "excerpt": post.excerpt,
        "meta_description": post.meta_description,
        "published": post.published,
        "published_at": post.published_at.isoformat() if post.published_at else None,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
        "author_name": post.author_name,
        "pinned": bool(post.pinned),
    }

class BlogPostResponse(BaseModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    meta_description: Optional[str] = None
    published: bool
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    author_name: Optional[str] = None
    pinned: bool = False

    class Config:
        from_attributes = True

@router.get("/posts", response_model=List[BlogPostResponse])
def get_blog_posts(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """Published posts, pinned first, then newest"""
    try:
        posts = db.query(BlogPost).filter(
            BlogPost.published == True
        ).order_by(
            BlogPost.pinned.desc(),
            BlogPost.published_at.desc(),
            BlogPost.id.desc()
        ).offset(offset).limit(limit).all()

        return [serialize_blog_post(post) for post in posts]
    except Exception as e:
        logger.exception("Error in get_blog_posts: %s", e)
        raise HTTPException(status_code=500, detail="Database error")

@router.get("/{slug}", response_model=BlogPostResponse)
def get_blog_post(slug: str, db: Session = Depends(get_db)):
    """Get a single published blog post by slug"""
    try:
        post = db.query(BlogPost).filter(
            BlogPost.slug == slug.strip().lower(),
            BlogPost.published == True
        ).first()

        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")

        return serialize_blog_post(post)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error in get_blog_post: %s", e)
        raise HTTPException(status_code=500, detail="Database error")
