"""
Feed composition.

Home feeds come from the follow graph and trending rankings from stored
engagement counters. Both are recomputed on every call; there is no
precomputed index.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import desc, exists, literal, or_, select
from sqlalchemy.orm import Query, Session

from app.config import TRENDING_WINDOW_DAYS
from app.errors import NotFoundError
from app.models import Follow, Like, Post, User
from app.services.pagination import Page, page_offset


def post_query(db: Session, viewer_id: Optional[int] = None) -> Query:
    """Posts joined with their author and a per-viewer ``user_liked`` flag."""
    if viewer_id is None:
        liked = literal(False)
    else:
        liked = exists().where(Like.post_id == Post.id, Like.user_id == viewer_id)
    return db.query(
        Post,
        User.username,
        User.full_name,
        User.profile_picture,
        User.verified,
        liked.label("user_liked"),
    ).join(User, Post.user_id == User.id)


def serialize_post(row) -> Dict[str, Any]:
    post = row.Post
    item = {
        "id": post.id,
        "user_id": post.user_id,
        "username": row.username,
        "full_name": row.full_name,
        "profile_picture": row.profile_picture,
        "verified": bool(row.verified),
        "content": post.content,
        "media_url": post.media_url,
        "media_type": post.media_type,
        "tags": post.tags,
        "location": post.location,
        "likes_count": post.likes_count,
        "comments_count": post.comments_count,
        "shares_count": post.shares_count,
        "user_liked": bool(row.user_liked),
        "created_at": post.created_at,
    }
    if "engagement_score" in row._fields:
        item["engagement_score"] = row.engagement_score
    return item


def compute_home_feed(db: Session, user_id: int, page: int = 1, page_size: int = 10) -> Page:
    """
    Posts by ``user_id`` and everyone they follow, newest first.

    Args:
        db: Database session
        user_id: Requesting user; also drives the ``user_liked`` flag
        page: 1-based page number
        page_size: Rows per page

    Returns:
        Page of serialized posts
    """
    offset = page_offset(page, page_size)
    followees = select(Follow.following_id).where(Follow.follower_id == user_id)
    rows = (
        post_query(db, user_id)
        .filter(or_(Post.user_id == user_id, Post.user_id.in_(followees)))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return Page(page=page, page_size=page_size, items=[serialize_post(r) for r in rows])


def compute_trending(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    window_days: int = TRENDING_WINDOW_DAYS,
    viewer_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Page:
    """
    Rank posts from the trailing window by engagement score.

    score = 2 * likes_count + comments_count + shares_count, ties broken by
    recency. Cost is proportional to the number of posts in the window.
    """
    offset = page_offset(page, page_size)
    cutoff = (now or datetime.utcnow()) - timedelta(days=window_days)
    score = (Post.likes_count * 2 + Post.comments_count + Post.shares_count).label("engagement_score")
    rows = (
        post_query(db, viewer_id)
        .add_columns(score)
        .filter(Post.created_at > cutoff)
        .order_by(desc("engagement_score"), Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return Page(page=page, page_size=page_size, items=[serialize_post(r) for r in rows])


def user_posts(
    db: Session, username: str, viewer_id: Optional[int] = None, page: int = 1, page_size: int = 10
) -> Page:
    offset = page_offset(page, page_size)
    author_id = db.query(User.id).filter(User.username == username).scalar()
    if author_id is None:
        raise NotFoundError(f"User {username} not found")
    rows = (
        post_query(db, viewer_id)
        .filter(Post.user_id == author_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return Page(page=page, page_size=page_size, items=[serialize_post(r) for r in rows])


def get_post(db: Session, post_id: int, viewer_id: Optional[int] = None) -> Dict[str, Any]:
    row = post_query(db, viewer_id).filter(Post.id == post_id).first()
    if row is None:
        raise NotFoundError(f"Post {post_id} not found")
    return serialize_post(row)
