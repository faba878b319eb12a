# app/services/comments.py
"""Comment creation, deletion and threaded listing."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth import Identity
from app.config import MAX_COMMENT_LENGTH, REPLY_PREVIEW_LIMIT
from app.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.models import Comment, NotificationKind, Post, User
from app.services.counters import RelationOp, apply_relation_change
from app.services.notifications import NotificationEvent, notify
from app.services.pagination import Page, page_offset

logger = logging.getLogger(__name__)


@dataclass
class CommentResult:
    """Result of creating a comment."""
    comment: Dict[str, Any]
    comments_count: int
    event: Optional[NotificationEvent] = None


def _serialize(comment: Comment, author: User) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "user_id": comment.user_id,
        "parent_comment_id": comment.parent_comment_id,
        "content": comment.content,
        "username": author.username,
        "full_name": author.full_name,
        "profile_picture": author.profile_picture,
        "verified": bool(author.verified),
        "created_at": comment.created_at,
    }


def create_comment(
    db: Session,
    author: Identity,
    post_id: int,
    content: str,
    parent_comment_id: Optional[int] = None,
) -> CommentResult:
    """
    Add a comment (or a reply) to a post.

    The post owner gets a ``comment`` notification unless they wrote it.
    Every call creates a separate notification; nothing is merged.
    """
    content = (content or "").strip()
    if not content:
        raise InvalidInputError("Comment content is required")
    if len(content) > MAX_COMMENT_LENGTH:
        raise InvalidInputError(f"Comment exceeds {MAX_COMMENT_LENGTH} characters")

    post_owner_id = db.query(Post.user_id).filter(Post.id == post_id).scalar()
    if post_owner_id is None:
        raise NotFoundError(f"Post {post_id} not found")

    if parent_comment_id is not None:
        parent_post_id = db.query(Comment.post_id).filter(Comment.id == parent_comment_id).scalar()
        if parent_post_id is None:
            raise NotFoundError(f"Comment {parent_comment_id} not found")
        if parent_post_id != post_id:
            raise InvalidInputError("Parent comment belongs to a different post")

    comment = apply_relation_change(
        db,
        RelationOp.comment_add,
        user_id=author.user_id,
        post_id=post_id,
        content=content,
        parent_comment_id=parent_comment_id,
    )
    event = notify(db, NotificationKind.comment, post_owner_id, author, post_id=post_id)
    comments_count = db.query(Post.comments_count).filter(Post.id == post_id).scalar()
    user = db.get(User, author.user_id)
    logger.info("User %s commented on post %s", author.user_id, post_id)
    return CommentResult(comment=_serialize(comment, user), comments_count=comments_count, event=event)


def delete_comment(db: Session, requester: Identity, comment_id: int) -> int:
    """
    Delete a comment owned by ``requester`` and all of its replies.

    Returns:
        Number of comments removed
    """
    row = db.query(Comment.user_id, Comment.post_id).filter(Comment.id == comment_id).first()
    if row is None:
        raise NotFoundError(f"Comment {comment_id} not found")
    if row.user_id != requester.user_id:
        raise ForbiddenError("Not authorized to delete this comment")
    removed = apply_relation_change(db, RelationOp.comment_remove, comment_id=comment_id, post_id=row.post_id)
    logger.info("User %s deleted comment %s (%d rows)", requester.user_id, comment_id, removed)
    return removed


def _replies(db: Session, parent_id: int, offset: int, limit: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(Comment, User)
        .join(User, Comment.user_id == User.id)
        .filter(Comment.parent_comment_id == parent_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [_serialize(comment, user) for comment, user in rows]


def list_post_comments(db: Session, post_id: int, page: int = 1, page_size: int = 20) -> Page:
    """
    Top-level comments of a post, newest first, each with a short preview of
    its earliest replies and the total reply count.
    """
    offset = page_offset(page, page_size)
    if db.query(Post.id).filter(Post.id == post_id).scalar() is None:
        raise NotFoundError(f"Post {post_id} not found")

    rows = (
        db.query(Comment, User)
        .join(User, Comment.user_id == User.id)
        .filter(Comment.post_id == post_id, Comment.parent_comment_id.is_(None))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    root_ids = [comment.id for comment, _ in rows]
    reply_counts = dict(
        db.query(Comment.parent_comment_id, func.count(Comment.id))
        .filter(Comment.parent_comment_id.in_(root_ids))
        .group_by(Comment.parent_comment_id)
        .all()
    ) if root_ids else {}

    items = []
    for comment, user in rows:
        item = _serialize(comment, user)
        item["replies"] = _replies(db, comment.id, 0, REPLY_PREVIEW_LIMIT)
        item["replies_count"] = reply_counts.get(comment.id, 0)
        items.append(item)
    return Page(page=page, page_size=page_size, items=items)


def list_replies(db: Session, comment_id: int, page: int = 1, page_size: int = 10) -> Page:
    offset = page_offset(page, page_size)
    if db.query(Comment.id).filter(Comment.id == comment_id).scalar() is None:
        raise NotFoundError(f"Comment {comment_id} not found")
    return Page(page=page, page_size=page_size, items=_replies(db, comment_id, offset, page_size))
