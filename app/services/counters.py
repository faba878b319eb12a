# app/services/counters.py
"""
Counter consistency layer.

Every change to a counted relation (likes, comments, follows, posts) goes
through ``apply_relation_change`` so the relation row and its denormalized
counters move together inside the caller's transaction. Counters are adjusted
with ``col = col + n`` expressions evaluated by the database, never with
values read into Python first.

The insert (unique constraint) and the delete (matched row count) are the
serialization points for concurrent callers: whoever loses sees a
``ConflictError`` and no counter delta is applied.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import ConflictError
from app.models import Comment, Follow, Like, Notification, Post, PostHashtag, User

logger = logging.getLogger(__name__)


class RelationOp(str, Enum):
    like = "like"
    unlike = "unlike"
    comment_add = "comment_add"
    comment_remove = "comment_remove"
    follow = "follow"
    unfollow = "unfollow"
    post_add = "post_add"
    post_remove = "post_remove"


def _insert(db: Session, row, conflict_message: str):
    db.add(row)
    try:
        db.flush()
    except IntegrityError as exc:
        logger.info("Relation insert rejected: %s", conflict_message)
        raise ConflictError(conflict_message, details=str(exc.orig)) from exc
    return row


def _bump(db: Session, model, row_id: int, **deltas: int) -> None:
    values = {getattr(model, column): getattr(model, column) + delta for column, delta in deltas.items()}
    result = db.execute(update(model).where(model.id == row_id).values(values))
    if result.rowcount != 1:
        raise ConflictError(f"{model.__name__} {row_id} disappeared during counter update")


def _like(db: Session, user_id: int, post_id: int) -> Like:
    like = _insert(db, Like(user_id=user_id, post_id=post_id), f"User {user_id} already likes post {post_id}")
    _bump(db, Post, post_id, likes_count=1)
    return like


def _unlike(db: Session, user_id: int, post_id: int) -> None:
    result = db.execute(delete(Like).where(Like.user_id == user_id, Like.post_id == post_id))
    if result.rowcount != 1:
        raise ConflictError(f"User {user_id} does not like post {post_id}")
    _bump(db, Post, post_id, likes_count=-1)


def _comment_add(db: Session, user_id: int, post_id: int, content: str, parent_comment_id=None) -> Comment:
    comment = _insert(
        db,
        Comment(user_id=user_id, post_id=post_id, content=content, parent_comment_id=parent_comment_id),
        f"Comment on post {post_id} references a missing row",
    )
    _bump(db, Post, post_id, comments_count=1)
    return comment


def _comment_subtree(db: Session, comment_id: int) -> List[List[int]]:
    """
    Comment ids grouped by depth, the root level first.

    Every row read is locked ``FOR UPDATE`` (a no-op on SQLite), so a reply
    inserted concurrently under one of them waits for this transaction and
    then fails its foreign key instead of being cascaded away uncounted.
    """
    root = db.query(Comment.id).filter(Comment.id == comment_id).with_for_update().scalar()
    if root is None:
        return []
    levels = [[root]]
    while True:
        children = [
            cid
            for (cid,) in db.query(Comment.id)
            .filter(Comment.parent_comment_id.in_(levels[-1]))
            .with_for_update()
            .all()
        ]
        if not children:
            return levels
        levels.append(children)


def _comment_remove(db: Session, comment_id: int, post_id: int) -> int:
    removed = 0
    # deepest level first; the subtree is locked, so the cascade has nothing left to remove
    for level in reversed(_comment_subtree(db, comment_id)):
        result = db.execute(delete(Comment).where(Comment.id.in_(level)))
        removed += result.rowcount
    if removed == 0:
        raise ConflictError(f"Comment {comment_id} was already deleted")
    _bump(db, Post, post_id, comments_count=-removed)
    return removed


def _follow(db: Session, follower_id: int, following_id: int) -> Follow:
    follow = _insert(
        db,
        Follow(follower_id=follower_id, following_id=following_id),
        f"User {follower_id} already follows user {following_id}",
    )
    _bump(db, User, follower_id, following_count=1)
    _bump(db, User, following_id, followers_count=1)
    return follow


def _unfollow(db: Session, follower_id: int, following_id: int) -> None:
    result = db.execute(
        delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    )
    if result.rowcount != 1:
        raise ConflictError(f"User {follower_id} does not follow user {following_id}")
    _bump(db, User, follower_id, following_count=-1)
    _bump(db, User, following_id, followers_count=-1)


def _post_add(db: Session, user_id: int, **fields: Any) -> Post:
    post = _insert(db, Post(user_id=user_id, **fields), f"Post for user {user_id} references a missing row")
    _bump(db, User, user_id, posts_count=1)
    return post


def _post_remove(db: Session, post_id: int, user_id: int) -> None:
    db.execute(delete(Notification).where(Notification.related_post_id == post_id))
    db.execute(delete(Like).where(Like.post_id == post_id))
    db.execute(delete(Comment).where(Comment.post_id == post_id))
    db.execute(delete(PostHashtag).where(PostHashtag.post_id == post_id))
    result = db.execute(delete(Post).where(Post.id == post_id, Post.user_id == user_id))
    if result.rowcount != 1:
        raise ConflictError(f"Post {post_id} was already deleted")
    _bump(db, User, user_id, posts_count=-1)


_HANDLERS: Dict[RelationOp, Callable[..., Any]] = {
    RelationOp.like: _like,
    RelationOp.unlike: _unlike,
    RelationOp.comment_add: _comment_add,
    RelationOp.comment_remove: _comment_remove,
    RelationOp.follow: _follow,
    RelationOp.unfollow: _unfollow,
    RelationOp.post_add: _post_add,
    RelationOp.post_remove: _post_remove,
}


def apply_relation_change(db: Session, op: RelationOp, **target: Any) -> Any:
    """
    Apply one relation change together with its counter adjustment.

    Args:
        db: Session whose transaction both effects join
        op: Which relation change to apply
        **target: Keyword arguments of the specific operation, e.g.
            ``user_id``/``post_id`` for likes or ``follower_id``/``following_id``
            for follows

    Returns:
        The inserted row for ``like``, ``follow``, ``comment_add`` and
        ``post_add``; the number of removed comments for ``comment_remove``;
        ``None`` otherwise.

    Raises:
        ConflictError: the insert hit a constraint or the delete matched nothing
    """
    return _HANDLERS[RelationOp(op)](db, **target)
