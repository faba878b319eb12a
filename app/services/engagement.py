# app/services/engagement.py
"""
Like and follow toggles.

Each toggle reads the current membership and applies the opposite
transition through the counter layer. A concurrent toggle on the same pair
surfaces as ``ConflictError`` from the insert or delete; callers re-read
state instead of retrying, so counters can never be adjusted twice.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.auth import Identity
from app.errors import InvalidInputError, NotFoundError
from app.models import Follow, Like, NotificationKind, Post, User
from app.services.counters import RelationOp, apply_relation_change
from app.services.notifications import NotificationEvent, notify

logger = logging.getLogger(__name__)


@dataclass
class LikeToggle:
    liked: bool
    likes_count: int
    event: Optional[NotificationEvent] = None


@dataclass
class FollowToggle:
    following: bool
    followers_count: int
    event: Optional[NotificationEvent] = None


def toggle_like(db: Session, actor: Identity, post_id: int) -> LikeToggle:
    """
    Like the post if ``actor`` has not liked it yet, otherwise unlike it.

    Only the like transition notifies, and only when the post belongs to
    somebody else.

    Raises:
        NotFoundError: the post does not exist
        ConflictError: a concurrent toggle on the same pair won the race
    """
    post_owner_id = db.query(Post.user_id).filter(Post.id == post_id).scalar()
    if post_owner_id is None:
        raise NotFoundError(f"Post {post_id} not found")

    already_liked = (
        db.query(Like.id).filter(Like.user_id == actor.user_id, Like.post_id == post_id).first() is not None
    )
    event = None
    if already_liked:
        apply_relation_change(db, RelationOp.unlike, user_id=actor.user_id, post_id=post_id)
    else:
        apply_relation_change(db, RelationOp.like, user_id=actor.user_id, post_id=post_id)
        event = notify(db, NotificationKind.like, post_owner_id, actor, post_id=post_id)

    likes_count = db.query(Post.likes_count).filter(Post.id == post_id).scalar()
    logger.info("User %s %s post %s", actor.user_id, "unliked" if already_liked else "liked", post_id)
    return LikeToggle(liked=not already_liked, likes_count=likes_count, event=event)


def toggle_follow(db: Session, actor: Identity, target_username: str) -> FollowToggle:
    """
    Follow ``target_username`` if not yet followed, otherwise unfollow.

    Raises:
        NotFoundError: no such user
        InvalidInputError: the actor tried to follow themselves
        ConflictError: a concurrent toggle on the same pair won the race
    """
    target_id = db.query(User.id).filter(User.username == target_username).scalar()
    if target_id is None:
        raise NotFoundError(f"User {target_username} not found")
    if target_id == actor.user_id:
        raise InvalidInputError("Cannot follow yourself")

    already_following = (
        db.query(Follow.id)
        .filter(Follow.follower_id == actor.user_id, Follow.following_id == target_id)
        .first()
        is not None
    )
    event = None
    if already_following:
        apply_relation_change(db, RelationOp.unfollow, follower_id=actor.user_id, following_id=target_id)
    else:
        apply_relation_change(db, RelationOp.follow, follower_id=actor.user_id, following_id=target_id)
        event = notify(db, NotificationKind.follow, target_id, actor)

    followers_count = db.query(User.followers_count).filter(User.id == target_id).scalar()
    logger.info(
        "User %s %s user %s", actor.user_id, "unfollowed" if already_following else "followed", target_id
    )
    return FollowToggle(following=not already_following, followers_count=followers_count, event=event)
