# app/services/notifications.py
"""Notification records for engagement events, and their read/unread lifecycle."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, aliased

from app.auth import Identity
from app.errors import ForbiddenError, NotFoundError
from app.models import Notification, NotificationKind, User
from app.services.pagination import Page, page_offset

logger = logging.getLogger(__name__)

MESSAGES = {
    NotificationKind.like: "{username} liked your post",
    NotificationKind.comment: "{username} commented on your post",
    NotificationKind.follow: "{username} started following you",
}


@dataclass
class NotificationEvent:
    """A committed notification waiting to be pushed to its recipient."""
    user_id: int
    payload: Dict[str, Any]


def notify(
    db: Session,
    kind: NotificationKind,
    recipient_id: int,
    actor: Identity,
    post_id: Optional[int] = None,
) -> Optional[NotificationEvent]:
    """
    Record a notification for ``recipient_id`` inside the caller's transaction.

    Nothing is recorded when the actor is the recipient.

    Returns:
        The event to push once the transaction commits, or None
    """
    if recipient_id == actor.user_id:
        return None

    message = MESSAGES[kind].format(username=actor.username)
    notification = Notification(
        user_id=recipient_id,
        type=kind,
        message=message,
        related_user_id=actor.user_id,
        related_post_id=post_id,
    )
    db.add(notification)
    db.flush()
    logger.debug("Notification %s (%s) recorded for user %s", notification.id, kind.value, recipient_id)

    payload = {
        "id": notification.id,
        "type": kind.value,
        "message": message,
        "user": {"id": actor.user_id, "username": actor.username},
        "created_at": notification.created_at.isoformat(),
    }
    if post_id is not None:
        payload["post_id"] = post_id
    return NotificationEvent(user_id=recipient_id, payload=payload)


def list_notifications(db: Session, user_id: int, page: int = 1, page_size: int = 20) -> Page:
    offset = page_offset(page, page_size)
    actor = aliased(User)
    rows = (
        db.query(
            Notification,
            actor.username.label("related_username"),
            actor.full_name.label("related_full_name"),
            actor.profile_picture.label("related_profile_picture"),
        )
        .outerjoin(actor, Notification.related_user_id == actor.id)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    items = [
        {
            "id": n.id,
            "type": n.type.value,
            "message": n.message,
            "related_user_id": n.related_user_id,
            "related_post_id": n.related_post_id,
            "related_username": related_username,
            "related_full_name": related_full_name,
            "related_profile_picture": related_profile_picture,
            "is_read": n.is_read,
            "created_at": n.created_at,
        }
        for n, related_username, related_full_name, related_profile_picture in rows
    ]
    return Page(page=page, page_size=page_size, items=items)


def unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(db: Session, notification_id: int, requester_id: int) -> None:
    owner_id = db.query(Notification.user_id).filter(Notification.id == notification_id).scalar()
    if owner_id is None:
        raise NotFoundError(f"Notification {notification_id} not found")
    if owner_id != requester_id:
        raise ForbiddenError("Not authorized to modify this notification")
    db.execute(update(Notification).where(Notification.id == notification_id).values(is_read=True))


def mark_all_read(db: Session, user_id: int) -> int:
    """Mark every unread notification of ``user_id`` as read; returns how many changed."""
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return result.rowcount
