"""
FastAPI routes for notifications and the real-time notification channel.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from app.auth import Identity, get_current_identity, resolve_identity
from app.db import get_session
from app.errors import AuthenticationError
from app.services.notifications import list_notifications, mark_all_read, mark_read, unread_count
from app.services.realtime import connection_registry

logger = logging.getLogger(__name__)


class NotificationOut(BaseModel):
    id: int
    type: str = Field(..., description="like, comment or follow")
    message: str
    related_user_id: Optional[int] = None
    related_post_id: Optional[int] = None
    related_username: Optional[str] = None
    related_full_name: Optional[str] = None
    related_profile_picture: Optional[str] = None
    is_read: bool
    created_at: datetime


class NotificationPage(BaseModel):
    items: List[NotificationOut]
    has_more: bool
    page: int
    page_size: int


class UnreadCount(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    message: str
    updated: int = Field(1, description="Notifications transitioned to read")


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationPage)
def get_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(get_current_identity),
) -> NotificationPage:
    """The requesting user's notifications, newest first."""
    with get_session() as db:
        return NotificationPage(**list_notifications(db, identity.user_id, page, page_size).to_dict())


@router.get("/unread-count", response_model=UnreadCount)
def get_unread_count(identity: Identity = Depends(get_current_identity)) -> UnreadCount:
    with get_session() as db:
        return UnreadCount(count=unread_count(db, identity.user_id))


@router.put("/read-all", response_model=MarkReadResponse)
def mark_all_notifications_read(identity: Identity = Depends(get_current_identity)) -> MarkReadResponse:
    with get_session() as db:
        updated = mark_all_read(db, identity.user_id)
    return MarkReadResponse(message="All notifications marked as read", updated=updated)


@router.put("/{notification_id}/read", response_model=MarkReadResponse)
def mark_notification_read(
    notification_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
) -> MarkReadResponse:
    with get_session() as db:
        mark_read(db, notification_id, identity.user_id)
    return MarkReadResponse(message="Notification marked as read")


@router.websocket("/ws")
async def notification_channel(websocket: WebSocket):
    """
    Real-time notification channel.

    The connection joins the channel of the authenticated user. Pushes are
    best-effort; after reconnecting, clients should reconcile with
    ``GET /notifications``. Sending ``ping`` answers ``pong``.
    """
    try:
        identity = await run_in_threadpool(resolve_identity, websocket.headers)
    except AuthenticationError:
        identity = None
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection_registry.join(identity.user_id, websocket)
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug("Notification channel closed by user %s", identity.user_id)
    finally:
        connection_registry.leave(identity.user_id, websocket)
