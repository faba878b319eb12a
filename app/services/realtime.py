"""
Process-local registry of live notification channels.

Each authenticated WebSocket session joins the channel of its own user id.
Delivery is best-effort and at most once: if the target is offline nothing is
queued, and a session that fails to receive is dropped. The ``notifications``
table stays the system of record that clients reconcile against.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import BackgroundTasks, WebSocket

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps user ids to their connected WebSocket sessions."""

    def __init__(self):
        self._channels: Dict[int, Set[WebSocket]] = defaultdict(set)

    def join(self, user_id: int, websocket: WebSocket) -> None:
        self._channels[user_id].add(websocket)
        logger.info("User %s joined notification channel (%d sessions)", user_id, len(self._channels[user_id]))

    def leave(self, user_id: int, websocket: WebSocket) -> None:
        sessions = self._channels.get(user_id)
        if not sessions:
            return
        sessions.discard(websocket)
        if not sessions:
            del self._channels[user_id]
        logger.info("User %s left notification channel", user_id)

    def is_connected(self, user_id: int) -> bool:
        return bool(self._channels.get(user_id))

    def connection_count(self) -> int:
        return sum(len(sessions) for sessions in self._channels.values())

    async def emit(self, user_id: int, event: Dict[str, Any]) -> int:
        """
        Push ``event`` to every live session of ``user_id``.

        Never raises; failed sessions are removed from the registry.

        Returns:
            Number of sessions the event was handed to
        """
        delivered = 0
        for websocket in list(self._channels.get(user_id, ())):
            try:
                await websocket.send_json(event)
                delivered += 1
            except Exception as exc:
                logger.warning("Dropping notification session for user %s: %s", user_id, exc)
                self.leave(user_id, websocket)
        return delivered

    def clear(self) -> None:
        self._channels.clear()


# Global registry for the process
connection_registry = ConnectionRegistry()


def schedule_push(background_tasks: BackgroundTasks, event) -> None:
    """Queue ``event`` for delivery after the response; the caller must have committed."""
    if event is not None:
        background_tasks.add_task(connection_registry.emit, event.user_id, event.payload)
