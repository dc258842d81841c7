"""Connection management helpers for notification websockets."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Iterable, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class NotificationConnectionManager:
    """Manage active websocket connections grouped by user."""

    def __init__(self) -> None:
        self._connections: DefaultDict[str, Set[WebSocket]] = defaultdict(set)

    @property
    def connected_users(self) -> list[str]:
        return list(self._connections)

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        """Accept the websocket connection and register it for ``user_id``."""

        await websocket.accept()
        self._connections[user_id].add(websocket)

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        """Remove ``websocket`` from the pool for ``user_id``."""

        connections = self._connections.get(user_id)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            self._connections.pop(user_id, None)

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> None:
        """Send ``message`` to every active connection for ``user_id``."""

        for connection in list(self._connections.get(user_id, set())):
            try:
                await connection.send_json(message)
            except Exception as exc:
                logger.info("Dropping notification websocket of user %s: %s", user_id, exc)
                self.disconnect(user_id, connection)

    async def send_to_users(self, user_ids: Iterable[str], message: dict[str, Any]) -> None:
        for user_id in dict.fromkeys(user_ids):
            await self.send_to_user(user_id, message)

    async def broadcast(self, message: dict[str, Any]) -> None:
        await self.send_to_users(self.connected_users, message)


__all__ = ["NotificationConnectionManager"]
