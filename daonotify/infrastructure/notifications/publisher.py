"""Utility helpers to push notifications to websocket subscribers."""

from __future__ import annotations

from typing import Any

from daonotify.domain.entities import ALL_RECIPIENTS, Notification

from .manager import NotificationConnectionManager


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data,
        "recipients": (
            ALL_RECIPIENTS if notification.is_broadcast else list(notification.recipients)
        ),
        "created_at": notification.created_at,
    }


class NotificationPublisher:
    """Serialize notifications and push them to their connected recipients."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    async def publish(self, notification: Notification) -> None:
        message = {"type": "notification", "data": serialize_notification(notification)}
        if notification.is_broadcast:
            await self._manager.broadcast(message)
        else:
            await self._manager.send_to_users(notification.recipients, message)


__all__ = ["NotificationPublisher", "serialize_notification"]
