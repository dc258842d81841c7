"""Pydantic models describing notification payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from daonotify.domain.entities import NotificationType, NotificationView


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: str
    read: bool = False

    @classmethod
    def from_view(cls, view: NotificationView) -> "NotificationRead":
        return cls(
            id=view.id,
            type=view.type,
            title=view.title,
            message=view.message,
            data=view.data,
            created_at=view.created_at,
            read=view.read,
        )


class OperationResult(BaseModel):
    ok: bool = True


class MarkAllReadResponse(OperationResult):
    count: int = Field(..., ge=0, description="Notifications newly marked as read")


class TestEmailResponse(OperationResult):
    attempted: int
    sent: int
    failed: int


__all__ = [
    "MarkAllReadResponse",
    "NotificationRead",
    "OperationResult",
    "TestEmailResponse",
]
