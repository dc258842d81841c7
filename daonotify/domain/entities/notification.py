"""Domain entity representing a fan-out notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, NamedTuple, Union

ALL_RECIPIENTS: Literal["all"] = "all"

Recipients = Union[Literal["all"], tuple[str, ...]]


class NotificationType(str, Enum):
    """Closed set of notification categories."""

    ROLE_UPDATE = "role_update"
    TASK_NOTIFICATION = "task_notification"
    DAO_CREATED = "dao_created"
    DAO_UPDATED = "dao_updated"
    DAO_DELETED = "dao_deleted"
    USER_CREATED = "user_created"
    SYSTEM = "system"


class NotificationPayload(NamedTuple):
    """Rendered notification ready to be handed to the store."""

    type: NotificationType
    title: str
    message: str
    data: dict[str, Any]


@dataclass
class Notification:
    """Information message delivered to a set of users or to everybody."""

    id: str
    type: NotificationType
    title: str
    message: str
    recipients: Recipients
    created_at: str
    data: dict[str, Any] = field(default_factory=dict)
    read_by: set[str] = field(default_factory=set)

    @property
    def is_broadcast(self) -> bool:
        return self.recipients == ALL_RECIPIENTS

    def is_recipient(self, user_id: str) -> bool:
        """Return ``True`` when ``user_id`` may see this notification."""

        return self.is_broadcast or user_id in self.recipients

    @property
    def skips_email_mirror(self) -> bool:
        return bool(self.data.get("skip_email_mirror"))

    @property
    def dao_id(self) -> str | None:
        value = self.data.get("dao_id")
        return str(value) if value else None


@dataclass(frozen=True)
class NotificationView:
    """Notification as seen by one user, annotated with its read state."""

    id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any]
    created_at: str
    read: bool


__all__ = [
    "ALL_RECIPIENTS",
    "Notification",
    "NotificationPayload",
    "NotificationType",
    "NotificationView",
    "Recipients",
]
