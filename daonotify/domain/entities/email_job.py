"""Domain entities describing outgoing email jobs and their outcome."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MailType(str, Enum):
    """Categorical tag attached to a job for logging."""

    USER_CREATED = "USER_CREATED"
    USER_DELETED_USER = "USER_DELETED_USER"
    USER_DELETED_ADMIN = "USER_DELETED_ADMIN"
    DAO_CREATED = "DAO_CREATED"
    DAO_UPDATED = "DAO_UPDATED"
    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_DELETED = "TASK_DELETED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_REASSIGNED = "TASK_REASSIGNED"
    TASK_COMMENTED = "TASK_COMMENTED"
    AUTH_PASSWORD_RESET = "AUTH_PASSWORD_RESET"
    AUTH_PASSWORD_CHANGED = "AUTH_PASSWORD_CHANGED"
    SYSTEM_TEST = "SYSTEM_TEST"


@dataclass(frozen=True)
class EmailJob:
    """Email waiting in the delivery queue."""

    id: str
    recipients: tuple[str, ...]
    subject: str
    body: str
    enqueued_at: str
    type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "recipients": list(self.recipients),
            "subject": self.subject,
            "body": self.body,
            "enqueued_at": self.enqueued_at,
        }
        if self.type:
            payload["type"] = self.type
        return payload


@dataclass(frozen=True)
class BatchFailure:
    """Blind-copy batch that could not be delivered."""

    code: str
    message: str
    recipients: tuple[str, ...]
    permanent: bool = False


@dataclass
class DeliverySummary:
    """Outcome of a job across all of its attempts."""

    subject: str
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    errors: list[BatchFailure] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "attempted": self.attempted,
            "sent": self.sent,
            "failed": self.failed,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "recipients": list(error.recipients),
                }
                for error in self.errors
            ],
        }


@dataclass(frozen=True)
class DeliveryEvent:
    """Diagnostic record of a single delivery outcome."""

    timestamp: str
    subject: str
    recipients: int
    outcome: str
    type: str | None = None
    provider: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "subject": self.subject,
            "recipients": self.recipients,
            "outcome": self.outcome,
            "type": self.type,
            "provider": self.provider,
            "error": self.error,
        }


__all__ = [
    "BatchFailure",
    "DeliveryEvent",
    "DeliverySummary",
    "EmailJob",
    "MailType",
]
