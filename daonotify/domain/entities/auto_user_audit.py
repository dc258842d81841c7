"""Domain entity recording team account synchronization outcomes."""

from dataclasses import dataclass
from enum import Enum


class AutoUserAction(str, Enum):
    CREATED = "created"
    REACTIVATED = "reactivated"
    ALREADY_ACTIVE = "already_active"
    ERROR = "error"


@dataclass(frozen=True)
class AutoUserAuditEntry:
    """Immutable audit record; ``email_masked`` never holds a raw address."""

    timestamp: str
    action: AutoUserAction
    email_masked: str
    dao_id: str | None = None
    member_name: str | None = None
    message: str | None = None


__all__ = ["AutoUserAction", "AutoUserAuditEntry"]
