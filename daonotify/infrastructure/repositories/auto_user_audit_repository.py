"""Ring buffer recording team account synchronization outcomes."""

from __future__ import annotations

import logging
import threading
from collections import deque

from daonotify.domain.entities import AutoUserAction, AutoUserAuditEntry
from daonotify.utils.datetime import iso_now
from daonotify.utils.email import mask_email

logger = logging.getLogger(__name__)

AUDIT_CAPACITY = 200
DEFAULT_LIST_LIMIT = 50


class AutoUserAuditLog:
    """Keep the latest audit entries, newest first; emails are masked on entry."""

    def __init__(self, capacity: int = AUDIT_CAPACITY) -> None:
        self._capacity = max(1, capacity)
        self._entries: deque[AutoUserAuditEntry] = deque(maxlen=self._capacity)
        self._lock = threading.Lock()

    def record(
        self,
        action: AutoUserAction | str,
        email: str | None,
        *,
        dao_id: str | None = None,
        member_name: str | None = None,
        message: str | None = None,
    ) -> AutoUserAuditEntry:
        entry = AutoUserAuditEntry(
            timestamp=iso_now(),
            action=AutoUserAction(action),
            email_masked=mask_email(email),
            dao_id=dao_id,
            member_name=member_name,
            message=message,
        )
        with self._lock:
            self._entries.appendleft(entry)
        logger.debug("Auto-user audit: %s %s", entry.action.value, entry.email_masked)
        return entry

    def list(self, limit: int = DEFAULT_LIST_LIMIT) -> list[AutoUserAuditEntry]:
        """Return up to ``limit`` entries; ``limit`` is clamped to the capacity."""

        limit = min(max(int(limit), 1), self._capacity)
        with self._lock:
            return list(self._entries)[:limit]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


__all__ = ["AUDIT_CAPACITY", "AutoUserAuditLog"]
