"""Pydantic models for the operational health endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from daonotify.domain.entities import AutoUserAction, AutoUserAuditEntry


class EmailDiagnosticsRead(BaseModel):
    """Delivery configuration, queue depth, counters and recent events."""

    config: dict[str, Any]
    queue: dict[str, Any]
    stats: dict[str, int]
    recent: list[dict[str, Any]]


class AutoUserAuditRead(BaseModel):
    timestamp: str
    action: AutoUserAction
    email_masked: str
    dao_id: str | None = None
    member_name: str | None = None
    message: str | None = None

    @classmethod
    def from_entry(cls, entry: AutoUserAuditEntry) -> "AutoUserAuditRead":
        return cls(
            timestamp=entry.timestamp,
            action=entry.action,
            email_masked=entry.email_masked,
            dao_id=entry.dao_id,
            member_name=entry.member_name,
            message=entry.message,
        )


__all__ = ["AutoUserAuditRead", "EmailDiagnosticsRead"]
