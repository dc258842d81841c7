"""Operational health endpoints for email delivery and team account sync."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from daonotify.domain.entities import DirectoryUser
from daonotify.infrastructure.email import EmailDeliveryService
from daonotify.infrastructure.repositories import AutoUserAuditLog
from daonotify.infrastructure.repositories.auto_user_audit_repository import AUDIT_CAPACITY
from daonotify.interfaces.api.dependencies import (
    get_auto_user_audit,
    get_email_delivery,
    require_admin,
)
from daonotify.interfaces.api.schemas import (
    AutoUserAuditRead,
    EmailDiagnosticsRead,
    OperationResult,
)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/email", response_model=EmailDiagnosticsRead)
def email_diagnostics(
    delivery: EmailDeliveryService = Depends(get_email_delivery),
    _: DirectoryUser = Depends(require_admin),
) -> EmailDiagnosticsRead:
    return EmailDiagnosticsRead(**delivery.diagnostics())


@router.delete("/email", response_model=OperationResult)
def clear_email_diagnostics(
    delivery: EmailDeliveryService = Depends(get_email_delivery),
    _: DirectoryUser = Depends(require_admin),
) -> OperationResult:
    """Reset the delivery counters and the recent event log."""

    delivery.clear_diagnostics()
    return OperationResult()


@router.get("/auto-users", response_model=list[AutoUserAuditRead])
def list_auto_user_events(
    limit: int = Query(default=50, ge=1, le=AUDIT_CAPACITY),
    audit: AutoUserAuditLog = Depends(get_auto_user_audit),
    _: DirectoryUser = Depends(require_admin),
) -> list[AutoUserAuditRead]:
    return [AutoUserAuditRead.from_entry(entry) for entry in audit.list(limit)]


@router.delete("/auto-users", response_model=OperationResult)
def clear_auto_user_events(
    audit: AutoUserAuditLog = Depends(get_auto_user_audit),
    _: DirectoryUser = Depends(require_admin),
) -> OperationResult:
    audit.clear()
    return OperationResult()
