from .health import AutoUserAuditRead, EmailDiagnosticsRead
from .notification import (
    MarkAllReadResponse,
    NotificationRead,
    OperationResult,
    TestEmailResponse,
)

__all__ = [
    "AutoUserAuditRead",
    "EmailDiagnosticsRead",
    "MarkAllReadResponse",
    "NotificationRead",
    "OperationResult",
    "TestEmailResponse",
]
