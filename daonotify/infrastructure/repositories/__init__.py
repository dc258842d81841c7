"""Repository implementations for infrastructure layer."""

from .auto_user_audit_repository import AutoUserAuditLog
from .dao_repository import InMemoryDaoRepository
from .notification_repository import NotificationRepository
from .user_directory import InMemoryUserDirectory

__all__ = [
    "AutoUserAuditLog",
    "InMemoryDaoRepository",
    "InMemoryUserDirectory",
    "NotificationRepository",
]
