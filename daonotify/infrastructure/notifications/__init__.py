"""Notification fan-out: store, email mirroring and realtime delivery."""

from .manager import NotificationConnectionManager
from .mirror import EmailMirror, ErrorNotificationCooldown, safe_error_message
from .publisher import NotificationPublisher, serialize_notification
from .recipients import EmailRecipientResolver, ResolvedRecipients
from .store import NotificationStore, new_notification_id

__all__ = [
    "EmailMirror",
    "EmailRecipientResolver",
    "ErrorNotificationCooldown",
    "NotificationConnectionManager",
    "NotificationPublisher",
    "NotificationStore",
    "ResolvedRecipients",
    "new_notification_id",
    "safe_error_message",
    "serialize_notification",
]
