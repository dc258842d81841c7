"""Domain entities exposed by the application."""

from .auto_user_audit import AutoUserAction, AutoUserAuditEntry
from .dao import (
    ROLE_TEAM_LEADER,
    ROLE_TEAM_MEMBER,
    Dao,
    DaoTask,
    TaskComment,
    TeamMember,
    compute_dao_progress,
)
from .email_job import BatchFailure, DeliveryEvent, DeliverySummary, EmailJob, MailType
from .notification import (
    ALL_RECIPIENTS,
    Notification,
    NotificationPayload,
    NotificationType,
    NotificationView,
)
from .user import ADMIN_ROLE, DirectoryUser

__all__ = [
    "ADMIN_ROLE",
    "ALL_RECIPIENTS",
    "AutoUserAction",
    "AutoUserAuditEntry",
    "BatchFailure",
    "Dao",
    "DaoTask",
    "DeliveryEvent",
    "DeliverySummary",
    "DirectoryUser",
    "EmailJob",
    "MailType",
    "Notification",
    "NotificationPayload",
    "NotificationType",
    "NotificationView",
    "ROLE_TEAM_LEADER",
    "ROLE_TEAM_MEMBER",
    "TaskComment",
    "TeamMember",
    "compute_dao_progress",
]
