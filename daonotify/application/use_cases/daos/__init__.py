"""Use cases guarding and following up DAO edits."""

from .permissions import (
    ADMIN_NOT_LEADER_FORBIDDEN,
    TaskFieldPermissionError,
    changed_task_fields,
    ensure_can_modify_task_fields,
    is_restricted_task_change,
)
from .sync_team_accounts import sync_team_accounts

__all__ = [
    "ADMIN_NOT_LEADER_FORBIDDEN",
    "TaskFieldPermissionError",
    "changed_task_fields",
    "ensure_can_modify_task_fields",
    "is_restricted_task_change",
    "sync_team_accounts",
]
