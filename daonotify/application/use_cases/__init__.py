"""Aggregate application use cases."""

from .daos import ensure_can_modify_task_fields, sync_team_accounts
from .notifications import (
    notify_dao_created,
    notify_dao_deleted,
    notify_dao_updated,
    notify_task_updated,
    notify_user_created,
    notify_user_deleted,
    notify_user_login,
)

__all__ = [
    "ensure_can_modify_task_fields",
    "notify_dao_created",
    "notify_dao_deleted",
    "notify_dao_updated",
    "notify_task_updated",
    "notify_user_created",
    "notify_user_deleted",
    "notify_user_login",
    "sync_team_accounts",
]
