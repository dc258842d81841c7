"""Change detection, templates and notification use cases for DAOs and accounts."""

from .accounts import notify_user_created, notify_user_deleted, notify_user_login
from .changes import (
    DaoChangeSet,
    TaskChange,
    TaskDiff,
    TaskField,
    TaskFieldChange,
    detect_dao_changes,
    detect_record_changes,
    detect_task_changes,
    detect_team_changes,
    render_task_changes_compact,
    render_task_changes_detailed,
)
from .events import (
    notify_dao_created,
    notify_dao_deleted,
    notify_dao_updated,
    notify_task_updated,
)
from .templates import (
    render_dao_created,
    render_dao_deleted,
    render_dao_updated,
    render_login_success,
    render_new_login,
    render_task_updated,
    render_user_deleted,
)

__all__ = [
    "DaoChangeSet",
    "TaskChange",
    "TaskDiff",
    "TaskField",
    "TaskFieldChange",
    "detect_dao_changes",
    "detect_record_changes",
    "detect_task_changes",
    "detect_team_changes",
    "notify_dao_created",
    "notify_dao_deleted",
    "notify_dao_updated",
    "notify_task_updated",
    "notify_user_created",
    "notify_user_deleted",
    "notify_user_login",
    "render_dao_created",
    "render_dao_deleted",
    "render_dao_updated",
    "render_login_success",
    "render_new_login",
    "render_task_changes_compact",
    "render_task_changes_detailed",
    "render_task_updated",
    "render_user_deleted",
]
