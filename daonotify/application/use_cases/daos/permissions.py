"""Authorization rule shared by bulk DAO updates and single task updates."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from daonotify.domain.entities import Dao, DirectoryUser

RESTRICTED_TASK_FIELDS = frozenset({"progress", "is_applicable", "assigned_to"})
ADMIN_NOT_LEADER_FORBIDDEN = "ADMIN_NOT_LEADER_FORBIDDEN"


class TaskFieldPermissionError(PermissionError):
    """Raised when an administrator who does not lead the team edits restricted fields."""

    code = ADMIN_NOT_LEADER_FORBIDDEN

    def __init__(self) -> None:
        super().__init__(
            "Seul le chef d'équipe peut modifier la progression, l'applicabilité ou l'assignation"
        )


def is_restricted_task_change(
    user: DirectoryUser, dao: Dao, requested_fields: Iterable[str]
) -> bool:
    """Return ``True`` for an admin, not leading ``dao``, touching a restricted field."""

    if not user.is_admin() or dao.is_leader(user.id):
        return False
    return not RESTRICTED_TASK_FIELDS.isdisjoint(requested_fields)


def ensure_can_modify_task_fields(
    user: DirectoryUser, dao: Dao, requested_fields: Iterable[str]
) -> None:
    if is_restricted_task_change(user, dao, requested_fields):
        raise TaskFieldPermissionError()


def changed_task_fields(dao: Dao, task_updates: Iterable[Mapping[str, Any]]) -> set[str]:
    """Return the restricted fields whose value differs in a bulk task update.

    Updates for unknown task ids are ignored; fields absent from an update
    are left untouched and therefore not reported.
    """

    changed: set[str] = set()
    for update in task_updates:
        task = dao.get_task(update.get("id"))
        if task is None:
            continue
        progress = update.get("progress")
        if isinstance(progress, int) and (task.progress or 0) != progress:
            changed.add("progress")
        applicable = update.get("is_applicable")
        if isinstance(applicable, bool) and task.is_applicable != applicable:
            changed.add("is_applicable")
        assigned = update.get("assigned_to")
        if isinstance(assigned, list) and list(task.assigned_to or []) != assigned:
            changed.add("assigned_to")
    return changed


__all__ = [
    "ADMIN_NOT_LEADER_FORBIDDEN",
    "RESTRICTED_TASK_FIELDS",
    "TaskFieldPermissionError",
    "changed_task_fields",
    "ensure_can_modify_task_fields",
    "is_restricted_task_change",
]
