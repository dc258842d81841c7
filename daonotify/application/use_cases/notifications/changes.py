"""Detect what changed between two versions of a DAO or of one of its tasks.

Detection produces plain value objects; rendering them as text lines lives
in the small ``render_*`` helpers below and in :mod:`.templates`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Sequence

from daonotify.domain.entities import (
    Dao,
    DaoTask,
    TaskComment,
    TeamMember,
    compute_dao_progress,
)

TRACKED_FIELDS: tuple[str, ...] = (
    "numero_liste",
    "objet_dossier",
    "reference",
    "autorite_contractante",
    "date_depot",
)
TEAM_FIELDS: tuple[str, ...] = ("chef", "membres")
CHANGED_FIELD_ORDER: tuple[str, ...] = (
    "numero_liste",
    "reference",
    "objet_dossier",
    "autorite_contractante",
    "chef",
    "membres",
    "date_depot",
)

PLACEHOLDER = "—"
NO_ASSIGNEE = "Aucun"
COMMENT_DISPLAY_LIMIT = 80


class TaskField(str, Enum):
    PROGRESS = "progress"
    APPLICABILITY = "applicability"
    COMMENT = "comment"
    ASSIGNEES = "assignees"


_COMPACT_LABELS = {
    TaskField.PROGRESS: "Progression",
    TaskField.APPLICABILITY: "Applicabilité",
    TaskField.COMMENT: "Commentaire",
    TaskField.ASSIGNEES: "Assignations",
}
_DETAILED_LABELS = {
    TaskField.PROGRESS: ("Progression antérieure", "Progression modifiée"),
    TaskField.APPLICABILITY: ("Applicabilité antérieure", "Applicabilité modifiée"),
    TaskField.COMMENT: ("Commentaire antérieur", "Commentaire modifié"),
    TaskField.ASSIGNEES: ("Assignations antérieures", "Assignations modifiées"),
}


@dataclass(frozen=True)
class TaskFieldChange:
    """One field of a task before and after an edit."""

    field: TaskField
    before: int | bool | str | tuple[str, ...]
    after: int | bool | str | tuple[str, ...]


@dataclass(frozen=True)
class TaskDiff:
    task_id: int
    task_name: str
    changes: tuple[TaskFieldChange, ...] = ()
    added_assignees: tuple[str, ...] = ()
    removed_assignees: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.changes

    @property
    def fields(self) -> tuple[TaskField, ...]:
        return tuple(change.field for change in self.changes)


@dataclass(frozen=True)
class TaskChange:
    """Summary of one modified task inside a DAO update."""

    id: int
    name: str
    changes: tuple[str, ...] = ()
    comments: tuple[TaskComment, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "changes": list(self.changes),
            "comments": [
                {
                    "user_name": comment.user_name,
                    "content": comment.content,
                    "created_at": comment.created_at,
                }
                for comment in self.comments
            ],
        }


@dataclass(frozen=True)
class DaoChangeSet:
    before: Dao
    after: Dao
    changed: frozenset[str] = frozenset()
    team_changes: tuple[str, ...] = ()
    task_changes: tuple[TaskChange, ...] = ()
    progress_before: int = 0
    progress_after: int = 0

    @property
    def ordered_changed(self) -> list[str]:
        return [name for name in CHANGED_FIELD_ORDER if name in self.changed]

    @property
    def progress_changed(self) -> bool:
        return self.progress_before != self.progress_after

    @property
    def has_changes(self) -> bool:
        return bool(
            self.changed or self.team_changes or self.task_changes or self.progress_changed
        )


# Formatting helpers --------------------------------------------------------------


def format_bool(value: bool | None) -> str:
    return "Oui" if value else "Non"


def truncate(value: str, limit: int = COMMENT_DISPLAY_LIMIT) -> str:
    if len(value) <= limit:
        return value
    return f"{value[: limit - 3]}..."


def resolve_names(ids: Iterable[str] | None, members: Mapping[str, str]) -> tuple[str, ...]:
    """Map member ids to display names, sorted case-insensitively."""

    names = {members.get(member_id, member_id) for member_id in ids or ()}
    return tuple(sorted(names, key=lambda name: (name.casefold(), name)))


def _progress(task: DaoTask) -> int:
    return task.progress or 0


def _comment(task: DaoTask) -> str:
    return (task.comment or "").strip()


# Detection -----------------------------------------------------------------------


def detect_team_changes(before: Sequence[TeamMember], after: Sequence[TeamMember]) -> list[str]:
    """Describe added members, role changes and removed members."""

    before_by_id = {member.id: member for member in before}
    after_ids = {member.id for member in after}
    lines: list[str] = []
    for member in after:
        previous = before_by_id.get(member.id)
        if previous is None:
            lines.append(f"{member.name} ajouté")
        elif previous.role != member.role:
            lines.append(f"{member.name}: {previous.role} → {member.role}")
    lines.extend(f"{member.name} retiré" for member in before if member.id not in after_ids)
    return lines


def detect_record_changes(before: Dao, after: Dao) -> frozenset[str]:
    """Return the tracked field names whose value differs between versions."""

    changed = {name for name in TRACKED_FIELDS if getattr(before, name) != getattr(after, name)}
    if detect_team_changes(before.equipe, after.equipe):
        changed.update(TEAM_FIELDS)
    return frozenset(changed)


def detect_task_changes(
    before: DaoTask, after: DaoTask, members: Mapping[str, str] | None = None
) -> TaskDiff:
    """Compare two versions of a task field by field, in a fixed order."""

    members = members or {}
    changes: list[TaskFieldChange] = []

    if _progress(before) != _progress(after):
        changes.append(TaskFieldChange(TaskField.PROGRESS, _progress(before), _progress(after)))
    if bool(before.is_applicable) != bool(after.is_applicable):
        changes.append(
            TaskFieldChange(
                TaskField.APPLICABILITY, bool(before.is_applicable), bool(after.is_applicable)
            )
        )
    if _comment(before) != _comment(after):
        changes.append(TaskFieldChange(TaskField.COMMENT, _comment(before), _comment(after)))

    before_names = resolve_names(before.assigned_to, members)
    after_names = resolve_names(after.assigned_to, members)
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    if set(before_names) != set(after_names):
        changes.append(TaskFieldChange(TaskField.ASSIGNEES, before_names, after_names))
        added = tuple(name for name in after_names if name not in before_names)
        removed = tuple(name for name in before_names if name not in after_names)

    return TaskDiff(
        task_id=after.id,
        task_name=after.name,
        changes=tuple(changes),
        added_assignees=added,
        removed_assignees=removed,
    )


def detect_dao_changes(
    before: Dao,
    after: Dao,
    comments_by_task: Mapping[int, Sequence[TaskComment]] | None = None,
) -> DaoChangeSet:
    """Build the full change set of a DAO update.

    When ``comments_by_task`` is given, modified tasks carry their comments
    and commented tasks without field changes are listed as well.
    """

    members = after.member_names()
    before_tasks = {task.id: task for task in before.tasks}
    comments_by_task = comments_by_task or {}

    task_changes: list[TaskChange] = []
    listed: set[int] = set()
    for task in after.tasks:
        previous = before_tasks.get(task.id)
        if previous is None:
            continue
        diff = detect_task_changes(previous, task, members)
        if diff.is_empty:
            continue
        task_changes.append(
            TaskChange(
                id=task.id,
                name=task.name,
                changes=tuple(render_task_changes_compact(diff)),
                comments=tuple(comments_by_task.get(task.id, ())),
            )
        )
        listed.add(task.id)

    for task_id in sorted(comments_by_task):
        comments = comments_by_task[task_id]
        if task_id in listed or not comments:
            continue
        task = after.get_task(task_id)
        task_changes.append(
            TaskChange(
                id=task_id,
                name=task.name if task else f"Tâche {task_id}",
                comments=tuple(comments),
            )
        )

    return DaoChangeSet(
        before=before,
        after=after,
        changed=detect_record_changes(before, after),
        team_changes=tuple(detect_team_changes(before.equipe, after.equipe)),
        task_changes=tuple(task_changes),
        progress_before=compute_dao_progress(before.tasks),
        progress_after=compute_dao_progress(after.tasks),
    )


# Plain renderers -----------------------------------------------------------------


def _compact_value(change: TaskFieldChange, value: object) -> str:
    if change.field is TaskField.PROGRESS:
        return f"{value}%"
    if change.field is TaskField.APPLICABILITY:
        return format_bool(bool(value))
    if change.field is TaskField.COMMENT:
        return truncate(str(value) or PLACEHOLDER)
    names = value if isinstance(value, tuple) else ()
    return ", ".join(names) or NO_ASSIGNEE


def _detailed_value(change: TaskFieldChange, value: object) -> str:
    if change.field is TaskField.PROGRESS:
        return f"{value}%"
    if change.field is TaskField.APPLICABILITY:
        return format_bool(bool(value))
    if change.field is TaskField.COMMENT:
        return str(value) or PLACEHOLDER
    names = value if isinstance(value, tuple) else ()
    return ", ".join(names) or PLACEHOLDER


def render_task_changes_compact(diff: TaskDiff) -> list[str]:
    """One line per field, e.g. ``Progression 10% → 30%``."""

    return [
        f"{_COMPACT_LABELS[change.field]} "
        f"{_compact_value(change, change.before)} → {_compact_value(change, change.after)}"
        for change in diff.changes
    ]


def render_task_changes_detailed(diff: TaskDiff) -> list[str]:
    """Two lines per field, e.g. ``Progression antérieure : 10%`` then ``modifiée``."""

    lines: list[str] = []
    for change in diff.changes:
        before_label, after_label = _DETAILED_LABELS[change.field]
        lines.append(f"{before_label} : {_detailed_value(change, change.before)}")
        lines.append(f"{after_label} : {_detailed_value(change, change.after)}")
    return lines


__all__ = [
    "COMMENT_DISPLAY_LIMIT",
    "DaoChangeSet",
    "PLACEHOLDER",
    "TRACKED_FIELDS",
    "TaskChange",
    "TaskDiff",
    "TaskField",
    "TaskFieldChange",
    "detect_dao_changes",
    "detect_record_changes",
    "detect_task_changes",
    "detect_team_changes",
    "format_bool",
    "render_task_changes_compact",
    "render_task_changes_detailed",
    "resolve_names",
    "truncate",
]
