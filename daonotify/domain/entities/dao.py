"""Domain entities describing a DAO case file, its team and its tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

ROLE_TEAM_LEADER = "chef_equipe"
ROLE_TEAM_MEMBER = "membre_equipe"


@dataclass(frozen=True)
class TeamMember:
    """Person working on a DAO."""

    id: str
    name: str
    role: str = ROLE_TEAM_MEMBER
    email: str | None = None

    @property
    def is_leader(self) -> bool:
        return self.role == ROLE_TEAM_LEADER


@dataclass
class DaoTask:
    """Unit of work tracked inside a DAO."""

    id: int
    name: str
    progress: int | None = None
    is_applicable: bool = True
    assigned_to: list[str] = field(default_factory=list)
    comment: str | None = None
    last_updated_by: str | None = None
    last_updated_at: str | None = None


@dataclass(frozen=True)
class TaskComment:
    """Comment left by a user on a task."""

    task_id: int
    user_name: str
    content: str
    created_at: str | None = None


@dataclass
class Dao:
    """Tender case file edited concurrently by its team."""

    id: str
    numero_liste: str
    objet_dossier: str
    reference: str
    autorite_contractante: str
    date_depot: str
    equipe: list[TeamMember] = field(default_factory=list)
    tasks: list[DaoTask] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def leader(self) -> TeamMember | None:
        return next((member for member in self.equipe if member.is_leader), None)

    @property
    def members(self) -> list[TeamMember]:
        return [member for member in self.equipe if not member.is_leader]

    def member_names(self) -> dict[str, str]:
        """Return a mapping of member identifier to display name."""

        return {member.id: member.name for member in self.equipe}

    def is_leader(self, user_id: str) -> bool:
        return any(member.id == user_id and member.is_leader for member in self.equipe)

    def get_task(self, task_id: int) -> DaoTask | None:
        return next((task for task in self.tasks if task.id == task_id), None)


def compute_dao_progress(tasks: Sequence[DaoTask] | None) -> int:
    """Return the rounded mean progress of the applicable ``tasks``.

    Missing progress counts as zero; halves round up. Without applicable
    tasks the progress is zero.
    """

    applicable = [task for task in tasks or () if task.is_applicable]
    if not applicable:
        return 0
    total = sum(task.progress or 0 for task in applicable)
    return int(total / len(applicable) + 0.5)


__all__ = [
    "Dao",
    "DaoTask",
    "ROLE_TEAM_LEADER",
    "ROLE_TEAM_MEMBER",
    "TaskComment",
    "TeamMember",
    "compute_dao_progress",
]
