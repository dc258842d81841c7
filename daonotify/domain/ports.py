"""Collaborators the notification core consumes from the surrounding system."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from daonotify.domain.entities import Dao, DirectoryUser


@dataclass(frozen=True)
class EnsureUserResult:
    """Outcome of :meth:`UserDirectory.ensure_active_user_by_email`."""

    user: DirectoryUser | None
    created: bool = False
    reactivated: bool = False


class UserDirectory(Protocol):
    def get_user(self, user_id: str) -> DirectoryUser | None:
        ...

    def list_active_users(self) -> list[DirectoryUser]:
        ...

    def ensure_active_user_by_email(
        self, email: str, name: str, *, allow_create: bool = False
    ) -> EnsureUserResult:
        ...


class DaoRepository(Protocol):
    def get_dao(self, dao_id: str) -> Dao | None:
        ...


__all__ = ["DaoRepository", "EnsureUserResult", "UserDirectory"]
