"""In-memory implementation of the user directory."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable

from daonotify.domain.entities import DirectoryUser
from daonotify.domain.ports import EnsureUserResult
from daonotify.utils.email import normalize_email

logger = logging.getLogger(__name__)


class InMemoryUserDirectory:
    """Users indexed by identifier, looked up by normalized email."""

    def __init__(self, users: Iterable[DirectoryUser] = ()) -> None:
        self._users: dict[str, DirectoryUser] = {}
        for user in users:
            self.save(user)

    def save(self, user: DirectoryUser) -> DirectoryUser:
        self._users[user.id] = user
        return user

    def get_user(self, user_id: str) -> DirectoryUser | None:
        return self._users.get(user_id)

    def list_active_users(self) -> list[DirectoryUser]:
        return [user for user in self._users.values() if user.is_active]

    def find_by_email(self, email: str) -> DirectoryUser | None:
        normalized = normalize_email(email)
        if not normalized:
            return None
        return next(
            (user for user in self._users.values() if normalize_email(user.email) == normalized),
            None,
        )

    def ensure_active_user_by_email(
        self, email: str, name: str, *, allow_create: bool = False
    ) -> EnsureUserResult:
        """Return the active account for ``email``, reactivating it when needed.

        Unknown addresses are only turned into accounts when ``allow_create``
        is set.
        """

        user = self.find_by_email(email)
        if user is not None:
            if user.is_active:
                return EnsureUserResult(user=user)
            user.is_active = True
            logger.info("Reactivated user %s", user.id)
            return EnsureUserResult(user=user, reactivated=True)

        if not allow_create:
            return EnsureUserResult(user=None)

        created = self.save(
            DirectoryUser(
                id=uuid.uuid4().hex,
                name=name or email,
                email=normalize_email(email),
            )
        )
        logger.info("Created user %s", created.id)
        return EnsureUserResult(user=created, created=True)


__all__ = ["InMemoryUserDirectory"]
