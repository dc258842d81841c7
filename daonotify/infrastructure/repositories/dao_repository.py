"""In-memory implementation of the DAO repository."""

from __future__ import annotations

import copy
from typing import Iterable

from daonotify.domain.entities import Dao


class InMemoryDaoRepository:
    """Store DAOs by identifier; reads return copies so callers can diff safely."""

    def __init__(self, daos: Iterable[Dao] = ()) -> None:
        self._daos: dict[str, Dao] = {}
        for dao in daos:
            self.save(dao)

    def save(self, dao: Dao) -> Dao:
        self._daos[dao.id] = copy.deepcopy(dao)
        return dao

    def get_dao(self, dao_id: str) -> Dao | None:
        dao = self._daos.get(dao_id)
        return copy.deepcopy(dao) if dao is not None else None

    def delete(self, dao_id: str) -> Dao | None:
        return self._daos.pop(dao_id, None)

    def list(self) -> list[Dao]:
        return [copy.deepcopy(dao) for dao in self._daos.values()]


__all__ = ["InMemoryDaoRepository"]
