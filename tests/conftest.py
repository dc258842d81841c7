"""Shared fixtures for the test-suite."""

from __future__ import annotations

from typing import Any

import pytest

from daonotify.config import Settings
from daonotify.domain.entities import (
    ROLE_TEAM_LEADER,
    ROLE_TEAM_MEMBER,
    Dao,
    DaoTask,
    DirectoryUser,
    TeamMember,
)
from daonotify.infrastructure.repositories import InMemoryDaoRepository, InMemoryUserDirectory


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_settings(tmp_path):
    """Build isolated settings: no ``.env`` file, no delays, queue under ``tmp_path``."""

    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "app_env": "development",
            "smtp_host": "smtp.primary.test",
            "smtp_user": "mailer@dao.test",
            "smtp_pass": "secret",
            "smtp_fallback_order": "",
            "smtp_queue_interval_ms": 0,
            "smtp_retry_delay_ms": 0,
            "smtp_batch_delay_ms": 0,
            "smtp_queue_path": str(tmp_path / "emailQueue.json"),
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture
def sample_dao() -> Dao:
    return Dao(
        id="dao-1",
        numero_liste="DAO-2025-001",
        objet_dossier="Fourniture de matériel informatique",
        reference="AO-12/2025",
        autorite_contractante="Ministère du Numérique",
        date_depot="2025-10-15",
        equipe=[
            TeamMember(id="u-lead", name="Awa Diop", role=ROLE_TEAM_LEADER, email="awa@dao.test"),
            TeamMember(id="u-bob", name="Bob Kane", role=ROLE_TEAM_MEMBER, email="bob@dao.test"),
        ],
        tasks=[
            DaoTask(id=1, name="Analyse du dossier", progress=10, assigned_to=["u-bob"]),
            DaoTask(id=2, name="Offre technique", progress=30),
            DaoTask(id=3, name="Garantie de soumission", progress=100, is_applicable=False),
        ],
    )


@pytest.fixture
def users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory(
        [
            DirectoryUser(id="u-admin", name="Admin", email="admin@dao.test", role="admin"),
            DirectoryUser(id="u-lead", name="Awa Diop", email="awa@dao.test"),
            DirectoryUser(id="u-bob", name="Bob Kane", email="bob@dao.test"),
            DirectoryUser(id="u-broken", name="Sans Mail", email="not-an-email"),
            DirectoryUser(id="u-gone", name="Ancien", email="old@dao.test", is_active=False),
        ]
    )


@pytest.fixture
def daos(sample_dao) -> InMemoryDaoRepository:
    repository = InMemoryDaoRepository()
    repository.save(sample_dao)
    return repository
