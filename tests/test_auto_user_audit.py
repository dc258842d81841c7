"""Tests for the team account synchronization and its audit log."""

from __future__ import annotations

import logging

from daonotify.application.use_cases.daos import sync_team_accounts
from daonotify.domain.entities import AutoUserAction, DirectoryUser, TeamMember
from daonotify.domain.ports import EnsureUserResult
from daonotify.infrastructure.repositories import AutoUserAuditLog, InMemoryUserDirectory


class FlakyDirectory:
    """Directory failing for one address and unable to create accounts for another."""

    def __init__(self, failing: str, unknown: str):
        self.failing = failing
        self.unknown = unknown

    def ensure_active_user_by_email(self, email, name, *, allow_create=False):
        if email == self.failing:
            raise RuntimeError("directory unavailable")
        if email == self.unknown:
            return EnsureUserResult(user=None)
        return EnsureUserResult(user=DirectoryUser(id=name, name=name, email=email))


def test_audit_log_masks_emails_and_keeps_newest_first():
    audit = AutoUserAuditLog()

    audit.record(AutoUserAction.CREATED, "awa@dao.test", dao_id="dao-1")
    audit.record("already_active", None, dao_id="dao-1")

    entries = audit.list()
    assert [entry.action for entry in entries] == [
        AutoUserAction.ALREADY_ACTIVE,
        AutoUserAction.CREATED,
    ]
    assert entries[0].email_masked == "***@***"
    assert entries[1].email_masked == "***@dao.test"


def test_audit_log_is_a_bounded_ring_buffer():
    audit = AutoUserAuditLog(capacity=3)

    for index in range(5):
        audit.record(AutoUserAction.CREATED, f"user{index}@dao.test", message=str(index))

    assert [entry.message for entry in audit.list(10)] == ["4", "3", "2"]
    assert len(audit.list(1)) == 1
    assert len(audit.list(0)) == 1

    audit.clear()
    assert audit.list() == []


def test_sync_reactivates_and_reports_existing_accounts(sample_dao, users, caplog):
    users.get_user("u-bob").is_active = False
    sample_dao.equipe.append(TeamMember(id="u-new", name="Sans Email"))
    audit = AutoUserAuditLog()

    with caplog.at_level(logging.INFO):
        entries = sync_team_accounts(users, audit, dao=sample_dao)

    assert [entry.action for entry in entries] == [
        AutoUserAction.ALREADY_ACTIVE,
        AutoUserAction.REACTIVATED,
    ]
    assert users.get_user("u-bob").is_active is True
    assert all(entry.message == "Processed for DAO dao-1" for entry in entries)
    assert audit.list() == list(reversed(entries))
    assert "awa@dao.test" not in caplog.text
    assert "awa@dao.test" not in repr(audit.list())


def test_sync_creates_accounts_only_when_allowed(sample_dao):
    directory = InMemoryUserDirectory()
    audit = AutoUserAuditLog()

    refused = sync_team_accounts(directory, audit, dao=sample_dao)
    created = sync_team_accounts(directory, audit, dao=sample_dao, allow_create=True)

    assert {entry.action for entry in refused} == {AutoUserAction.ERROR}
    assert refused[0].message == "Failed to ensure active user"
    assert [entry.action for entry in created] == [AutoUserAction.CREATED] * 2
    assert directory.find_by_email("BOB@dao.test").name == "Bob Kane"


def test_sync_records_directory_failures_and_continues(sample_dao):
    directory = FlakyDirectory(failing="awa@dao.test", unknown="nobody@dao.test")
    audit = AutoUserAuditLog()

    entries = sync_team_accounts(directory, audit, dao=sample_dao)

    assert [entry.action for entry in entries] == [
        AutoUserAction.ERROR,
        AutoUserAction.ALREADY_ACTIVE,
    ]
    assert entries[0].message == "directory unavailable"
    assert entries[0].member_name == "Awa Diop"
    assert entries[1].email_masked == "***@dao.test"
