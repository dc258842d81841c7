"""Tests for the task field restriction applied to administrators."""

from __future__ import annotations

import pytest

from daonotify.application.use_cases.daos import (
    ADMIN_NOT_LEADER_FORBIDDEN,
    TaskFieldPermissionError,
    changed_task_fields,
    ensure_can_modify_task_fields,
    is_restricted_task_change,
)
from daonotify.domain.entities import ROLE_TEAM_LEADER, DirectoryUser, TeamMember

ADMIN = DirectoryUser(id="u-admin", name="Admin", email="admin@dao.test", role="admin")
MEMBER = DirectoryUser(id="u-bob", name="Bob Kane", email="bob@dao.test")


@pytest.mark.parametrize("field", ["progress", "is_applicable", "assigned_to"])
def test_admin_outside_the_team_cannot_touch_restricted_fields(sample_dao, field):
    assert is_restricted_task_change(ADMIN, sample_dao, {field}) is True

    with pytest.raises(TaskFieldPermissionError) as excinfo:
        ensure_can_modify_task_fields(ADMIN, sample_dao, [field, "comment"])

    assert excinfo.value.code == ADMIN_NOT_LEADER_FORBIDDEN


def test_admin_may_edit_comments(sample_dao):
    assert is_restricted_task_change(ADMIN, sample_dao, {"comment"}) is False
    ensure_can_modify_task_fields(ADMIN, sample_dao, ["comment"])


def test_admin_leading_the_team_is_not_restricted(sample_dao):
    sample_dao.equipe.append(TeamMember(id="u-admin", name="Admin", role=ROLE_TEAM_LEADER))

    assert is_restricted_task_change(ADMIN, sample_dao, {"progress"}) is False


def test_non_admin_users_are_not_restricted_by_this_rule(sample_dao):
    """Regular permissions are enforced elsewhere; this rule only targets admins."""

    assert is_restricted_task_change(MEMBER, sample_dao, {"progress", "assigned_to"}) is False


def test_changed_task_fields_reports_actual_differences(sample_dao):
    updates = [
        {"id": 1, "progress": 10, "is_applicable": True, "assigned_to": ["u-bob"]},
        {"id": 2, "progress": 45, "comment": "ok"},
        {"id": 3, "is_applicable": True},
        {"id": 99, "assigned_to": ["u-lead"]},
    ]

    assert changed_task_fields(sample_dao, updates) == {"progress", "is_applicable"}


def test_unchanged_bulk_update_is_allowed_for_admins(sample_dao):
    updates = [{"id": 1, "progress": 10, "assigned_to": ["u-bob"], "comment": "nouveau"}]

    fields = changed_task_fields(sample_dao, updates)

    assert fields == set()
    ensure_can_modify_task_fields(ADMIN, sample_dao, fields)
