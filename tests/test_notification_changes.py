"""Tests for DAO and task change detection."""

from __future__ import annotations

import copy

from daonotify.application.use_cases.notifications.changes import (
    TaskField,
    detect_dao_changes,
    detect_record_changes,
    detect_task_changes,
    detect_team_changes,
    render_task_changes_compact,
    render_task_changes_detailed,
    truncate,
)
from daonotify.domain.entities import (
    ROLE_TEAM_LEADER,
    DaoTask,
    TaskComment,
    TeamMember,
    compute_dao_progress,
)


def test_progress_ignores_non_applicable_tasks(sample_dao):
    """Only applicable tasks contribute to the mean progress."""

    assert compute_dao_progress(sample_dao.tasks) == 20


def test_progress_edge_cases():
    assert compute_dao_progress([]) == 0
    assert compute_dao_progress([DaoTask(id=1, name="x", progress=90, is_applicable=False)]) == 0
    assert compute_dao_progress([DaoTask(id=1, name="x"), DaoTask(id=2, name="y", progress=25)]) == 13


def test_identical_daos_have_no_changes(sample_dao):
    after = copy.deepcopy(sample_dao)

    assert detect_record_changes(sample_dao, after) == frozenset()
    assert not detect_dao_changes(sample_dao, after).has_changes


def test_record_changes_cover_scalar_fields(sample_dao):
    after = copy.deepcopy(sample_dao)
    after.reference = "AO-13/2025"
    after.date_depot = "2025-11-01"

    assert detect_record_changes(sample_dao, after) == {"reference", "date_depot"}


def test_team_changes_describe_additions_roles_and_removals(sample_dao):
    after = copy.deepcopy(sample_dao)
    after.equipe = [
        TeamMember(id="u-bob", name="Bob Kane", role=ROLE_TEAM_LEADER),
        TeamMember(id="u-cec", name="Cécile Ba"),
    ]

    lines = detect_team_changes(sample_dao.equipe, after.equipe)

    assert lines == [
        "Bob Kane: membre_equipe → chef_equipe",
        "Cécile Ba ajouté",
        "Awa Diop retiré",
    ]
    assert {"chef", "membres"} <= detect_record_changes(sample_dao, after)


def test_task_progress_change_only(sample_dao):
    before = sample_dao.tasks[0]
    after = copy.deepcopy(before)
    after.progress = 30

    diff = detect_task_changes(before, after, sample_dao.member_names())

    assert diff.fields == (TaskField.PROGRESS,)
    assert render_task_changes_compact(diff) == ["Progression 10% → 30%"]
    assert render_task_changes_detailed(diff) == [
        "Progression antérieure : 10%",
        "Progression modifiée : 30%",
    ]


def test_task_changes_are_ordered_and_use_display_names(sample_dao):
    before = sample_dao.tasks[0]
    after = copy.deepcopy(before)
    after.is_applicable = False
    after.comment = "Pièces manquantes"
    after.assigned_to = ["u-lead", "u-bob"]

    diff = detect_task_changes(before, after, sample_dao.member_names())

    assert diff.fields == (TaskField.APPLICABILITY, TaskField.COMMENT, TaskField.ASSIGNEES)
    assert diff.added_assignees == ("Awa Diop",)
    assert diff.removed_assignees == ()
    assert render_task_changes_compact(diff) == [
        "Applicabilité Oui → Non",
        "Commentaire — → Pièces manquantes",
        "Assignations Bob Kane → Awa Diop, Bob Kane",
    ]


def test_assignee_order_does_not_matter(sample_dao):
    before = DaoTask(id=9, name="t", assigned_to=["u-bob", "u-lead"])
    after = DaoTask(id=9, name="t", assigned_to=["u-lead", "u-bob"])

    assert detect_task_changes(before, after, sample_dao.member_names()).is_empty


def test_missing_values_compare_as_defaults():
    before = DaoTask(id=1, name="t", progress=None, comment=None)
    after = DaoTask(id=1, name="t", progress=0, comment="  ")

    assert detect_task_changes(before, after).is_empty


def test_long_comments_are_truncated_in_compact_lines():
    text = "x" * 100

    assert truncate(text) == "x" * 77 + "..."
    assert len(truncate(text)) == 80
    assert truncate("court") == "court"


def test_dao_change_set_lists_modified_and_commented_tasks(sample_dao):
    after = copy.deepcopy(sample_dao)
    after.tasks[0].progress = 50
    comment = TaskComment(task_id=2, user_name="Awa Diop", content="Relire l'offre")

    changeset = detect_dao_changes(sample_dao, after, {2: [comment]})

    assert [task.id for task in changeset.task_changes] == [1, 2]
    assert changeset.task_changes[0].changes == ("Progression 10% → 50%",)
    assert changeset.task_changes[1].changes == ()
    assert changeset.task_changes[1].comments == (comment,)
    assert (changeset.progress_before, changeset.progress_after) == (20, 40)
    assert changeset.changed == frozenset()


def test_detection_is_deterministic(sample_dao):
    after = copy.deepcopy(sample_dao)
    after.numero_liste = "DAO-2025-002"
    after.tasks[1].assigned_to = ["u-lead", "u-bob"]

    first = detect_dao_changes(sample_dao, after)
    second = detect_dao_changes(sample_dao, after)

    assert first == second
