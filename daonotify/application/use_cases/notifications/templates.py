"""Notification payloads for DAO, task and account events.

Each event is first reduced to a small summary object; the plain-text
message and the HTML email fragment are rendered from that summary by
separate functions so both always describe the same changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Iterable, Sequence

from daonotify.domain.entities import (
    Dao,
    DaoTask,
    NotificationPayload,
    NotificationType,
    TeamMember,
)
from daonotify.utils.datetime import format_date_fr, format_datetime_fr, now_in_app_timezone

from .changes import (
    PLACEHOLDER,
    DaoChangeSet,
    TaskChange,
    TaskDiff,
    detect_task_changes,
    render_task_changes_detailed,
    resolve_names,
)

TITLE_DAO_CREATED = "Création d’un DAO"
TITLE_DAO_UPDATED = "Mise à jour d’un DAO"
TITLE_DAO_DELETED = "Suppression DAO"
TITLE_TASK_UPDATED = "Mise à jour d’une tâche"

NO_LEADER = "Non défini"
NO_MEMBERS = "Aucun"

_FIELD_LABELS = {
    "numero_liste": "Numéro de liste",
    "reference": "Référence",
    "objet_dossier": "Objet du dossier",
    "autorite_contractante": "Autorité contractante",
    "chef": "Chef d’équipe",
    "membres": "Membres",
    "date_depot": "Date de dépôt",
}
_FEMININE_FIELDS = frozenset({"reference", "autorite_contractante", "date_depot"})
_PLURAL_FIELDS = frozenset({"membres"})


def _changed_suffix(key: str) -> str:
    if key in _FEMININE_FIELDS:
        return " modifiée"
    if key in _PLURAL_FIELDS:
        return " modifiés"
    return " modifié"


def _before_after_labels(key: str) -> tuple[str, str]:
    label = _FIELD_LABELS[key]
    if key in _FEMININE_FIELDS:
        return f"{label} antérieure", f"{label} modifiée"
    if key in _PLURAL_FIELDS:
        return f"{label} antérieurs", f"{label} modifiés"
    return f"{label} antérieur", f"{label} modifié"


def format_deposit_date(value: str | None) -> str:
    if not value:
        return PLACEHOLDER
    return format_date_fr(value) or value


def _today() -> str:
    return now_in_app_timezone().strftime("%d/%m/%Y")


def _leader_name(dao: Dao) -> str:
    leader = dao.leader
    return leader.name if leader else NO_LEADER


def _member_names(members: Sequence[TeamMember]) -> list[str]:
    return [member.name for member in members]


def _join(values: Iterable[str], empty: str = PLACEHOLDER) -> str:
    return ", ".join(values) or empty


# Summary objects -----------------------------------------------------------------


@dataclass(frozen=True)
class SummaryField:
    label: str
    value: str


@dataclass(frozen=True)
class DaoSummary:
    """Key facts of a DAO, labels already flagged for changed fields."""

    title: str
    fields: tuple[SummaryField, ...]


@dataclass(frozen=True)
class DaoUpdateSummary:
    title: str
    header: tuple[SummaryField, ...]
    leader: str
    members: str
    changes: tuple[str, ...]
    team_changes: tuple[str, ...]
    task_changes: tuple[TaskChange, ...]


@dataclass(frozen=True)
class TaskUpdateSummary:
    title: str
    header: tuple[SummaryField, ...]
    details: tuple[str, ...]


def summarize_dao(dao: Dao, title: str, changed: Iterable[str] = ()) -> DaoSummary:
    changed = set(changed)
    values = {
        "numero_liste": dao.numero_liste,
        "reference": dao.reference,
        "objet_dossier": dao.objet_dossier,
        "autorite_contractante": dao.autorite_contractante,
        "chef": _leader_name(dao),
        "membres": _join(_member_names(dao.members), NO_MEMBERS),
        "date_depot": format_deposit_date(dao.date_depot),
    }
    fields = tuple(
        SummaryField(
            label=f"{label}{_changed_suffix(key) if key in changed else ''}",
            value=str(values[key]),
        )
        for key, label in _FIELD_LABELS.items()
    )
    return DaoSummary(title=title, fields=fields)


def summarize_dao_update(changeset: DaoChangeSet) -> DaoUpdateSummary:
    before, after = changeset.before, changeset.after
    changed = changeset.changed
    lines: list[str] = []

    def pair(key: str, old: str, new: str) -> None:
        before_label, after_label = _before_after_labels(key)
        lines.append(f"{before_label} : {old or PLACEHOLDER}")
        lines.append(f"{after_label} : {new or PLACEHOLDER}")

    for key in ("numero_liste", "reference", "objet_dossier", "autorite_contractante"):
        if key in changed:
            pair(key, getattr(before, key), getattr(after, key))
    if "date_depot" in changed:
        pair(
            "date_depot",
            format_deposit_date(before.date_depot),
            format_deposit_date(after.date_depot),
        )
    if "chef" in changed or "membres" in changed:
        pair("chef", _leader_name(before), _leader_name(after))
        pair(
            "membres",
            _join(_member_names(before.members)),
            _join(_member_names(after.members)),
        )
    if changeset.progress_changed:
        lines.append(f"Progression antérieure : {changeset.progress_before}%")
        lines.append(f"Progression modifiée : {changeset.progress_after}%")

    return DaoUpdateSummary(
        title=TITLE_DAO_UPDATED,
        header=(
            SummaryField("Numéro de liste", after.numero_liste),
            SummaryField("Autorité contractante", after.autorite_contractante),
            SummaryField("Date de dépôt", format_deposit_date(after.date_depot)),
        ),
        leader=_leader_name(after),
        members=_join(_member_names(after.members), NO_MEMBERS),
        changes=tuple(lines),
        team_changes=changeset.team_changes,
        task_changes=changeset.task_changes,
    )


def summarize_task_update(
    dao: Dao,
    current: DaoTask,
    *,
    diff: TaskDiff | None = None,
    added: Sequence[str] = (),
    removed: Sequence[str] = (),
    comment: str | None = None,
) -> TaskUpdateSummary:
    members = dao.member_names()
    details = render_task_changes_detailed(diff) if diff is not None else []
    if added:
        details.append(f"Assignations ajoutées : {_join(resolve_names(added, members))}")
    if removed:
        details.append(f"Assignations retirées : {_join(resolve_names(removed, members))}")
    if comment and comment.strip():
        details.append(f'Commentaire saisi : "{comment.strip()}"')

    return TaskUpdateSummary(
        title=TITLE_TASK_UPDATED,
        header=(
            SummaryField("Numéro de liste", dao.numero_liste),
            SummaryField("Autorité contractante", dao.autorite_contractante),
            SummaryField("Date de dépôt", format_deposit_date(dao.date_depot)),
            SummaryField("Nom de la Tâche", current.name),
            SummaryField("Numéro de la Tâche", str(current.id)),
        ),
        details=tuple(details),
    )


# Plain renderers -----------------------------------------------------------------


def _field_lines(fields: Iterable[SummaryField]) -> list[str]:
    return [f"{field.label} : {field.value}" for field in fields]


def render_dao_summary_text(summary: DaoSummary) -> str:
    return "\n".join(_field_lines(summary.fields))


def _comment_suffix(created_at: str | None) -> str:
    if not created_at:
        return ""
    return f" — {format_date_fr(created_at) or created_at}"


def render_dao_update_text(summary: DaoUpdateSummary) -> str:
    lines = [summary.title, *_field_lines(summary.header)]
    if summary.changes:
        lines.extend(["", *summary.changes])
    if summary.team_changes:
        lines.extend(["", "Équipe :"])
        lines.extend(f"{index}. {change}" for index, change in enumerate(summary.team_changes, 1))
    if summary.task_changes:
        lines.extend(["", "Tâches modifiées :"])
        for index, task in enumerate(summary.task_changes, 1):
            lines.append(f"{index}. {task.name}")
            lines.extend(f"   • {detail}" for detail in task.changes)
            if task.comments:
                lines.append("   • Commentaires :")
                lines.extend(
                    f"      - {comment.user_name}: {comment.content}"
                    f"{_comment_suffix(comment.created_at)}"
                    for comment in task.comments
                )
    return "\n".join(lines)


def render_task_update_text(summary: TaskUpdateSummary) -> str:
    lines = [summary.title, *_field_lines(summary.header)]
    if summary.details:
        lines.extend(["", *summary.details])
    return "\n".join(lines)


# HTML renderers ------------------------------------------------------------------

_TEXT_COLOR = "#374151"
_HEADING_COLOR = "#0f172a"
_MUTED_COLOR = "#6b7280"


def _html_document(title: str, parts: Iterable[str]) -> str:
    return (
        '<div style="font-family:Arial,Helvetica,sans-serif;color:#111827;'
        'line-height:1.4;padding:18px;">'
        f'<h2 style="margin:0 0 8px;font-size:18px;color:{_HEADING_COLOR};">{escape(title)}</h2>'
        + "".join(parts)
        + f'<footer style="margin-top:12px;color:{_MUTED_COLOR};font-size:12px;">'
        f"Date : {_today()}</footer>"
        "</div>"
    )


def _html_grid(fields: Iterable[SummaryField]) -> str:
    cells = "".join(
        f'<div style="font-size:14px;color:{_TEXT_COLOR};">'
        f'<span style="color:{_MUTED_COLOR};">{escape(field.label)} :</span> '
        f"<strong>{escape(field.value)}</strong></div>"
        for field in fields
    )
    return f'<div style="display:grid;grid-template-columns:1fr 1fr;gap:8px;">{cells}</div>'


def _html_list(items: Iterable[str], *, margin: str = "0") -> str:
    entries = "".join(f'<li style="margin-bottom:6px;">{item}</li>' for item in items)
    return f'<ul style="margin:{margin};padding-left:18px;color:{_TEXT_COLOR};">{entries}</ul>'


def _html_heading(text: str) -> str:
    return f'<h3 style="margin:0 0 8px;font-size:15px;color:{_HEADING_COLOR};">{escape(text)}</h3>'


def render_dao_summary_html(summary: DaoSummary) -> str:
    return _html_document(summary.title, [_html_grid(summary.fields)])


def _html_task_card(task: TaskChange) -> str:
    parts = [
        '<div style="border:1px solid #e6eef6;padding:10px;border-radius:8px;'
        'background:#ffffff;margin-bottom:10px;">',
        f'<div style="font-weight:600;color:{_HEADING_COLOR};margin-bottom:6px;">'
        f"{escape(task.name)}</div>",
    ]
    if task.changes:
        parts.append(_html_list(escape(change) for change in task.changes))
    if task.comments:
        parts.append(
            f'<div style="margin-top:8px;color:{_HEADING_COLOR};font-weight:600;">Commentaires</div>'
        )
        parts.append(
            _html_list(
                (
                    f"<strong>{escape(comment.user_name)}</strong>"
                    f"{escape(_comment_suffix(comment.created_at))}: {escape(comment.content)}"
                    for comment in task.comments
                ),
                margin="6px 0 0",
            )
        )
    parts.append("</div>")
    return "".join(parts)


def render_dao_update_html(summary: DaoUpdateSummary) -> str:
    numero = summary.header[0].value
    parts = [
        f'<p style="margin:0 0 12px;color:{_TEXT_COLOR};font-size:14px;">'
        f"<strong>Numéro de liste :</strong> {escape(numero)}<br/>"
        f"<strong>Chef d’équipe :</strong> {escape(summary.leader)}<br/>"
        f"<strong>Membres :</strong> {escape(summary.members)}</p>"
    ]
    if summary.changes:
        parts.append(
            '<section style="margin-top:12px;padding:12px;border-radius:8px;'
            'background:#f8fafc;border:1px solid #e6eef6;">'
            + _html_heading("Changements principaux")
            + _html_list(escape(line) for line in summary.changes)
            + "</section>"
        )
    if summary.team_changes:
        parts.append(
            '<section style="margin-top:12px;">'
            + _html_heading("Équipe")
            + _html_list(escape(line) for line in summary.team_changes)
            + "</section>"
        )
    if summary.task_changes:
        parts.append(
            '<section style="margin-top:12px;">'
            + _html_heading("Détails des tâches modifiées")
            + "".join(_html_task_card(task) for task in summary.task_changes)
            + "</section>"
        )
    return _html_document(summary.title, parts)


def render_task_update_html(summary: TaskUpdateSummary) -> str:
    parts = [_html_grid(summary.header)]
    if summary.details:
        parts.append(
            '<section style="margin-top:12px;">'
            + _html_heading("Détails")
            + _html_list(escape(line) for line in summary.details)
            + "</section>"
        )
    return _html_document(summary.title, parts)


# Payload builders ----------------------------------------------------------------


def render_dao_created(dao: Dao) -> NotificationPayload:
    summary = summarize_dao(dao, TITLE_DAO_CREATED)
    return NotificationPayload(
        type=NotificationType.DAO_CREATED,
        title=TITLE_DAO_CREATED,
        message=render_dao_summary_text(summary),
        data={"event": "dao_created", "dao_id": dao.id, "html": render_dao_summary_html(summary)},
    )


def render_dao_deleted(dao: Dao) -> NotificationPayload:
    summary = summarize_dao(dao, TITLE_DAO_DELETED)
    return NotificationPayload(
        type=NotificationType.DAO_DELETED,
        title=TITLE_DAO_DELETED,
        message=render_dao_summary_text(summary),
        data={"event": "dao_deleted", "dao_id": dao.id, "html": render_dao_summary_html(summary)},
    )


def render_dao_updated(changeset: DaoChangeSet) -> NotificationPayload:
    summary = summarize_dao_update(changeset)
    return NotificationPayload(
        type=NotificationType.DAO_UPDATED,
        title=TITLE_DAO_UPDATED,
        message=render_dao_update_text(summary),
        data={
            "event": "dao_updated",
            "dao_id": changeset.after.id,
            "changed": changeset.ordered_changed,
            "team_changes": list(changeset.team_changes),
            "task_changes": [task.to_dict() for task in changeset.task_changes],
            "html": render_dao_update_html(summary),
        },
    )


def render_task_updated(
    dao: Dao,
    previous: DaoTask | None,
    current: DaoTask,
    *,
    change_type: str | None = None,
    added: Sequence[str] = (),
    removed: Sequence[str] = (),
    comment: str | None = None,
) -> NotificationPayload:
    """Describe an edit of ``current``; ``previous`` is ``None`` for new input only.

    ``change_type`` defaults to the first changed field, or ``general``.
    """

    diff = detect_task_changes(previous, current, dao.member_names()) if previous else None
    if change_type is None:
        change_type = diff.fields[0].value if diff is not None and diff.fields else "general"
    summary = summarize_task_update(
        dao, current, diff=diff, added=added, removed=removed, comment=comment
    )
    return NotificationPayload(
        type=NotificationType.TASK_NOTIFICATION,
        title=TITLE_TASK_UPDATED,
        message=render_task_update_text(summary),
        data={
            "event": "task_notification",
            "dao_id": dao.id,
            "task_id": current.id,
            "change_type": change_type,
            "changes": list(summary.details),
            "html": render_task_update_html(summary),
        },
    )


# Account templates -----------------------------------------------------------------


def render_login_success(user_name: str, *, when: datetime | None = None) -> NotificationPayload:
    return NotificationPayload(
        type=NotificationType.SYSTEM,
        title="Connexion réussie",
        message=f"Utilisateur : {user_name}\nDate : {format_datetime_fr(when)}",
        data={"event": "login_success"},
    )


def render_new_login(user_name: str) -> NotificationPayload:
    return NotificationPayload(
        type=NotificationType.SYSTEM,
        title="Nouvelle Connexion",
        message=(
            f"Utilisateur : {user_name}\n"
            "Veuillez vous connecter pour changer votre mot de passe"
        ),
        data={"event": "login_notice"},
    )


def render_user_deleted(
    deleted_user_name: str, actor_name: str, *, when: datetime | None = None
) -> NotificationPayload:
    return NotificationPayload(
        type=NotificationType.SYSTEM,
        title="Suppression d’un utilisateur",
        message=(
            f"Utilisateur supprimé : {deleted_user_name}\n"
            f"Action effectuée par : {actor_name}\n"
            f"Date : {format_datetime_fr(when)}"
        ),
        data={"event": "user_deleted"},
    )


__all__ = [
    "DaoSummary",
    "DaoUpdateSummary",
    "SummaryField",
    "TaskUpdateSummary",
    "format_deposit_date",
    "render_dao_created",
    "render_dao_deleted",
    "render_dao_summary_html",
    "render_dao_summary_text",
    "render_dao_update_html",
    "render_dao_update_text",
    "render_dao_updated",
    "render_login_success",
    "render_new_login",
    "render_task_update_html",
    "render_task_update_text",
    "render_task_updated",
    "render_user_deleted",
    "summarize_dao",
    "summarize_dao_update",
    "summarize_task_update",
]
