"""Use case ensuring every DAO team member with an email has an active account."""

from __future__ import annotations

import logging

from daonotify.domain.entities import AutoUserAction, AutoUserAuditEntry, Dao
from daonotify.domain.ports import UserDirectory
from daonotify.infrastructure.repositories import AutoUserAuditLog

logger = logging.getLogger(__name__)


def sync_team_accounts(
    directory: UserDirectory,
    audit: AutoUserAuditLog,
    *,
    dao: Dao,
    allow_create: bool = False,
) -> list[AutoUserAuditEntry]:
    """Reactivate (or optionally create) the accounts of ``dao``'s team.

    Every member carrying an email yields exactly one audit entry. Directory
    failures are recorded as ``error`` entries and never interrupt the sync.
    """

    entries: list[AutoUserAuditEntry] = []
    for member in dao.equipe:
        email = (member.email or "").strip()
        if not email:
            continue
        try:
            result = directory.ensure_active_user_by_email(
                email, member.name or email, allow_create=allow_create
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not ensure active user for a member of DAO %s: %s", dao.id, exc)
            entries.append(
                audit.record(
                    AutoUserAction.ERROR,
                    email,
                    dao_id=dao.id,
                    member_name=member.name,
                    message=str(exc),
                )
            )
            continue

        if result.user is None:
            logger.warning("No active account for a member of DAO %s", dao.id)
            entries.append(
                audit.record(
                    AutoUserAction.ERROR,
                    email,
                    dao_id=dao.id,
                    member_name=member.name,
                    message="Failed to ensure active user",
                )
            )
            continue

        if result.created:
            action = AutoUserAction.CREATED
        elif result.reactivated:
            action = AutoUserAction.REACTIVATED
        else:
            action = AutoUserAction.ALREADY_ACTIVE
        logger.info("Team account %s for DAO %s", action.value, dao.id)
        entries.append(
            audit.record(
                action,
                result.user.email or email,
                dao_id=dao.id,
                member_name=member.name,
                message=f"Processed for DAO {dao.id}",
            )
        )
    return entries


__all__ = ["sync_team_accounts"]
