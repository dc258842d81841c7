"""Resolve the email addresses a notification should be mirrored to."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from daonotify.domain.entities import Notification
from daonotify.domain.ports import DaoRepository, UserDirectory
from daonotify.utils.email import is_valid_email, normalize_email, unique

logger = logging.getLogger(__name__)


@dataclass
class ResolvedRecipients:
    emails: list[str] = field(default_factory=list)
    invalid_ids: list[str] = field(default_factory=list)
    missing_ids: list[str] = field(default_factory=list)


def _valid(values) -> list[str]:
    normalized = (normalize_email(value) for value in values)
    return unique(value for value in normalized if value and is_valid_email(value))


class EmailRecipientResolver:
    """Map notification recipients to deliverable addresses.

    Broadcasts reach every active user, the team of the referenced DAO and the
    administrative address. Targeted notifications reach the listed users and
    the team of the referenced DAO.
    """

    def __init__(
        self,
        users: UserDirectory,
        daos: DaoRepository | None = None,
        *,
        admin_email: str | None = None,
    ) -> None:
        self._users = users
        self._daos = daos
        self._admin_email = admin_email

    def team_emails(self, dao_id: str | None) -> list[str]:
        if not dao_id or self._daos is None:
            return []
        try:
            dao = self._daos.get_dao(dao_id)
        except Exception as exc:
            logger.warning("Unable to load DAO %s for email mirroring: %s", dao_id, exc)
            return []
        if dao is None:
            return []
        return _valid(member.email for member in dao.equipe)

    def resolve(self, notification: Notification) -> ResolvedRecipients:
        team = self.team_emails(notification.dao_id)

        if notification.is_broadcast:
            addresses = [user.email for user in self._users.list_active_users()]
            addresses.extend(team)
            if self._admin_email:
                addresses.append(self._admin_email)
            return ResolvedRecipients(emails=_valid(addresses))

        resolved = ResolvedRecipients()
        targeted: list[str] = []
        for user_id in notification.recipients:
            user = self._users.get_user(user_id)
            if user is None:
                resolved.missing_ids.append(user_id)
                continue
            email = normalize_email(user.email)
            if not email or not is_valid_email(email):
                resolved.invalid_ids.append(user_id)
                continue
            targeted.append(email)
        resolved.emails = unique([*targeted, *team])
        return resolved


__all__ = ["EmailRecipientResolver", "ResolvedRecipients"]
