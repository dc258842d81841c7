"""Use cases turning DAO lifecycle events into broadcast notifications."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from daonotify.domain.entities import (
    Dao,
    DaoTask,
    Notification,
    NotificationPayload,
    TaskComment,
)
from daonotify.infrastructure.notifications import NotificationStore

from .changes import detect_dao_changes
from .templates import (
    render_dao_created,
    render_dao_deleted,
    render_dao_updated,
    render_task_updated,
)

logger = logging.getLogger(__name__)


def _broadcast(store: NotificationStore, payload: NotificationPayload) -> Notification:
    return store.broadcast(payload.type, payload.title, payload.message, payload.data)


def notify_dao_created(store: NotificationStore, *, dao: Dao) -> Notification:
    """Announce a new DAO to every user."""

    return _broadcast(store, render_dao_created(dao))


def notify_dao_deleted(store: NotificationStore, *, dao: Dao) -> Notification:
    return _broadcast(store, render_dao_deleted(dao))


def notify_dao_updated(
    store: NotificationStore,
    *,
    before: Dao,
    after: Dao,
    comments_by_task: Mapping[int, Sequence[TaskComment]] | None = None,
) -> Notification | None:
    """Broadcast the changes between ``before`` and ``after``.

    Returns ``None`` without notifying anybody when nothing changed.
    """

    changeset = detect_dao_changes(before, after, comments_by_task)
    if not changeset.has_changes:
        logger.info("DAO %s saved without changes; no notification sent", after.id)
        return None
    return _broadcast(store, render_dao_updated(changeset))


def notify_task_updated(
    store: NotificationStore,
    *,
    dao: Dao,
    previous: DaoTask | None,
    current: DaoTask,
    change_type: str | None = None,
    added: Sequence[str] = (),
    removed: Sequence[str] = (),
    comment: str | None = None,
) -> Notification:
    payload = render_task_updated(
        dao,
        previous,
        current,
        change_type=change_type,
        added=added,
        removed=removed,
        comment=comment,
    )
    return _broadcast(store, payload)


__all__ = [
    "notify_dao_created",
    "notify_dao_deleted",
    "notify_dao_updated",
    "notify_task_updated",
]
