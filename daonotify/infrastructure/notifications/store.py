"""In-memory fan-out notification store with read tracking."""

from __future__ import annotations

import logging
import secrets
import time
from functools import partial
from typing import Any, Callable, Iterable, Literal

import anyio
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from daonotify.domain.entities import (
    ALL_RECIPIENTS,
    Notification,
    NotificationType,
    NotificationView,
)
from daonotify.infrastructure.background import BackgroundTaskQueue
from daonotify.infrastructure.email import EmailDeliveryError
from daonotify.infrastructure.repositories.notification_repository import (
    NotificationRepository,
)
from daonotify.utils.datetime import iso_now

from .mirror import (
    EMAIL_ERROR_TITLE,
    EmailMirror,
    ErrorNotificationCooldown,
    safe_error_message,
)
from .publisher import NotificationPublisher

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 1000
LIST_LIMIT = 200


def new_notification_id() -> str:
    return f"srv_notif_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class NotificationStore:
    """Keep the most recent notifications in memory, newest first.

    Mutations happen synchronously so a notification is visible as soon as
    :meth:`add` returns. Persistence and realtime push run in order on
    ``tasks``; email mirroring runs on ``mirror_tasks`` and may lag behind
    them. Neither raises into the caller.
    """

    def __init__(
        self,
        *,
        tasks: BackgroundTaskQueue,
        mirror_tasks: BackgroundTaskQueue | None = None,
        max_items: int = DEFAULT_MAX_ITEMS,
        mirror: EmailMirror | None = None,
        session_factory: sessionmaker[Session] | None = None,
        publisher: NotificationPublisher | None = None,
        broadcast_all: bool = False,
        cooldown: ErrorNotificationCooldown | None = None,
    ) -> None:
        self._tasks = tasks
        self._mirror_tasks = (
            mirror_tasks if mirror_tasks is not None else BackgroundTaskQueue()
        )
        self._max_items = max(1, max_items)
        self._mirror = mirror
        self._session_factory = session_factory
        self._publisher = publisher
        self._broadcast_all = broadcast_all
        self._cooldown = cooldown or ErrorNotificationCooldown()
        self._items: list[Notification] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def pending(self) -> int:
        return self._tasks.pending + self._mirror_tasks.pending

    # Lifecycle -----------------------------------------------------------------

    def start(self) -> None:
        self._tasks.start()
        self._mirror_tasks.start()

    async def drain(self) -> None:
        """Run every pending job, including those submitted by failed mirrors."""

        while self.pending:
            await self._tasks.drain()
            await self._mirror_tasks.drain()

    async def shutdown(self) -> None:
        await self._mirror_tasks.shutdown()
        await self._tasks.shutdown()

    async def restore(self) -> int:
        """Load recently persisted notifications; returns how many were added."""

        if self._session_factory is None:
            return 0
        try:
            restored = await anyio.to_thread.run_sync(self._load_recent)
        except SQLAlchemyError as exc:
            logger.warning("Unable to restore persisted notifications: %s", exc)
            return 0

        known = {item.id for item in self._items}
        added = [item for item in restored if item.id not in known]
        merged = sorted([*self._items, *added], key=lambda item: item.created_at, reverse=True)
        self._items = merged[: self._max_items]
        if added:
            logger.info("Restored %s persisted notification(s)", len(added))
        return len(added)

    # Operations ------------------------------------------------------------------

    def add(
        self,
        type: NotificationType | str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        recipients: Literal["all"] | Iterable[str] = ALL_RECIPIENTS,
    ) -> Notification:
        """Record a notification and schedule its side effects.

        Raises:
            ValueError: for an unknown ``type`` or an empty explicit recipient
                list.
        """

        kind = NotificationType(type)
        if recipients == ALL_RECIPIENTS:
            resolved: Literal["all"] | tuple[str, ...] = ALL_RECIPIENTS
        else:
            if isinstance(recipients, str):
                recipients = [recipients]
            resolved = tuple(dict.fromkeys(str(item) for item in recipients if item))
            if not resolved:
                raise ValueError("A notification needs at least one recipient or 'all'")
            if self._broadcast_all:
                logger.warning(
                    "EMAIL_BROADCAST_ALL is enabled; %s notification broadcast to all users",
                    kind.value,
                )
                resolved = ALL_RECIPIENTS

        notification = Notification(
            id=new_notification_id(),
            type=kind,
            title=title,
            message=message,
            recipients=resolved,
            created_at=iso_now(),
            data=dict(data or {}),
        )
        self._items.insert(0, notification)
        del self._items[self._max_items :]

        if self._session_factory is not None:
            self._tasks.submit("notification.persist", partial(self._persist_created, notification))
        if self._publisher is not None:
            self._tasks.submit(
                "notification.publish", partial(self._publisher.publish, notification)
            )
        if self._mirror is not None and not notification.skips_email_mirror:
            self._mirror_tasks.submit(
                "notification.mirror", partial(self._mirror_email, notification)
            )
        return notification

    def broadcast(
        self,
        type: NotificationType | str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        return self.add(type, title, message, data, ALL_RECIPIENTS)

    def get(self, notification_id: str) -> Notification | None:
        return next((item for item in self._items if item.id == notification_id), None)

    def list_for_user(self, user_id: str) -> list[NotificationView]:
        """Return the notifications visible to ``user_id``, newest first."""

        visible = [item for item in self._items if item.is_recipient(user_id)]
        visible.sort(key=lambda item: item.created_at, reverse=True)
        return [
            NotificationView(
                id=item.id,
                type=item.type,
                title=item.title,
                message=item.message,
                data=item.data,
                created_at=item.created_at,
                read=user_id in item.read_by,
            )
            for item in visible[:LIST_LIMIT]
        ]

    def mark_read(self, user_id: str, notification_id: str) -> bool:
        notification = self.get(notification_id)
        if notification is None or not notification.is_recipient(user_id):
            return False
        if user_id not in notification.read_by:
            notification.read_by.add(user_id)
            if self._session_factory is not None:
                self._tasks.submit(
                    "notification.mark_read",
                    partial(self._persist_read, notification_id, user_id),
                )
        return True

    def mark_all_read(self, user_id: str) -> int:
        changed: list[str] = []
        for notification in self._items:
            if notification.is_recipient(user_id) and user_id not in notification.read_by:
                notification.read_by.add(user_id)
                changed.append(notification.id)
        if changed and self._session_factory is not None:
            self._tasks.submit(
                "notification.mark_all_read",
                partial(self._persist_all_read, changed, user_id),
            )
        return len(changed)

    def clear_all(self) -> None:
        self._items.clear()
        if self._session_factory is not None:
            self._tasks.submit("notification.clear", self._persist_clear)

    # Persistence -----------------------------------------------------------------

    def _load_recent(self) -> list[Notification]:
        assert self._session_factory is not None
        with self._session_factory() as session:
            return NotificationRepository(session).list_recent(self._max_items)

    async def _write(
        self, action: str, operation: Callable[[NotificationRepository], object]
    ) -> None:
        def run() -> None:
            assert self._session_factory is not None
            with self._session_factory() as session:
                operation(NotificationRepository(session))

        try:
            await anyio.to_thread.run_sync(run)
        except SQLAlchemyError as exc:
            logger.warning("Notification persistence failed (%s): %s", action, exc)

    async def _persist_created(self, notification: Notification) -> None:
        await self._write("create", lambda repository: repository.create(notification))

    async def _persist_read(self, notification_id: str, user_id: str) -> None:
        await self._write(
            "mark_read", lambda repository: repository.mark_read(notification_id, user_id)
        )

    async def _persist_all_read(self, notification_ids: list[str], user_id: str) -> None:
        await self._write(
            "mark_all_read",
            lambda repository: repository.mark_all_read(notification_ids, user_id),
        )

    async def _persist_clear(self) -> None:
        await self._write("clear", lambda repository: repository.clear_all())

    # Email mirroring ---------------------------------------------------------------

    async def _mirror_email(self, notification: Notification) -> None:
        assert self._mirror is not None
        try:
            await self._mirror.deliver(notification)
        except EmailDeliveryError as exc:
            self._report_email_failure(notification, exc)

    def _report_email_failure(self, notification: Notification, error: EmailDeliveryError) -> None:
        code = str(error.code or "unknown")
        summary = error.summary
        logger.error(
            "Email mirror of %s notification %s failed with code %s",
            notification.type.value,
            notification.id,
            code,
        )
        if summary is not None:
            logger.error(
                "Email mirror summary: attempted=%s sent=%s failed=%s codes=%s",
                summary.attempted,
                summary.sent,
                summary.failed,
                [failure.code for failure in summary.errors],
            )

        if not self._cooldown.should_notify(code):
            logger.info("Email error notification for code %s suppressed (cooldown)", code)
            return

        data: dict[str, Any] = {"skip_email_mirror": True, "email_error": True, "code": code}
        if summary is not None:
            data["attempted"] = summary.attempted
            data["failed"] = summary.failed
        self.broadcast(
            NotificationType.SYSTEM,
            EMAIL_ERROR_TITLE,
            safe_error_message(code, error.message),
            data,
        )


__all__ = ["NotificationStore", "new_notification_id"]
