"""Use cases for account lifecycle notifications and emails."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable

from daonotify.domain.entities import DeliverySummary, DirectoryUser, MailType, Notification
from daonotify.infrastructure.email import EmailDeliveryError, EmailDeliveryService
from daonotify.infrastructure.email.templates import (
    user_created,
    user_deleted_for_admin,
    user_deleted_for_user,
)
from daonotify.infrastructure.notifications import NotificationStore

from .templates import render_login_success, render_new_login, render_user_deleted

logger = logging.getLogger(__name__)


async def _deliver(mail_type: MailType, sending: Awaitable[DeliverySummary]) -> bool:
    try:
        summary = await sending
    except EmailDeliveryError as exc:
        logger.warning("Email %s could not be delivered (code %s)", mail_type.value, exc.code)
        return False
    if not summary.sent:
        logger.warning("Email %s was not sent: no valid recipient", mail_type.value)
        return False
    return True


async def notify_user_created(
    delivery: EmailDeliveryService, *, user: DirectoryUser, password: str
) -> bool:
    """Send the new account its credentials; returns whether the email went out."""

    content = user_created(user.name, user.email or "", password)
    return await _deliver(
        MailType.USER_CREATED,
        delivery.send(user.email, content.subject, content.body, MailType.USER_CREATED),
    )


def notify_user_login(
    store: NotificationStore,
    *,
    user: DirectoryUser,
    must_change_password: bool = False,
    when: datetime | None = None,
) -> Notification:
    if must_change_password:
        payload = render_new_login(user.name)
    else:
        payload = render_login_success(user.name, when=when)
    return store.add(payload.type, payload.title, payload.message, payload.data, [user.id])


async def notify_user_deleted(
    store: NotificationStore,
    delivery: EmailDeliveryService,
    *,
    user: DirectoryUser,
    actor: DirectoryUser,
    when: datetime | None = None,
) -> Notification:
    """Record the deletion for ``actor`` and email the removed user and the admin.

    The notification is not mirrored; both emails are sent explicitly and a
    failure is only logged.
    """

    payload = render_user_deleted(user.name, actor.name, when=when)
    notification = store.add(
        payload.type,
        payload.title,
        payload.message,
        {**payload.data, "skip_email_mirror": True},
        [actor.id],
    )

    for_user = user_deleted_for_user(user.name)
    await _deliver(
        MailType.USER_DELETED_USER,
        delivery.send(user.email, for_user.subject, for_user.body, MailType.USER_DELETED_USER),
    )
    for_admin = user_deleted_for_admin(user.name, user.email or "")
    await _deliver(
        MailType.USER_DELETED_ADMIN,
        delivery.email_admin(for_admin.subject, for_admin.body, MailType.USER_DELETED_ADMIN),
    )
    return notification


__all__ = ["notify_user_created", "notify_user_deleted", "notify_user_login"]
