"""Mirror notifications by email with retries and failure cooldown."""

from __future__ import annotations

import logging
import re
import time
from typing import Awaitable, Callable

import anyio

from daonotify.domain.entities import DeliverySummary, Notification
from daonotify.infrastructure.email import EmailDeliveryError, EmailDeliveryService

from .recipients import EmailRecipientResolver

logger = logging.getLogger(__name__)

MIRROR_ATTEMPTS = 3
MIRROR_BACKOFF_BASE_S = 0.2
MIRROR_BACKOFF_MAX_S = 2.0
DEFAULT_ERROR_NOTIFY_INTERVAL_S = 600.0

EMAIL_ERROR_TITLE = "Erreur d'envoi d'email"
QUOTA_MESSAGE = "Envoi d'e-mails temporairement bloqué (quota atteint). Réessayez plus tard."
GATEWAY_TIMEOUT_MESSAGE = "Erreur d'envoi d'email (504 Gateway Timeout). Réessayer plus tard."
GENERIC_MESSAGE = "Erreur d'envoi d'email. Réessayer plus tard."

_QUOTA_PATTERN = re.compile(r"limit on the number of allowed outgoing messages", re.IGNORECASE)
_GATEWAY_TIMEOUT_PATTERN = re.compile(r"\b504\b")


def safe_error_message(code: str | None, message: str | None) -> str:
    """Return a message describing an email failure without provider details."""

    code = str(code or "")
    message = message or ""
    if code == "554" or _QUOTA_PATTERN.search(message):
        return QUOTA_MESSAGE
    if code == "504" or _GATEWAY_TIMEOUT_PATTERN.search(message):
        return GATEWAY_TIMEOUT_MESSAGE
    return GENERIC_MESSAGE


class ErrorNotificationCooldown:
    """Allow one error notification per error code and interval."""

    def __init__(
        self,
        interval_s: float = DEFAULT_ERROR_NOTIFY_INTERVAL_S,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval_s = interval_s
        self._clock = clock
        self._last_notified: dict[str, float] = {}

    def should_notify(self, code: str) -> bool:
        now = self._clock()
        last = self._last_notified.get(code)
        if last is not None and now - last < self._interval_s:
            return False
        self._last_notified[code] = now
        return True


class EmailMirror:
    """Send a copy of each notification to its recipients' mailboxes."""

    def __init__(
        self,
        delivery: EmailDeliveryService,
        resolver: EmailRecipientResolver,
        *,
        attempts: int = MIRROR_ATTEMPTS,
        sleep: Callable[[float], Awaitable[object]] = anyio.sleep,
    ) -> None:
        self._delivery = delivery
        self._resolver = resolver
        self._attempts = max(1, attempts)
        self._sleep = sleep

    async def deliver(self, notification: Notification) -> DeliverySummary | None:
        """Mirror ``notification``; ``None`` when there was nothing to send.

        Raises:
            EmailDeliveryError: once every attempt failed, or immediately for
                a permanent failure.
        """

        if notification.skips_email_mirror:
            return None

        subject = notification.title or "Notification"
        html = notification.data.get("html")
        body = html if isinstance(html, str) else notification.message

        resolved = self._resolver.resolve(notification)
        if resolved.invalid_ids:
            logger.warning(
                "Email mirror of %s: ignoring users with an invalid address: %s",
                notification.type.value,
                ", ".join(resolved.invalid_ids),
            )
        if resolved.missing_ids:
            logger.warning(
                "Email mirror of %s: unknown users: %s",
                notification.type.value,
                ", ".join(resolved.missing_ids),
            )
        if not resolved.emails:
            logger.info(
                "Email mirror of %s skipped: no valid recipient", notification.type.value
            )
            return None

        summary = await self._send_with_retry(resolved.emails, subject, body)
        logger.info(
            "Email mirror of %s sent to %s recipient(s)",
            notification.type.value,
            summary.sent,
        )
        return summary

    async def _send_with_retry(
        self, recipients: list[str], subject: str, body: str
    ) -> DeliverySummary:
        attempt = 0
        while True:
            try:
                return await self._delivery.send(recipients, subject, body)
            except EmailDeliveryError as exc:
                attempt += 1
                if exc.permanent or attempt >= self._attempts:
                    raise
                wait = min(MIRROR_BACKOFF_BASE_S * 2 ** (attempt - 1), MIRROR_BACKOFF_MAX_S)
                logger.warning(
                    "Email mirror attempt %s/%s failed with code %s; retrying in %.1fs",
                    attempt,
                    self._attempts,
                    exc.code,
                    wait,
                )
                await self._sleep(wait)


__all__ = [
    "EMAIL_ERROR_TITLE",
    "EmailMirror",
    "ErrorNotificationCooldown",
    "GATEWAY_TIMEOUT_MESSAGE",
    "GENERIC_MESSAGE",
    "QUOTA_MESSAGE",
    "safe_error_message",
]
