"""Queued, batched and retrying email delivery across several providers."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Sequence

import anyio

from daonotify.config import Settings
from daonotify.domain.entities import (
    BatchFailure,
    DeliveryEvent,
    DeliverySummary,
    EmailJob,
    MailType,
)
from daonotify.domain.ports import UserDirectory
from daonotify.utils.datetime import iso_now
from daonotify.utils.email import partition_emails, unique

from .errors import (
    TRANSPORT_UNAVAILABLE,
    UNKNOWN_CODE,
    EmailDeliveryError,
    TransportError,
    classify_transport_error,
)
from .layout import build_email_html, html_to_text, is_html
from .providers import ProviderConfig, provider_configs_from_settings
from .queue_store import QueueSnapshotStore
from .transport import EmailTransport, OutgoingMessage, build_transport

logger = logging.getLogger(__name__)

EVENT_LOG_SIZE = 50
RECENT_EVENTS_LIMIT = 20
BACKLOG_PREVIEW_SIZE = 5
PROVIDER_SWITCH_DELAY_S = 1.0

TransportFactory = Callable[[ProviderConfig], EmailTransport]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class _QueuedJob:
    job: EmailJob
    future: "asyncio.Future[DeliverySummary] | None" = None


@dataclass
class _ResolvedTransport:
    config: ProviderConfig
    transport: EmailTransport


@dataclass
class _AttemptOutcome:
    sent: int = 0
    undelivered: list[str] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)
    permanent: bool = False


def new_job_id() -> str:
    return uuid.uuid4().hex


class EmailDeliveryService:
    """Own the email queue, its persisted snapshot and the provider fallback.

    ``send`` enqueues a job and waits for its resolution. A single drainer
    task claims up to ``SMTP_MAX_CONCURRENT`` jobs per round; every job walks
    its recipients in blind-copy batches, retrying transient failures on the
    same batch before moving on.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        providers: Sequence[ProviderConfig] | None = None,
        transport_factory: TransportFactory = build_transport,
        sleep: Sleep = anyio.sleep,
        snapshot: QueueSnapshotStore | None = None,
    ) -> None:
        self._settings = settings
        self._providers = (
            list(providers)
            if providers is not None
            else provider_configs_from_settings(settings)
        )
        self._transport_factory = transport_factory
        self._sleep = sleep
        self._snapshot = snapshot or QueueSnapshotStore(settings.smtp_queue_path)

        self._queue: deque[_QueuedJob] = deque()
        self._persisted: dict[str, EmailJob] = {}
        self._processing = 0
        self._drainer: asyncio.Task[None] | None = None
        self._initialized = False

        self._events: deque[DeliveryEvent] = deque(maxlen=EVENT_LOG_SIZE)
        self._total_sent = 0
        self._total_failed = 0
        self._last_transport_error: str | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    # Lifecycle -----------------------------------------------------------------

    async def init(self) -> None:
        """Restore the persisted snapshot and start draining it."""

        if self._initialized:
            return
        self._initialized = True
        await self._restore_snapshot()
        self._ensure_drainer()

    async def shutdown(self) -> None:
        """Wait until the drainer has emptied the queue."""

        drainer = self._drainer
        if drainer is not None and not drainer.done():
            await drainer
        self._initialized = False

    async def _restore_snapshot(self) -> None:
        entries = await self._snapshot.load()
        rewrite = False
        restored = 0
        for entry in entries:
            raw_recipients = entry.get("recipients")
            subject = str(entry.get("subject") or "").strip()
            if not isinstance(raw_recipients, list) or not subject:
                rewrite = True
                continue
            recipients = unique(partition_emails(raw_recipients).valid)
            if not recipients:
                rewrite = True
                continue
            job_id = str(entry.get("id") or "")
            if not job_id:
                job_id = new_job_id()
                rewrite = True
            job = EmailJob(
                id=job_id,
                recipients=tuple(recipients),
                subject=subject,
                body=str(entry.get("body") or ""),
                enqueued_at=str(entry.get("enqueued_at") or iso_now()),
                type=entry.get("type") or None,
            )
            self._persisted[job.id] = job
            self._queue.append(_QueuedJob(job))
            restored += 1

        if restored:
            logger.info("Restored %s pending email job(s) from %s", restored, self._snapshot.path)
        if rewrite:
            await self._persist()

    # Public API ------------------------------------------------------------------

    async def send(
        self,
        recipients: str | Iterable[str] | None,
        subject: str,
        body: str,
        mail_type: MailType | str | None = None,
    ) -> DeliverySummary:
        """Queue an email and wait until every recipient has been resolved.

        Invalid addresses are dropped with a warning. Without any valid
        recipient an empty summary is returned and nothing is queued.

        Raises:
            EmailDeliveryError: when no transport can be configured at all, or
                when some recipients were still undelivered after retries.
        """

        raw = [recipients] if isinstance(recipients, str) else list(recipients or [])
        partition = partition_emails(raw)
        if partition.invalid:
            logger.warning(
                "Ignoring invalid email address(es): %s", ", ".join(unique(partition.invalid))
            )
        valid = unique(partition.valid)
        subject = (subject or "").strip() or self._settings.mail_sender_name
        if not valid:
            logger.warning("Email %r not sent: no valid recipient", subject)
            return DeliverySummary(subject=subject)

        self._ensure_transport_configured()

        job = EmailJob(
            id=new_job_id(),
            recipients=tuple(valid),
            subject=subject,
            body=body or "",
            enqueued_at=iso_now(),
            type=mail_type.value if isinstance(mail_type, MailType) else mail_type,
        )
        future: asyncio.Future[DeliverySummary] = asyncio.get_running_loop().create_future()
        self._persisted[job.id] = job
        self._queue.append(_QueuedJob(job, future))
        self._ensure_drainer()
        await self._persist()
        return await future

    async def email_all_users(
        self,
        users: UserDirectory,
        subject: str,
        body: str,
        mail_type: MailType | str | None = None,
    ) -> DeliverySummary:
        """Send ``body`` to every active user plus the administrative address."""

        addresses = [user.email for user in users.list_active_users() if user.email]
        if self._settings.admin_email:
            addresses.append(self._settings.admin_email)
        return await self.send(addresses, subject, body, mail_type)

    async def email_admin(
        self, subject: str, body: str, mail_type: MailType | str | None = None
    ) -> DeliverySummary:
        target = self._settings.admin_email or self._settings.smtp_user
        if not target:
            logger.warning("Email %r not sent: ADMIN_EMAIL is not configured", subject)
            return DeliverySummary(subject=subject)
        return await self.send(target, subject, body, mail_type)

    def diagnostics(self) -> dict[str, Any]:
        """Return configuration, queue state, counters and recent events."""

        settings = self._settings
        primary = self._providers[0] if self._providers else None
        return {
            "config": {
                "host": primary.host if primary else None,
                "port": primary.port if primary else None,
                "secure": primary.secure if primary else None,
                "from": settings.sender_address,
                "disabled": settings.smtp_disable,
                "dry_run": settings.is_dry_run,
                "last_transport_error": self._last_transport_error,
                "providers": [
                    config.kind.value for config in self._providers if config.is_complete
                ],
            },
            "queue": {
                "in_memory": len(self._queue),
                "persisted": len(self._persisted),
                "processing": self._processing,
                "interval_ms": settings.smtp_queue_interval_ms,
                "max_concurrent": settings.smtp_max_concurrent,
                "max_retry": settings.smtp_max_retry,
                "persist_path": str(self._snapshot.path),
                "backlog_preview": [
                    {
                        "id": item.job.id,
                        "subject": item.job.subject,
                        "recipients": len(item.job.recipients),
                        "type": item.job.type,
                        "enqueued_at": item.job.enqueued_at,
                    }
                    for item in list(self._queue)[:BACKLOG_PREVIEW_SIZE]
                ],
            },
            "stats": {
                "total_sent": self._total_sent,
                "total_failed": self._total_failed,
            },
            "recent": [event.to_dict() for event in list(self._events)[:RECENT_EVENTS_LIMIT]],
        }

    def clear_diagnostics(self) -> None:
        self._events.clear()
        self._total_sent = 0
        self._total_failed = 0
        self._last_transport_error = None

    # Queue -------------------------------------------------------------------------

    def _ensure_transport_configured(self) -> None:
        settings = self._settings
        if settings.is_dry_run:
            return
        if settings.smtp_disable:
            raise EmailDeliveryError(
                "Email delivery is disabled (SMTP_DISABLE)",
                code=TRANSPORT_UNAVAILABLE,
                permanent=True,
            )
        if not any(config.is_complete for config in self._providers):
            raise EmailDeliveryError(
                "No email provider has complete credentials",
                code=TRANSPORT_UNAVAILABLE,
                permanent=True,
            )

    def _ensure_drainer(self) -> None:
        if self._drainer is not None and not self._drainer.done():
            return
        if not self._queue:
            return
        self._drainer = asyncio.get_running_loop().create_task(self._drain())

    async def _persist(self) -> None:
        await self._snapshot.save([job.to_dict() for job in self._persisted.values()])

    async def _drain(self) -> None:
        settings = self._settings
        while self._queue:
            count = min(settings.smtp_max_concurrent, len(self._queue))
            claimed = [self._queue.popleft() for _ in range(count)]
            self._processing += len(claimed)
            try:
                await asyncio.gather(*(self._run(item) for item in claimed))
            finally:
                self._processing -= len(claimed)
            if self._queue and settings.smtp_queue_interval_ms > 0:
                await self._sleep(settings.smtp_queue_interval_ms / 1000)

    async def _run(self, item: _QueuedJob) -> None:
        job = item.job
        try:
            summary = await self._deliver_with_retry(job)
        except EmailDeliveryError as exc:
            self._reject(item, exc)
        except Exception as exc:
            logger.exception("Unexpected failure while delivering email job %s", job.id)
            self._reject(item, EmailDeliveryError(str(exc) or exc.__class__.__name__))
        else:
            if item.future is not None and not item.future.done():
                item.future.set_result(summary)
        finally:
            self._persisted.pop(job.id, None)
            await self._persist()

    @staticmethod
    def _reject(item: _QueuedJob, error: EmailDeliveryError) -> None:
        if item.future is not None and not item.future.done():
            item.future.set_exception(error)
            return
        logger.error(
            "Email job %s (%r) failed with no waiting caller: [%s] %s",
            item.job.id,
            item.job.subject,
            error.code,
            error.message,
        )

    # Delivery ----------------------------------------------------------------------

    def _record_event(
        self,
        job: EmailJob,
        recipients: int,
        outcome: str,
        *,
        provider: str | None = None,
        error: str | None = None,
    ) -> None:
        self._events.appendleft(
            DeliveryEvent(
                timestamp=iso_now(),
                subject=job.subject,
                recipients=recipients,
                outcome=outcome,
                type=job.type,
                provider=provider,
                error=error,
            )
        )

    async def _deliver_with_retry(self, job: EmailJob) -> DeliverySummary:
        settings = self._settings
        summary = DeliverySummary(subject=job.subject, attempted=len(job.recipients))

        if settings.is_dry_run:
            summary.sent = summary.attempted
            self._total_sent += summary.sent
            self._record_event(job, summary.attempted, "dry_run")
            logger.info(
                "Email %r handled in dry-run mode for %s recipient(s)",
                job.subject,
                summary.attempted,
            )
            return summary

        if is_html(job.body):
            html, text = job.body, html_to_text(job.body)
        else:
            html = build_email_html(
                job.body, title=settings.mail_sender_name, logo_url=settings.logo_url
            )
            text = job.body

        pending = list(job.recipients)
        failures: list[BatchFailure] = []
        permanent = False
        max_retry = settings.smtp_max_retry
        for attempt in range(1, max_retry + 1):
            outcome = await self._attempt(job, pending, text, html)
            summary.sent += outcome.sent
            pending = outcome.undelivered
            failures = outcome.failures
            permanent = outcome.permanent
            if not pending or permanent:
                break
            if attempt < max_retry:
                logger.warning(
                    "Email %r attempt %s/%s left %s recipient(s) undelivered; retrying",
                    job.subject,
                    attempt,
                    max_retry,
                    len(pending),
                )
                await self._sleep(attempt * settings.smtp_retry_delay_ms / 1000)

        summary.failed = len(pending)
        summary.errors = failures if pending else []
        self._total_sent += summary.sent
        self._total_failed += summary.failed

        if pending:
            first = failures[0] if failures else None
            raise EmailDeliveryError(
                first.message if first else "Email delivery failed",
                code=first.code if first else UNKNOWN_CODE,
                permanent=permanent,
                summary=summary,
            )

        self._last_transport_error = None
        logger.info(
            "Email %r delivered to %s recipient(s)%s",
            job.subject,
            summary.sent,
            f" [{job.type}]" if job.type else "",
        )
        return summary

    async def _attempt(
        self, job: EmailJob, recipients: list[str], text: str, html: str
    ) -> _AttemptOutcome:
        settings = self._settings
        excluded: set[str] = set()
        resolved = await self._resolve_transport(excluded)
        if resolved is None:
            message = self._last_transport_error or "Email transport unavailable"
            self._record_event(job, len(recipients), "failed", error=message)
            return _AttemptOutcome(
                undelivered=list(recipients),
                failures=[
                    BatchFailure(
                        TRANSPORT_UNAVAILABLE, message, tuple(recipients), permanent=True
                    )
                ],
                permanent=True,
            )

        outcome = _AttemptOutcome()
        size = settings.smtp_batch_size
        batches = [recipients[index : index + size] for index in range(0, len(recipients), size)]
        for position, batch in enumerate(batches):
            sends = 0
            while True:
                sends += 1
                config = resolved.config
                message = OutgoingMessage(
                    sender=config.sender,
                    sender_name=config.sender_name,
                    subject=job.subject,
                    text=text,
                    html=html,
                    bcc=tuple(batch),
                    reply_to=config.reply_to,
                )
                try:
                    await resolved.transport.send(message)
                except Exception as exc:
                    error = classify_transport_error(exc)
                else:
                    outcome.sent += len(batch)
                    self._record_event(job, len(batch), "sent", provider=config.label)
                    break

                transient = error.is_transient()
                self._last_transport_error = f"{error.code}: {error.message}"
                self._record_event(
                    job,
                    len(batch),
                    "failed",
                    provider=config.label,
                    error=self._last_transport_error,
                )
                logger.error(
                    "Email batch of %s recipient(s) for %r failed on %s: [%s] %s",
                    len(batch),
                    job.subject,
                    config.label,
                    error.code,
                    error.message,
                )
                if transient and sends < settings.smtp_max_retry:
                    resolved = await self._fallback_after(resolved, excluded)
                    continue

                outcome.failures.append(
                    BatchFailure(error.code, error.message, tuple(batch), permanent=not transient)
                )
                outcome.undelivered.extend(batch)
                outcome.permanent = outcome.permanent or not transient
                break

            if position < len(batches) - 1 and settings.smtp_batch_delay_ms > 0:
                await self._sleep(settings.smtp_batch_delay_ms / 1000)
        return outcome

    async def _fallback_after(
        self, current: _ResolvedTransport, excluded: set[str]
    ) -> _ResolvedTransport:
        """Switch away from ``current`` when another provider resolves."""

        if current.config.host:
            excluded.add(current.config.host)
        last_error = self._last_transport_error
        fallback = await self._resolve_transport(excluded)
        if fallback is not None and fallback.config.host != current.config.host:
            logger.info(
                "Switching email transport from %s to %s",
                current.config.label,
                fallback.config.label,
            )
            await self._sleep(PROVIDER_SWITCH_DELAY_S)
            return fallback
        self._last_transport_error = last_error
        await self._sleep(self._settings.smtp_retry_delay_ms / 1000)
        return current

    async def _resolve_transport(self, excluded: set[str]) -> _ResolvedTransport | None:
        if self._settings.smtp_disable:
            self._last_transport_error = "Email delivery is disabled (SMTP_DISABLE)"
            return None

        errors: list[str] = []
        for config in self._providers:
            if not config.is_complete:
                errors.append(f"{config.kind.value}: incomplete")
                continue
            if config.host in excluded:
                errors.append(f"{config.kind.value}: excluded")
                continue
            transport = self._transport_factory(config)
            try:
                await transport.verify()
            except Exception as exc:
                error: TransportError = classify_transport_error(exc)
                errors.append(f"{config.kind.value}: {error.message}")
                logger.warning(
                    "Email transport %s failed verification: [%s] %s",
                    config.label,
                    error.code,
                    error.message,
                )
                continue
            logger.debug("Email transport %s verified", config.label)
            return _ResolvedTransport(config, transport)

        self._last_transport_error = " | ".join(errors) or "No email provider configured"
        logger.warning("No email transport available: %s", self._last_transport_error)
        return None


__all__ = ["EmailDeliveryService", "new_job_id"]
