"""Transports delivering a rendered message through one provider."""

from __future__ import annotations

import json
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any, Callable, Protocol

import anyio
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Bcc, From, Mail, ReplyTo, To

from .errors import classify_transport_error
from .providers import ProviderConfig, ProviderKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutgoingMessage:
    """One blind-copy batch; the visible recipient is the sender itself."""

    sender: str
    sender_name: str
    subject: str
    text: str
    html: str
    bcc: tuple[str, ...]
    reply_to: str | None = None


class EmailTransport(Protocol):
    config: ProviderConfig

    async def verify(self) -> None:
        """Raise a ``TransportError`` when the provider cannot be reached."""

    async def send(self, message: OutgoingMessage) -> None:
        """Deliver ``message`` or raise a ``TransportError``."""


def _build_mime(message: OutgoingMessage) -> MIMEMultipart:
    mime = MIMEMultipart("alternative")
    mime["From"] = formataddr((message.sender_name, message.sender))
    mime["To"] = message.sender
    mime["Subject"] = message.subject
    if message.reply_to:
        mime["Reply-To"] = message.reply_to
    mime.attach(MIMEText(message.text, "plain", "utf-8"))
    mime.attach(MIMEText(message.html, "html", "utf-8"))
    return mime


class SmtpTransport:
    """SMTP relay driven by :mod:`smtplib` on a worker thread."""

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    def _connect(self) -> smtplib.SMTP:
        config = self.config
        context = ssl.create_default_context()
        if config.secure:
            client: smtplib.SMTP = smtplib.SMTP_SSL(
                config.host, config.port, timeout=config.connection_timeout, context=context
            )
        else:
            client = smtplib.SMTP(config.host, config.port, timeout=config.connection_timeout)
            client.ehlo()
            if client.has_extn("starttls"):
                client.starttls(context=context)
                client.ehlo()
        if client.sock is not None:
            client.sock.settimeout(config.socket_timeout)
        client.login(config.user or "", config.password or "")
        return client

    def _probe(self) -> None:
        with self._connect() as client:
            client.noop()

    def _deliver(self, message: OutgoingMessage) -> None:
        mime = _build_mime(message)
        with self._connect() as client:
            refused = client.sendmail(
                message.sender, [message.sender, *message.bcc], mime.as_string()
            )
        if refused:
            logger.warning(
                "SMTP server %s refused %s recipient(s) of %r",
                self.config.host,
                len(refused),
                message.subject,
            )

    async def verify(self) -> None:
        try:
            await anyio.to_thread.run_sync(self._probe)
        except Exception as exc:
            raise classify_transport_error(exc) from exc

    async def send(self, message: OutgoingMessage) -> None:
        try:
            await anyio.to_thread.run_sync(self._deliver, message)
        except Exception as exc:
            raise classify_transport_error(exc) from exc


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
        return json.dumps(parsed, default=str)

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


class SendGridResponseError(Exception):
    """Non-2xx answer returned by the SendGrid Web API without raising."""

    def __init__(self, status_code: int | None, details: str | None) -> None:
        super().__init__(details or f"SendGrid API responded with status {status_code}")
        self.status_code = status_code


class SendGridTransport:
    """SendGrid Web API provider."""

    def __init__(
        self,
        config: ProviderConfig,
        client_factory: Callable[[str], SendGridAPIClient] = SendGridAPIClient,
    ) -> None:
        self.config = config
        self._client_factory = client_factory

    def _build_mail(self, message: OutgoingMessage) -> Mail:
        mail = Mail(
            from_email=From(message.sender, message.sender_name),
            to_emails=To(message.sender),
            subject=message.subject,
            plain_text_content=message.text,
            html_content=message.html,
        )
        for address in message.bcc:
            mail.add_bcc(Bcc(address))
        if message.reply_to:
            mail.reply_to = ReplyTo(message.reply_to)
        return mail

    def _deliver(self, message: OutgoingMessage) -> None:
        client = self._client_factory(self.config.password or "")
        try:
            response = client.send(self._build_mail(message))
        except Exception as exc:
            status_code = getattr(exc, "status_code", None)
            details = _extract_sendgrid_error_details(getattr(exc, "body", None))
            logger.error(
                "SendGrid API request failed with status %s: %s",
                status_code,
                details or exc,
            )
            raise

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            details = _extract_sendgrid_error_details(getattr(response, "body", None))
            logger.error("SendGrid API responded with status %s: %s", status_code, details)
            raise SendGridResponseError(status_code, details)

    async def verify(self) -> None:
        if not self.config.is_complete:
            raise classify_transport_error(
                SendGridResponseError(401, "SendGrid API key or sender missing")
            )

    async def send(self, message: OutgoingMessage) -> None:
        try:
            await anyio.to_thread.run_sync(self._deliver, message)
        except Exception as exc:
            raise classify_transport_error(exc) from exc


_TRANSPORTS: dict[ProviderKind, Callable[[ProviderConfig], EmailTransport]] = {
    ProviderKind.PRIMARY: SmtpTransport,
    ProviderKind.SENDGRID: SendGridTransport,
    ProviderKind.MAILGUN: SmtpTransport,
    ProviderKind.SES: SmtpTransport,
}


def build_transport(config: ProviderConfig) -> EmailTransport:
    """Return the transport implementation serving ``config.kind``."""

    return _TRANSPORTS[config.kind](config)


__all__ = [
    "EmailTransport",
    "OutgoingMessage",
    "SendGridResponseError",
    "SendGridTransport",
    "SmtpTransport",
    "build_transport",
]
