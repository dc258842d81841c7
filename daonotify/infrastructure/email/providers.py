"""Closed set of email providers and their configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from daonotify.config import Settings

logger = logging.getLogger(__name__)

SENDGRID_API_HOST = "api.sendgrid.com"


class ProviderKind(str, Enum):
    PRIMARY = "primary"
    SENDGRID = "sendgrid"
    MAILGUN = "mailgun"
    SES = "ses"


@dataclass(frozen=True)
class ProviderConfig:
    """Connection settings for one provider.

    For SendGrid ``password`` holds the API key and ``host`` the API host.
    """

    kind: ProviderKind
    host: str | None
    port: int
    secure: bool
    user: str | None
    password: str | None
    sender: str
    sender_name: str
    reply_to: str | None = None
    connection_timeout: float = 15.0
    socket_timeout: float = 20.0

    @property
    def is_complete(self) -> bool:
        if self.kind is ProviderKind.SENDGRID:
            return bool(self.password and self.sender)
        return bool(self.host and self.user and self.password)

    @property
    def label(self) -> str:
        return f"{self.kind.value}:{self.host}"


def parse_fallback_order(raw: str) -> list[ProviderKind]:
    """Return the fallback providers named in ``raw`` in order, without duplicates."""

    kinds: list[ProviderKind] = []
    for name in (part.strip().lower() for part in (raw or "").split(",")):
        if not name:
            continue
        try:
            kind = ProviderKind(name)
        except ValueError:
            logger.warning("Ignoring unknown email fallback provider %r", name)
            continue
        if kind is ProviderKind.PRIMARY or kind in kinds:
            continue
        kinds.append(kind)
    return kinds


def provider_configs_from_settings(settings: Settings) -> list[ProviderConfig]:
    """Build the ordered candidate list: the primary server then the fallbacks."""

    common = {
        "sender_name": settings.mail_sender_name,
        "reply_to": settings.smtp_reply_to or settings.sender_address,
        "connection_timeout": settings.smtp_connection_timeout_s,
        "socket_timeout": settings.smtp_socket_timeout_s,
    }
    builders = {
        ProviderKind.SENDGRID: lambda: ProviderConfig(
            kind=ProviderKind.SENDGRID,
            host=SENDGRID_API_HOST,
            port=443,
            secure=True,
            user="apikey",
            password=settings.sendgrid_api_key,
            sender=settings.sendgrid_sender or settings.sender_address,
            **common,
        ),
        ProviderKind.MAILGUN: lambda: ProviderConfig(
            kind=ProviderKind.MAILGUN,
            host=settings.mailgun_smtp_host,
            port=settings.mailgun_smtp_port,
            secure=settings.mailgun_smtp_secure,
            user=settings.mailgun_smtp_user,
            password=settings.mailgun_smtp_pass,
            sender=settings.sender_address,
            **common,
        ),
        ProviderKind.SES: lambda: ProviderConfig(
            kind=ProviderKind.SES,
            host=settings.ses_smtp_host,
            port=settings.ses_smtp_port,
            secure=settings.ses_smtp_secure,
            user=settings.ses_smtp_user,
            password=settings.ses_smtp_pass,
            sender=settings.sender_address,
            **common,
        ),
    }

    configs = [
        ProviderConfig(
            kind=ProviderKind.PRIMARY,
            host=settings.smtp_host,
            port=settings.smtp_port,
            secure=settings.smtp_secure,
            user=settings.smtp_user,
            password=settings.smtp_pass,
            sender=settings.sender_address,
            **common,
        )
    ]
    configs.extend(builders[kind]() for kind in parse_fallback_order(settings.smtp_fallback_order))
    return configs


__all__ = [
    "ProviderConfig",
    "ProviderKind",
    "parse_fallback_order",
    "provider_configs_from_settings",
]
