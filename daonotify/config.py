"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"

DEFAULT_MAIL_LOGO_URL = "https://2sndtechnologies.com/wp-content/uploads/2023/09/Logo2snd.png"
MIN_EMAIL_ERROR_NOTIFY_INTERVAL_MS = 5 * 60 * 1000


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    app_env: str = Field(
        default="development",
        description="Deployment environment; 'test' forces email dry-run mode",
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used to render dates in notifications",
    )

    smtp_host: str | None = Field(default=None, description="Primary SMTP server host")
    smtp_port: int = Field(default=465, description="Primary SMTP server port", gt=0)
    smtp_secure: bool = Field(
        default=True, description="Use implicit TLS for the primary SMTP server"
    )
    smtp_user: str | None = Field(default=None, description="Primary SMTP username")
    smtp_pass: str | None = Field(default=None, description="Primary SMTP password")
    smtp_from: str | None = Field(
        default=None, description="Sender address; defaults to the SMTP username"
    )
    smtp_reply_to: str | None = Field(default=None, description="Reply-To address")
    smtp_disable: bool = Field(
        default=False, description="Disable every outgoing email transport"
    )
    smtp_dry_run: bool = Field(
        default=False, description="Pretend to deliver emails without network I/O"
    )
    smtp_fallback_order: str = Field(
        default="sendgrid,mailgun,ses",
        description="Comma separated fallback providers tried after the primary SMTP server",
    )
    smtp_connection_timeout_s: float = Field(default=15.0, gt=0)
    smtp_socket_timeout_s: float = Field(default=20.0, gt=0)

    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of SendGrid messages",
        min_length=3,
    )

    mailgun_smtp_host: str = Field(default="smtp.mailgun.org")
    mailgun_smtp_port: int = Field(default=587, gt=0)
    mailgun_smtp_secure: bool = Field(default=False)
    mailgun_smtp_user: str | None = Field(default=None)
    mailgun_smtp_pass: str | None = Field(default=None)

    ses_smtp_host: str = Field(default="email-smtp.us-east-1.amazonaws.com")
    ses_smtp_port: int = Field(default=587, gt=0)
    ses_smtp_secure: bool = Field(default=False)
    ses_smtp_user: str | None = Field(default=None)
    ses_smtp_pass: str | None = Field(default=None)

    smtp_queue_interval_ms: int = Field(
        default=200, ge=0, description="Pause between two queue draining rounds"
    )
    smtp_max_concurrent: int = Field(
        default=3, ge=1, description="Maximum number of jobs sent in parallel"
    )
    smtp_max_retry: int = Field(
        default=3, ge=1, description="Maximum attempts for a job and for a batch"
    )
    smtp_retry_delay_ms: int = Field(
        default=2000, ge=0, description="Base delay used by the retry backoff"
    )
    smtp_batch_size: int = Field(
        default=25, ge=1, description="Number of blind-copy recipients per message"
    )
    smtp_batch_delay_ms: int = Field(
        default=150, ge=0, description="Pause between two batches of the same job"
    )
    smtp_queue_path: str = Field(
        default="/tmp/emailQueue.json",
        description="JSON snapshot of pending email jobs restored on startup",
    )

    mail_sender_name: str = Field(default="Gestion des DAOs 2SND")
    mail_logo_url: str | None = Field(default=None)

    admin_email: str | None = Field(
        default=None, description="Administrative address copied on broadcast emails"
    )
    email_broadcast_all: bool = Field(
        default=False,
        description="Turn every notification into a broadcast to all users",
    )
    email_error_notify_interval_ms: int = Field(
        default=10 * 60 * 1000,
        description="Cooldown between two system notifications for the same email error",
    )

    notifications_max_items: int = Field(default=1000, ge=1)
    notifications_database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL used to persist notifications; unset keeps them in memory",
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable SendGrid"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self

    @property
    def is_dry_run(self) -> bool:
        """Return ``True`` when emails must not leave the process."""

        return self.app_env.strip().lower() == "test" or self.smtp_dry_run

    @property
    def sender_address(self) -> str:
        return self.smtp_from or self.smtp_user or "no-reply@example.com"

    @property
    def logo_url(self) -> str:
        url = (self.mail_logo_url or "").strip()
        if not url.lower().startswith(("http://", "https://")):
            return DEFAULT_MAIL_LOGO_URL
        return url

    @property
    def error_notify_interval_s(self) -> float:
        interval_ms = max(
            MIN_EMAIL_ERROR_NOTIFY_INTERVAL_MS, self.email_error_notify_interval_ms
        )
        return interval_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
