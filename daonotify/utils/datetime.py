"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from daonotify.config import get_settings

_DEFAULT_TIMEZONE: Final[str] = "UTC"
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured application timezone.

    The timezone is resolved using the ``APP_TIMEZONE`` environment variable (via
    the ``Settings`` class). If the provided value cannot be resolved, UTC is
    used as a fallback.
    """

    settings = get_settings()
    tz_name = (settings.app_timezone or "").strip() or _DEFAULT_TIMEZONE
    return _resolve_timezone(tz_name)


def now_in_app_timezone() -> datetime:
    """Return the current time localized to the configured timezone."""

    return datetime.now(tz=get_app_timezone())


def iso_now() -> str:
    """Return the current UTC instant as an ISO-8601 string."""

    return datetime.now(tz=timezone.utc).isoformat()


def ensure_app_timezone(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in the configured timezone."""

    if value is None:
        return None

    tz = get_app_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).astimezone(tz)
    return value.astimezone(tz)


def parse_iso_datetime(value: str | datetime | date | None) -> datetime | None:
    """Parse ``value`` into a datetime, returning ``None`` when impossible."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_date_fr(value: str | datetime | date | None) -> str | None:
    """Return ``value`` as ``dd/mm/yyyy`` or ``None`` when it cannot be parsed.

    Date-only inputs are rendered as-is; instants carrying a timezone are first
    converted to the application timezone.
    """

    parsed = parse_iso_datetime(value)
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = ensure_app_timezone(parsed)
    return parsed.strftime("%d/%m/%Y")


def format_datetime_fr(value: datetime | None = None) -> str:
    """Return ``value`` (default: now) as ``dd/mm/yyyy - HHhMM``."""

    moment = ensure_app_timezone(value) if value else now_in_app_timezone()
    return moment.strftime("%d/%m/%Y - %Hh%M")


def _resolve_timezone(tz_name: str) -> tzinfo:
    """Resolve ``tz_name`` into a ``timezone`` instance."""

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        match = _OFFSET_PATTERN.match(tz_name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            offset = timedelta(hours=hours, minutes=minutes)
            return timezone(sign * offset)
    return timezone.utc
