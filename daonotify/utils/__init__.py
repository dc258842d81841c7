"""Utility helpers for reusable functionality."""

from .datetime import (
    ensure_app_timezone,
    format_date_fr,
    format_datetime_fr,
    get_app_timezone,
    iso_now,
    now_in_app_timezone,
    parse_iso_datetime,
)
from .email import (
    EmailPartition,
    is_valid_email,
    mask_email,
    normalize_email,
    partition_emails,
    unique,
)

__all__ = [
    "EmailPartition",
    "ensure_app_timezone",
    "format_date_fr",
    "format_datetime_fr",
    "get_app_timezone",
    "is_valid_email",
    "iso_now",
    "mask_email",
    "normalize_email",
    "now_in_app_timezone",
    "parse_iso_datetime",
    "partition_emails",
    "unique",
]
