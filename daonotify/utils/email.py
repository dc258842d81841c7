"""Address hygiene helpers shared by every email consumer."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Final

EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[a-z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$",
    re.IGNORECASE,
)
MASKED_EMAIL: Final[str] = "***@***"


@dataclass(frozen=True)
class EmailPartition:
    """Result of :func:`partition_emails`."""

    valid: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)


def normalize_email(value: Any) -> str | None:
    """Return ``value`` trimmed and lowercased, or ``None`` when empty."""

    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed.lower()


def is_valid_email(value: Any) -> bool:
    """Return ``True`` when ``value`` normalizes to a well formed address."""

    normalized = normalize_email(value)
    if not normalized:
        return False
    return EMAIL_PATTERN.match(normalized) is not None


def partition_emails(values: Iterable[Any]) -> EmailPartition:
    """Split ``values`` into normalized valid addresses and rejected inputs.

    A value that normalizes to nothing is dropped silently unless it was
    truthy, in which case its trimmed string form is reported as invalid.
    Order is preserved and duplicates are kept; callers deduplicate.
    """

    partition = EmailPartition()
    for value in values:
        normalized = normalize_email(value)
        if not normalized:
            if value:
                partition.invalid.append(str(value).strip())
            continue
        if EMAIL_PATTERN.match(normalized):
            partition.valid.append(normalized)
        else:
            partition.invalid.append(normalized)
    return partition


def unique(values: Iterable[str]) -> list[str]:
    """Return ``values`` without duplicates preserving order."""

    return list(dict.fromkeys(values))


def mask_email(value: Any) -> str:
    """Replace the local part of ``value`` so the address cannot be recovered."""

    if not value:
        return MASKED_EMAIL
    text = str(value).strip()
    if "@" not in text:
        return MASKED_EMAIL
    return re.sub(r"^[^@]+", "***", text)


__all__ = [
    "EMAIL_PATTERN",
    "EmailPartition",
    "MASKED_EMAIL",
    "is_valid_email",
    "mask_email",
    "normalize_email",
    "partition_emails",
    "unique",
]
