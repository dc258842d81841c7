"""Error types raised by the email delivery pipeline."""

from __future__ import annotations

import errno
import re
import smtplib
import socket
from enum import Enum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from daonotify.domain.entities import DeliverySummary

TRANSPORT_UNAVAILABLE: Final[str] = "transport_unavailable"
UNKNOWN_CODE: Final[str] = "unknown"

_TRANSIENT_CODES: Final[frozenset[str]] = frozenset(
    {
        "ETIMEDOUT",
        "ESOCKETTIMEDOUT",
        "ECONNRESET",
        "ECONNREFUSED",
        "ECONNABORTED",
        "EPIPE",
        "EHOSTUNREACH",
        "ENETUNREACH",
        "EAI_AGAIN",
        "ETIMEOUT",
        "ETEMPFAIL",
        "ECONNECTION",
    }
)
_TRANSIENT_PHRASES: Final[re.Pattern[str]] = re.compile(
    r"temporar|timeout|timed out|try again|later|retry", re.IGNORECASE
)
_RATE_LIMIT_PHRASES: Final[re.Pattern[str]] = re.compile(
    r"rate limit|too many|throttl", re.IGNORECASE
)


class TransportErrorKind(str, Enum):
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    RATE_LIMITED = "rate_limited"
    AUTH_REJECTED = "auth_rejected"
    UNKNOWN = "unknown"


_TRANSIENT_KINDS: Final[frozenset[TransportErrorKind]] = frozenset(
    {
        TransportErrorKind.TIMEOUT,
        TransportErrorKind.CONNECTION,
        TransportErrorKind.RATE_LIMITED,
    }
)


class TransportError(Exception):
    """Failure reported by a transport, classified once at the boundary.

    ``UNKNOWN`` failures carry their own ``transient`` flag because provider
    status codes decide whether they are worth retrying.
    """

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str,
        *,
        code: str | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code or kind.value
        self._transient = transient

    def is_transient(self) -> bool:
        if self.kind is TransportErrorKind.UNKNOWN:
            return self._transient
        return self.kind in _TRANSIENT_KINDS

    def __repr__(self) -> str:
        return f"TransportError(kind={self.kind.value!r}, code={self.code!r}, message={self.message!r})"


class EmailDeliveryError(Exception):
    """Raised by ``send`` when recipients could not be delivered."""

    def __init__(
        self,
        message: str,
        *,
        code: str = UNKNOWN_CODE,
        permanent: bool = False,
        summary: "DeliverySummary | None" = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.permanent = permanent
        self.summary = summary


def _classify_smtp_code(code: int, message: str) -> TransportError:
    text = str(code)
    if code in (530, 534, 535):
        return TransportError(TransportErrorKind.AUTH_REJECTED, message, code=text)
    if _RATE_LIMIT_PHRASES.search(message):
        return TransportError(TransportErrorKind.RATE_LIMITED, message, code=text)
    transient = 400 <= code < 500 or bool(_TRANSIENT_PHRASES.search(message))
    return TransportError(
        TransportErrorKind.UNKNOWN, message, code=text, transient=transient
    )


def _classify_http_status(status: int, message: str) -> TransportError:
    text = str(status)
    if status == 429:
        return TransportError(TransportErrorKind.RATE_LIMITED, message, code=text)
    if status in (401, 403):
        return TransportError(TransportErrorKind.AUTH_REJECTED, message, code=text)
    if status in (408, 504):
        return TransportError(TransportErrorKind.TIMEOUT, message, code=text)
    transient = status >= 500 or bool(_TRANSIENT_PHRASES.search(message))
    return TransportError(
        TransportErrorKind.UNKNOWN, message, code=text, transient=transient
    )


def _decode(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def classify_transport_error(exc: BaseException) -> TransportError:
    """Translate ``exc`` raised by a transport into a :class:`TransportError`."""

    if isinstance(exc, TransportError):
        return exc

    message = str(exc) or exc.__class__.__name__

    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        refused = list(exc.recipients.values())
        if refused:
            code, reason = refused[0]
            return _classify_smtp_code(int(code), _decode(reason))
        return TransportError(TransportErrorKind.UNKNOWN, message)
    if isinstance(exc, smtplib.SMTPResponseException):
        return _classify_smtp_code(int(exc.smtp_code), _decode(exc.smtp_error))
    if isinstance(exc, smtplib.SMTPServerDisconnected):
        return TransportError(
            TransportErrorKind.CONNECTION, message, code="ECONNECTION"
        )
    if isinstance(exc, (socket.timeout, TimeoutError)):
        return TransportError(TransportErrorKind.TIMEOUT, message, code="ETIMEDOUT")
    if isinstance(exc, socket.gaierror):
        return TransportError(TransportErrorKind.CONNECTION, message, code="EAI_AGAIN")
    if isinstance(exc, OSError):
        code = errno.errorcode.get(exc.errno or 0, "ECONNECTION")
        return TransportError(TransportErrorKind.CONNECTION, message, code=code)

    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return _classify_http_status(status, message)

    code = getattr(exc, "code", None)
    if isinstance(code, str) and code.upper() in _TRANSIENT_CODES:
        return TransportError(TransportErrorKind.CONNECTION, message, code=code.upper())

    if _RATE_LIMIT_PHRASES.search(message):
        return TransportError(TransportErrorKind.RATE_LIMITED, message)
    return TransportError(
        TransportErrorKind.UNKNOWN,
        message,
        code=UNKNOWN_CODE,
        transient=bool(_TRANSIENT_PHRASES.search(message)),
    )


__all__ = [
    "EmailDeliveryError",
    "TRANSPORT_UNAVAILABLE",
    "TransportError",
    "TransportErrorKind",
    "UNKNOWN_CODE",
    "classify_transport_error",
]
