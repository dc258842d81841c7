"""Tests for the classification of transport failures."""

import smtplib
import socket

import pytest

from daonotify.infrastructure.email.errors import (
    TransportError,
    TransportErrorKind,
    classify_transport_error,
)


class _HttpError(Exception):
    def __init__(self, status_code: int, message: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code


class _CodedError(Exception):
    def __init__(self, code: str) -> None:
        super().__init__(f"socket error {code}")
        self.code = code


@pytest.mark.parametrize(
    ("exc", "kind", "code", "transient"),
    [
        (socket.timeout("timed out"), TransportErrorKind.TIMEOUT, "ETIMEDOUT", True),
        (
            smtplib.SMTPServerDisconnected("Connection unexpectedly closed"),
            TransportErrorKind.CONNECTION,
            "ECONNECTION",
            True,
        ),
        (ConnectionRefusedError(111, "Connection refused"), TransportErrorKind.CONNECTION, "ECONNREFUSED", True),
        (
            smtplib.SMTPAuthenticationError(535, b"5.7.8 Authentication failed"),
            TransportErrorKind.AUTH_REJECTED,
            "535",
            False,
        ),
        (
            smtplib.SMTPResponseException(421, b"4.7.0 Try again later"),
            TransportErrorKind.UNKNOWN,
            "421",
            True,
        ),
        (
            smtplib.SMTPResponseException(451, b"4.7.1 Too many messages, rate limit exceeded"),
            TransportErrorKind.RATE_LIMITED,
            "451",
            True,
        ),
        (
            smtplib.SMTPResponseException(550, b"5.1.1 Mailbox unavailable"),
            TransportErrorKind.UNKNOWN,
            "550",
            False,
        ),
        (_HttpError(429, "Too Many Requests"), TransportErrorKind.RATE_LIMITED, "429", True),
        (_HttpError(403, "Forbidden"), TransportErrorKind.AUTH_REJECTED, "403", False),
        (_HttpError(504, "Gateway Timeout"), TransportErrorKind.TIMEOUT, "504", True),
        (_HttpError(503, "Service Unavailable"), TransportErrorKind.UNKNOWN, "503", True),
        (_HttpError(400, "Bad Request"), TransportErrorKind.UNKNOWN, "400", False),
        (_CodedError("econnreset"), TransportErrorKind.CONNECTION, "ECONNRESET", True),
    ],
)
def test_classify_transport_error(exc, kind, code, transient):
    """Each failure is mapped once to a kind, a code and a retry decision."""

    error = classify_transport_error(exc)

    assert error.kind is kind
    assert error.code == code
    assert error.is_transient() is transient


def test_refused_recipients_use_the_first_smtp_code():
    exc = smtplib.SMTPRecipientsRefused({"a@x.com": (550, b"User unknown")})

    error = classify_transport_error(exc)

    assert error.code == "550"
    assert not error.is_transient()


def test_unrecognized_errors_are_unknown_and_permanent():
    error = classify_transport_error(RuntimeError("boom"))

    assert error.kind is TransportErrorKind.UNKNOWN
    assert error.code == "unknown"
    assert not error.is_transient()


def test_transport_errors_pass_through_unchanged():
    original = TransportError(TransportErrorKind.TIMEOUT, "slow")

    assert classify_transport_error(original) is original
    assert original.code == "timeout"
