"""Tests for the address validation and normalization helpers."""

import pytest

from daonotify.utils.email import (
    MASKED_EMAIL,
    is_valid_email,
    mask_email,
    normalize_email,
    partition_emails,
    unique,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  Alice@Example.COM ", "alice@example.com"),
        ("bob@example.com", "bob@example.com"),
        ("   ", None),
        ("", None),
        (None, None),
        (42, None),
    ],
)
def test_normalize_email(raw, expected):
    """Addresses are trimmed and lowercased; blanks and non-strings are rejected."""

    assert normalize_email(raw) == expected


@pytest.mark.parametrize(
    "raw", ["  Alice@Example.COM ", "x.y+tag@sub.domain.org", "UPPER@CASE.IO"]
)
def test_normalize_email_is_idempotent(raw):
    """Normalizing twice yields the same value as normalizing once."""

    once = normalize_email(raw)
    assert once is not None
    assert normalize_email(once) == once


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("user@example.com", True),
        ("first.last+tag@mail.example.org", True),
        ("not-an-email", False),
        ("user@-example.com", False),
        ("user@example-.com", False),
        ("user@example", False),
        ("user@" + "a" * 64 + ".com", False),
        ("user@" + "a" * 63 + ".com", True),
        ("us er@example.com", False),
        (None, False),
    ],
)
def test_is_valid_email(raw, expected):
    """Only well formed addresses with valid domain labels are accepted."""

    assert is_valid_email(raw) is expected


def test_partition_emails_classifies_each_input():
    """Valid inputs are normalized, unparseable ones echoed, empty ones dropped."""

    partition = partition_emails(["A@x.com", " not-an-email ", "", None, "b@x.com", 0])

    assert partition.valid == ["a@x.com", "b@x.com"]
    assert partition.invalid == ["not-an-email"]


def test_partition_emails_reports_truthy_non_strings_as_invalid():
    """A present value that cannot be normalized is echoed back as invalid."""

    partition = partition_emails([12345])

    assert partition.valid == []
    assert partition.invalid == ["12345"]


def test_partition_never_places_a_value_on_both_sides():
    """The valid and invalid sets are disjoint and cover every non-empty input."""

    inputs = ["a@x.com", "A@X.COM", "bad", "bad@", "c@y.org", "  "]
    partition = partition_emails(inputs)

    assert not set(partition.valid) & set(partition.invalid)
    assert len(partition.valid) + len(partition.invalid) == len([raw for raw in inputs if raw.strip()])


def test_unique_preserves_order():
    assert unique(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("jean.dupont@dao.test", "***@dao.test"),
        ("invalid", MASKED_EMAIL),
        (None, MASKED_EMAIL),
    ],
)
def test_mask_email_hides_the_local_part(raw, expected):
    assert mask_email(raw) == expected
