"""Tests for datetime helper utilities."""
from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from rideboard.utils.datetime_helpers import ensure_utc, parse_reference_date, to_utc_datetime


def test_ensure_utc_none_returns_none():
    assert ensure_utc(None) is None


def test_ensure_utc_attaches_timezone_to_naive_datetime():
    """Naive datetimes should be marked as UTC without adjusting the clock."""

    naive = datetime(2024, 5, 1, 12, 30, 0)

    result = ensure_utc(naive)

    assert result.tzinfo is UTC
    assert result.replace(tzinfo=None) == naive


def test_ensure_utc_converts_from_other_timezones_to_utc():
    eastern = timezone(timedelta(hours=-4))
    aware = datetime(2024, 5, 1, 8, 0, tzinfo=eastern)

    result = ensure_utc(aware)

    assert result.tzinfo is UTC
    assert result.replace(tzinfo=None) == datetime(2024, 5, 1, 12, 0)


def test_to_utc_datetime_accepts_plain_dates():
    assert to_utc_datetime(date(2024, 2, 29)) == datetime(2024, 2, 29, tzinfo=UTC)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-05-15", datetime(2024, 5, 15, tzinfo=UTC)),
        ("2024-05-15T10:30:00", datetime(2024, 5, 15, 10, 30, tzinfo=UTC)),
        ("2024-05-15T10:30:00+02:00", datetime(2024, 5, 15, 8, 30, tzinfo=UTC)),
    ],
)
def test_parse_reference_date(raw, expected):
    assert parse_reference_date(raw) == expected


def test_parse_reference_date_defaults_to_now():
    now = datetime(2025, 1, 1, tzinfo=UTC)

    assert parse_reference_date(None, now=now) == now
    assert parse_reference_date("  ", now=now) == now


@pytest.mark.parametrize("raw", ["yesterday", "2024-02-30", "15/05/2024"])
def test_parse_reference_date_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_reference_date(raw)
