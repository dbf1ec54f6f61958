"""Datetime utility functions for timezone handling."""
from datetime import date, datetime, time, UTC
from typing import Optional


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware in UTC.

    Datetimes read back from SQLite are timezone-naive but are always
    written as UTC, so naive values are tagged rather than shifted.

    Example:
        >>> ensure_utc(datetime(2025, 1, 1, 12, 0, 0)).tzinfo is UTC
        True
        >>> ensure_utc(None) is None
        True
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_utc_datetime(value: date | datetime) -> datetime:
    """Normalize a date or datetime to an aware UTC datetime.

    Plain dates are interpreted as midnight UTC of that calendar day.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime.combine(value, time.min, tzinfo=UTC)


def parse_reference_date(raw: str | None, *, now: datetime | None = None) -> datetime:
    """Parse an ISO 8601 date or datetime string into an aware UTC datetime.

    ``None`` or an empty string yields the current instant.

    Raises:
        ValueError: If the string is not a valid ISO 8601 date or datetime.
    """
    if raw is None or not raw.strip():
        return now or datetime.now(UTC)

    text = raw.strip()
    if len(text) == 10:
        return to_utc_datetime(date.fromisoformat(text))
    return ensure_utc(datetime.fromisoformat(text))
