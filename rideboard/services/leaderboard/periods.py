"""Map a period kind and reference date to a canonical period instance."""
from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, UTC
from typing import Callable, Optional

from rideboard.models.base import PeriodKind
from rideboard.services.leaderboard.types import PeriodBounds
from rideboard.utils.datetime_helpers import to_utc_datetime

ALL_TIME_PERIOD_ID = "all-time"
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Last representable instant of a day at millisecond precision
END_OF_DAY = time(23, 59, 59, 999000)


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def _day_end(day: date) -> datetime:
    return datetime.combine(day, END_OF_DAY, tzinfo=UTC)


def resolve_period(
    period_kind: PeriodKind,
    reference: date | datetime,
    *,
    now: Optional[Callable[[], datetime]] = None,
) -> PeriodBounds:
    """Resolve ``reference`` to the period instance of ``period_kind`` containing it.

    Args:
        period_kind: Period family to resolve.
        reference: Any instant (or calendar date) inside the wanted period.
            Naive datetimes are treated as UTC.
        now: Clock used for the open end of ``all_time``; defaults to the
            current UTC time.

    Returns:
        PeriodBounds with the canonical period id and inclusive UTC bounds.

    Raises:
        ValueError: If ``period_kind`` has no resolver (e.g. ``custom``).

    Example:
        >>> resolve_period(PeriodKind.WEEKLY, date(2024, 5, 15)).period_id
        '2024-W20'
    """
    day = to_utc_datetime(reference).date()

    if period_kind == PeriodKind.DAILY:
        return PeriodBounds(day.isoformat(), _day_start(day), _day_end(day))

    if period_kind == PeriodKind.WEEKLY:
        iso_year, iso_week, iso_weekday = day.isocalendar()
        monday = day - timedelta(days=iso_weekday - 1)
        sunday = monday + timedelta(days=6)
        return PeriodBounds(f"{iso_year}-W{iso_week}", _day_start(monday), _day_end(sunday))

    if period_kind == PeriodKind.MONTHLY:
        last_day = calendar.monthrange(day.year, day.month)[1]
        return PeriodBounds(
            f"{day.year}-{day.month}",
            _day_start(day.replace(day=1)),
            _day_end(day.replace(day=last_day)),
        )

    if period_kind == PeriodKind.YEARLY:
        return PeriodBounds(
            f"{day.year}",
            _day_start(date(day.year, 1, 1)),
            _day_end(date(day.year, 12, 31)),
        )

    if period_kind == PeriodKind.ALL_TIME:
        clock = now or (lambda: datetime.now(UTC))
        return PeriodBounds(ALL_TIME_PERIOD_ID, EPOCH, clock())

    raise ValueError(f"Unsupported period kind: {period_kind}")
