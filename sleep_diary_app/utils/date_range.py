#!/usr/bin/env python3
"""
Date range calculation utilities.

Statistics periods look back a fixed number of days from a reference moment:
- day: 1 day
- week: 7 days
- month: 30 days
- year: 365 days
A custom period needs an explicit start and end.

Naive timestamps are local wall time. Ranges and orderings compare instants,
so naive and timezone-aware values can be mixed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sleep_diary_app.core.constants import PeriodDays, StatisticsPeriod
from sleep_diary_app.core.exceptions import ErrorCodes, ValidationError

PERIOD_LENGTH_DAYS: dict[StatisticsPeriod, int] = {
    StatisticsPeriod.DAY: PeriodDays.DAY,
    StatisticsPeriod.WEEK: PeriodDays.WEEK,
    StatisticsPeriod.MONTH: PeriodDays.MONTH,
    StatisticsPeriod.YEAR: PeriodDays.YEAR,
}

# Fixed width so text order matches time order in SQLite
INSTANT_TEXT_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


def to_instant(moment: datetime) -> datetime:
    """Return the UTC-aware instant for a timestamp; naive values are read as local time."""
    return moment.astimezone(timezone.utc)


def instant_text(moment: datetime) -> str:
    """Sortable UTC text for a timestamp, used as the storage ordering key."""
    return to_instant(moment).strftime(INSTANT_TEXT_FORMAT)


@dataclass(frozen=True)
class DateRange:
    """Immutable inclusive range of bed times."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if to_instant(self.end) < to_instant(self.start):
            msg = f"Range end {self.end.isoformat()} is before start {self.start.isoformat()}"
            raise ValidationError(msg, ErrorCodes.OUT_OF_RANGE)

    @property
    def duration_days(self) -> float:
        """Get duration in days."""
        return (to_instant(self.end) - to_instant(self.start)).total_seconds() / 86400

    def contains(self, moment: datetime) -> bool:
        return to_instant(self.start) <= to_instant(moment) <= to_instant(self.end)


def get_day_range(target_date: date | datetime) -> DateRange:
    """
    Get the calendar-day range (00:00:00 to 23:59:59.999999) for a date.

    Example:
        >>> get_day_range(date(2024, 1, 15)).end
        datetime.datetime(2024, 1, 15, 23, 59, 59, 999999)

    """
    if isinstance(target_date, datetime):
        start = target_date.replace(hour=0, minute=0, second=0, microsecond=0)
    else:
        start = datetime.combine(target_date, time.min)
    return DateRange(start=start, end=start + timedelta(days=1) - timedelta(microseconds=1))


def get_period_range(
    period: StatisticsPeriod | str,
    now: datetime,
    start: datetime | None = None,
    end: datetime | None = None,
) -> DateRange:
    """
    Get the look-back window for a statistics period.

    Args:
        period: Statistics period
        now: Reference moment (end of the window)
        start: Window start, required for custom
        end: Window end, required for custom

    Returns:
        DateRange ending at now (or at end for custom)

    Raises:
        ValidationError: If the period is unknown or a custom period lacks bounds

    """
    try:
        period = StatisticsPeriod(period)
    except ValueError as e:
        allowed = ", ".join(p.value for p in StatisticsPeriod)
        msg = f"Unknown statistics period: {period!r}. Allowed: {allowed}"
        raise ValidationError(msg, ErrorCodes.INVALID_INPUT) from e

    if period is StatisticsPeriod.CUSTOM:
        if start is None or end is None:
            msg = "A custom period needs both start and end"
            raise ValidationError(msg, ErrorCodes.MISSING_REQUIRED)
        return DateRange(start=start, end=end)

    return DateRange(start=now - timedelta(days=PERIOD_LENGTH_DAYS[period]), end=now)
