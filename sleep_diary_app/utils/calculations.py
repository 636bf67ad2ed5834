"""
Canonical calculation utilities for sleep diary metrics.

This module contains the single source of truth for the small numeric helpers
shared by record construction and the statistics engine. All other modules
should import from here rather than duplicating logic.

Module ownership:
- Duration / rollover arithmetic: this module
- Score to quality category: this module
- Clock-time conversion and formatting: this module
- Aggregation over record sets: core.statistics_engine
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

import numpy as np

from sleep_diary_app.core.constants import QualityThreshold, SleepQuality, StatisticsConstants
from sleep_diary_app.core.validation import InputValidator

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime


def round_half_up(value: float, ndigits: int = 0) -> float | int:
    """
    Round with halves away from zero.

    Python's built-in round() uses banker's rounding; diary figures are
    rounded the way users expect (7.25 -> 7.3, 449.5 -> 450).

    Args:
        value: Number to round
        ndigits: Decimal places to keep

    Returns:
        int when ndigits is 0, otherwise float

    """
    quantum = Decimal(1).scaleb(-ndigits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if ndigits == 0:
        return int(rounded)
    return float(rounded)


def calculate_duration_minutes(bed_time: datetime, wake_time: datetime) -> int:
    """
    Calculate a sleep session length in whole minutes.

    The raw difference is rounded to the nearest minute. A negative result
    gets a single 24h correction, which covers clock times entered on the
    same calendar date for a session that crossed midnight.

    Args:
        bed_time: When the user went to bed
        wake_time: When the user got up

    Returns:
        Duration in minutes

    """
    raw = round_half_up((wake_time - bed_time).total_seconds() / 60)
    if raw < 0:
        raw += StatisticsConstants.MINUTES_PER_DAY
    return raw


def classify_quality(score: int) -> SleepQuality:
    """
    Map a 1-10 quality score to its category.

    Thresholds are evaluated top-down: >=9 excellent, >=7 good, >=5 fair,
    >=3 poor, otherwise terrible.

    Raises:
        InvalidScoreError: If score is not an integer in [1, 10]

    """
    score = InputValidator.validate_quality_score(score)
    if score >= QualityThreshold.EXCELLENT:
        return SleepQuality.EXCELLENT
    if score >= QualityThreshold.GOOD:
        return SleepQuality.GOOD
    if score >= QualityThreshold.FAIR:
        return SleepQuality.FAIR
    if score >= QualityThreshold.POOR:
        return SleepQuality.POOR
    return SleepQuality.TERRIBLE


def minutes_since_midnight(moment: datetime) -> int:
    """Wall-clock position of a timestamp as hour * 60 + minute."""
    return moment.hour * 60 + moment.minute


def format_clock_minutes(total_minutes: int) -> str:
    """Format minutes-since-midnight as zero-padded 24h HH:MM (hour wraps at 24)."""
    hours = (total_minutes // 60) % 24
    minutes = total_minutes % 60
    return f"{hours:02d}:{minutes:02d}"


def population_std(values: Sequence[float]) -> float:
    """
    Population standard deviation (divides by n, not n - 1).

    Returns 0.0 for fewer than two values.
    """
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def calculate_sleep_efficiency(bed_time: datetime, sleep_time: datetime, wake_time: datetime) -> int:
    """
    Percentage of time in bed actually spent asleep.

    Args:
        bed_time: When the user went to bed
        sleep_time: When the user fell asleep
        wake_time: When the user got up

    Returns:
        Efficiency in [0, 100], rounded to an integer

    """
    time_in_bed = calculate_duration_minutes(bed_time, wake_time)
    if time_in_bed <= 0:
        return 0
    time_asleep = calculate_duration_minutes(sleep_time, wake_time)
    efficiency = round_half_up(time_asleep / time_in_bed * 100)
    return max(0, min(100, efficiency))


def calculate_sleep_latency(bed_time: datetime, sleep_time: datetime | None) -> int | None:
    """Minutes between lying down and falling asleep, or None when not recorded."""
    if sleep_time is None:
        return None
    return calculate_duration_minutes(bed_time, sleep_time)
