#!/usr/bin/env python3
"""
Sleep record dataclasses.

A SleepRecord is immutable. New records come from build_sleep_record() and
edited records from apply_record_update(); both validate raw input and
recompute every derived field so duration, quality and efficiency can never
drift from the timestamps and score they were computed from.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from sleep_diary_app.core.constants import DatabaseColumn, SleepQuality, SleepTag
from sleep_diary_app.core.exceptions import ErrorCodes, InvalidTimestampError, ValidationError
from sleep_diary_app.core.validation import InputValidator
from sleep_diary_app.utils.calculations import (
    calculate_duration_minutes,
    calculate_sleep_efficiency,
    calculate_sleep_latency,
    classify_quality,
)

MAX_NOTES_LENGTH = 2000


def generate_record_id() -> str:
    """Create a new opaque record id."""
    return f"record_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class SleepRecord:
    """One night of sleep as entered by the user, plus derived fields."""

    id: str
    bed_time: datetime
    wake_time: datetime
    duration_minutes: int
    quality_score: int
    quality: SleepQuality
    created_at: datetime
    updated_at: datetime
    sleep_time: datetime | None = None
    wake_up_count: int = 0
    tags: frozenset[SleepTag] = field(default_factory=frozenset)
    notes: str = ""
    sleep_efficiency: int | None = None
    sleep_latency: int | None = None
    deep_sleep_minutes: int | None = None
    light_sleep_minutes: int | None = None
    rem_sleep_minutes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary (ISO timestamps, sorted tags)."""
        return {
            DatabaseColumn.ID: self.id,
            DatabaseColumn.BED_TIME: self.bed_time.isoformat(),
            DatabaseColumn.WAKE_TIME: self.wake_time.isoformat(),
            DatabaseColumn.SLEEP_TIME: self.sleep_time.isoformat() if self.sleep_time else None,
            DatabaseColumn.DURATION: self.duration_minutes,
            DatabaseColumn.QUALITY_SCORE: self.quality_score,
            DatabaseColumn.QUALITY: self.quality.value,
            DatabaseColumn.WAKE_UP_COUNT: self.wake_up_count,
            DatabaseColumn.TAGS: sorted(tag.value for tag in self.tags),
            DatabaseColumn.NOTES: self.notes,
            DatabaseColumn.SLEEP_EFFICIENCY: self.sleep_efficiency,
            DatabaseColumn.SLEEP_LATENCY: self.sleep_latency,
            DatabaseColumn.DEEP_SLEEP_DURATION: self.deep_sleep_minutes,
            DatabaseColumn.LIGHT_SLEEP_DURATION: self.light_sleep_minutes,
            DatabaseColumn.REM_SLEEP_DURATION: self.rem_sleep_minutes,
            DatabaseColumn.CREATED_AT: self.created_at.isoformat(),
            DatabaseColumn.UPDATED_AT: self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class CreateSleepRecordParams:
    """Raw input for a new record. Timestamps may be datetimes or ISO-8601 strings."""

    bed_time: datetime | str
    wake_time: datetime | str
    quality_score: int
    sleep_time: datetime | str | None = None
    wake_up_count: int = 0
    tags: tuple[str, ...] | frozenset[str] = ()
    notes: str = ""
    sleep_latency: int | None = None
    deep_sleep_minutes: int | None = None
    light_sleep_minutes: int | None = None
    rem_sleep_minutes: int | None = None


@dataclass(frozen=True)
class UpdateSleepRecordParams:
    """Partial edit of an existing record. None means unchanged."""

    bed_time: datetime | str | None = None
    wake_time: datetime | str | None = None
    quality_score: int | None = None
    sleep_time: datetime | str | None = None
    clear_sleep_time: bool = False
    wake_up_count: int | None = None
    tags: tuple[str, ...] | frozenset[str] | None = None
    notes: str | None = None
    sleep_latency: int | None = None
    deep_sleep_minutes: int | None = None
    light_sleep_minutes: int | None = None
    rem_sleep_minutes: int | None = None

    def is_empty(self) -> bool:
        """True when the update would change nothing."""
        return all(
            value is None or value is False
            for value in (
                self.bed_time,
                self.wake_time,
                self.quality_score,
                self.sleep_time,
                self.clear_sleep_time,
                self.wake_up_count,
                self.tags,
                self.notes,
                self.sleep_latency,
                self.deep_sleep_minutes,
                self.light_sleep_minutes,
                self.rem_sleep_minutes,
            )
        )


def _check_comparable(*stamps: datetime | None) -> None:
    present = [stamp for stamp in stamps if stamp is not None]
    aware = {stamp.tzinfo is not None and stamp.utcoffset() is not None for stamp in present}
    if len(aware) > 1:
        msg = "Timestamps must be all timezone-aware or all naive"
        raise InvalidTimestampError(msg, ErrorCodes.INVALID_TIMESTAMP)


def _validate_stage_minutes(value: int | None, name: str) -> int | None:
    if value is None:
        return None
    return InputValidator.validate_integer(value, min_val=0, name=name)


def _derive_timing(
    bed_time: datetime,
    wake_time: datetime,
    sleep_time: datetime | None,
    duration_window: tuple[int, int] | None,
) -> tuple[int, int | None]:
    """Return (duration_minutes, sleep_efficiency) after checking the timestamps agree."""
    _check_comparable(bed_time, wake_time, sleep_time)

    duration = calculate_duration_minutes(bed_time, wake_time)
    if duration <= 0:
        msg = "Wake time must differ from bed time"
        raise ValidationError(
            msg,
            ErrorCodes.OUT_OF_RANGE,
            {"bed_time": bed_time.isoformat(), "wake_time": wake_time.isoformat()},
        )

    if duration_window is not None:
        InputValidator.validate_duration_window(duration, *duration_window)

    if sleep_time is None:
        return duration, None

    if calculate_duration_minutes(bed_time, sleep_time) > duration:
        msg = "Sleep time must fall between bed time and wake time"
        raise ValidationError(msg, ErrorCodes.OUT_OF_RANGE, {"sleep_time": sleep_time.isoformat()})

    return duration, calculate_sleep_efficiency(bed_time, sleep_time, wake_time)


def build_sleep_record(
    params: CreateSleepRecordParams,
    record_id: str | None = None,
    now: datetime | None = None,
    duration_window: tuple[int, int] | None = None,
) -> SleepRecord:
    """
    Validate raw input and build a new immutable record.

    Args:
        params: Raw user input
        record_id: Id to use; generated when omitted
        now: Creation timestamp; defaults to datetime.now()
        duration_window: Optional (min, max) minutes accepted for a session

    Returns:
        New SleepRecord with derived fields filled in

    Raises:
        InvalidScoreError: If the quality score is invalid
        InvalidTimestampError: If a timestamp is missing or unparsable
        ValidationError: If any other field is invalid

    """
    bed_time = InputValidator.parse_timestamp(params.bed_time, "bed_time")
    wake_time = InputValidator.parse_timestamp(params.wake_time, "wake_time")
    sleep_time = (
        InputValidator.parse_timestamp(params.sleep_time, "sleep_time") if params.sleep_time is not None else None
    )
    quality_score = InputValidator.validate_quality_score(params.quality_score)

    duration, efficiency = _derive_timing(bed_time, wake_time, sleep_time, duration_window)

    latency = params.sleep_latency
    if latency is None:
        latency = calculate_sleep_latency(bed_time, sleep_time)
    else:
        latency = InputValidator.validate_integer(latency, min_val=0, name="sleep_latency")

    timestamp = now or datetime.now()
    return SleepRecord(
        id=InputValidator.validate_record_id(record_id) if record_id else generate_record_id(),
        bed_time=bed_time,
        wake_time=wake_time,
        sleep_time=sleep_time,
        duration_minutes=duration,
        quality_score=quality_score,
        quality=classify_quality(quality_score),
        wake_up_count=InputValidator.validate_wake_up_count(params.wake_up_count),
        tags=InputValidator.validate_tags(params.tags),
        notes=InputValidator.validate_string(params.notes or "", max_length=MAX_NOTES_LENGTH, name="notes"),
        sleep_efficiency=efficiency,
        sleep_latency=latency,
        deep_sleep_minutes=_validate_stage_minutes(params.deep_sleep_minutes, "deep_sleep_minutes"),
        light_sleep_minutes=_validate_stage_minutes(params.light_sleep_minutes, "light_sleep_minutes"),
        rem_sleep_minutes=_validate_stage_minutes(params.rem_sleep_minutes, "rem_sleep_minutes"),
        created_at=timestamp,
        updated_at=timestamp,
    )


def apply_record_update(
    record: SleepRecord,
    params: UpdateSleepRecordParams,
    now: datetime | None = None,
    duration_window: tuple[int, int] | None = None,
) -> SleepRecord:
    """
    Apply a partial edit and return a new record with derived fields recomputed.

    The id and created_at are preserved; updated_at is set to now.
    """
    bed_time = InputValidator.parse_timestamp(params.bed_time, "bed_time") if params.bed_time is not None else record.bed_time
    wake_time = (
        InputValidator.parse_timestamp(params.wake_time, "wake_time") if params.wake_time is not None else record.wake_time
    )

    if params.clear_sleep_time:
        sleep_time = None
    elif params.sleep_time is not None:
        sleep_time = InputValidator.parse_timestamp(params.sleep_time, "sleep_time")
    else:
        sleep_time = record.sleep_time

    quality_score = (
        InputValidator.validate_quality_score(params.quality_score)
        if params.quality_score is not None
        else record.quality_score
    )

    duration, efficiency = _derive_timing(bed_time, wake_time, sleep_time, duration_window)

    if params.sleep_latency is not None:
        latency = InputValidator.validate_integer(params.sleep_latency, min_val=0, name="sleep_latency")
    elif params.bed_time is not None or params.sleep_time is not None or params.clear_sleep_time:
        latency = calculate_sleep_latency(bed_time, sleep_time)
    else:
        latency = record.sleep_latency

    return replace(
        record,
        bed_time=bed_time,
        wake_time=wake_time,
        sleep_time=sleep_time,
        duration_minutes=duration,
        quality_score=quality_score,
        quality=classify_quality(quality_score),
        wake_up_count=(
            InputValidator.validate_wake_up_count(params.wake_up_count)
            if params.wake_up_count is not None
            else record.wake_up_count
        ),
        tags=InputValidator.validate_tags(params.tags) if params.tags is not None else record.tags,
        notes=(
            InputValidator.validate_string(params.notes, max_length=MAX_NOTES_LENGTH, name="notes")
            if params.notes is not None
            else record.notes
        ),
        sleep_efficiency=efficiency,
        sleep_latency=latency,
        deep_sleep_minutes=(
            _validate_stage_minutes(params.deep_sleep_minutes, "deep_sleep_minutes")
            if params.deep_sleep_minutes is not None
            else record.deep_sleep_minutes
        ),
        light_sleep_minutes=(
            _validate_stage_minutes(params.light_sleep_minutes, "light_sleep_minutes")
            if params.light_sleep_minutes is not None
            else record.light_sleep_minutes
        ),
        rem_sleep_minutes=(
            _validate_stage_minutes(params.rem_sleep_minutes, "rem_sleep_minutes")
            if params.rem_sleep_minutes is not None
            else record.rem_sleep_minutes
        ),
        updated_at=now or datetime.now(),
    )
