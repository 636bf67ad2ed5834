#!/usr/bin/env python3
"""User settings dataclasses (the single settings row)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any

from sleep_diary_app.core.constants import GoalLimits, QualityThreshold, ReminderType, ThemeMode
from sleep_diary_app.core.exceptions import ErrorCodes, ValidationError
from sleep_diary_app.core.validation import InputValidator

ALL_WEEKDAYS: tuple[int, ...] = (0, 1, 2, 3, 4, 5, 6)


@dataclass(frozen=True)
class SleepGoal:
    """The user's personal sleep targets."""

    duration_goal: int = 480
    target_bed_time: str = "22:30"
    target_wake_time: str = "06:30"
    target_quality_score: int = 7
    target_days_per_week: int = 5

    def validate(self) -> SleepGoal:
        """
        Check every field and return a copy with clock times normalized.

        Raises:
            ValidationError: If any field is out of range or malformed

        """
        InputValidator.validate_integer(
            self.duration_goal,
            min_val=GoalLimits.MIN_DURATION_MINUTES,
            max_val=GoalLimits.MAX_DURATION_MINUTES,
            name="duration_goal",
        )
        InputValidator.validate_integer(
            self.target_quality_score,
            min_val=QualityThreshold.MIN_SCORE,
            max_val=QualityThreshold.MAX_SCORE,
            name="target_quality_score",
        )
        InputValidator.validate_integer(
            self.target_days_per_week,
            min_val=0,
            max_val=GoalLimits.MAX_DAYS_PER_WEEK,
            name="target_days_per_week",
        )
        return replace(
            self,
            target_bed_time=InputValidator.validate_clock_time(self.target_bed_time, "target_bed_time"),
            target_wake_time=InputValidator.validate_clock_time(self.target_wake_time, "target_wake_time"),
        )

    def merged(self, **changes: Any) -> SleepGoal:
        """Return a validated copy with the given fields replaced; None values are ignored."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            msg = f"Unknown sleep goal field(s): {', '.join(sorted(unknown))}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)
        updates = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **updates).validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration_goal": self.duration_goal,
            "target_bed_time": self.target_bed_time,
            "target_wake_time": self.target_wake_time,
            "target_quality_score": self.target_quality_score,
            "target_days_per_week": self.target_days_per_week,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SleepGoal:
        defaults = cls()
        return cls(
            duration_goal=data.get("duration_goal", defaults.duration_goal),
            target_bed_time=data.get("target_bed_time", defaults.target_bed_time),
            target_wake_time=data.get("target_wake_time", defaults.target_wake_time),
            target_quality_score=data.get("target_quality_score", defaults.target_quality_score),
            target_days_per_week=data.get("target_days_per_week", defaults.target_days_per_week),
        )


@dataclass(frozen=True)
class ReminderSetting:
    """A stored reminder. Scheduling is left to the host platform."""

    type: ReminderType
    time: str
    enabled: bool = True
    repeat_days: tuple[int, ...] = ALL_WEEKDAYS
    sound: str = "default"
    vibration: bool = True
    advance_minutes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "enabled": self.enabled,
            "time": self.time,
            "repeat_days": list(self.repeat_days),
            "sound": self.sound,
            "vibration": self.vibration,
            "advance_minutes": self.advance_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReminderSetting:
        return cls(
            type=ReminderType(data["type"]),
            time=data["time"],
            enabled=data.get("enabled", True),
            repeat_days=tuple(data.get("repeat_days", ALL_WEEKDAYS)),
            sound=data.get("sound", "default"),
            vibration=data.get("vibration", True),
            advance_minutes=data.get("advance_minutes", 0),
        )


def default_reminders() -> tuple[ReminderSetting, ...]:
    """Bedtime reminder at 22:00 (30 min ahead) and wake reminder at 06:30."""
    return (
        ReminderSetting(type=ReminderType.BEDTIME, time="22:00", advance_minutes=30),
        ReminderSetting(type=ReminderType.WAKETIME, time="06:30", advance_minutes=0),
    )


@dataclass(frozen=True)
class UserSettings:
    """Application settings persisted as a single row."""

    theme_mode: ThemeMode = ThemeMode.SYSTEM
    use_24_hour_format: bool = True
    temperature_unit: str = "celsius"
    language: str = "en"
    sleep_goal: SleepGoal = field(default_factory=SleepGoal)
    reminders: tuple[ReminderSetting, ...] = field(default_factory=default_reminders)
    data_retention_days: int = 365
    username: str | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "theme_mode": self.theme_mode.value,
            "use_24_hour_format": self.use_24_hour_format,
            "temperature_unit": self.temperature_unit,
            "language": self.language,
            "sleep_goal": self.sleep_goal.to_dict(),
            "reminders": [reminder.to_dict() for reminder in self.reminders],
            "data_retention_days": self.data_retention_days,
            "username": self.username,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class UpdateSettingsParams:
    """Partial settings edit. None means unchanged; sleep_goal is merged field by field."""

    theme_mode: ThemeMode | str | None = None
    use_24_hour_format: bool | None = None
    temperature_unit: str | None = None
    language: str | None = None
    sleep_goal: dict[str, Any] | None = None
    reminders: tuple[ReminderSetting, ...] | None = None
    data_retention_days: int | None = None
    username: str | None = None
