#!/usr/bin/env python3
"""
Constants for Sleep Diary Application
Centralized definitions for string enums, numeric thresholds, and storage names.
"""

from enum import StrEnum

# ============================================================================
# DIARY VOCABULARY
# ============================================================================


class SleepQuality(StrEnum):
    """
    Quality category derived from a 1-10 score.

    Declared best to worst; distributions and reports keep this order.
    """

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    TERRIBLE = "terrible"


class SleepTag(StrEnum):
    """Closed vocabulary of factors a user can attach to a night."""

    CAFFEINE = "caffeine"
    ALCOHOL = "alcohol"
    EXERCISE = "exercise"
    STRESS = "stress"
    SCREEN = "screen"
    LATE_MEAL = "late_meal"
    MEDICATION = "medication"
    NOISE = "noise"
    TEMPERATURE = "temperature"
    TRAVEL = "travel"


class StatisticsPeriod(StrEnum):
    """Window a statistics aggregate was computed over."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"

    @classmethod
    def get_default(cls) -> "StatisticsPeriod":
        """Get the default statistics period."""
        return cls.WEEK


class ThemeMode(StrEnum):
    """Display theme stored with the user settings."""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class ReminderType(StrEnum):
    """Kinds of reminders kept in the settings row."""

    BEDTIME = "bedtime"
    WAKETIME = "waketime"
    WINDDOWN = "winddown"


class RecordOrderColumn(StrEnum):
    """Columns a record listing may be ordered by."""

    BED_TIME = "bed_time"
    WAKE_TIME = "wake_time"
    CREATED_AT = "created_at"


# ============================================================================
# NUMERIC THRESHOLDS
# ============================================================================


class QualityThreshold:
    """Lower score bound of each quality category, evaluated top-down."""

    EXCELLENT = 9
    GOOD = 7
    FAIR = 5
    POOR = 3
    MIN_SCORE = 1
    MAX_SCORE = 10


class StatisticsConstants:
    """Fixed constants used by the statistics engine."""

    MINUTES_PER_DAY = 24 * 60
    REGULARITY_MIN_RECORDS = 3
    REGULARITY_ZERO_STD_MINUTES = 30
    TREND_MIN_RECORDS = 4
    GOAL_MIN_QUALITY_SCORE = 7
    GOAL_MIN_DURATION_MINUTES = 420


class GoalLimits:
    """Accepted ranges for the user's sleep goal."""

    MIN_DURATION_MINUTES = 300
    MAX_DURATION_MINUTES = 720
    MAX_DAYS_PER_WEEK = 7


class PeriodDays:
    """Look-back length in days for each non-custom statistics period."""

    DAY = 1
    WEEK = 7
    MONTH = 30
    YEAR = 365


EXPORT_FORMAT_VERSION = "1.0.0"


# ============================================================================
# DATABASE
# ============================================================================


class DatabaseTable(StrEnum):
    """Database table names."""

    SLEEP_RECORDS = "sleep_records"
    USER_SETTINGS = "user_settings"


class DatabaseColumn(StrEnum):
    """Database column names."""

    ID = "id"
    BED_TIME = "bed_time"
    WAKE_TIME = "wake_time"
    SLEEP_TIME = "sleep_time"
    WAKE_UP_COUNT = "wake_up_count"
    QUALITY_SCORE = "quality_score"
    QUALITY = "quality"
    DURATION = "duration"
    DEEP_SLEEP_DURATION = "deep_sleep_duration"
    LIGHT_SLEEP_DURATION = "light_sleep_duration"
    REM_SLEEP_DURATION = "rem_sleep_duration"
    NOTES = "notes"
    TAGS = "tags"
    SLEEP_EFFICIENCY = "sleep_efficiency"
    SLEEP_LATENCY = "sleep_latency"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    # UTC ordering keys for bed and wake time
    BED_TIME_UTC = "bed_time_utc"
    WAKE_TIME_UTC = "wake_time_utc"

    # Settings row
    THEME_MODE = "theme_mode"
    USE_24_HOUR_FORMAT = "use_24_hour_format"
    TEMPERATURE_UNIT = "temperature_unit"
    LANGUAGE = "language"
    SLEEP_GOAL = "sleep_goal"
    REMINDERS = "reminders"
    DATA_RETENTION_DAYS = "data_retention_days"
    USERNAME = "username"
