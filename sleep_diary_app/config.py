"""
Application configuration using Pydantic Settings.

Loads from SLEEP_DIARY_* environment variables with .env file support.
"""

from __future__ import annotations

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sleep_diary_app.core.constants import StatisticsPeriod


class SleepDiarySettings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SLEEP_DIARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_path: Path = Path.home() / ".sleep_diary" / "sleep_diary.db"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    log_file: Path | None = None

    # Record entry window (minutes)
    min_record_minutes: int = Field(default=60, ge=1)
    max_record_minutes: int = Field(default=720, ge=1, le=1440)
    enforce_duration_window: bool = True

    # Statistics
    default_period: StatisticsPeriod = StatisticsPeriod.WEEK
    recent_limit: int = Field(default=7, ge=1)
    page_size: int = Field(default=50, ge=1, le=1000)
    statistics_cache_size: int = Field(default=32, ge=1)
    clock_timezone: str = ""  # IANA zone name; empty reads timestamps as stored

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("clock_timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        v = v.strip()
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as e:
                msg = f"Unknown time zone: {v}"
                raise ValueError(msg) from e
        return v

    @model_validator(mode="after")
    def check_duration_window(self) -> SleepDiarySettings:
        if self.min_record_minutes > self.max_record_minutes:
            msg = "min_record_minutes must not exceed max_record_minutes"
            raise ValueError(msg)
        return self

    @property
    def duration_window(self) -> tuple[int, int] | None:
        """(min, max) minutes accepted on entry, or None when not enforced."""
        if not self.enforce_duration_window:
            return None
        return self.min_record_minutes, self.max_record_minutes

    @property
    def clock_tz(self) -> tzinfo | None:
        return ZoneInfo(self.clock_timezone) if self.clock_timezone else None


@lru_cache
def get_settings() -> SleepDiarySettings:
    """Get cached settings instance."""
    return SleepDiarySettings()
