"""Repository classes for database operations following the Repository pattern."""

from __future__ import annotations

from sleep_diary_app.data.repositories.base_repository import BaseRepository
from sleep_diary_app.data.repositories.settings_repository import SettingsRepository
from sleep_diary_app.data.repositories.sleep_record_repository import PaginatedResult, SleepRecordRepository

__all__ = [
    "BaseRepository",
    "PaginatedResult",
    "SettingsRepository",
    "SleepRecordRepository",
]
