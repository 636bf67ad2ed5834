"""Repository for the single user settings row."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sleep_diary_app.core.constants import DatabaseColumn, DatabaseTable, ThemeMode
from sleep_diary_app.core.dataclasses_settings import (
    ReminderSetting,
    SleepGoal,
    UpdateSettingsParams,
    UserSettings,
)
from sleep_diary_app.core.exceptions import ErrorCodes, ValidationError
from sleep_diary_app.core.validation import InputValidator
from sleep_diary_app.data.repositories.base_repository import BaseRepository

if TYPE_CHECKING:
    import sqlite3

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1

SETTINGS_COLUMNS: tuple[DatabaseColumn, ...] = (
    DatabaseColumn.THEME_MODE,
    DatabaseColumn.USE_24_HOUR_FORMAT,
    DatabaseColumn.TEMPERATURE_UNIT,
    DatabaseColumn.LANGUAGE,
    DatabaseColumn.SLEEP_GOAL,
    DatabaseColumn.REMINDERS,
    DatabaseColumn.DATA_RETENTION_DAYS,
    DatabaseColumn.USERNAME,
    DatabaseColumn.UPDATED_AT,
)


class SettingsRepository(BaseRepository):
    """Reads and writes the settings row (id is always 1)."""

    def _settings_to_row(self, settings: UserSettings) -> tuple[Any, ...]:
        return (
            settings.theme_mode.value,
            1 if settings.use_24_hour_format else 0,
            settings.temperature_unit,
            settings.language,
            self._to_db_json(settings.sleep_goal.to_dict()),
            self._to_db_json([reminder.to_dict() for reminder in settings.reminders]),
            settings.data_retention_days,
            settings.username,
            self._to_db_timestamp(settings.updated_at),
        )

    def _row_to_settings(self, row: sqlite3.Row) -> UserSettings:
        return UserSettings(
            theme_mode=ThemeMode(row[DatabaseColumn.THEME_MODE]),
            use_24_hour_format=bool(row[DatabaseColumn.USE_24_HOUR_FORMAT]),
            temperature_unit=row[DatabaseColumn.TEMPERATURE_UNIT],
            language=row[DatabaseColumn.LANGUAGE],
            sleep_goal=SleepGoal.from_dict(self._from_db_json(row[DatabaseColumn.SLEEP_GOAL], {})),
            reminders=tuple(
                ReminderSetting.from_dict(item) for item in self._from_db_json(row[DatabaseColumn.REMINDERS], [])
            ),
            data_retention_days=row[DatabaseColumn.DATA_RETENTION_DAYS],
            username=row[DatabaseColumn.USERNAME],
            updated_at=self._from_db_timestamp(row[DatabaseColumn.UPDATED_AT]),
        )

    def _write(self, settings: UserSettings) -> None:
        table_name = self._validate_table_name(DatabaseTable.USER_SETTINGS)
        columns = (DatabaseColumn.ID, *SETTINGS_COLUMNS)
        placeholders = ", ".join("?" for _ in columns)
        with self._get_connection() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {table_name} ({', '.join(columns)}) VALUES ({placeholders})",
                (SETTINGS_ROW_ID, *self._settings_to_row(settings)),
            )
            conn.commit()

    def get(self) -> UserSettings:
        """Load the settings row, creating it with defaults on first use."""
        table_name = self._validate_table_name(DatabaseTable.USER_SETTINGS)
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT {', '.join(SETTINGS_COLUMNS)} FROM {table_name} WHERE {DatabaseColumn.ID} = ?",
                (SETTINGS_ROW_ID,),
            ).fetchone()

        if row is not None:
            return self._row_to_settings(row)

        settings = UserSettings(updated_at=datetime.now())
        self._write(settings)
        logger.info("Created default user settings")
        return settings

    def update(self, params: UpdateSettingsParams, now: datetime | None = None) -> UserSettings:
        """
        Apply a partial settings update.

        The sleep goal is merged field by field; other fields are replaced
        when given.

        Raises:
            ValidationError: If a field is invalid

        """
        current = self.get()
        changes: dict[str, Any] = {}

        if params.theme_mode is not None:
            try:
                changes["theme_mode"] = ThemeMode(params.theme_mode)
            except ValueError as e:
                msg = f"Invalid theme mode: {params.theme_mode!r}"
                raise ValidationError(msg, ErrorCodes.INVALID_INPUT) from e
        if params.use_24_hour_format is not None:
            changes["use_24_hour_format"] = bool(params.use_24_hour_format)
        if params.temperature_unit is not None:
            changes["temperature_unit"] = InputValidator.validate_string(
                params.temperature_unit, min_length=1, max_length=16, name="temperature_unit"
            )
        if params.language is not None:
            changes["language"] = InputValidator.validate_string(params.language, min_length=2, max_length=16, name="language")
        if params.sleep_goal is not None:
            changes["sleep_goal"] = current.sleep_goal.merged(**params.sleep_goal)
        if params.reminders is not None:
            for reminder in params.reminders:
                InputValidator.validate_clock_time(reminder.time, "reminder time")
            changes["reminders"] = tuple(params.reminders)
        if params.data_retention_days is not None:
            changes["data_retention_days"] = InputValidator.validate_integer(
                params.data_retention_days, min_val=0, name="data_retention_days"
            )
        if params.username is not None:
            changes["username"] = InputValidator.validate_string(params.username, max_length=100, name="username")

        updated = replace(current, **changes, updated_at=now or datetime.now())
        self._write(updated)
        logger.info("Updated user settings: %s", ", ".join(sorted(changes)) or "no changes")
        return updated

    def update_sleep_goal(self, now: datetime | None = None, **fields: Any) -> SleepGoal:
        """Merge the given goal fields into the stored goal and return the result."""
        return self.update(UpdateSettingsParams(sleep_goal=fields), now=now).sleep_goal

    def reset(self) -> UserSettings:
        """Restore default settings."""
        settings = UserSettings(updated_at=datetime.now())
        self._write(settings)
        logger.info("Reset user settings to defaults")
        return settings
