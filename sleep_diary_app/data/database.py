#!/usr/bin/env python3
"""
Database Manager for Sleep Diary Application
Owns the SQLite file, creates the schema and hands out repositories.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from sleep_diary_app.core.constants import DatabaseTable
from sleep_diary_app.core.exceptions import DatabaseError, ErrorCodes, ValidationError
from sleep_diary_app.core.validation import InputValidator
from sleep_diary_app.data.database_schema import DatabaseSchemaManager
from sleep_diary_app.data.repositories import SettingsRepository, SleepRecordRepository
from sleep_diary_app.data.repositories.base_repository import BaseRepository

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseHealth:
    """Result of a database health probe."""

    is_healthy: bool
    record_count: int
    database_size: int
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_healthy": self.is_healthy,
            "record_count": self.record_count,
            "database_size": self.database_size,
            "last_error": self.last_error,
        }


class DatabaseManager:
    """
    Database manager for a single diary file.

    Each instance owns one path; there is no process-wide connection or
    initialization state, so several managers (e.g. in tests) never share data.
    """

    VALID_TABLES: ClassVar[set[str]] = {table.value for table in DatabaseTable}

    def __init__(self, db_path: str | Path) -> None:
        """Validate the path, create its directory and initialize the schema."""
        self.db_path = InputValidator.validate_file_path(db_path, must_exist=False, allowed_extensions={".db"})
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._schema_manager = DatabaseSchemaManager(validate_table_name=self._validate_table_name)
        self._connection_helper = BaseRepository(self.db_path, self._validate_table_name)

        self.records = SleepRecordRepository(self.db_path, self._validate_table_name)
        self.settings = SettingsRepository(self.db_path, self._validate_table_name)

        self._init_database()

    def _validate_table_name(self, table_name: str) -> str:
        """Validate table name to prevent SQL injection."""
        if table_name not in self.VALID_TABLES:
            msg = f"Invalid table name: {table_name}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)
        return str(table_name)

    def _get_connection(self) -> AbstractContextManager[sqlite3.Connection]:
        return self._connection_helper._get_connection()

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            self._schema_manager.init_all_tables(conn)
            conn.commit()
        logger.info("Database ready at %s", self.db_path)

    def check_health(self) -> DatabaseHealth:
        """Probe the database; failures are reported, not raised."""
        database_size = self.db_path.stat().st_size if self.db_path.exists() else 0
        try:
            with self._get_connection() as conn:
                conn.execute("SELECT 1").fetchone()
            record_count = self.records.count()
        except DatabaseError as e:
            logger.warning("Database health check failed: %s", e)
            return DatabaseHealth(is_healthy=False, record_count=0, database_size=database_size, last_error=str(e))

        return DatabaseHealth(is_healthy=True, record_count=record_count, database_size=database_size)

    def clear_all_data(self) -> dict[str, int]:
        """Delete every sleep record. Settings are kept."""
        deleted = self.records.delete_all()
        logger.info("Cleared %d sleep records", deleted)
        return {DatabaseTable.SLEEP_RECORDS.value: deleted}

    def reset_database(self) -> None:
        """Drop every table and recreate the empty schema."""
        with self._get_connection() as conn:
            self._schema_manager.drop_all_tables(conn)
            self._schema_manager.init_all_tables(conn)
            conn.commit()
        logger.warning("Database reset at %s", self.db_path)
