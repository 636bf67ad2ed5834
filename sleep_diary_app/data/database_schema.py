#!/usr/bin/env python3
"""
Database Schema Manager for Sleep Diary Application.

Handles table and index creation for the record table and the single
settings row. Timestamps are stored as ISO-8601 text with their original
offset, next to fixed-width UTC keys that range filters and orderings use.
Tags, the sleep goal and reminders are stored as JSON text.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sleep_diary_app.core.constants import DatabaseColumn, DatabaseTable
from sleep_diary_app.utils.date_range import instant_text

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class DatabaseSchemaManager:
    """Creates and drops the sleep diary schema."""

    def __init__(self, validate_table_name: Callable[[str], str]) -> None:
        """
        Initialize schema manager with a validation callback.

        Args:
            validate_table_name: Callback to validate table names

        """
        self._validate_table_name = validate_table_name

    def init_all_tables(self, conn: sqlite3.Connection) -> None:
        """Create every table and index if missing."""
        self._create_sleep_records_table(conn)
        self._create_user_settings_table(conn)

    def drop_all_tables(self, conn: sqlite3.Connection) -> None:
        """Drop every table managed by this schema."""
        for table in DatabaseTable:
            table_name = self._validate_table_name(table)
            conn.execute(f"DROP TABLE IF EXISTS {table_name}")
            logger.debug("Dropped table %s", table_name)

    def _create_sleep_records_table(self, conn: sqlite3.Connection) -> None:
        table_name = self._validate_table_name(DatabaseTable.SLEEP_RECORDS)
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                {DatabaseColumn.ID} TEXT PRIMARY KEY NOT NULL,
                {DatabaseColumn.BED_TIME} TEXT NOT NULL,
                {DatabaseColumn.WAKE_TIME} TEXT NOT NULL,
                {DatabaseColumn.SLEEP_TIME} TEXT,
                {DatabaseColumn.WAKE_UP_COUNT} INTEGER NOT NULL DEFAULT 0,
                {DatabaseColumn.QUALITY_SCORE} INTEGER NOT NULL CHECK ({DatabaseColumn.QUALITY_SCORE} BETWEEN 1 AND 10),
                {DatabaseColumn.QUALITY} TEXT NOT NULL,
                {DatabaseColumn.DURATION} INTEGER NOT NULL CHECK ({DatabaseColumn.DURATION} > 0),
                {DatabaseColumn.DEEP_SLEEP_DURATION} INTEGER,
                {DatabaseColumn.LIGHT_SLEEP_DURATION} INTEGER,
                {DatabaseColumn.REM_SLEEP_DURATION} INTEGER,
                {DatabaseColumn.NOTES} TEXT NOT NULL DEFAULT '',
                {DatabaseColumn.TAGS} TEXT NOT NULL DEFAULT '[]',
                {DatabaseColumn.SLEEP_EFFICIENCY} INTEGER,
                {DatabaseColumn.SLEEP_LATENCY} INTEGER,
                {DatabaseColumn.CREATED_AT} TEXT NOT NULL,
                {DatabaseColumn.UPDATED_AT} TEXT NOT NULL,
                {DatabaseColumn.BED_TIME_UTC} TEXT NOT NULL,
                {DatabaseColumn.WAKE_TIME_UTC} TEXT NOT NULL
            )
        """)
        self._ensure_instant_columns(conn, table_name)

        for column in (DatabaseColumn.BED_TIME_UTC, DatabaseColumn.WAKE_TIME_UTC, DatabaseColumn.QUALITY):
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{table_name}_{column} ON {table_name}({column})")

        logger.debug("Ensured table %s", table_name)

    def _ensure_instant_columns(self, conn: sqlite3.Connection, table_name: str) -> None:
        """Add and backfill the UTC key columns on tables created before they existed."""
        existing_columns = {row[1] for row in conn.execute(f"PRAGMA table_info({table_name})").fetchall()}
        pairs = (
            (DatabaseColumn.BED_TIME, DatabaseColumn.BED_TIME_UTC),
            (DatabaseColumn.WAKE_TIME, DatabaseColumn.WAKE_TIME_UTC),
        )

        for source, key_column in pairs:
            if key_column in existing_columns:
                continue
            conn.execute(f"ALTER TABLE {table_name} ADD COLUMN {key_column} TEXT")
            rows = conn.execute(f"SELECT {DatabaseColumn.ID}, {source} FROM {table_name}").fetchall()
            conn.executemany(
                f"UPDATE {table_name} SET {key_column} = ? WHERE {DatabaseColumn.ID} = ?",
                [(instant_text(datetime.fromisoformat(value)), record_id) for record_id, value in rows],
            )
            logger.info("Added %s column to %s (%d rows backfilled)", key_column, table_name, len(rows))

    def _create_user_settings_table(self, conn: sqlite3.Connection) -> None:
        table_name = self._validate_table_name(DatabaseTable.USER_SETTINGS)
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                {DatabaseColumn.ID} INTEGER PRIMARY KEY CHECK ({DatabaseColumn.ID} = 1),
                {DatabaseColumn.THEME_MODE} TEXT NOT NULL DEFAULT 'system',
                {DatabaseColumn.USE_24_HOUR_FORMAT} INTEGER NOT NULL DEFAULT 1,
                {DatabaseColumn.TEMPERATURE_UNIT} TEXT NOT NULL DEFAULT 'celsius',
                {DatabaseColumn.LANGUAGE} TEXT NOT NULL DEFAULT 'en',
                {DatabaseColumn.SLEEP_GOAL} TEXT NOT NULL,
                {DatabaseColumn.REMINDERS} TEXT NOT NULL DEFAULT '[]',
                {DatabaseColumn.DATA_RETENTION_DAYS} INTEGER NOT NULL DEFAULT 365,
                {DatabaseColumn.USERNAME} TEXT,
                {DatabaseColumn.UPDATED_AT} TEXT NOT NULL
            )
        """)
        logger.debug("Ensured table %s", table_name)
