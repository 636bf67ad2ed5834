"""Base repository class with shared utilities for database operations."""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sleep_diary_app.core.exceptions import (
    DatabaseError,
    DataIntegrityError,
    ErrorCodes,
    SleepDiaryError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base repository class providing shared database utilities."""

    def __init__(self, db_path: Path, validate_table_name: Callable[[str], str]) -> None:
        """
        Initialize base repository.

        Args:
            db_path: Path to the SQLite database
            validate_table_name: Callback to validate table names

        """
        self.db_path = db_path
        self._validate_table_name = validate_table_name

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            yield conn
        except SleepDiaryError:
            # Domain errors raised inside the block pass through untouched
            if conn:
                with contextlib.suppress(sqlite3.Error):
                    conn.rollback()
            raise
        except sqlite3.OperationalError as e:
            logger.exception("Database operation failed")
            if conn:
                with contextlib.suppress(sqlite3.Error):
                    conn.rollback()
            msg = f"Database operation failed: {e}"
            raise DatabaseError(msg, ErrorCodes.DB_CONNECTION_FAILED) from e
        except sqlite3.IntegrityError as e:
            logger.exception("Database integrity violation")
            if conn:
                with contextlib.suppress(sqlite3.Error):
                    conn.rollback()
            msg = f"Database integrity violation: {e}"
            raise DataIntegrityError(msg, ErrorCodes.DB_INTEGRITY_VIOLATION) from e
        except Exception as e:
            logger.exception("Unexpected database error")
            if conn:
                with contextlib.suppress(sqlite3.Error):
                    conn.rollback()
            msg = f"Unexpected database error: {e}"
            raise DatabaseError(msg, ErrorCodes.DB_QUERY_FAILED) from e
        finally:
            if conn:
                with contextlib.suppress(sqlite3.Error):
                    conn.close()

    @staticmethod
    def _to_db_timestamp(value: datetime | None) -> str | None:
        """Store timestamps as ISO-8601 text."""
        return value.isoformat() if value is not None else None

    @staticmethod
    def _from_db_timestamp(value: str | None) -> datetime | None:
        return datetime.fromisoformat(value) if value else None

    @staticmethod
    def _to_db_json(value: Any) -> str:
        return json.dumps(value)

    @staticmethod
    def _from_db_json(value: str | None, default: Any) -> Any:
        if not value:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            msg = f"Corrupt JSON column value: {value!r}"
            raise DataIntegrityError(msg, ErrorCodes.DB_INTEGRITY_VIOLATION) from e
