"""
Export system for the sleep diary
Writes a full JSON snapshot (settings, records, statistics) or a per-record CSV.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import TYPE_CHECKING, Any

import pandas as pd

from sleep_diary_app.core.constants import EXPORT_FORMAT_VERSION, DatabaseColumn, StatisticsPeriod
from sleep_diary_app.core.exceptions import ErrorCodes, ExportError
from sleep_diary_app.core.validation import InputValidator

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from sleep_diary_app.core.dataclasses_record import SleepRecord
    from sleep_diary_app.core.statistics_engine import StatisticsEngine
    from sleep_diary_app.data.database import DatabaseManager

logger = logging.getLogger(__name__)

CSV_COLUMNS: tuple[str, ...] = (
    DatabaseColumn.ID,
    DatabaseColumn.BED_TIME,
    DatabaseColumn.SLEEP_TIME,
    DatabaseColumn.WAKE_TIME,
    DatabaseColumn.DURATION,
    DatabaseColumn.QUALITY_SCORE,
    DatabaseColumn.QUALITY,
    DatabaseColumn.WAKE_UP_COUNT,
    DatabaseColumn.SLEEP_EFFICIENCY,
    DatabaseColumn.SLEEP_LATENCY,
    DatabaseColumn.DEEP_SLEEP_DURATION,
    DatabaseColumn.LIGHT_SLEEP_DURATION,
    DatabaseColumn.REM_SLEEP_DURATION,
    DatabaseColumn.TAGS,
    DatabaseColumn.NOTES,
    DatabaseColumn.CREATED_AT,
    DatabaseColumn.UPDATED_AT,
)


class ExportService:
    """Handles all export operations."""

    def __init__(self, database_manager: DatabaseManager, engine: StatisticsEngine) -> None:
        self.db_manager = database_manager
        self.engine = engine

    @staticmethod
    def _sanitize_csv_cell(value: Any) -> Any:
        """Prevent CSV formula injection."""
        if not isinstance(value, str):
            return value

        if value and value[0] in ("=", "+", "-", "@", "\t", "\r"):
            return "'" + value

        return value

    @staticmethod
    def _atomic_write(output_path: Path, write: Any) -> None:
        """Write through a temp file and rename, so readers never see a partial file."""
        temp_path = output_path.with_suffix(f".tmp.{os.getpid()}")

        try:
            write(temp_path)

            if temp_path.stat().st_size == 0:
                msg = "Export produced empty file"
                raise OSError(msg)

            temp_path.replace(output_path)

        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def build_records_dataframe(self, records: Sequence[SleepRecord]) -> pd.DataFrame:
        """One row per record; tags joined with ';' and text cells sanitized."""
        rows = []
        for record in records:
            row = record.to_dict()
            row[DatabaseColumn.TAGS] = ";".join(row[DatabaseColumn.TAGS])
            rows.append({str(column): self._sanitize_csv_cell(row[column]) for column in CSV_COLUMNS})

        return pd.DataFrame(rows, columns=[str(column) for column in CSV_COLUMNS])

    def build_snapshot(self, now: datetime | None = None) -> dict[str, Any]:
        """Everything in the diary as a JSON-ready mapping."""
        records = self.db_manager.records.list_newest_first()
        # The whole diary, not a look-back window
        statistics = self.engine.aggregate(records, StatisticsPeriod.CUSTOM)
        return {
            "version": EXPORT_FORMAT_VERSION,
            "export_date": (now or datetime.now()).isoformat(),
            "settings": self.db_manager.settings.get().to_dict(),
            "records": [record.to_dict() for record in records],
            "statistics": statistics.to_dict() if statistics else None,
        }

    def export_json(self, output_path: str | Path, now: datetime | None = None) -> Path:
        """
        Write the full diary snapshot as indented JSON.

        Raises:
            ExportError: If the file cannot be written

        """
        path = InputValidator.validate_file_path(output_path, must_exist=False, allowed_extensions={".json"})
        snapshot = self.build_snapshot(now)

        def write(target: Path) -> None:
            target.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")

        try:
            self._atomic_write(path, write)
        except OSError as e:
            logger.exception("Failed to export JSON to %s", path)
            msg = f"Failed to export JSON to {path}: {e}"
            raise ExportError(msg, ErrorCodes.EXPORT_FAILED) from e

        logger.info("Exported %d records to %s", len(snapshot["records"]), path)
        return path

    def export_csv(self, output_path: str | Path) -> Path:
        """
        Write one CSV row per record, newest first.

        Raises:
            ExportError: If the file cannot be written

        """
        path = InputValidator.validate_file_path(output_path, must_exist=False, allowed_extensions={".csv"})
        records = self.db_manager.records.list_newest_first()
        df = self.build_records_dataframe(records)

        try:
            self._atomic_write(path, lambda target: df.to_csv(target, index=False))
        except OSError as e:
            logger.exception("Failed to export CSV to %s", path)
            msg = f"Failed to export CSV to {path}: {e}"
            raise ExportError(msg, ErrorCodes.EXPORT_FAILED) from e

        logger.info("Exported %d records to %s", len(df), path)
        return path
