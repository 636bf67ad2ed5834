"""Repository for sleep record database operations."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sleep_diary_app.core.constants import DatabaseColumn, DatabaseTable, RecordOrderColumn, SleepQuality, SleepTag
from sleep_diary_app.core.dataclasses_record import SleepRecord
from sleep_diary_app.core.exceptions import ErrorCodes, RecordNotFoundError, ValidationError
from sleep_diary_app.core.validation import InputValidator
from sleep_diary_app.data.repositories.base_repository import BaseRepository
from sleep_diary_app.utils.date_range import get_day_range, instant_text, to_instant

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

RECORD_COLUMNS: tuple[DatabaseColumn, ...] = (
    DatabaseColumn.ID,
    DatabaseColumn.BED_TIME,
    DatabaseColumn.WAKE_TIME,
    DatabaseColumn.SLEEP_TIME,
    DatabaseColumn.WAKE_UP_COUNT,
    DatabaseColumn.QUALITY_SCORE,
    DatabaseColumn.QUALITY,
    DatabaseColumn.DURATION,
    DatabaseColumn.DEEP_SLEEP_DURATION,
    DatabaseColumn.LIGHT_SLEEP_DURATION,
    DatabaseColumn.REM_SLEEP_DURATION,
    DatabaseColumn.NOTES,
    DatabaseColumn.TAGS,
    DatabaseColumn.SLEEP_EFFICIENCY,
    DatabaseColumn.SLEEP_LATENCY,
    DatabaseColumn.CREATED_AT,
    DatabaseColumn.UPDATED_AT,
    DatabaseColumn.BED_TIME_UTC,
    DatabaseColumn.WAKE_TIME_UTC,
)

# Timestamp orderings run on the UTC key columns
ORDER_COLUMNS: dict[RecordOrderColumn, DatabaseColumn] = {
    RecordOrderColumn.BED_TIME: DatabaseColumn.BED_TIME_UTC,
    RecordOrderColumn.WAKE_TIME: DatabaseColumn.WAKE_TIME_UTC,
    RecordOrderColumn.CREATED_AT: DatabaseColumn.CREATED_AT,
}


@dataclass(frozen=True)
class PaginatedResult:
    """One page of records plus paging metadata."""

    items: tuple[SleepRecord, ...]
    total: int
    page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.page_size) if self.page_size else 0


class SleepRecordRepository(BaseRepository):
    """Repository for sleep record CRUD and listing."""

    DEFAULT_PAGE_SIZE = 50
    DEFAULT_RECENT_LIMIT = 7

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _record_to_row(self, record: SleepRecord) -> tuple[Any, ...]:
        return (
            record.id,
            self._to_db_timestamp(record.bed_time),
            self._to_db_timestamp(record.wake_time),
            self._to_db_timestamp(record.sleep_time),
            record.wake_up_count,
            record.quality_score,
            record.quality.value,
            record.duration_minutes,
            record.deep_sleep_minutes,
            record.light_sleep_minutes,
            record.rem_sleep_minutes,
            record.notes,
            self._to_db_json(sorted(tag.value for tag in record.tags)),
            record.sleep_efficiency,
            record.sleep_latency,
            self._to_db_timestamp(record.created_at),
            self._to_db_timestamp(record.updated_at),
            instant_text(record.bed_time),
            instant_text(record.wake_time),
        )

    def _row_to_record(self, row: sqlite3.Row) -> SleepRecord:
        return SleepRecord(
            id=row[DatabaseColumn.ID],
            bed_time=self._from_db_timestamp(row[DatabaseColumn.BED_TIME]),
            wake_time=self._from_db_timestamp(row[DatabaseColumn.WAKE_TIME]),
            sleep_time=self._from_db_timestamp(row[DatabaseColumn.SLEEP_TIME]),
            wake_up_count=row[DatabaseColumn.WAKE_UP_COUNT],
            quality_score=row[DatabaseColumn.QUALITY_SCORE],
            quality=SleepQuality(row[DatabaseColumn.QUALITY]),
            duration_minutes=row[DatabaseColumn.DURATION],
            deep_sleep_minutes=row[DatabaseColumn.DEEP_SLEEP_DURATION],
            light_sleep_minutes=row[DatabaseColumn.LIGHT_SLEEP_DURATION],
            rem_sleep_minutes=row[DatabaseColumn.REM_SLEEP_DURATION],
            notes=row[DatabaseColumn.NOTES] or "",
            tags=frozenset(SleepTag(tag) for tag in self._from_db_json(row[DatabaseColumn.TAGS], [])),
            sleep_efficiency=row[DatabaseColumn.SLEEP_EFFICIENCY],
            sleep_latency=row[DatabaseColumn.SLEEP_LATENCY],
            created_at=self._from_db_timestamp(row[DatabaseColumn.CREATED_AT]),
            updated_at=self._from_db_timestamp(row[DatabaseColumn.UPDATED_AT]),
        )

    @staticmethod
    def _validate_order_column(order_by: RecordOrderColumn | str) -> str:
        try:
            return ORDER_COLUMNS[RecordOrderColumn(order_by)].value
        except ValueError as e:
            allowed = ", ".join(c.value for c in RecordOrderColumn)
            msg = f"Invalid order column: {order_by!r}. Allowed: {allowed}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT) from e

    def _select(self, where: str = "", params: tuple[Any, ...] = (), suffix: str = "") -> tuple[SleepRecord, ...]:
        table_name = self._validate_table_name(DatabaseTable.SLEEP_RECORDS)
        columns = ", ".join(RECORD_COLUMNS)
        query = f"SELECT {columns} FROM {table_name} {where} {suffix}"
        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return tuple(self._row_to_record(row) for row in rows)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, record: SleepRecord) -> SleepRecord:
        """
        Insert a new record.

        Raises:
            DataIntegrityError: If a record with the same id exists
            DatabaseError: If the insert fails

        """
        table_name = self._validate_table_name(DatabaseTable.SLEEP_RECORDS)
        placeholders = ", ".join("?" for _ in RECORD_COLUMNS)

        with self._get_connection() as conn:
            conn.execute(
                f"INSERT INTO {table_name} ({', '.join(RECORD_COLUMNS)}) VALUES ({placeholders})",
                self._record_to_row(record),
            )
            conn.commit()

        logger.info("Created sleep record %s (%d min, score %d)", record.id, record.duration_minutes, record.quality_score)
        return record

    def update(self, record: SleepRecord) -> SleepRecord:
        """
        Overwrite a stored record with the given version.

        Raises:
            RecordNotFoundError: If no record has this id

        """
        table_name = self._validate_table_name(DatabaseTable.SLEEP_RECORDS)
        assignments = ", ".join(f"{column} = ?" for column in RECORD_COLUMNS[1:])
        row = self._record_to_row(record)

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE {table_name} SET {assignments} WHERE {DatabaseColumn.ID} = ?",
                (*row[1:], record.id),
            )
            if cursor.rowcount == 0:
                msg = f"Record not found: {record.id}"
                raise RecordNotFoundError(msg, ErrorCodes.RECORD_NOT_FOUND, {"id": record.id})
            conn.commit()

        logger.info("Updated sleep record %s", record.id)
        return record

    def delete(self, record_id: str) -> None:
        """
        Delete one record.

        Raises:
            RecordNotFoundError: If nothing was deleted

        """
        InputValidator.validate_record_id(record_id)
        table_name = self._validate_table_name(DatabaseTable.SLEEP_RECORDS)

        with self._get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {table_name} WHERE {DatabaseColumn.ID} = ?", (record_id,))
            if cursor.rowcount == 0:
                msg = f"Record not found: {record_id}"
                raise RecordNotFoundError(msg, ErrorCodes.RECORD_NOT_FOUND, {"id": record_id})
            conn.commit()

        logger.info("Deleted sleep record %s", record_id)

    def batch_delete(self, record_ids: Iterable[str]) -> int:
        """Delete several records in one transaction. Returns the number deleted."""
        ids = [InputValidator.validate_record_id(record_id) for record_id in record_ids]
        if not ids:
            return 0

        table_name = self._validate_table_name(DatabaseTable.SLEEP_RECORDS)
        placeholders = ", ".join("?" for _ in ids)

        with self._get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {table_name} WHERE {DatabaseColumn.ID} IN ({placeholders})", ids)
            conn.commit()
            deleted = cursor.rowcount

        logger.info("Batch deleted %d of %d sleep records", deleted, len(ids))
        return deleted

    def delete_all(self) -> int:
        """Remove every record. Returns the number deleted."""
        table_name = self._validate_table_name(DatabaseTable.SLEEP_RECORDS)
        with self._get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {table_name}")
            conn.commit()
            return cursor.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, record_id: str) -> SleepRecord | None:
        """Load one record, or None when the id is unknown."""
        InputValidator.validate_record_id(record_id)
        records = self._select(f"WHERE {DatabaseColumn.ID} = ?", (record_id,))
        return records[0] if records else None

    def count(self, start: datetime | None = None, end: datetime | None = None) -> int:
        """Number of stored records, optionally restricted to a bed-time range."""
        table_name = self._validate_table_name(DatabaseTable.SLEEP_RECORDS)
        where, params = self._range_clause(start, end)
        with self._get_connection() as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM {table_name} {where}", params).fetchone()
        return int(row[0])

    def _range_clause(self, start: datetime | None, end: datetime | None) -> tuple[str, tuple[Any, ...]]:
        conditions: list[str] = []
        params: list[Any] = []
        if start is not None:
            conditions.append(f"{DatabaseColumn.BED_TIME_UTC} >= ?")
            params.append(instant_text(start))
        if end is not None:
            conditions.append(f"{DatabaseColumn.BED_TIME_UTC} <= ?")
            params.append(instant_text(end))
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        return where, tuple(params)

    def list_all(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        order_by: RecordOrderColumn | str = RecordOrderColumn.BED_TIME,
        descending: bool = True,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> PaginatedResult:
        """
        List one page of records.

        Args:
            page: 1-based page number
            page_size: Records per page
            order_by: bed_time, wake_time or created_at
            descending: Newest first when True
            start: Optional inclusive lower bound on bed time
            end: Optional inclusive upper bound on bed time

        """
        InputValidator.validate_integer(page, min_val=1, name="page")
        InputValidator.validate_integer(page_size, min_val=1, max_val=1000, name="page_size")
        column = self._validate_order_column(order_by)
        direction = "DESC" if descending else "ASC"

        where, params = self._range_clause(start, end)
        items = self._select(
            where,
            (*params, page_size, (page - 1) * page_size),
            f"ORDER BY {column} {direction}, {DatabaseColumn.ID} {direction} LIMIT ? OFFSET ?",
        )
        return PaginatedResult(items=items, total=self.count(start, end), page=page, page_size=page_size)

    def list_by_range(self, start: datetime, end: datetime) -> tuple[SleepRecord, ...]:
        """All records whose bed time lies in [start, end], oldest first."""
        if to_instant(end) < to_instant(start):
            msg = "Range end is before start"
            raise ValidationError(msg, ErrorCodes.OUT_OF_RANGE)
        where, params = self._range_clause(start, end)
        return self._select(where, params, f"ORDER BY {DatabaseColumn.BED_TIME_UTC} ASC")

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> tuple[SleepRecord, ...]:
        """The most recent records by bed time, newest first."""
        InputValidator.validate_integer(limit, min_val=1, name="limit")
        return self._select("", (limit,), f"ORDER BY {DatabaseColumn.BED_TIME_UTC} DESC LIMIT ?")

    def list_newest_first(self) -> tuple[SleepRecord, ...]:
        """Every record, newest bed time first."""
        return self._select("", (), f"ORDER BY {DatabaseColumn.BED_TIME_UTC} DESC")

    def get_today(self, today: date | datetime | None = None) -> SleepRecord | None:
        """The latest record whose bed time falls on the given calendar day."""
        day = get_day_range(today or datetime.now())
        where, params = self._range_clause(day.start, day.end)
        records = self._select(where, params, f"ORDER BY {DatabaseColumn.BED_TIME_UTC} DESC LIMIT 1")
        return records[0] if records else None

    def exists(self, record_id: str) -> bool:
        return self.get_by_id(record_id) is not None
