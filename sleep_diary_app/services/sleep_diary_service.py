#!/usr/bin/env python3
"""
Sleep Diary Service

Facade over the record store, the statistics engine and the state container.
Every mutation follows the same sequence: validate and build the record,
persist it, dispatch the matching action to the store (which recomputes
in-memory statistics) and drop cached period statistics.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sleep_diary_app.core.constants import StatisticsPeriod
from sleep_diary_app.core.dataclasses_record import (
    CreateSleepRecordParams,
    UpdateSleepRecordParams,
    apply_record_update,
    build_sleep_record,
)
from sleep_diary_app.core.exceptions import ErrorCodes, RecordNotFoundError, ValidationError
from sleep_diary_app.services.sleep_store import Actions
from sleep_diary_app.utils.date_range import DateRange, get_period_range

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date

    from sleep_diary_app.config import SleepDiarySettings
    from sleep_diary_app.core.dataclasses_record import SleepRecord
    from sleep_diary_app.core.dataclasses_settings import SleepGoal, UpdateSettingsParams, UserSettings
    from sleep_diary_app.core.dataclasses_statistics import GoalEvaluation, SleepStatistics
    from sleep_diary_app.core.statistics_engine import StatisticsEngine
    from sleep_diary_app.data.database import DatabaseHealth, DatabaseManager
    from sleep_diary_app.data.repositories import PaginatedResult
    from sleep_diary_app.services.cache_service import StatisticsCache
    from sleep_diary_app.services.sleep_store import SleepStore

logger = logging.getLogger(__name__)


class SleepDiaryService:
    """Application service for recording sleep and reading statistics."""

    def __init__(
        self,
        database_manager: DatabaseManager,
        engine: StatisticsEngine,
        store: SleepStore,
        cache: StatisticsCache,
        config: SleepDiarySettings,
    ) -> None:
        self.db = database_manager
        self.engine = engine
        self.store = store
        self.cache = cache
        self.config = config

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _after_mutation(self, action: Any, now: datetime) -> None:
        self.store.dispatch(action, now=now)
        self.cache.invalidate_all()

    def create_record(self, params: CreateSleepRecordParams, now: datetime | None = None) -> SleepRecord:
        """Validate, store and publish a new record."""
        now = now or datetime.now()
        record = build_sleep_record(params, now=now, duration_window=self.config.duration_window)
        self.db.records.create(record)
        self._after_mutation(Actions.record_added(record), now)
        return record

    def update_record(
        self,
        record_id: str,
        params: UpdateSleepRecordParams,
        now: datetime | None = None,
    ) -> SleepRecord:
        """
        Apply a partial edit to a stored record.

        Raises:
            RecordNotFoundError: If the id is unknown
            ValidationError: If the update is empty or invalid

        """
        if params.is_empty():
            msg = "Nothing to update"
            raise ValidationError(msg, ErrorCodes.MISSING_REQUIRED, {"id": record_id})

        now = now or datetime.now()
        current = self.get_record(record_id)
        updated = apply_record_update(current, params, now=now, duration_window=self.config.duration_window)
        self.db.records.update(updated)
        self._after_mutation(Actions.record_updated(updated), now)
        return updated

    def delete_record(self, record_id: str, now: datetime | None = None) -> None:
        """Delete one record. Raises RecordNotFoundError when nothing was deleted."""
        now = now or datetime.now()
        self.db.records.delete(record_id)
        self._after_mutation(Actions.record_deleted(record_id), now)

    def batch_delete_records(self, record_ids: Iterable[str], now: datetime | None = None) -> int:
        """Delete several records; returns how many existed."""
        now = now or datetime.now()
        ids = tuple(record_ids)
        deleted = self.db.records.batch_delete(ids)
        self._after_mutation(Actions.records_batch_deleted(ids), now)
        return deleted

    def clear_all_data(self) -> int:
        """Delete every record and reset in-memory state."""
        deleted = self.db.clear_all_data()
        self.store.dispatch(Actions.state_reset())
        self.cache.invalidate_all()
        return sum(deleted.values())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_record(self, record_id: str) -> SleepRecord:
        """Load one record. Raises RecordNotFoundError when missing."""
        record = self.db.records.get_by_id(record_id)
        if record is None:
            msg = f"Record not found: {record_id}"
            raise RecordNotFoundError(msg, ErrorCodes.RECORD_NOT_FOUND, {"id": record_id})
        return record

    def select_record(self, record_id: str | None) -> SleepRecord | None:
        record = self.get_record(record_id) if record_id else None
        self.store.dispatch(Actions.record_selected(record))
        return record

    def load_records(self, page: int = 1, page_size: int | None = None) -> PaginatedResult:
        """
        Load one page of records, newest first, into the store.

        The first page replaces the in-memory list; later pages are appended.
        """
        result = self.db.records.list_all(page=page, page_size=page_size or self.config.page_size)
        if page == 1:
            self.store.dispatch(Actions.records_loaded(result.items, total_count=result.total))
        else:
            self.store.dispatch(Actions.records_merged(result.items, total_count=result.total))
        return result

    def load_recent_records(self, limit: int | None = None) -> tuple[SleepRecord, ...]:
        records = self.db.records.list_recent(limit or self.config.recent_limit)
        self.store.dispatch(Actions.records_loaded(records, total_count=self.db.records.count()))
        return records

    def load_records_in_range(self, start: datetime, end: datetime) -> tuple[SleepRecord, ...]:
        """Records with bed time in [start, end], oldest first."""
        return self.db.records.list_by_range(start, end)

    def load_today_record(self, today: date | None = None) -> SleepRecord | None:
        record = self.db.records.get_today(today)
        self.store.dispatch(Actions.today_record_loaded(record))
        return record

    def _resolve_window(
        self,
        period: StatisticsPeriod | str | None,
        now: datetime | None,
        start: datetime | None,
        end: datetime | None,
    ) -> tuple[StatisticsPeriod, DateRange]:
        if period is None:
            period = self.config.default_period
        if now is None:
            # Minute resolution so repeated calls share a cache entry
            now = datetime.now().replace(second=0, microsecond=0)
        window = get_period_range(period, now, start=start, end=end)
        return StatisticsPeriod(period), window

    def get_statistics(
        self,
        period: StatisticsPeriod | str | None = None,
        now: datetime | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> SleepStatistics | None:
        """
        Statistics for the records whose bed time falls in the period window.

        Returns:
            SleepStatistics, or None when the window holds no records

        """
        period, window = self._resolve_window(period, now, start, end)

        cached = self.cache.get(period, window.start, window.end)
        if cached is not None:
            logger.debug("Statistics cache hit for %s", period)
            return cached.statistics

        # Storage returns the range oldest first; the engine expects newest first
        records = tuple(reversed(self.db.records.list_by_range(window.start, window.end)))
        statistics = self.engine.aggregate(records, period)
        self.cache.put(period, window.start, window.end, statistics)
        return statistics

    def evaluate_goal(
        self,
        period: StatisticsPeriod | str | None = None,
        now: datetime | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> GoalEvaluation:
        """Measure the period's records against the stored sleep goal."""
        _, window = self._resolve_window(period, now, start, end)
        records = tuple(reversed(self.db.records.list_by_range(window.start, window.end)))
        return self.engine.evaluate_goal(records, self.get_settings().sleep_goal)

    # ------------------------------------------------------------------
    # Settings and maintenance
    # ------------------------------------------------------------------

    def get_settings(self) -> UserSettings:
        return self.db.settings.get()

    def update_settings(self, params: UpdateSettingsParams) -> UserSettings:
        return self.db.settings.update(params)

    def update_sleep_goal(self, **fields: Any) -> SleepGoal:
        return self.db.settings.update_sleep_goal(**fields)

    def check_health(self) -> DatabaseHealth:
        return self.db.check_health()
