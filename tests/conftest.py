#!/usr/bin/env python3
"""
Shared test fixtures for the sleep diary.
Provides temp databases, a record factory and a wired-up service.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from sleep_diary_app.config import SleepDiarySettings
from sleep_diary_app.core.dataclasses_record import CreateSleepRecordParams, SleepRecord, build_sleep_record
from sleep_diary_app.core.statistics_engine import StatisticsEngine
from sleep_diary_app.data.database import DatabaseManager
from sleep_diary_app.services.cache_service import StatisticsCache
from sleep_diary_app.services.sleep_diary_service import SleepDiaryService
from sleep_diary_app.services.sleep_store import SleepStore

RecordFactory = Callable[..., SleepRecord]

FIXED_NOW = datetime(2024, 1, 20, 12, 0)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


# ============================================================================
# RECORD FIXTURES
# ============================================================================


def make_record(
    bed_time: datetime = datetime(2024, 1, 15, 23, 0),
    duration_minutes: int = 480,
    quality_score: int = 7,
    record_id: str | None = None,
    **kwargs,
) -> SleepRecord:
    """Build a valid record from a bed time and a duration."""
    params = CreateSleepRecordParams(
        bed_time=bed_time,
        wake_time=bed_time + timedelta(minutes=duration_minutes),
        quality_score=quality_score,
        **kwargs,
    )
    return build_sleep_record(params, record_id=record_id, now=FIXED_NOW)


@pytest.fixture
def record_factory() -> RecordFactory:
    """Factory for valid records; see make_record for arguments."""
    return make_record


@pytest.fixture
def engine() -> StatisticsEngine:
    return StatisticsEngine()


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Provide path for test database."""
    return tmp_path / "test_sleep_diary.db"


@pytest.fixture
def db_manager(test_db_path: Path) -> DatabaseManager:
    """Real DatabaseManager backed by a temp file."""
    return DatabaseManager(test_db_path)


@pytest.fixture
def settings(test_db_path: Path) -> SleepDiarySettings:
    """Settings isolated from the environment and any .env file."""
    return SleepDiarySettings(_env_file=None, database_path=test_db_path)


@pytest.fixture
def service(db_manager: DatabaseManager, engine: StatisticsEngine, settings: SleepDiarySettings) -> SleepDiaryService:
    return SleepDiaryService(
        database_manager=db_manager,
        engine=engine,
        store=SleepStore(engine),
        cache=StatisticsCache(maxsize=settings.statistics_cache_size),
        config=settings,
    )
