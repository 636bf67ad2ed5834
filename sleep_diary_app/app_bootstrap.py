#!/usr/bin/env python3
"""
Application bootstrap helpers.

Builds the logging setup and the object graph (database, engine, store,
cache, service) from a settings instance. Nothing here is module-level
state; callers own what build_service() returns.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sleep_diary_app.core.statistics_engine import StatisticsEngine
from sleep_diary_app.data.database import DatabaseManager
from sleep_diary_app.services.cache_service import StatisticsCache
from sleep_diary_app.services.sleep_diary_service import SleepDiaryService
from sleep_diary_app.services.sleep_store import SleepStore

if TYPE_CHECKING:
    from pathlib import Path

    from sleep_diary_app.config import SleepDiarySettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "WARNING", log_file: Path | None = None) -> Path | None:
    """
    Set up logging to stderr, and to log_file when given.

    Returns:
        Path to log file, or None if using stderr only.

    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT, handlers=handlers, force=True)
    return log_file


def build_service(settings: SleepDiarySettings) -> SleepDiaryService:
    """Wire up a diary service for the configured database."""
    engine = StatisticsEngine(default_period=settings.default_period, clock_tz=settings.clock_tz)
    return SleepDiaryService(
        database_manager=DatabaseManager(settings.database_path),
        engine=engine,
        store=SleepStore(engine),
        cache=StatisticsCache(maxsize=settings.statistics_cache_size),
        config=settings,
    )
