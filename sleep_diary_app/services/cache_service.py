#!/usr/bin/env python3
"""
Statistics cache for the diary service.

Entries are keyed by period and by the window's instants, so a naive window
and an aware window naming the same moments share one entry. Any change to
the record set makes every entry stale; the diary service calls
invalidate_all() after each mutation.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sleep_diary_app.utils.date_range import to_instant

if TYPE_CHECKING:
    from datetime import datetime

    from sleep_diary_app.core.constants import StatisticsPeriod
    from sleep_diary_app.core.dataclasses_statistics import SleepStatistics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowKey:
    """Cache key: a period label plus the UTC bounds of its window."""

    period: StatisticsPeriod
    start: datetime
    end: datetime

    @classmethod
    def for_window(cls, period: StatisticsPeriod, start: datetime, end: datetime) -> WindowKey:
        return cls(period=period, start=to_instant(start), end=to_instant(end))


@dataclass(frozen=True)
class CachedStatistics:
    """Cache entry; statistics is None when the window held no records."""

    statistics: SleepStatistics | None


class StatisticsCache:
    """Least-recently-used store of aggregates with hit/miss counters."""

    def __init__(self, maxsize: int = 32) -> None:
        self._maxsize = maxsize
        self._entries: OrderedDict[WindowKey, CachedStatistics] = OrderedDict()
        self._hits = 0
        self._misses = 0

    def get(self, period: StatisticsPeriod, start: datetime, end: datetime) -> CachedStatistics | None:
        """Return the cached entry, or None on a miss."""
        key = WindowKey.for_window(period, start, end)
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        self._entries.move_to_end(key)
        self._hits += 1
        return entry

    def put(
        self,
        period: StatisticsPeriod,
        start: datetime,
        end: datetime,
        statistics: SleepStatistics | None,
    ) -> None:
        key = WindowKey.for_window(period, start, end)
        self._entries[key] = CachedStatistics(statistics)
        self._entries.move_to_end(key)
        while len(self._entries) > self._maxsize:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted cached statistics for %s window ending %s", evicted.period, evicted.end.isoformat())

    def invalidate_all(self) -> None:
        if self._entries:
            logger.debug("Invalidating %d cached statistics entries", len(self._entries))
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> dict[str, int | float]:
        lookups = self._hits + self._misses
        return {
            "size": len(self._entries),
            "maxsize": self._maxsize,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / lookups * 100, 1) if lookups else 0.0,
        }
