#!/usr/bin/env python3
"""Statistics result dataclasses produced by the statistics engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sleep_diary_app.core.constants import SleepQuality, StatisticsPeriod

if TYPE_CHECKING:
    from datetime import date, datetime

    from sleep_diary_app.core.dataclasses_record import SleepRecord


@dataclass(frozen=True)
class SleepTrends:
    """Half-over-half percentage changes (newer half vs. older half)."""

    duration_trend: float = 0.0
    quality_trend: float = 0.0
    regularity_trend: float = 0.0
    improvement_percentage: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "duration_trend": self.duration_trend,
            "quality_trend": self.quality_trend,
            "regularity_trend": self.regularity_trend,
            "improvement_percentage": self.improvement_percentage,
        }


@dataclass(frozen=True)
class DailySleepData:
    """One aggregated record paired with its calendar date and goal outcome."""

    date: date
    record: SleepRecord
    goal_achieved: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "record_id": self.record.id,
            "duration_minutes": self.record.duration_minutes,
            "quality_score": self.record.quality_score,
            "goal_achieved": self.goal_achieved,
        }


def empty_quality_distribution() -> dict[SleepQuality, int]:
    """Distribution with every category present at zero, best to worst."""
    return dict.fromkeys(SleepQuality, 0)


@dataclass(frozen=True)
class SleepStatistics:
    """Aggregate over a non-empty set of sleep records."""

    period: StatisticsPeriod
    start_date: datetime
    end_date: datetime
    average_duration: int
    total_days: int
    recorded_days: int
    average_quality_score: float
    best_quality_score: int
    worst_quality_score: int
    longest_sleep: int
    shortest_sleep: int
    average_bed_time: str
    average_wake_time: str
    regularity_score: int
    average_sleep_efficiency: int
    quality_distribution: dict[SleepQuality, int] = field(default_factory=empty_quality_distribution)
    daily_data: tuple[DailySleepData, ...] = ()
    trends: SleepTrends = field(default_factory=SleepTrends)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "period": self.period.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "average_duration": self.average_duration,
            "total_days": self.total_days,
            "recorded_days": self.recorded_days,
            "average_quality_score": self.average_quality_score,
            "best_quality_score": self.best_quality_score,
            "worst_quality_score": self.worst_quality_score,
            "longest_sleep": self.longest_sleep,
            "shortest_sleep": self.shortest_sleep,
            "average_bed_time": self.average_bed_time,
            "average_wake_time": self.average_wake_time,
            "regularity_score": self.regularity_score,
            "average_sleep_efficiency": self.average_sleep_efficiency,
            "quality_distribution": {quality.value: count for quality, count in self.quality_distribution.items()},
            "daily_data": [day.to_dict() for day in self.daily_data],
            "trends": self.trends.to_dict(),
        }


@dataclass(frozen=True)
class GoalEvaluation:
    """How a set of records measures up against the user's own sleep goal."""

    total_records: int
    duration_goal_met: int
    quality_goal_met: int
    both_goals_met: int
    achievement_rate: float
    recorded_days: int
    required_days: int
    target_days_met: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_records": self.total_records,
            "duration_goal_met": self.duration_goal_met,
            "quality_goal_met": self.quality_goal_met,
            "both_goals_met": self.both_goals_met,
            "achievement_rate": self.achievement_rate,
            "recorded_days": self.recorded_days,
            "required_days": self.required_days,
            "target_days_met": self.target_days_met,
        }
