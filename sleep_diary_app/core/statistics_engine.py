#!/usr/bin/env python3
"""
Sleep Statistics Engine

Turns an ordered snapshot of sleep records into a SleepStatistics aggregate:
duration and quality summaries, clock-time averages, a regularity score from
the spread of bed/wake times, a quality distribution, half-over-half trends
and per-day goal achievement.

The engine is pure. It performs no I/O, holds no mutable state and can be
shared between callers. Input is expected newest-first; ordering only affects
start_date/end_date labelling and which half of the set counts as "recent"
for trends.

Malformed records never reach this module: they are rejected when a record
is built or updated (see core.dataclasses_record).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sleep_diary_app.core.constants import SleepQuality, StatisticsConstants, StatisticsPeriod
from sleep_diary_app.core.dataclasses_statistics import (
    DailySleepData,
    GoalEvaluation,
    SleepStatistics,
    SleepTrends,
    empty_quality_distribution,
)
from sleep_diary_app.utils import calculations

if TYPE_CHECKING:
    from datetime import date, datetime, tzinfo

    from sleep_diary_app.core.dataclasses_record import SleepRecord
    from sleep_diary_app.core.dataclasses_settings import SleepGoal

logger = logging.getLogger(__name__)


class StatisticsEngine:
    """
    Pure aggregation over sleep records.

    Args:
        default_period: Period label used by recompute()
        clock_tz: Zone used to read wall-clock values from timezone-aware
            timestamps. Naive timestamps are read as-is.

    """

    def __init__(
        self,
        default_period: StatisticsPeriod = StatisticsPeriod.WEEK,
        clock_tz: tzinfo | None = None,
    ) -> None:
        self.default_period = StatisticsPeriod(default_period)
        self.clock_tz = clock_tz

    # ------------------------------------------------------------------
    # Single-record helpers
    # ------------------------------------------------------------------

    @staticmethod
    def classify_quality(score: int) -> SleepQuality:
        """Map a 1-10 score to a quality category. Raises InvalidScoreError."""
        return calculations.classify_quality(score)

    @staticmethod
    def compute_duration(bed_time: datetime, wake_time: datetime) -> int:
        """Session length in minutes with a single 24h rollover correction."""
        return calculations.calculate_duration_minutes(bed_time, wake_time)

    def _wall_clock(self, moment: datetime) -> datetime:
        if self.clock_tz is not None and moment.tzinfo is not None:
            return moment.astimezone(self.clock_tz)
        return moment

    def _clock_minutes(self, moment: datetime) -> int:
        return calculations.minutes_since_midnight(self._wall_clock(moment))

    def _calendar_date(self, moment: datetime) -> date:
        return self._wall_clock(moment).date()

    # ------------------------------------------------------------------
    # Aggregate building blocks
    # ------------------------------------------------------------------

    @staticmethod
    def population_std(values: Sequence[float]) -> float:
        """Population standard deviation (n in the denominator)."""
        return calculations.population_std(values)

    @staticmethod
    def regularity_subscore(std_minutes: float) -> float:
        """
        Linear score for one clock-time spread.

        0 minutes of deviation scores 100 and 30 minutes or more scores 0.
        """
        return max(0.0, 100 - (std_minutes / StatisticsConstants.REGULARITY_ZERO_STD_MINUTES) * 100)

    @staticmethod
    def average_clock_time(clock_minutes: Sequence[int]) -> str:
        """
        Average minutes-since-midnight values and format as HH:MM.

        This is a plain arithmetic mean, floored. Times that straddle
        midnight average towards midday (23:50 and 00:10 give 12:00).
        """
        if not clock_minutes:
            return "00:00"
        mean_minutes = sum(clock_minutes) // len(clock_minutes)
        return calculations.format_clock_minutes(mean_minutes)

    def calculate_regularity(self, records: Sequence[SleepRecord]) -> int:
        """Regularity score in [0, 100]; exactly 100 for fewer than three records."""
        if len(records) < StatisticsConstants.REGULARITY_MIN_RECORDS:
            return 100

        bed_std = self.population_std([self._clock_minutes(r.bed_time) for r in records])
        wake_std = self.population_std([self._clock_minutes(r.wake_time) for r in records])
        bed_subscore = self.regularity_subscore(bed_std)
        wake_subscore = self.regularity_subscore(wake_std)
        return calculations.round_half_up((bed_subscore + wake_subscore) / 2)

    @staticmethod
    def _percentage_change(recent: float, older: float) -> float:
        if older == 0:
            return 0.0
        return calculations.round_half_up((recent - older) / older * 100, 1)

    def calculate_trends(self, records: Sequence[SleepRecord]) -> SleepTrends:
        """
        Compare the newer half of a newest-first set against the older half.

        Fewer than four records yields all-zero trends. regularity_trend is
        always 0.
        """
        if len(records) < StatisticsConstants.TREND_MIN_RECORDS:
            return SleepTrends()

        midpoint = len(records) // 2
        recent = records[:midpoint]
        older = records[midpoint:]

        def mean(values: list[int]) -> float:
            return sum(values) / len(values)

        duration_trend = self._percentage_change(
            mean([r.duration_minutes for r in recent]),
            mean([r.duration_minutes for r in older]),
        )
        quality_trend = self._percentage_change(
            mean([r.quality_score for r in recent]),
            mean([r.quality_score for r in older]),
        )

        return SleepTrends(
            duration_trend=duration_trend,
            quality_trend=quality_trend,
            regularity_trend=0.0,
            improvement_percentage=calculations.round_half_up((duration_trend + quality_trend) / 2, 1),
        )

    @staticmethod
    def goal_achieved(record: SleepRecord) -> bool:
        """Fixed-threshold goal check: score >= 7 and at least 420 minutes."""
        return (
            record.quality_score >= StatisticsConstants.GOAL_MIN_QUALITY_SCORE
            and record.duration_minutes >= StatisticsConstants.GOAL_MIN_DURATION_MINUTES
        )

    def build_daily_data(self, records: Sequence[SleepRecord]) -> tuple[DailySleepData, ...]:
        """One entry per record, dated by the calendar date of its bed time."""
        return tuple(
            DailySleepData(
                date=self._calendar_date(record.bed_time),
                record=record,
                goal_achieved=self.goal_achieved(record),
            )
            for record in records
        )

    @staticmethod
    def quality_distribution(records: Sequence[SleepRecord]) -> dict[SleepQuality, int]:
        """Tally the stored quality of each record; every category is present."""
        distribution = empty_quality_distribution()
        for record in records:
            distribution[record.quality] += 1
        return distribution

    @staticmethod
    def average_sleep_efficiency(records: Sequence[SleepRecord]) -> int:
        """Mean efficiency over records that carry one; 0 when none do."""
        values = [r.sleep_efficiency for r in records if r.sleep_efficiency is not None]
        if not values:
            return 0
        return calculations.round_half_up(sum(values) / len(values))

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def aggregate(
        self,
        records: Sequence[SleepRecord],
        period: StatisticsPeriod = StatisticsPeriod.WEEK,
    ) -> SleepStatistics | None:
        """
        Aggregate a newest-first snapshot of records.

        Args:
            records: Records to aggregate, newest first
            period: Label stored on the result

        Returns:
            SleepStatistics, or None when records is empty

        """
        snapshot = tuple(records)
        if not snapshot:
            return None

        count = len(snapshot)
        durations = [r.duration_minutes for r in snapshot]
        scores = [r.quality_score for r in snapshot]

        statistics = SleepStatistics(
            period=StatisticsPeriod(period),
            start_date=snapshot[-1].bed_time,
            end_date=snapshot[0].bed_time,
            average_duration=calculations.round_half_up(sum(durations) / count),
            total_days=count,
            recorded_days=count,
            average_quality_score=calculations.round_half_up(sum(scores) / count, 1),
            best_quality_score=max(scores),
            worst_quality_score=min(scores),
            longest_sleep=max(durations),
            shortest_sleep=min(durations),
            average_bed_time=self.average_clock_time([self._clock_minutes(r.bed_time) for r in snapshot]),
            average_wake_time=self.average_clock_time([self._clock_minutes(r.wake_time) for r in snapshot]),
            regularity_score=self.calculate_regularity(snapshot),
            average_sleep_efficiency=self.average_sleep_efficiency(snapshot),
            quality_distribution=self.quality_distribution(snapshot),
            daily_data=self.build_daily_data(snapshot),
            trends=self.calculate_trends(snapshot),
        )
        logger.debug(
            "Aggregated %d records (%s): avg %d min, quality %.1f",
            count,
            statistics.period,
            statistics.average_duration,
            statistics.average_quality_score,
        )
        return statistics

    def recompute(self, records: Sequence[SleepRecord]) -> SleepStatistics | None:
        """Recalculate statistics after the record set changed."""
        return self.aggregate(records, self.default_period)

    def evaluate_goal(self, records: Sequence[SleepRecord], goal: SleepGoal) -> GoalEvaluation:
        """
        Measure records against the user's own sleep goal.

        A record meets the duration goal when it lasts at least
        goal.duration_goal minutes, and the quality goal when its score is at
        least goal.target_quality_score. The weekly target is scaled to the
        number of distinct nights recorded: with D distinct bed dates the
        set must contain at least ceil(target_days_per_week * D / 7)
        nights meeting both goals.
        """
        snapshot = tuple(records)
        duration_met = [r.duration_minutes >= goal.duration_goal for r in snapshot]
        quality_met = [r.quality_score >= goal.target_quality_score for r in snapshot]
        both_met = [d and q for d, q in zip(duration_met, quality_met, strict=True)]

        achieved_dates = {
            self._calendar_date(r.bed_time) for r, met in zip(snapshot, both_met, strict=True) if met
        }
        recorded_dates = {self._calendar_date(r.bed_time) for r in snapshot}
        required_days = -(-goal.target_days_per_week * len(recorded_dates) // 7)

        total = len(snapshot)
        return GoalEvaluation(
            total_records=total,
            duration_goal_met=sum(duration_met),
            quality_goal_met=sum(quality_met),
            both_goals_met=sum(both_met),
            achievement_rate=calculations.round_half_up(sum(both_met) / total * 100, 1) if total else 0.0,
            recorded_days=len(recorded_dates),
            required_days=required_days,
            target_days_met=len(achieved_dates) >= required_days,
        )
