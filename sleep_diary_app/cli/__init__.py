"""
Command-line interface for the sleep diary.

Example usage:
    ```bash
    sleep-diary add --bed 2024-01-15T23:30 --wake 2024-01-16T07:00 --quality 7 --tags caffeine,stress
    sleep-diary stats --period month
    sleep-diary export csv diary.csv
    ```

Exit codes: 0 success, 1 error, 2 invalid input, 130 interrupted.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as SettingsValidationError

from sleep_diary_app.app_bootstrap import build_service, setup_logging
from sleep_diary_app.config import get_settings
from sleep_diary_app.core.constants import SleepTag, StatisticsPeriod
from sleep_diary_app.core.dataclasses_record import CreateSleepRecordParams, UpdateSleepRecordParams
from sleep_diary_app.core.exceptions import ErrorCodes, SleepDiaryError, ValidationError
from sleep_diary_app.core.validation import InputValidator
from sleep_diary_app.services.export_service import ExportService

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sleep_diary_app.core.dataclasses_record import SleepRecord
    from sleep_diary_app.core.dataclasses_statistics import SleepStatistics
    from sleep_diary_app.services.sleep_diary_service import SleepDiaryService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_INTERRUPTED = 130

NO_DATA_MESSAGE = "No data yet"


def format_minutes(minutes: int) -> str:
    """Render a duration as e.g. '7h 30m'."""
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest:02d}m"


def format_record(record: SleepRecord) -> str:
    tags = ",".join(sorted(tag.value for tag in record.tags)) or "-"
    return (
        f"{record.id}  {record.bed_time:%Y-%m-%d %H:%M} -> {record.wake_time:%Y-%m-%d %H:%M}  "
        f"{format_minutes(record.duration_minutes)}  score {record.quality_score} ({record.quality})  tags {tags}"
    )


def format_statistics(stats: SleepStatistics) -> str:
    lines = [
        f"Period:              {stats.period} ({stats.start_date:%Y-%m-%d} to {stats.end_date:%Y-%m-%d}, {stats.recorded_days} nights)",
        f"Average duration:    {format_minutes(stats.average_duration)}",
        f"Longest / shortest:  {format_minutes(stats.longest_sleep)} / {format_minutes(stats.shortest_sleep)}",
        f"Average quality:     {stats.average_quality_score} (best {stats.best_quality_score}, worst {stats.worst_quality_score})",
        f"Average bed / wake:  {stats.average_bed_time} / {stats.average_wake_time}",
        f"Regularity:          {stats.regularity_score}",
        f"Sleep efficiency:    {stats.average_sleep_efficiency}%",
        "Quality:             " + ", ".join(f"{q} {n}" for q, n in stats.quality_distribution.items()),
        f"Trends:              duration {stats.trends.duration_trend:+.1f}%, quality {stats.trends.quality_trend:+.1f}%",
        f"Goal nights:         {sum(day.goal_achieved for day in stats.daily_data)} of {len(stats.daily_data)}",
    ]
    return "\n".join(lines)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


# ============================================================================
# Commands
# ============================================================================


def cmd_add(service: SleepDiaryService, args: argparse.Namespace) -> int:
    record = service.create_record(
        CreateSleepRecordParams(
            bed_time=args.bed,
            wake_time=args.wake,
            quality_score=args.quality,
            sleep_time=args.sleep,
            wake_up_count=args.wake_ups,
            tags=InputValidator.validate_tags(args.tags),
            notes=args.notes,
        )
    )
    print(f"Added {format_record(record)}")
    return EXIT_OK


def cmd_update(service: SleepDiaryService, args: argparse.Namespace) -> int:
    record = service.update_record(
        args.record_id,
        UpdateSleepRecordParams(
            bed_time=args.bed,
            wake_time=args.wake,
            quality_score=args.quality,
            sleep_time=args.sleep,
            clear_sleep_time=args.clear_sleep,
            wake_up_count=args.wake_ups,
            tags=InputValidator.validate_tags(args.tags) if args.tags is not None else None,
            notes=args.notes,
        ),
    )
    print(f"Updated {format_record(record)}")
    return EXIT_OK


def cmd_list(service: SleepDiaryService, args: argparse.Namespace) -> int:
    result = service.load_records(page=args.page, page_size=args.page_size)
    if args.json:
        _print_json(
            {
                "page": result.page,
                "page_size": result.page_size,
                "total": result.total,
                "records": [record.to_dict() for record in result.items],
            }
        )
        return EXIT_OK

    if not result.items:
        print(NO_DATA_MESSAGE)
        return EXIT_OK

    for record in result.items:
        print(format_record(record))
    print(f"Page {result.page}/{result.total_pages} ({result.total} records)")
    return EXIT_OK


def cmd_delete(service: SleepDiaryService, args: argparse.Namespace) -> int:
    if len(args.record_ids) == 1:
        service.delete_record(args.record_ids[0])
        print(f"Deleted {args.record_ids[0]}")
    else:
        deleted = service.batch_delete_records(args.record_ids)
        print(f"Deleted {deleted} of {len(args.record_ids)} records")
    return EXIT_OK


def cmd_stats(service: SleepDiaryService, args: argparse.Namespace) -> int:
    start = InputValidator.parse_timestamp(args.start, "start") if args.start else None
    end = InputValidator.parse_timestamp(args.end, "end") if args.end else None
    period = args.period
    if start is not None or end is not None:
        # Explicit bounds imply a custom window
        if period not in (None, StatisticsPeriod.CUSTOM):
            msg = f"--start/--end need --period custom, not {period}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)
        period = StatisticsPeriod.CUSTOM
    stats = service.get_statistics(period=period, start=start, end=end)

    if args.json:
        _print_json(stats.to_dict() if stats else None)
    elif stats is None:
        print(NO_DATA_MESSAGE)
    else:
        print(format_statistics(stats))
    return EXIT_OK


def cmd_goal(service: SleepDiaryService, args: argparse.Namespace) -> int:
    changes = {
        "duration_goal": args.duration,
        "target_quality_score": args.quality,
        "target_bed_time": args.bed_time,
        "target_wake_time": args.wake_time,
        "target_days_per_week": args.days,
    }
    if any(value is not None for value in changes.values()):
        goal = service.update_sleep_goal(**changes)
    else:
        goal = service.get_settings().sleep_goal

    evaluation = service.evaluate_goal(period=args.period)
    if args.json:
        _print_json({"goal": goal.to_dict(), "evaluation": evaluation.to_dict()})
        return EXIT_OK

    print(
        f"Goal: {format_minutes(goal.duration_goal)}, quality >= {goal.target_quality_score}, "
        f"bed {goal.target_bed_time}, wake {goal.target_wake_time}, {goal.target_days_per_week} days/week"
    )
    if evaluation.total_records == 0:
        print(NO_DATA_MESSAGE)
    else:
        status = "met" if evaluation.target_days_met else "not met"
        print(
            f"{evaluation.both_goals_met} of {evaluation.total_records} nights on target "
            f"({evaluation.achievement_rate}%), weekly target {status}"
        )
    return EXIT_OK


def cmd_export(service: SleepDiaryService, args: argparse.Namespace) -> int:
    exporter = ExportService(service.db, service.engine)
    if args.format == "json":
        path = exporter.export_json(args.output)
    else:
        path = exporter.export_csv(args.output)
    print(f"Exported to {path}")
    return EXIT_OK


def cmd_health(service: SleepDiaryService, args: argparse.Namespace) -> int:
    health = service.check_health()
    if args.json:
        _print_json(health.to_dict())
    else:
        state = "healthy" if health.is_healthy else f"unhealthy ({health.last_error})"
        print(f"Database {state}: {health.record_count} records, {health.database_size} bytes")
    return EXIT_OK if health.is_healthy else EXIT_ERROR


COMMANDS = {
    "add": cmd_add,
    "update": cmd_update,
    "list": cmd_list,
    "delete": cmd_delete,
    "stats": cmd_stats,
    "goal": cmd_goal,
    "export": cmd_export,
    "health": cmd_health,
}


# ============================================================================
# Parser
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sleep-diary", description="Offline sleep diary")
    parser.add_argument("--db", type=Path, help="Path to database file (default: SLEEP_DIARY_DATABASE_PATH)")
    parser.add_argument("--log-level", help="Logging level (default: SLEEP_DIARY_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    tag_help = f"Comma-separated tags: {', '.join(t.value for t in SleepTag)}"

    add_parser = subparsers.add_parser("add", help="Record a night of sleep")
    add_parser.add_argument("--bed", required=True, help="Bed time (ISO-8601)")
    add_parser.add_argument("--wake", required=True, help="Wake time (ISO-8601)")
    add_parser.add_argument("--quality", type=int, required=True, help="Quality score 1-10")
    add_parser.add_argument("--sleep", help="Fell-asleep time (ISO-8601)")
    add_parser.add_argument("--wake-ups", type=int, default=0, help="Number of awakenings")
    add_parser.add_argument("--tags", help=tag_help)
    add_parser.add_argument("--notes", default="", help="Free-text notes")

    update_parser = subparsers.add_parser("update", help="Edit a record")
    update_parser.add_argument("record_id")
    update_parser.add_argument("--bed", help="Bed time (ISO-8601)")
    update_parser.add_argument("--wake", help="Wake time (ISO-8601)")
    update_parser.add_argument("--quality", type=int, help="Quality score 1-10")
    update_parser.add_argument("--sleep", help="Fell-asleep time (ISO-8601)")
    update_parser.add_argument("--clear-sleep", action="store_true", help="Remove the fell-asleep time")
    update_parser.add_argument("--wake-ups", type=int, help="Number of awakenings")
    update_parser.add_argument("--tags", help=tag_help)
    update_parser.add_argument("--notes", help="Free-text notes")

    list_parser = subparsers.add_parser("list", help="List records, newest first")
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.add_argument("--page-size", type=int)
    list_parser.add_argument("--json", action="store_true", help="Print JSON")

    delete_parser = subparsers.add_parser("delete", help="Delete one or more records")
    delete_parser.add_argument("record_ids", nargs="+")

    stats_parser = subparsers.add_parser("stats", help="Show statistics for a period")
    stats_parser.add_argument("--period", choices=[p.value for p in StatisticsPeriod])
    stats_parser.add_argument("--start", help="Custom period start (ISO-8601)")
    stats_parser.add_argument("--end", help="Custom period end (ISO-8601)")
    stats_parser.add_argument("--json", action="store_true", help="Print JSON")

    goal_parser = subparsers.add_parser("goal", help="Show or change the sleep goal")
    goal_parser.add_argument("--duration", type=int, help="Goal duration in minutes (300-720)")
    goal_parser.add_argument("--quality", type=int, help="Target quality score (1-10)")
    goal_parser.add_argument("--bed-time", help="Target bed time HH:MM")
    goal_parser.add_argument("--wake-time", help="Target wake time HH:MM")
    goal_parser.add_argument("--days", type=int, help="Target days per week (0-7)")
    goal_parser.add_argument("--period", choices=[p.value for p in StatisticsPeriod if p is not StatisticsPeriod.CUSTOM])
    goal_parser.add_argument("--json", action="store_true", help="Print JSON")

    export_parser = subparsers.add_parser("export", help="Export the diary")
    export_parser.add_argument("format", choices=["json", "csv"])
    export_parser.add_argument("output", type=Path)

    health_parser = subparsers.add_parser("health", help="Check the database")
    health_parser.add_argument("--json", action="store_true", help="Print JSON")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_INVALID_INPUT

    try:
        settings = get_settings()
        updates: dict[str, Any] = {}
        if args.db is not None:
            updates["database_path"] = args.db
        if args.log_level:
            updates["log_level"] = args.log_level.upper()
        if updates:
            settings = settings.model_copy(update=updates)
    except SettingsValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(settings.log_level, settings.log_file)

    try:
        service = build_service(settings)
        return COMMANDS[args.command](service, args)
    except ValidationError as e:
        logger.debug("Invalid input", exc_info=True)
        print(f"Invalid input: {e.message}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except SleepDiaryError as e:
        logger.exception("Command %s failed", args.command)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED


__all__ = ["build_parser", "main"]
