"""
Tests for the command-line interface.

Runs main() end to end against a temp database and checks output and exit codes.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta

import pytest

from sleep_diary_app.cli import (
    EXIT_ERROR,
    EXIT_INVALID_INPUT,
    EXIT_OK,
    NO_DATA_MESSAGE,
    build_parser,
    format_minutes,
    main,
)


@pytest.fixture
def run(test_db_path, capsys):
    """Run the CLI against the temp database; returns (exit_code, stdout, stderr)."""

    def _run(*args: str) -> tuple[int, str, str]:
        code = main(["--db", str(test_db_path), *args])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


def last_night(offset_days: int = 1) -> tuple[str, str]:
    """ISO bed and wake times for a night that started offset_days ago at 23:00."""
    bed = (datetime.now() - timedelta(days=offset_days)).replace(hour=23, minute=0, second=0, microsecond=0)
    wake = bed + timedelta(hours=8)
    return bed.isoformat(), wake.isoformat()


def add_night(run, offset_days: int = 1, quality: int = 7, *extra: str) -> str:
    bed, wake = last_night(offset_days)
    code, out, _ = run("add", "--bed", bed, "--wake", wake, "--quality", str(quality), *extra)
    assert code == EXIT_OK
    return out.split()[1]


# ============================================================================
# Test formatting
# ============================================================================


class TestFormatting:
    """Tests for output helpers."""

    def test_format_minutes(self) -> None:
        assert format_minutes(450) == "7h 30m"
        assert format_minutes(65) == "1h 05m"

    def test_parser_requires_bed_for_add(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["add", "--wake", "2024-01-16T07:00", "--quality", "7"])


# ============================================================================
# Test commands
# ============================================================================


class TestCli:
    """End-to-end command tests."""

    def test_no_command(self, capsys) -> None:
        assert main([]) == EXIT_INVALID_INPUT

    def test_add(self, run) -> None:
        bed, wake = last_night()

        code, out, _ = run("add", "--bed", bed, "--wake", wake, "--quality", "8", "--tags", "caffeine,stress")

        assert code == EXIT_OK
        assert out.startswith("Added record_")
        assert "8h 00m" in out
        assert "caffeine,stress" in out

    def test_add_invalid_score(self, run) -> None:
        bed, wake = last_night()

        code, _, err = run("add", "--bed", bed, "--wake", wake, "--quality", "11")

        assert code == EXIT_INVALID_INPUT
        assert "Invalid input" in err

    def test_add_unknown_tag(self, run) -> None:
        bed, wake = last_night()

        code, _, err = run("add", "--bed", bed, "--wake", wake, "--quality", "7", "--tags", "unicorns")

        assert code == EXIT_INVALID_INPUT
        assert "unicorns" in err

    def test_add_bad_timestamp(self, run) -> None:
        code, _, _ = run("add", "--bed", "yesterday", "--wake", "2024-01-16T07:00", "--quality", "7")

        assert code == EXIT_INVALID_INPUT

    def test_list_empty(self, run) -> None:
        code, out, _ = run("list")

        assert code == EXIT_OK
        assert NO_DATA_MESSAGE in out

    def test_list_json(self, run) -> None:
        add_night(run, 2)
        add_night(run, 1)

        code, out, _ = run("list", "--json")

        data = json.loads(out)
        assert code == EXIT_OK
        assert data["total"] == 2
        assert data["records"][0]["bed_time"] > data["records"][1]["bed_time"]

    def test_update(self, run) -> None:
        record_id = add_night(run, quality=7)

        code, out, _ = run("update", record_id, "--quality", "3", "--notes", "restless")

        assert code == EXIT_OK
        assert "score 3 (poor)" in out

    def test_update_unknown(self, run) -> None:
        code, _, err = run("update", "record_missing", "--quality", "3")

        assert code == EXIT_ERROR
        assert "Record not found" in err

    def test_delete(self, run) -> None:
        record_id = add_night(run)

        code, out, _ = run("delete", record_id)

        assert code == EXIT_OK
        assert f"Deleted {record_id}" in out

    def test_delete_many(self, run) -> None:
        first = add_night(run, 2)
        second = add_night(run, 1)

        code, out, _ = run("delete", first, second, "record_missing")

        assert code == EXIT_OK
        assert "Deleted 2 of 3 records" in out

    def test_stats_empty(self, run) -> None:
        code, out, _ = run("stats")

        assert code == EXIT_OK
        assert NO_DATA_MESSAGE in out

    def test_stats(self, run) -> None:
        add_night(run, 2, 8)
        add_night(run, 1, 6)

        code, out, _ = run("stats", "--period", "week")

        assert code == EXIT_OK
        assert "Average duration:    8h 00m" in out
        assert "Average quality:     7.0" in out

    def test_stats_json(self, run) -> None:
        add_night(run)

        code, out, _ = run("stats", "--json")

        data = json.loads(out)
        assert code == EXIT_OK
        assert data["average_duration"] == 480
        assert data["regularity_score"] == 100

    def test_stats_custom_without_bounds(self, run) -> None:
        code, _, _ = run("stats", "--period", "custom")

        assert code == EXIT_INVALID_INPUT

    def test_stats_bounds_imply_custom(self, run) -> None:
        add_night(run, 1, 8)
        bed, _ = last_night(1)
        start = (datetime.fromisoformat(bed) - timedelta(hours=1)).isoformat()
        end = (datetime.fromisoformat(bed) + timedelta(hours=1)).isoformat()

        code, out, _ = run("stats", "--start", start, "--end", end, "--json")

        data = json.loads(out)
        assert code == EXIT_OK
        assert data["period"] == "custom"
        assert data["total_days"] == 1

    def test_stats_bounds_with_relative_period(self, run) -> None:
        code, _, err = run("stats", "--period", "week", "--start", "2024-01-01T00:00", "--end", "2024-01-08T00:00")

        assert code == EXIT_INVALID_INPUT
        assert "--period custom" in err

    def test_goal_update_and_evaluate(self, run) -> None:
        add_night(run, 1, 8)

        code, out, _ = run("goal", "--duration", "450", "--json")

        data = json.loads(out)
        assert code == EXIT_OK
        assert data["goal"]["duration_goal"] == 450
        assert data["evaluation"]["both_goals_met"] == 1

    def test_goal_invalid(self, run) -> None:
        code, _, _ = run("goal", "--duration", "100")

        assert code == EXIT_INVALID_INPUT

    def test_export_csv(self, run, tmp_path) -> None:
        add_night(run)
        output = tmp_path / "diary.csv"

        code, out, _ = run("export", "csv", str(output))

        assert code == EXIT_OK
        assert output.exists()
        assert "Exported to" in out

    def test_export_json(self, run, tmp_path) -> None:
        add_night(run)
        output = tmp_path / "diary.json"

        code, _, _ = run("export", "json", str(output))

        assert code == EXIT_OK
        assert json.loads(output.read_text(encoding="utf-8"))["version"] == "1.0.0"

    def test_health(self, run) -> None:
        code, out, _ = run("health", "--json")

        assert code == EXIT_OK
        assert json.loads(out)["is_healthy"] is True
