"""
Tests for SettingsRepository.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from sleep_diary_app.core.constants import ReminderType, ThemeMode
from sleep_diary_app.core.dataclasses_settings import ReminderSetting, SleepGoal, UpdateSettingsParams
from sleep_diary_app.core.exceptions import ValidationError

NOW = datetime(2024, 1, 20, 9, 0)


class TestSettingsRepository:
    """Tests for the single settings row."""

    def test_first_get_creates_defaults(self, db_manager) -> None:
        settings = db_manager.settings.get()

        assert settings.theme_mode is ThemeMode.SYSTEM
        assert settings.sleep_goal == SleepGoal()
        assert len(settings.reminders) == 2
        assert settings.updated_at is not None

    def test_get_is_stable(self, db_manager) -> None:
        assert db_manager.settings.get() == db_manager.settings.get()

    def test_update_persists(self, db_manager) -> None:
        db_manager.settings.update(
            UpdateSettingsParams(theme_mode="dark", use_24_hour_format=False, username="sam"), now=NOW
        )

        settings = db_manager.settings.get()

        assert settings.theme_mode is ThemeMode.DARK
        assert settings.use_24_hour_format is False
        assert settings.username == "sam"
        assert settings.updated_at == NOW

    def test_update_merges_sleep_goal(self, db_manager) -> None:
        db_manager.settings.update(UpdateSettingsParams(sleep_goal={"duration_goal": 450}), now=NOW)
        db_manager.settings.update(UpdateSettingsParams(sleep_goal={"target_quality_score": 8}), now=NOW)

        goal = db_manager.settings.get().sleep_goal

        assert goal.duration_goal == 450
        assert goal.target_quality_score == 8
        assert goal.target_bed_time == "22:30"

    def test_update_sleep_goal_helper(self, db_manager) -> None:
        goal = db_manager.settings.update_sleep_goal(now=NOW, target_wake_time="7:00")

        assert goal.target_wake_time == "07:00"
        assert db_manager.settings.get().sleep_goal == goal

    def test_invalid_theme(self, db_manager) -> None:
        with pytest.raises(ValidationError):
            db_manager.settings.update(UpdateSettingsParams(theme_mode="neon"))

    def test_invalid_goal_leaves_row_untouched(self, db_manager) -> None:
        with pytest.raises(ValidationError):
            db_manager.settings.update(UpdateSettingsParams(sleep_goal={"duration_goal": 60}))

        assert db_manager.settings.get().sleep_goal.duration_goal == 480

    def test_reminders_replaced(self, db_manager) -> None:
        reminder = ReminderSetting(type=ReminderType.WINDDOWN, time="21:30", repeat_days=(0, 1, 2, 3, 4))

        db_manager.settings.update(UpdateSettingsParams(reminders=(reminder,)), now=NOW)

        assert db_manager.settings.get().reminders == (reminder,)

    def test_invalid_reminder_time(self, db_manager) -> None:
        reminder = ReminderSetting(type=ReminderType.BEDTIME, time="9pm")

        with pytest.raises(ValidationError):
            db_manager.settings.update(UpdateSettingsParams(reminders=(reminder,)))

    def test_reset(self, db_manager) -> None:
        db_manager.settings.update(UpdateSettingsParams(language="de", sleep_goal={"duration_goal": 420}), now=NOW)

        settings = db_manager.settings.reset()

        assert settings.language == "en"
        assert db_manager.settings.get().sleep_goal == SleepGoal()
