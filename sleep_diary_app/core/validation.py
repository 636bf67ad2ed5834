#!/usr/bin/env python3
"""
Input Validation Module for Sleep Diary Application
Provides validation for raw user input before it becomes a sleep record.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from sleep_diary_app.core.constants import QualityThreshold, SleepTag
from sleep_diary_app.core.exceptions import (
    ErrorCodes,
    InvalidScoreError,
    InvalidTimestampError,
    SecurityError,
    ValidationError,
)


class InputValidator:
    """Input validation for the sleep diary application."""

    PATH_TRAVERSAL_PATTERN = re.compile(r"\.\.[\\/]")
    # Tabs and newlines are allowed in free text
    CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

    TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
    RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")

    MAX_FILENAME_LENGTH = 255
    MAX_PATH_LENGTH = 4096

    @staticmethod
    def validate_quality_score(score: Any) -> int:
        """
        Validate a subjective quality score.

        Args:
            score: Value to validate

        Returns:
            The score as int

        Raises:
            InvalidScoreError: If score is not an integer in [1, 10]

        """
        if score is None:
            msg = "Quality score is required"
            raise InvalidScoreError(msg, ErrorCodes.MISSING_REQUIRED)

        # bool is an int subclass but never a valid score
        if isinstance(score, bool) or not isinstance(score, int):
            msg = f"Quality score must be an integer, got {type(score).__name__}"
            raise InvalidScoreError(msg, ErrorCodes.INVALID_SCORE, {"score": score})

        if not (QualityThreshold.MIN_SCORE <= score <= QualityThreshold.MAX_SCORE):
            msg = f"Quality score must be between {QualityThreshold.MIN_SCORE} and {QualityThreshold.MAX_SCORE}, got {score}"
            raise InvalidScoreError(msg, ErrorCodes.INVALID_SCORE, {"score": score})

        return score

    @staticmethod
    def parse_timestamp(value: Any, name: str = "timestamp") -> datetime:
        """
        Parse a timestamp given as datetime or ISO-8601 string.

        A trailing 'Z' is accepted as UTC.

        Raises:
            InvalidTimestampError: If the value is missing or unparsable

        """
        if value is None or value == "":
            msg = f"{name} is required"
            raise InvalidTimestampError(msg, ErrorCodes.MISSING_REQUIRED)

        if isinstance(value, datetime):
            return value

        if not isinstance(value, str):
            msg = f"{name} must be a datetime or ISO-8601 string, got {type(value).__name__}"
            raise InvalidTimestampError(msg, ErrorCodes.INVALID_TIMESTAMP)

        try:
            return datetime.fromisoformat(value.strip())
        except ValueError as e:
            msg = f"Invalid {name}: {value!r}. Expected ISO-8601"
            raise InvalidTimestampError(msg, ErrorCodes.INVALID_TIMESTAMP, {name: value}) from e

    @staticmethod
    def validate_wake_up_count(value: Any) -> int:
        """Validate the number of night-time awakenings (non-negative integer)."""
        return InputValidator.validate_integer(value, min_val=0, name="wake_up_count")

    @staticmethod
    def validate_tags(tags: Iterable[str] | str | None) -> frozenset[SleepTag]:
        """
        Validate tags against the closed tag vocabulary.

        A single string is treated as a comma-separated list.

        Raises:
            ValidationError: If any tag is unknown

        """
        if tags is None:
            return frozenset()

        if isinstance(tags, str):
            tags = [part for part in (item.strip() for item in tags.split(",")) if part]

        validated: set[SleepTag] = set()
        for tag in tags:
            try:
                validated.add(SleepTag(str(tag).strip().lower()))
            except ValueError as e:
                allowed = ", ".join(t.value for t in SleepTag)
                msg = f"Unknown tag: {tag!r}. Allowed: {allowed}"
                raise ValidationError(msg, ErrorCodes.INVALID_INPUT, {"tag": tag}) from e

        return frozenset(validated)

    @staticmethod
    def validate_clock_time(time_str: str, name: str = "time") -> str:
        """
        Validate a wall-clock time in HH:MM format.

        Returns:
            The time normalized to zero-padded HH:MM

        Raises:
            ValidationError: If time format is invalid

        """
        if not time_str:
            msg = f"{name} cannot be empty"
            raise ValidationError(msg, ErrorCodes.MISSING_REQUIRED)

        match = InputValidator.TIME_PATTERN.match(str(time_str).strip())
        if not match:
            msg = f"Invalid {name}: {time_str}. Expected HH:MM"
            raise ValidationError(msg, ErrorCodes.INVALID_FORMAT)

        hour, minute = int(match.group(1)), int(match.group(2))
        return f"{hour:02d}:{minute:02d}"

    @staticmethod
    def validate_duration_window(minutes: int, min_minutes: int, max_minutes: int) -> int:
        """
        Check a session length against the entry-form window.

        Raises:
            ValidationError: If minutes falls outside [min_minutes, max_minutes]

        """
        if not (min_minutes <= minutes <= max_minutes):
            msg = f"Sleep duration must be between {min_minutes} and {max_minutes} minutes, got {minutes}"
            raise ValidationError(
                msg,
                ErrorCodes.OUT_OF_RANGE,
                {"duration_minutes": minutes, "min": min_minutes, "max": max_minutes},
            )
        return minutes

    @staticmethod
    def validate_integer(
        value: Any,
        min_val: int | None = None,
        max_val: int | None = None,
        name: str = "value",
    ) -> int:
        """
        Validate integer value with optional range checking.

        Args:
            value: Value to validate
            min_val: Minimum allowed value
            max_val: Maximum allowed value
            name: Name for error messages

        Returns:
            Validated integer

        Raises:
            ValidationError: If value is invalid

        """
        if value is None:
            msg = f"{name} cannot be None"
            raise ValidationError(msg, ErrorCodes.MISSING_REQUIRED)

        if isinstance(value, bool) or not isinstance(value, int):
            msg = f"{name} must be an integer, got {type(value).__name__}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)

        if min_val is not None and value < min_val:
            msg = f"{name} must be >= {min_val}, got {value}"
            raise ValidationError(msg, ErrorCodes.OUT_OF_RANGE)

        if max_val is not None and value > max_val:
            msg = f"{name} must be <= {max_val}, got {value}"
            raise ValidationError(msg, ErrorCodes.OUT_OF_RANGE)

        return value

    @staticmethod
    def validate_string(value: Any, min_length: int = 0, max_length: int = 10000, name: str = "value") -> str:
        """
        Validate string value with length and content checking.

        Raises:
            ValidationError: If value is too short, too long or carries control characters

        """
        if value is None:
            msg = f"{name} cannot be None"
            raise ValidationError(msg, ErrorCodes.MISSING_REQUIRED)

        if not isinstance(value, str):
            value = str(value)

        if len(value) < min_length:
            msg = f"{name} must be at least {min_length} characters, got {len(value)}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)

        if len(value) > max_length:
            msg = f"{name} must be at most {max_length} characters, got {len(value)}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)

        if InputValidator.CONTROL_CHAR_PATTERN.search(value):
            msg = f"{name} contains control characters"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)

        return value

    @staticmethod
    def validate_file_path(
        file_path: str | Path,
        must_exist: bool = True,
        allowed_extensions: set[str] | frozenset[str] | None = None,
    ) -> Path:
        """
        Validate file path for security and existence.

        Args:
            file_path: Path to validate
            must_exist: Whether file must exist
            allowed_extensions: Set of allowed file extensions

        Returns:
            Validated Path object

        Raises:
            ValidationError: If path is invalid
            SecurityError: If path poses security risk

        """
        if not file_path:
            msg = "File path cannot be empty"
            raise ValidationError(msg, ErrorCodes.MISSING_REQUIRED)

        path = Path(file_path)

        if len(str(path)) > InputValidator.MAX_PATH_LENGTH:
            msg = f"Path too long: {len(str(path))} > {InputValidator.MAX_PATH_LENGTH}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)

        if InputValidator.PATH_TRAVERSAL_PATTERN.search(str(file_path)):
            msg = f"Path traversal attempt detected: {file_path}"
            raise SecurityError(msg, ErrorCodes.PATH_TRAVERSAL)

        if len(path.name) > InputValidator.MAX_FILENAME_LENGTH:
            msg = f"Filename too long: {len(path.name)} > {InputValidator.MAX_FILENAME_LENGTH}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)

        if allowed_extensions and path.suffix.lower() not in allowed_extensions:
            msg = f"Invalid file extension: {path.suffix}. Allowed: {sorted(allowed_extensions)}"
            raise ValidationError(msg, ErrorCodes.INVALID_FORMAT)

        if must_exist and not path.exists():
            msg = f"File does not exist: {path}"
            raise ValidationError(msg, ErrorCodes.FILE_NOT_FOUND)

        if must_exist and not path.is_file():
            msg = f"Path is not a file: {path}"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)

        return path

    @staticmethod
    def validate_record_id(record_id: Any) -> str:
        """Validate an opaque record id (letters, digits, '_' and '-', at most 64 chars)."""
        if not record_id:
            msg = "Record id cannot be empty"
            raise ValidationError(msg, ErrorCodes.MISSING_REQUIRED)

        if not isinstance(record_id, str) or not InputValidator.RECORD_ID_PATTERN.match(record_id):
            msg = f"Invalid record id: {record_id!r}"
            raise ValidationError(msg, ErrorCodes.INVALID_FORMAT)

        return record_id
