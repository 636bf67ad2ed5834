#!/usr/bin/env python3
"""
Custom Exception Classes for Sleep Diary Application
Provides structured error handling with specific exception types.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class SleepDiaryError(Exception):
    """Base exception for all sleep diary application errors."""

    def __init__(self, message: str, error_code: str | None = None, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ValidationError(SleepDiaryError):
    """Raised when input validation fails."""


class InvalidScoreError(ValidationError):
    """Raised when a quality score is not an integer in [1, 10]."""


class InvalidTimestampError(ValidationError):
    """Raised when a bed, wake or sleep timestamp is missing or unparsable."""


class RecordNotFoundError(SleepDiaryError):
    """Raised when a sleep record id does not exist in the store."""


class DatabaseError(SleepDiaryError):
    """Raised when database operations fail."""


class DataIntegrityError(SleepDiaryError):
    """Raised when data integrity is compromised."""


class SecurityError(SleepDiaryError):
    """Raised when security violations are detected."""


class ConfigurationError(SleepDiaryError):
    """Raised when configuration is invalid."""


class ExportError(SleepDiaryError):
    """Raised when exporting diary data fails."""


# Error codes for specific error types
class ErrorCodes(StrEnum):
    """Standardized error codes."""

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    INVALID_FORMAT = "INVALID_FORMAT"
    MISSING_REQUIRED = "MISSING_REQUIRED"
    INVALID_SCORE = "INVALID_SCORE"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"

    # Database errors
    DB_CONNECTION_FAILED = "DB_CONNECTION_FAILED"
    DB_QUERY_FAILED = "DB_QUERY_FAILED"
    DB_INTEGRITY_VIOLATION = "DB_INTEGRITY_VIOLATION"
    DB_INSERT_FAILED = "DB_INSERT_FAILED"
    DB_UPDATE_FAILED = "DB_UPDATE_FAILED"
    DB_DELETE_FAILED = "DB_DELETE_FAILED"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"

    # File operation errors
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_OPERATION_FAILED = "FILE_OPERATION_FAILED"

    # Security errors
    PATH_TRAVERSAL = "PATH_TRAVERSAL"

    # Configuration errors
    CONFIG_INVALID = "CONFIG_INVALID"

    # Export errors
    EXPORT_FAILED = "EXPORT_FAILED"
