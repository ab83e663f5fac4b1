"""Error taxonomy for the analytics engine.

Arithmetic edge cases (no issues, zero time) are never errors; they resolve to
zero/empty results. Everything below is reported to the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    NOT_APPLICABLE = "NOT_APPLICABLE"
    REPOSITORY_FAILURE = "REPOSITORY_FAILURE"
    CONFLICT = "CONFLICT"
    CANCELLED = "CANCELLED"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION: "The provided data is invalid.",
    ErrorCode.NOT_FOUND: "The requested resource was not found.",
    ErrorCode.NOT_APPLICABLE: "This metric does not apply to the requested entity.",
    ErrorCode.REPOSITORY_FAILURE: "The issue store could not complete the operation.",
    ErrorCode.CONFLICT: "A concurrent update changed the record.",
    ErrorCode.CANCELLED: "The computation was cancelled.",
}


class AnalyticsError(Exception):
    code: ErrorCode = ErrorCode.VALIDATION

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None):
        self.message = message or ERROR_MESSAGES[self.code]
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AnalyticsError):
    code = ErrorCode.VALIDATION


class NotFoundError(AnalyticsError):
    code = ErrorCode.NOT_FOUND


class NotApplicableError(AnalyticsError):
    code = ErrorCode.NOT_APPLICABLE


class RepositoryError(AnalyticsError):
    code = ErrorCode.REPOSITORY_FAILURE


class ConflictError(RepositoryError):
    """Conditional write lost against a concurrent writer."""

    code = ErrorCode.CONFLICT


class ScanCancelledError(AnalyticsError):
    code = ErrorCode.CANCELLED
