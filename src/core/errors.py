"""Error taxonomy and classification utilities for the task tracker."""

from enum import Enum

from pydantic import BaseModel


class TaskTrackerError(Exception):
    """Base class for all task tracker errors."""


class ValidationError(TaskTrackerError):
    """Request is malformed: bad deadline spec, unknown status, no-op or disallowed transition."""


class ConflictError(TaskTrackerError):
    """Concurrent modification detected (stale version or lost compare-and-set)."""

    def __init__(self, message: str, *, current_version: int | None = None) -> None:
        super().__init__(message)
        self.current_version = current_version


class WriteError(TaskTrackerError):
    """A persistence call failed. The surrounding transaction was rolled back."""

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class NotFoundError(TaskTrackerError, KeyError):
    """An instance, template, or reference id does not resolve."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Request errors
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_INVALID_DEADLINE = "ERR_INVALID_DEADLINE"

    # Concurrency errors
    ERR_CONFLICT = "ERR_CONFLICT"

    # Persistence errors
    ERR_WRITE_FAILED = "ERR_WRITE_FAILED"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"

    # Permission errors
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    status_code: int


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    error_str = str(exception)

    if isinstance(exception, ConflictError):
        return ErrorResponse(
            code=ErrorCode.ERR_CONFLICT,
            message="This task was changed by someone else.",
            suggestion="Reload the task to see its current status and try again.",
            severity=ErrorSeverity.LOW,
            status_code=409,
        )

    if isinstance(exception, ValidationError):
        lowered = error_str.lower()
        if "deadline" in lowered:
            code = ErrorCode.ERR_INVALID_DEADLINE
            suggestion = "Use a whole number with days, weeks, or months."
        elif "transition" in lowered or "already" in lowered:
            code = ErrorCode.ERR_INVALID_STATE_TRANSITION
            suggestion = "Pick a different status for this task."
        else:
            code = ErrorCode.ERR_VALIDATION
            suggestion = "Check the submitted values and try again."
        return ErrorResponse(
            code=code,
            message=error_str,
            suggestion=suggestion,
            severity=ErrorSeverity.LOW,
            status_code=400,
        )

    if isinstance(exception, NotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=error_str or "The requested record could not be found.",
            suggestion="Check the id and try again.",
            severity=ErrorSeverity.LOW,
            status_code=404,
        )

    if isinstance(exception, PermissionError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message="You don't have permission for this action.",
            suggestion="Contact an administrator if you think this is an error.",
            severity=ErrorSeverity.MEDIUM,
            status_code=403,
        )

    if isinstance(exception, WriteError):
        return ErrorResponse(
            code=ErrorCode.ERR_WRITE_FAILED,
            message="Your change could not be saved. Nothing was changed.",
            suggestion="Please try again. If the problem persists, contact support.",
            severity=ErrorSeverity.HIGH,
            status_code=500,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
        status_code=500,
    )
