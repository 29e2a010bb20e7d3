"""Error classification utilities for storage and import/export failures."""

import json
from enum import Enum

from pydantic import BaseModel, ValidationError


class ErrorCategory(Enum):
    """Categories of errors the durable store can run into."""

    IO_ERROR = "io_error"
    PERMISSION_DENIED = "permission_denied"
    CORRUPT_DATA = "corrupt_data"
    EMPTY_PAYLOAD = "empty_payload"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    TOO_MANY_TASKS = "too_many_tasks"
    LOCK_UNAVAILABLE = "lock_unavailable"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # File system errors
    ERR_IO = "ERR_IO"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_LOCK_UNAVAILABLE = "ERR_LOCK_UNAVAILABLE"

    # Payload errors
    ERR_CORRUPT_DATA = "ERR_CORRUPT_DATA"
    ERR_EMPTY_PAYLOAD = "ERR_EMPTY_PAYLOAD"
    ERR_PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    ERR_TOO_MANY_TASKS = "ERR_TOO_MANY_TASKS"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    category: ErrorCategory
    message: str
    suggestion: str
    severity: ErrorSeverity


_RESPONSES: dict[ErrorCategory, ErrorResponse] = {
    ErrorCategory.IO_ERROR: ErrorResponse(
        code=ErrorCode.ERR_IO,
        category=ErrorCategory.IO_ERROR,
        message="The file could not be read or written.",
        suggestion="Check that the disk is available and the file is not open elsewhere.",
        severity=ErrorSeverity.MEDIUM,
    ),
    ErrorCategory.PERMISSION_DENIED: ErrorResponse(
        code=ErrorCode.ERR_PERMISSION_DENIED,
        category=ErrorCategory.PERMISSION_DENIED,
        message="Access to the file was denied.",
        suggestion="Choose a location you have write access to.",
        severity=ErrorSeverity.MEDIUM,
    ),
    ErrorCategory.CORRUPT_DATA: ErrorResponse(
        code=ErrorCode.ERR_CORRUPT_DATA,
        category=ErrorCategory.CORRUPT_DATA,
        message="The file does not contain valid task data.",
        suggestion="Pick a file that was created with Export.",
        severity=ErrorSeverity.LOW,
    ),
    ErrorCategory.EMPTY_PAYLOAD: ErrorResponse(
        code=ErrorCode.ERR_EMPTY_PAYLOAD,
        category=ErrorCategory.EMPTY_PAYLOAD,
        message="The file is empty.",
        suggestion="Pick a file that was created with Export.",
        severity=ErrorSeverity.LOW,
    ),
    ErrorCategory.PAYLOAD_TOO_LARGE: ErrorResponse(
        code=ErrorCode.ERR_PAYLOAD_TOO_LARGE,
        category=ErrorCategory.PAYLOAD_TOO_LARGE,
        message="The file is too large to import.",
        suggestion="Import files must be smaller than 10 MB.",
        severity=ErrorSeverity.LOW,
    ),
    ErrorCategory.TOO_MANY_TASKS: ErrorResponse(
        code=ErrorCode.ERR_TOO_MANY_TASKS,
        category=ErrorCategory.TOO_MANY_TASKS,
        message="The file contains too many tasks.",
        suggestion="Import files may contain at most 10,000 tasks.",
        severity=ErrorSeverity.LOW,
    ),
    ErrorCategory.LOCK_UNAVAILABLE: ErrorResponse(
        code=ErrorCode.ERR_LOCK_UNAVAILABLE,
        category=ErrorCategory.LOCK_UNAVAILABLE,
        message="Another instance is already running.",
        suggestion="Close the other window before starting again.",
        severity=ErrorSeverity.HIGH,
    ),
    ErrorCategory.UNKNOWN: ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        category=ErrorCategory.UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again. If the problem persists, check the log file.",
        severity=ErrorSeverity.MEDIUM,
    ),
}


def error_response(category: ErrorCategory) -> ErrorResponse:
    """Return the canned user-facing response for a category."""
    return _RESPONSES[category].model_copy()


def classify_storage_error(exception: BaseException) -> ErrorCategory:
    """Classify an exception raised while reading, parsing or writing data files.

    Args:
        exception: The exception raised by file I/O or deserialization

    Returns:
        The matching ErrorCategory
    """
    if isinstance(exception, PermissionError):
        return ErrorCategory.PERMISSION_DENIED
    if isinstance(exception, (json.JSONDecodeError, ValidationError, UnicodeError, RecursionError)):
        return ErrorCategory.CORRUPT_DATA
    if isinstance(exception, OSError):
        return ErrorCategory.IO_ERROR
    if isinstance(exception, (TypeError, ValueError)):
        return ErrorCategory.CORRUPT_DATA
    return ErrorCategory.UNKNOWN


def classify_error_with_response(exception: BaseException) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions."""
    return error_response(classify_storage_error(exception))
