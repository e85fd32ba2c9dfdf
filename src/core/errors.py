"""Domain exceptions and error classification utilities."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class DatabaseError(RuntimeError):
    """Raised when a row-table operation fails."""


class RecordNotFoundError(DatabaseError):
    """Raised when a record id does not resolve in its table."""


class NotSupportedError(Exception):
    """Raised by operations that exist on the surface but have no behavior yet."""


class PermissionDeniedError(PermissionError):
    """Raised when a user lacks the role required for an action."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Service errors
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"
    ERR_DATABASE_ERROR = "ERR_DATABASE_ERROR"

    # Domain errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_NOT_SUPPORTED = "ERR_NOT_SUPPORTED"
    ERR_VALIDATION = "ERR_VALIDATION"

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


_ERROR_PATTERNS: dict[Literal["auth", "network"], dict[str, list[str] | set[str]]] = {
    "auth": {
        "phrases": [
            "authentication failed",
            "invalid credentials",
            "unauthorized",
            "invalid token",
            "401",
        ],
        "exception_types": {"AuthenticationError", "BadSignature", "SignatureExpired"},
    },
    "network": {
        "phrases": [
            "connection",
            "timeout",
            "network",
            "503",
            "502",
            "504",
            "unreachable",
        ],
        "exception_types": {"ConnectionError", "TimeoutError"},
    },
}


def _match_error_pattern(*, error_str: str, exception_type: str, pattern_type: Literal["auth", "network"]) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if isinstance(exception, NotSupportedError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_SUPPORTED,
            message="This action is not available yet.",
            suggestion="Check back after the next release.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, PermissionError) or "permission denied" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message="You don't have permission for this action.",
            suggestion="Sign in with an admin account to manage challenges.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, RecordNotFoundError | KeyError) or "not found" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message="We couldn't find what you were looking for.",
            suggestion="Refresh the page and try again.",
            severity=ErrorSeverity.LOW,
        )

    if exception_type == "ValidationError":
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message="Some of the submitted fields are invalid.",
            suggestion="Check the form and try again.",
            severity=ErrorSeverity.LOW,
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="auth"):
        return ErrorResponse(
            code=ErrorCode.ERR_AUTHENTICATION_FAILED,
            message="Invalid email or password.",
            suggestion="Check your credentials and sign in again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return ErrorResponse(
            code=ErrorCode.ERR_NETWORK_ERROR,
            message="Network error occurred.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, DatabaseError):
        return ErrorResponse(
            code=ErrorCode.ERR_DATABASE_ERROR,
            message="We couldn't save your changes.",
            suggestion="Please submit again in a moment.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
