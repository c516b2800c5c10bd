"""
Centralized Error Handling Utilities

Provides user-friendly error messages and consistent error response format.
"""

from typing import Optional, Dict, Any
from enum import Enum
import structlog
from fastapi import HTTPException, status

logger = structlog.get_logger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for consistent API responses"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Reporting errors
    MISSING_RANGE = "MISSING_RANGE"
    INVALID_RANGE = "INVALID_RANGE"

    # Record store errors
    RECORD_STORE_ERROR = "RECORD_STORE_ERROR"
    RECORD_STORE_UNAVAILABLE = "RECORD_STORE_UNAVAILABLE"


# User-friendly error messages (do not expose internal details)
USER_FRIENDLY_MESSAGES = {
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again later.",
    ErrorCode.VALIDATION_ERROR: "The request contains invalid data. Please check your input.",
    ErrorCode.NOT_FOUND: "The requested resource was not found.",

    ErrorCode.MISSING_RANGE: "A custom period needs both a start and an end date.",
    ErrorCode.INVALID_RANGE: "The end of the period must not be before its start.",

    ErrorCode.RECORD_STORE_ERROR: "Unable to load report data. Please try again later.",
    ErrorCode.RECORD_STORE_UNAVAILABLE: "Report data is temporarily unavailable. Please try again later.",
}


def create_error_response(
    code: ErrorCode,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        code: Error code enum
        message: Optional custom message (defaults to user-friendly message)
        details: Optional additional details (be careful not to expose sensitive info)

    Returns:
        Standardized error response dict
    """
    return {
        "success": False,
        "error": {
            "code": code.value,
            "message": message or USER_FRIENDLY_MESSAGES.get(code, USER_FRIENDLY_MESSAGES[ErrorCode.INTERNAL_ERROR]),
            **({"details": details} if details else {}),
        }
    }


def raise_validation_error(
    message: str,
    field: Optional[str] = None,
    code: ErrorCode = ErrorCode.VALIDATION_ERROR,
) -> None:
    """
    Raise a 400 Validation error with user-friendly message.

    Args:
        message: Description of what's invalid
        field: Optional field name that has the error
        code: Error code, VALIDATION_ERROR unless a more specific one applies
    """
    details = {"field": field} if field else None

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=create_error_response(code, message, details),
    )


def raise_record_store_error(
    report: str,
    exception: Optional[Exception] = None,
) -> None:
    """
    Raise a 502 error for a failed report query.

    A single failed query fails the whole report; no partial data is returned.

    Args:
        report: Report that failed (e.g., "dashboard summary")
        exception: Optional exception to log
    """
    log_message = f"Record store error while building {report}"
    if exception:
        logger.error(log_message, error=str(exception), exc_info=True)

    # Check for connection errors
    error_str = str(getattr(exception, "cause", None) or exception or "").lower()

    if "connect" in error_str or "timed out" in error_str or "not initialized" in error_str:
        code = ErrorCode.RECORD_STORE_UNAVAILABLE
    else:
        code = ErrorCode.RECORD_STORE_ERROR

    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=create_error_response(code),
    )
