"""
Error message sanitization.

Remote store and LLM errors can carry table names, keys, or stack fragments.
Everything returned to an API client goes through here first.
"""

from __future__ import annotations

import re

from nexticket.observability.logging import get_logger

logger = get_logger(__name__)

# Patterns that might leak sensitive information
SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.py",
    r"[A-Za-z]:\\[^\s]+",
    # Stack trace indicators
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    # PostgREST / Postgres internals
    r"PGRST\d+",
    r"violates (unique|foreign key|check) constraint",
    r"relation \".*\" does not exist",
    r"column \".*\" does not exist",
    r"rest/v1/",
    r"storage/v1/",
    # API keys / secrets patterns
    r"[A-Za-z0-9_-]{32,}",
    r"Bearer [A-Za-z0-9._-]+",
    r"eyJ[A-Za-z0-9._-]+",
    # Internal module names
    r"nexticket\.[a-z_.]+",
]

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Authentication required.",
    403: "Access denied.",
    404: "Resource not found.",
    409: "The record changed. Reload and try again.",
    422: "Invalid data format.",
    500: "An internal error occurred. Please try again later.",
    502: "The remote store rejected the change. Your view was reloaded.",
    503: "Service temporarily unavailable.",
}


def sanitize_error_message(message: str, status_code: int = 500) -> str:
    """
    Sanitize an error message for client consumption.

    Short, plain messages pass through for 4xx and 502; anything matching a
    sensitive pattern, or any other 5xx, becomes the generic message.
    """
    generic = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message:
        return generic

    for pattern in SENSITIVE_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            logger.warning("Sanitized sensitive error pattern: %s", pattern)
            return generic

    passthrough = status_code < 500 or status_code == 502
    if (
        passthrough
        and len(message) < 120
        and not any(c in message for c in ["{", "}", "[", "]", "\n"])
    ):
        return message

    return generic


def get_safe_error_detail(
    error: Exception,
    status_code: int = 500,
    context: str | None = None,
) -> str:
    """
    Get a safe error detail string for HTTP responses.

    Args:
        error: The exception that occurred
        status_code: HTTP status code
        context: Optional message used instead of the error text for 5xx

    Returns:
        Safe error message for client
    """
    logger.error("Error (status=%d): %s - %s", status_code, type(error).__name__, str(error))

    if context and status_code >= 500:
        return context
    return sanitize_error_message(str(error), status_code)
