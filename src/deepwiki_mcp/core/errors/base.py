"""Error-to-ErrorCode mapping registry.

Provides a centralized mapping from exception types to (ErrorCode, ErrorType) tuples,
enabling consistent error response generation across the codebase.

Usage:
    from deepwiki_mcp.core.errors.base import error_to_response

    try:
        do_something()
    except Exception as e:
        result = error_to_response(e)
        if result is not None:
            return result
        raise  # Unknown error, re-raise
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Dict, Optional, Tuple, Type

from deepwiki_mcp.core.errors.authorization import PathValidationError
from deepwiki_mcp.core.errors.automation import (
    BrowserNotFoundError,
    GoDeeperError,
    PollTimeoutError,
    QueryFailedError,
    StatusEndpointError,
    SubmissionError,
)
from deepwiki_mcp.core.errors.validation import CacheMissError, ValidationError
from deepwiki_mcp.core.errors.wiki import WikiFetchError, WikiParseError
from deepwiki_mcp.core.responses.types import (
    ErrorCode,
    ErrorType,
)

ERROR_MAPPINGS: Dict[Type[Exception], Tuple[ErrorCode, ErrorType]] = {
    # --- Automation errors ---
    BrowserNotFoundError: (ErrorCode.BROWSER_NOT_FOUND, ErrorType.SETUP),
    SubmissionError: (ErrorCode.SUBMISSION_FAILED, ErrorType.UNAVAILABLE),
    GoDeeperError: (ErrorCode.SUBMISSION_FAILED, ErrorType.UNAVAILABLE),
    StatusEndpointError: (ErrorCode.UNAVAILABLE, ErrorType.UNAVAILABLE),
    QueryFailedError: (ErrorCode.QUERY_FAILED, ErrorType.REMOTE),
    PollTimeoutError: (ErrorCode.POLL_TIMEOUT, ErrorType.UNAVAILABLE),
    # --- Caller input errors ---
    ValidationError: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    CacheMissError: (ErrorCode.QUERY_NOT_CACHED, ErrorType.VALIDATION),
    # --- Authorization errors ---
    PathValidationError: (ErrorCode.FORBIDDEN, ErrorType.AUTHORIZATION),
    # --- Wiki errors ---
    WikiFetchError: (ErrorCode.UNAVAILABLE, ErrorType.UNAVAILABLE),
    WikiParseError: (ErrorCode.CHAPTER_NOT_FOUND, ErrorType.NOT_FOUND),
}


def error_to_response(exc: Exception) -> Optional[dict]:
    """Convert a known exception to a standard error_response dict, or None if unknown.

    Looks up the exception's *exact* type in ERROR_MAPPINGS and, if found,
    generates a standardized error response using the mapped ErrorCode and ErrorType.

    Args:
        exc: The exception to convert.

    Returns:
        A dict suitable for a tool response, or None if the exception type
        is not registered in ERROR_MAPPINGS.
    """
    mapping = ERROR_MAPPINGS.get(type(exc))
    if mapping is None:
        return None

    from deepwiki_mcp.core.responses.builders import error_response

    code, error_type = mapping
    remediation = getattr(exc, "remediation", None)
    return asdict(error_response(str(exc), error_code=code, error_type=error_type, remediation=remediation))
