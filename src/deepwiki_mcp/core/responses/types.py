"""
Core types for tool response contracts.

Defines the fundamental building blocks: error codes, error types,
the standard ToolResponse dataclass, and the internal _build_meta() helper.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from deepwiki_mcp.core.context import get_correlation_id


class ErrorCode(str, Enum):
    """Machine-readable error codes for tool responses.

    Codes follow SCREAMING_SNAKE_CASE convention.

    Categories:
        - Validation (input errors)
        - Resource (not found)
        - Access (save location permissions)
        - Automation (browser, submission, remote processing)
        - System (internal, unavailable)
    """

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Resource errors
    QUERY_NOT_CACHED = "QUERY_NOT_CACHED"
    CHAPTER_NOT_FOUND = "CHAPTER_NOT_FOUND"

    # Access errors
    FORBIDDEN = "FORBIDDEN"

    # Automation errors
    BROWSER_NOT_FOUND = "BROWSER_NOT_FOUND"
    SUBMISSION_FAILED = "SUBMISSION_FAILED"
    QUERY_FAILED = "QUERY_FAILED"
    POLL_TIMEOUT = "POLL_TIMEOUT"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAVAILABLE = "UNAVAILABLE"


class ErrorType(str, Enum):
    """Error categories for routing and client-side handling.

    Each type corresponds to an HTTP status code analog and indicates
    whether the operation should be retried.
    """

    VALIDATION = "validation"  # 400 - No retry, fix input
    AUTHORIZATION = "authorization"  # 403 - No retry
    NOT_FOUND = "not_found"  # 404 - No retry
    SETUP = "setup"  # No retry until the environment is fixed
    REMOTE = "remote"  # Remote processing failed - retry may help
    INTERNAL = "internal"  # 500 - Yes, with backoff
    UNAVAILABLE = "unavailable"  # 503 - Yes, with backoff


@dataclass
class ToolResponse:
    """
    Standard response structure for tool operations.

    Attributes:
        success: Whether the operation completed successfully
        data: The primary payload (operation-specific structured data)
        error: Error message if success is False, None otherwise
        meta: Response metadata including version identifier
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": "response-v2"})


def _build_meta() -> Dict[str, Any]:
    """Response metadata: the envelope version plus the bound correlation id."""
    meta: Dict[str, Any] = {"version": "response-v2"}
    request_id = get_correlation_id()
    if request_id:
        meta["request_id"] = request_id
    return meta
