"""Unified error hierarchy for deepwiki-mcp.

All custom exception classes are defined in domain-specific modules within
this package. This __init__.py re-exports everything for convenient access.

Usage:
    from deepwiki_mcp.core.errors import PollTimeoutError, error_to_response
"""

# --- Authorization errors ---
from deepwiki_mcp.core.errors.authorization import PathValidationError

# --- Automation errors ---
from deepwiki_mcp.core.errors.automation import (
    AutomationError,
    BrowserNotFoundError,
    GoDeeperError,
    PollTimeoutError,
    QueryFailedError,
    StatusEndpointError,
    SubmissionError,
    format_elapsed,
)

# --- Base / Registry ---
from deepwiki_mcp.core.errors.base import ERROR_MAPPINGS, error_to_response

# --- Validation errors ---
from deepwiki_mcp.core.errors.validation import CacheMissError, ValidationError

# --- Wiki errors ---
from deepwiki_mcp.core.errors.wiki import WikiError, WikiFetchError, WikiParseError

__all__ = [
    "ERROR_MAPPINGS",
    "AutomationError",
    "BrowserNotFoundError",
    "CacheMissError",
    "GoDeeperError",
    "PathValidationError",
    "PollTimeoutError",
    "QueryFailedError",
    "StatusEndpointError",
    "SubmissionError",
    "ValidationError",
    "WikiError",
    "WikiFetchError",
    "WikiParseError",
    "error_to_response",
    "format_elapsed",
]
