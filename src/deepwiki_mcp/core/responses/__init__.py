"""
Standard response contracts for tool operations.

Re-exports all public symbols from sub-modules. Callers can use
``from deepwiki_mcp.core.responses import success_response``.

Sub-modules:
    types           - ErrorCode, ErrorType, ToolResponse, _build_meta
    builders        - success_response, error_response
"""

from deepwiki_mcp.core.responses.types import (  # noqa: F401
    ErrorCode,
    ErrorType,
    ToolResponse,
    _build_meta,
)
from deepwiki_mcp.core.responses.builders import (  # noqa: F401
    error_response,
    success_response,
)
