"""Shared helpers for the MCP tool handlers.

Handlers raise; these helpers turn the outcome into the ``CallToolResult``
the assistant sees, so failures arrive as readable ``Error: ...`` text with
``isError`` set rather than as a stack trace.
"""

from __future__ import annotations

import logging
from typing import Optional

from mcp.types import CallToolResult, TextContent

from deepwiki_mcp.core.errors import ERROR_MAPPINGS, WikiError
from deepwiki_mcp.core.errors.automation import AutomationError

logger = logging.getLogger(__name__)

# Exceptions whose message is written for the caller.
_EXPECTED_ERRORS = tuple(ERROR_MAPPINGS) + (AutomationError, WikiError)


def text_result(text: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=False)


def format_error(exc: BaseException) -> str:
    """Render an exception as ``Error: <message>`` plus remediation, if any."""
    message = str(exc) or type(exc).__name__
    text = f"Error: {message}"
    remediation: Optional[str] = getattr(exc, "remediation", None)
    if remediation:
        text += f"\n\n{remediation}"
    return text


def error_result(exc: Exception, tool_name: str) -> CallToolResult:
    if isinstance(exc, _EXPECTED_ERRORS):
        logger.warning("%s failed: %s", tool_name, exc)
    else:
        logger.exception("%s raised an unexpected error", tool_name)
    return CallToolResult(content=[TextContent(type="text", text=format_error(exc))], isError=True)


def saved_output_text(file_path: str, markdown: str, show: bool, query_id: Optional[str] = None) -> str:
    """Build the reply for a saved result: header only, or header plus content."""
    header = f"Output saved to: {file_path}"
    if query_id is not None:
        header = f"Query ID: {query_id}\n{header}"
    if not show:
        return header
    return f"{header}\n\n---\n\n{markdown}"
