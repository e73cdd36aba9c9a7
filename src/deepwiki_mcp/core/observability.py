"""Observability decorator for MCP tool handlers.

``@mcp_tool`` assigns a correlation id to each invocation (unless one is
already bound), then logs the tool name, duration and outcome.
"""

import functools
import logging
import time
from typing import Any, Callable, Optional, TypeVar

from deepwiki_mcp.core.context import (
    generate_correlation_id,
    get_correlation_id,
    sync_request_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_invocation(name: str, corr_id: str, success: bool, duration_ms: float, error: Optional[str]) -> None:
    if success:
        logger.info("tool=%s correlation_id=%s status=success duration_ms=%.2f", name, corr_id, duration_ms)
    else:
        logger.warning(
            "tool=%s correlation_id=%s status=error duration_ms=%.2f error=%s",
            name,
            corr_id,
            duration_ms,
            error,
        )


def mcp_tool(tool_name: Optional[str] = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for async MCP tool handlers with observability.

    Automatically:
    - Binds a correlation id for the call
    - Logs invocation outcome and latency

    Args:
        tool_name: Override tool name (defaults to function name)
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = tool_name or func.__name__

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            existing_corr_id = get_correlation_id()
            corr_id = existing_corr_id or generate_correlation_id(prefix="tool")

            if not existing_corr_id:
                with sync_request_context(correlation_id=corr_id):
                    return await _async_tool_impl(corr_id, *args, **kwargs)
            return await _async_tool_impl(corr_id, *args, **kwargs)

        async def _async_tool_impl(_corr_id: str, *args: Any, **kwargs: Any) -> T:
            start = time.perf_counter()
            success = True
            error_msg = None
            try:
                result = await func(*args, **kwargs)  # type: ignore[misc]
                if getattr(result, "isError", False):
                    success = False
                    error_msg = "returned error result"
                return result
            except Exception as e:
                success = False
                error_msg = str(e)
                raise
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                _log_invocation(name, _corr_id, success, duration_ms, error_msg)

        return async_wrapper  # type: ignore[return-value]

    return decorator
