"""Request context propagation.

Holds the correlation id of the tool invocation currently being served so
that log lines and response envelopes can be tied back to one request.
"""

import contextvars
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar("correlation_id", default="")


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a new correlation id such as ``tool_1a2b3c4d5e6f``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> str:
    """Return the current correlation id, or an empty string outside a request."""
    return _correlation_id.get()


@contextmanager
def sync_request_context(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation id for the duration of the block.

    Works for coroutines too: the context variable is restored when the
    block exits, regardless of how many awaits happen inside it.
    """
    corr_id = correlation_id or generate_correlation_id()
    token = _correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        _correlation_id.reset(token)
