"""Browser automation and status polling error classes."""

from typing import Optional


class AutomationError(Exception):
    """Base exception for failures while driving DeepWiki."""


class BrowserNotFoundError(AutomationError):
    """Raised when no usable Chromium executable can be located.

    This is a setup fault rather than a query failure: it is not converted
    into a failed ``AutomationResult`` and reaches the tool handler.
    """

    remediation = "Run: playwright install chromium"

    def __init__(self, searched: Optional[str] = None):
        self.searched = searched
        message = "No Chromium browser found in Playwright cache"
        if searched:
            message += f" ({searched})"
        super().__init__(message)


class SubmissionError(AutomationError):
    """Raised when a question could not be submitted or no query id was produced."""

    def __init__(self, message: str, *, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class GoDeeperError(SubmissionError):
    """Raised when "Go deeper" did not produce a new query."""


class StatusEndpointError(AutomationError):
    """Raised when the status endpoint fails with anything other than 404.

    Attributes:
        status_code: HTTP status, or None for transport errors
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class QueryFailedError(AutomationError):
    """Raised when the remote engine reports the query as failed."""

    def __init__(self, remote_message: Optional[str]):
        self.remote_message = remote_message or "Unknown error"
        super().__init__(f"Query failed: {self.remote_message}")


class PollTimeoutError(AutomationError):
    """Raised when the polling schedule is exhausted without a terminal state.

    Attributes:
        elapsed: Seconds since polling began
        mode: ``"regular"`` or ``"deep research"``
        last_state: Last observed state of the final query (None if never seen)
        attempts: Number of status fetches made
    """

    def __init__(self, elapsed: float, mode: str, last_state: Optional[str], attempts: int = 0):
        self.elapsed = elapsed
        self.mode = mode
        self.last_state = last_state
        self.attempts = attempts
        super().__init__(
            f"Query did not complete within scheduled checks ({mode} mode) "
            f"after {format_elapsed(int(round(elapsed)))}; last state: {last_state or 'unknown'}"
        )


def format_elapsed(seconds: int) -> str:
    """Format whole seconds as ``45s``, ``2m30s`` or ``5m``."""
    if seconds < 60:
        return f"{seconds}s"
    mins, secs = divmod(seconds, 60)
    return f"{mins}m{secs}s" if secs else f"{mins}m"
