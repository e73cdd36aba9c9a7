"""Schedule-driven polling of the DeepWiki query status endpoint.

The loop checks the endpoint at fixed offsets from its start time.  A 404
means the query has not been registered yet and is expected early on,
especially in deep research mode; any other failure aborts the poll.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from deepwiki_mcp.config.domains import AutomationConfig, PollingConfig
from deepwiki_mcp.core.automation.models import ApiQuery, QueryState, StatusPayload
from deepwiki_mcp.core.errors.automation import (
    PollTimeoutError,
    QueryFailedError,
    StatusEndpointError,
    format_elapsed,
)
from deepwiki_mcp.core.transform.assembler import CollectedResult, collect_result

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


def mode_label(deep: bool) -> str:
    return "deep research" if deep else "regular"


class ProgressTracker:
    """Tracks state and fragment growth of the latest query to spot stalls.

    A stall is diagnostic only: it is logged, never raised.
    """

    def __init__(self, stall_threshold: float, clock: Clock):
        self.stall_threshold = stall_threshold
        self._clock = clock
        self.last_state: Optional[str] = None
        self.last_count = 0
        self.last_change = clock()

    def observe(self, query: ApiQuery) -> bool:
        """Record one observation; return True if the query looks stalled."""
        state = query.state
        count = len(query.response)

        if state != self.last_state or count > self.last_count:
            if state != self.last_state:
                logger.info("Query state changed: %s -> %s", self.last_state or "initial", state)
                self.last_state = state
            if count > self.last_count:
                logger.debug("Response growing: %d -> %d items", self.last_count, count)
            self.last_count = count
            self.last_change = self._clock()

        since_change = self._clock() - self.last_change
        if since_change > self.stall_threshold and query.query_state is QueryState.PENDING:
            logger.warning(
                "No changes detected for %s (state: %s, response items: %d)",
                format_elapsed(int(round(since_change))),
                state,
                count,
            )
            return True
        return False


class QueryPoller:
    """Polls the status endpoint for one query until it reaches a terminal state.

    Args:
        automation: Provides the API base URL and user agent
        polling: Provides schedules, stall thresholds and request timeout
        client: Optional pre-built httpx client (not closed by the poller)
        clock: Monotonic clock in seconds
        sleep: Coroutine used to wait between checks
    """

    def __init__(
        self,
        automation: AutomationConfig,
        polling: PollingConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.automation = automation
        self.polling = polling
        self._client = client
        self._clock = clock
        self._sleep = sleep
        self.attempts = 0

    def status_url(self, query_id: str) -> str:
        return f"{self.automation.api_base_url.rstrip('/')}/ada/query/{query_id}"

    async def poll(self, query_id: str, deep: bool = False) -> CollectedResult:
        """Poll until done/complete and return the collected conversation.

        Raises:
            QueryFailedError: The remote engine reported an error
            StatusEndpointError: The endpoint failed with anything but 404
            PollTimeoutError: The schedule ran out without a terminal state
        """
        if self._client is not None:
            return await self._poll(self._client, query_id, deep)

        headers = {"Accept": "application/json", "User-Agent": self.automation.user_agent}
        async with httpx.AsyncClient(timeout=self.polling.request_timeout, headers=headers) as client:
            return await self._poll(client, query_id, deep)

    async def _poll(self, client: httpx.AsyncClient, query_id: str, deep: bool) -> CollectedResult:
        url = self.status_url(query_id)
        schedule: List[int] = self.polling.schedule_for(deep)
        mode = mode_label(deep)
        start = self._clock()
        tracker = ProgressTracker(self.polling.stall_threshold_for(deep), self._clock)
        self.attempts = 0

        logger.info("Polling %s (%s mode)", url, mode)
        logger.debug("Check schedule: %s", " -> ".join(format_elapsed(s) for s in schedule))

        for offset in schedule:
            wait = start + offset - self._clock()
            if wait > 0:
                logger.debug("Next check at %s mark (waiting %.0fs)", format_elapsed(offset), wait)
                await self._sleep(wait)

            self.attempts += 1
            elapsed = self._clock() - start
            logger.debug("Checking status (attempt %d at %s)", self.attempts, format_elapsed(int(round(elapsed))))

            payload = await self._fetch(client, url)
            if payload is None:
                logger.info("Query %s not ready yet (404); will retry at next scheduled time", query_id)
                continue
            if not payload.queries:
                logger.warning("Unexpected status payload without queries for %s", query_id)
                continue

            last = payload.queries[-1]
            tracker.observe(last)
            state = last.query_state

            if state.is_success:
                logger.info(
                    "Query %s completed after %s (%d turns, %d response items)",
                    query_id,
                    format_elapsed(int(round(self._clock() - start))),
                    len(payload.queries),
                    len(last.response),
                )
                return collect_result(payload.queries)
            if state is QueryState.ERROR or last.error_message:
                raise QueryFailedError(last.error_message)
            if state is QueryState.PENDING:
                logger.debug("Still processing (%d items so far)", len(last.response))
            else:
                logger.warning("Unknown query state %r; continuing to poll", last.state)

        elapsed = self._clock() - start
        logger.warning(
            "All scheduled checks completed after %s (%d attempts); last state: %s",
            format_elapsed(int(round(elapsed))),
            self.attempts,
            tracker.last_state or "unknown",
        )
        raise PollTimeoutError(elapsed, mode, tracker.last_state, attempts=self.attempts)

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> Optional[StatusPayload]:
        """Fetch one status payload; None means 404 (not ready)."""
        try:
            response = await client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise StatusEndpointError(f"Status request failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise StatusEndpointError(
                f"API responded with {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise StatusEndpointError(f"Status endpoint returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            logger.warning("Unexpected status payload of type %s", type(body).__name__)
            return StatusPayload()
        try:
            return StatusPayload.model_validate(body)
        except PydanticValidationError as e:
            logger.warning("Unexpected status payload structure: %s", e)
            return StatusPayload()
