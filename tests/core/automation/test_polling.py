"""Tests for the schedule-driven status poller.

Uses httpx.MockTransport for the status endpoint and a fake clock whose
sleep advances time instantly.
"""

import logging

import httpx
import pytest

from deepwiki_mcp.config import AutomationConfig, PollingConfig
from deepwiki_mcp.core.automation.models import ApiQuery
from deepwiki_mcp.core.automation.polling import ProgressTracker, QueryPoller, mode_label
from deepwiki_mcp.core.errors import PollTimeoutError, QueryFailedError, StatusEndpointError
from factories import chunk, make_query


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _scripted_transport(responses, seen):
    """Serve ``responses`` in order; each is a status code or (code, json)."""
    iterator = iter(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = next(iterator)
        if isinstance(item, int):
            return httpx.Response(item)
        code, body = item
        return httpx.Response(code, json=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def polling_config():
    return PollingConfig(regular_schedule=[10, 15, 20], deep_schedule=[180, 240])


def _poller(responses, seen, clock, polling_config):
    client = httpx.AsyncClient(transport=_scripted_transport(responses, seen))
    return QueryPoller(AutomationConfig(), polling_config, client=client, clock=clock, sleep=clock.sleep)


class TestQueryPollerSchedule:
    """Tests for schedule handling and terminal states."""

    @pytest.mark.asyncio
    async def test_404_then_done_uses_three_attempts(self, clock, polling_config):
        seen = []
        done = {"queries": [make_query([chunk("Answer")], state="done")]}
        poller = _poller([404, 404, (200, done)], seen, clock, polling_config)

        result = await poller.poll("q-1")

        assert poller.attempts == 3
        assert len(seen) == 3
        assert clock.now == pytest.approx(20)
        assert result.answer == "Answer"

    @pytest.mark.asyncio
    async def test_requests_status_url_with_json_accept(self, clock, polling_config):
        seen = []
        done = {"queries": [make_query(state="complete")]}
        poller = _poller([(200, done)], seen, clock, polling_config)

        await poller.poll("abc-123")

        assert str(seen[0].url) == "https://api.devin.ai/ada/query/abc-123"
        assert seen[0].headers["accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_complete_is_success(self, clock, polling_config):
        payload = {"queries": [make_query([chunk("x")], state="complete")]}
        poller = _poller([(200, payload)], [], clock, polling_config)
        assert (await poller.poll("q")).answer == "x"

    @pytest.mark.asyncio
    async def test_pending_until_exhausted_reports_pending(self, clock, polling_config):
        pending = {"queries": [make_query(state="pending")]}
        poller = _poller([(200, pending)] * 3, [], clock, polling_config)

        with pytest.raises(PollTimeoutError) as exc_info:
            await poller.poll("q-1")

        assert exc_info.value.last_state == "pending"
        assert exc_info.value.mode == "regular"
        assert exc_info.value.attempts == 3
        assert "last state: pending" in str(exc_info.value)
        assert "after 20s" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_deep_mode_uses_deep_schedule(self, clock, polling_config):
        poller = _poller([404, 404], [], clock, polling_config)

        with pytest.raises(PollTimeoutError) as exc_info:
            await poller.poll("q-1", deep=True)

        assert clock.now == pytest.approx(240)
        assert exc_info.value.mode == "deep research"
        assert exc_info.value.last_state is None

    @pytest.mark.asyncio
    async def test_unknown_state_keeps_polling(self, clock, polling_config, caplog):
        odd = {"queries": [make_query(state="thinking")]}
        done = {"queries": [make_query([chunk("ok")], state="done")]}
        poller = _poller([(200, odd), (200, done)], [], clock, polling_config)

        with caplog.at_level(logging.WARNING):
            result = await poller.poll("q")

        assert result.answer == "ok"
        assert "Unknown query state" in caplog.text

    @pytest.mark.asyncio
    async def test_empty_payload_is_skipped(self, clock, polling_config):
        done = {"queries": [make_query([chunk("ok")], state="done")]}
        poller = _poller([(200, {"queries": []}), (200, ["not", "a", "dict"]), (200, done)], [], clock, polling_config)
        assert (await poller.poll("q")).answer == "ok"

    @pytest.mark.asyncio
    async def test_done_with_odd_unconsumed_fields_completes(self, clock, polling_config):
        query = {**make_query([chunk("Answer")], state="done"), "use_knowledge": None, "engine_id": 3}
        poller = _poller([(200, {"queries": [query]})], [], clock, polling_config)

        result = await poller.poll("q-1")

        assert result.answer == "Answer"
        assert poller.attempts == 1

    @pytest.mark.asyncio
    async def test_only_last_query_decides(self, clock, polling_config):
        payload = {
            "queries": [
                make_query([chunk("first")], state="done"),
                make_query([chunk("second")], state="done"),
            ]
        }
        poller = _poller([(200, payload)], [], clock, polling_config)
        result = await poller.poll("q")
        assert result.answer == "first\n\n---\n\nsecond"
        assert len(result.queries) == 2


class TestQueryPollerFailures:
    """Tests for endpoint and remote failures."""

    @pytest.mark.asyncio
    async def test_server_error_aborts_immediately(self, clock, polling_config):
        seen = []
        poller = _poller([500], seen, clock, polling_config)

        with pytest.raises(StatusEndpointError) as exc_info:
            await poller.poll("q")

        assert exc_info.value.status_code == 500
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_transport_error_is_status_endpoint_error(self, clock, polling_config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        poller = QueryPoller(AutomationConfig(), polling_config, client=client, clock=clock, sleep=clock.sleep)

        with pytest.raises(StatusEndpointError) as exc_info:
            await poller.poll("q")
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_status_endpoint_error(self, clock, polling_config):
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        poller = QueryPoller(AutomationConfig(), polling_config, client=client, clock=clock, sleep=clock.sleep)

        with pytest.raises(StatusEndpointError):
            await poller.poll("q")

    @pytest.mark.asyncio
    async def test_error_state_raises_with_remote_text(self, clock, polling_config):
        failed = {"queries": [make_query(state="error", error="Repository not indexed")]}
        poller = _poller([(200, failed)], [], clock, polling_config)

        with pytest.raises(QueryFailedError) as exc_info:
            await poller.poll("q")

        assert exc_info.value.remote_message == "Repository not indexed"
        assert str(exc_info.value) == "Query failed: Repository not indexed"

    @pytest.mark.asyncio
    async def test_error_field_on_pending_query_raises(self, clock, polling_config):
        failed = {"queries": [make_query(state="pending", error="boom")]}
        poller = _poller([(200, failed)], [], clock, polling_config)

        with pytest.raises(QueryFailedError):
            await poller.poll("q")

    @pytest.mark.asyncio
    async def test_structured_error_raises_query_failed(self, clock, polling_config):
        failed = {"queries": [make_query(state="error", error={"message": "boom"})]}
        poller = _poller([(200, failed)], [], clock, polling_config)

        with pytest.raises(QueryFailedError) as exc_info:
            await poller.poll("q")

        assert exc_info.value.remote_message == "boom"


class TestProgressTracker:
    """Tests for stall detection."""

    def _query(self, state="pending", items=0):
        return ApiQuery.model_validate(make_query([chunk("x")] * items, state=state))

    def test_growth_resets_stall_timer(self, clock):
        tracker = ProgressTracker(stall_threshold=60, clock=clock)
        tracker.observe(self._query(items=1))
        clock.now = 50
        assert tracker.observe(self._query(items=2)) is False
        clock.now = 100
        assert tracker.observe(self._query(items=2)) is False
        clock.now = 111
        assert tracker.observe(self._query(items=2)) is True

    def test_stall_logs_warning_and_does_not_raise(self, clock, caplog):
        tracker = ProgressTracker(stall_threshold=60, clock=clock)
        tracker.observe(self._query(items=1))
        clock.now = 125
        with caplog.at_level(logging.WARNING):
            assert tracker.observe(self._query(items=1)) is True
        assert "No changes detected for 2m5s" in caplog.text

    def test_non_pending_state_never_stalls(self, clock):
        tracker = ProgressTracker(stall_threshold=60, clock=clock)
        tracker.observe(self._query(state="thinking"))
        clock.now = 500
        assert tracker.observe(self._query(state="thinking")) is False

    def test_mode_label(self):
        assert mode_label(True) == "deep research"
        assert mode_label(False) == "regular"


class TestStallThresholdByMode:
    """Tests that the poller uses the per-mode stall threshold."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("deep,expect_warning", [(False, True), (True, False)])
    async def test_stall_warning_after_75s_only_in_regular_mode(self, clock, caplog, deep, expect_warning):
        polling = PollingConfig(regular_schedule=[10, 85], deep_schedule=[10, 85])
        pending = {"queries": [make_query([chunk("x")], state="pending")]}
        poller = _poller([(200, pending)] * 2, [], clock, polling)

        with caplog.at_level(logging.WARNING, logger="deepwiki_mcp.core.automation.polling"):
            with pytest.raises(PollTimeoutError):
                await poller.poll("q", deep=deep)

        assert ("No changes detected for 1m15s" in caplog.text) is expect_warning
