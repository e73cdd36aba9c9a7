"""Tests for the mcp_tool observability decorator."""

import logging

import pytest
from mcp.types import CallToolResult, TextContent

from deepwiki_mcp.core.context import get_correlation_id, sync_request_context
from deepwiki_mcp.core.observability import mcp_tool


class TestMcpTool:
    @pytest.mark.asyncio
    async def test_binds_correlation_id(self, caplog):
        @mcp_tool(tool_name="probe")
        async def probe():
            return get_correlation_id()

        with caplog.at_level(logging.INFO, logger="deepwiki_mcp.core.observability"):
            corr_id = await probe()

        assert corr_id.startswith("tool_")
        assert get_correlation_id() == ""
        assert f"tool=probe correlation_id={corr_id} status=success" in caplog.text

    @pytest.mark.asyncio
    async def test_reuses_existing_correlation_id(self):
        @mcp_tool()
        async def probe():
            return get_correlation_id()

        with sync_request_context("req_outer"):
            assert await probe() == "req_outer"

    @pytest.mark.asyncio
    async def test_error_result_logged_as_failure(self, caplog):
        @mcp_tool(tool_name="failing")
        async def failing():
            return CallToolResult(content=[TextContent(type="text", text="Error: x")], isError=True)

        with caplog.at_level(logging.WARNING, logger="deepwiki_mcp.core.observability"):
            result = await failing()

        assert result.isError is True
        assert "tool=failing" in caplog.text
        assert "status=error" in caplog.text

    @pytest.mark.asyncio
    async def test_exceptions_propagate(self, caplog):
        @mcp_tool(tool_name="raising")
        async def raising():
            raise RuntimeError("boom")

        with caplog.at_level(logging.WARNING, logger="deepwiki_mcp.core.observability"):
            with pytest.raises(RuntimeError):
                await raising()
        assert "error=boom" in caplog.text
