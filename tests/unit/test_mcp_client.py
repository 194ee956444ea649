"""Tests for the MCP stdio client."""

import asyncio
import logging
import sys

import pytest
import pytest_asyncio

from armature.mcp.client import (
    McpCancelledError,
    McpClient,
    McpConnectionError,
    McpRequestError,
    McpTimeoutError,
    is_noise_line,
)
from armature.tools.cancellation import CancellationToken
from helpers import FAKE_MCP_SERVER


@pytest.mark.parametrize(
    "line,noise",
    [
        ("[2025-01-01] INFO request handled", True),
        ("INFO: listening", True),
        ("12:00:01 INF started", True),
        ("", True),
        ("WARNING: disk almost full", False),
        ("Error: could not open database", False),
    ],
)
def test_is_noise_line(line, noise):
    """Test informational stderr lines are filtered."""
    assert is_noise_line(line) is noise


def _client(*server_args: str, **kwargs) -> McpClient:
    return McpClient("fake", sys.executable, [str(FAKE_MCP_SERVER), *server_args], **kwargs)


@pytest_asyncio.fixture
async def client():
    """Connected client to the fake server with echo, add, error and slow tools."""
    mcp = _client("--tools", "echo,add,error,slow")
    await mcp.connect(timeout=15)
    yield mcp
    await mcp.close()


class TestMcpClient:
    """Tests for McpClient."""

    @pytest.mark.asyncio
    async def test_handshake(self, client):
        """Test initialize records server info."""
        assert client.is_running
        assert client.server_info == {"name": "fake", "version": "1.0"}
        assert "tools" in client.server_capabilities

    @pytest.mark.asyncio
    async def test_list_tools(self, client):
        """Test tool declarations."""
        tools = await client.list_tools()

        assert [tool.name for tool in tools] == ["echo", "add", "error", "slow"]
        assert tools[0].input_schema["required"] == ["text"]

    @pytest.mark.asyncio
    async def test_list_tools_follows_pagination(self):
        """Test nextCursor pages are all fetched."""
        mcp = _client("--tools", "a,b,c", "--page-size", "2")
        try:
            await mcp.connect(timeout=15)
            tools = await mcp.list_tools()
        finally:
            await mcp.close()

        assert [tool.name for tool in tools] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_call_tool_text(self, client):
        """Test a text result."""
        result = await client.call_tool("echo", {"text": "hello"})

        assert result.is_error is False
        assert result.text() == "hello"

    @pytest.mark.asyncio
    async def test_call_tool_structured(self, client):
        """Test structured content."""
        result = await client.call_tool("add", {"a": 2, "b": 3})

        assert result.structured_content == {"sum": 5}
        assert '"sum": 5' in result.text()

    @pytest.mark.asyncio
    async def test_call_tool_error_result(self, client):
        """Test isError results are passed through."""
        result = await client.call_tool("error", {})

        assert result.is_error is True
        assert result.text() == "tool failed"

    @pytest.mark.asyncio
    async def test_unknown_method_raises_request_error(self, client):
        """Test JSON-RPC errors."""
        with pytest.raises(McpRequestError) as exc_info:
            await client.request("resources/list")

        assert exc_info.value.code == -32601

    @pytest.mark.asyncio
    async def test_timeout_abandons_request(self, client):
        """Test a timed out request does not block later ones."""
        with pytest.raises(McpTimeoutError):
            await client.call_tool("slow", {"seconds": 2}, timeout=0.2)

        result = await client.call_tool("echo", {"text": "still alive"})
        assert result.text() == "still alive"

    @pytest.mark.asyncio
    async def test_cancel_sends_notification(self, client, caplog):
        """Test cancellation is forwarded and the late response is discarded."""
        cancel = CancellationToken()

        with caplog.at_level(logging.WARNING, logger="armature.mcp.client"):
            task = asyncio.create_task(client.call_tool("slow", {"seconds": 1}, cancel=cancel))
            await asyncio.sleep(0.2)
            cancel.cancel("user cancelled")

            with pytest.raises(McpCancelledError):
                await task

            # Late response arrives after about a second and is dropped
            await asyncio.sleep(1.2)
            result = await client.call_tool("echo", {"text": "next"})

        assert result.text() == "next"
        assert any("cancelled request" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_stderr_is_logged_without_noise(self, caplog):
        """Test server diagnostics reach the log, INFO chatter does not."""
        mcp = _client()
        with caplog.at_level(logging.WARNING, logger="armature.mcp.client"):
            try:
                await mcp.connect(timeout=15)
                await mcp.list_tools()
                await asyncio.sleep(0.2)
            finally:
                await mcp.close()

        messages = [r.getMessage() for r in caplog.records]
        assert any("fake server warning: ready" in m for m in messages)
        assert not any("starting up" in m for m in messages)

    @pytest.mark.asyncio
    async def test_close_stops_server(self):
        """Test close() stops the process and later requests fail."""
        mcp = _client()
        await mcp.connect(timeout=15)

        await mcp.close()

        assert mcp.is_running is False
        with pytest.raises(McpConnectionError):
            await mcp.list_tools()

    @pytest.mark.asyncio
    async def test_start_failure(self):
        """Test an unknown command."""
        mcp = McpClient("missing", "/nonexistent/mcp-server")

        with pytest.raises(McpConnectionError, match="Failed to start"):
            await mcp.connect(timeout=5)

    @pytest.mark.asyncio
    async def test_unexpected_exit_calls_on_exit(self):
        """Test the exit callback fires when the server dies on its own."""
        exited = asyncio.Event()
        mcp = _client("--exit-after-init", on_exit=exited.set)

        try:
            await mcp.connect(timeout=15)
            await asyncio.wait_for(exited.wait(), timeout=10)
        finally:
            await mcp.close()

        assert exited.is_set()
