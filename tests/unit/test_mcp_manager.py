"""Tests for the MCP client manager."""

import asyncio

import pytest

from armature.config.schema import McpServerConfig
from armature.mcp.client import McpConnectionError
from armature.mcp.manager import McpClientManager
from armature.mcp.models import ServerStatus
from helpers import fake_server_config


class TestMcpClientManager:
    """Tests for McpClientManager."""

    @pytest.mark.asyncio
    async def test_connect_and_list(self):
        """Test a healthy server is connected and listed."""
        manager = McpClientManager()
        try:
            connection = await manager.connect("alpha", fake_server_config("echo", "add"))
            tools = await manager.list_tools("alpha")
        finally:
            await manager.disconnect_all()

        assert connection.status == ServerStatus.CONNECTED
        assert connection.error is None
        assert [tool.name for tool in tools] == ["echo", "add"]

    @pytest.mark.asyncio
    async def test_connect_failure_is_recorded(self):
        """Test an unreachable server is disconnected with an error, not raised."""
        manager = McpClientManager()
        config = McpServerConfig(command="/nonexistent/mcp-server", connect_timeout=5)

        connection = await manager.connect("broken", config)

        assert connection.status == ServerStatus.DISCONNECTED
        assert "Failed to start" in connection.error
        assert manager.get_status("broken") == ServerStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_connect_timeout(self):
        """Test a server that never answers the handshake."""
        manager = McpClientManager()
        config = McpServerConfig(command="sleep", args=["30"], connect_timeout=0.5)

        connection = await manager.connect("silent", config)

        assert connection.status == ServerStatus.DISCONNECTED
        assert "time" in connection.error

    @pytest.mark.asyncio
    async def test_status_listener(self):
        """Test listeners see every transition."""
        manager = McpClientManager()
        seen = []
        manager.add_status_listener(lambda name, status: seen.append((name, status)))

        await manager.connect("alpha", fake_server_config("echo"))
        await manager.disconnect("alpha")

        assert seen == [
            ("alpha", ServerStatus.CONNECTING),
            ("alpha", ServerStatus.CONNECTED),
            ("alpha", ServerStatus.DISCONNECTED),
        ]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_connect(self):
        """Test a raising listener is logged and ignored."""
        manager = McpClientManager()

        def broken_listener(name, status):
            raise RuntimeError("listener bug")

        manager.add_status_listener(broken_listener)
        try:
            connection = await manager.connect("alpha", fake_server_config("echo"))
        finally:
            await manager.disconnect_all()

        assert connection.status == ServerStatus.CONNECTED

    @pytest.mark.asyncio
    async def test_call_tool(self):
        """Test calls are routed to the server."""
        manager = McpClientManager()
        try:
            await manager.connect("alpha", fake_server_config("echo"))
            result = await manager.call_tool("alpha", "echo", {"text": "hi"})
        finally:
            await manager.disconnect_all()

        assert result.is_error is False
        assert result.text() == "hi"

    @pytest.mark.asyncio
    async def test_call_tool_not_connected(self):
        """Test calling an unknown server gives an error result."""
        manager = McpClientManager()

        result = await manager.call_tool("ghost", "echo", {"text": "hi"})

        assert result.is_error is True
        assert "not connected" in result.text()

    @pytest.mark.asyncio
    async def test_list_tools_not_connected(self):
        """Test listing tools of an unknown server raises."""
        manager = McpClientManager()

        with pytest.raises(McpConnectionError):
            await manager.list_tools("ghost")

    @pytest.mark.asyncio
    async def test_attribute_tools(self):
        """Test attribution is kept only for connected servers."""
        manager = McpClientManager()
        try:
            await manager.connect("alpha", fake_server_config("echo"))
            manager.attribute_tools("alpha", ["echo"])
            manager.attribute_tools("ghost", ["nothing"])

            assert manager.get_connection("alpha").tool_names == ["echo"]
            assert manager.get_connection("ghost") is None
        finally:
            await manager.disconnect_all()

    @pytest.mark.asyncio
    async def test_server_exit_marks_disconnected(self):
        """Test a server exiting on its own is noticed."""
        manager = McpClientManager()
        exited = asyncio.Event()
        manager.add_status_listener(
            lambda name, status: exited.set() if status == ServerStatus.DISCONNECTED else None
        )
        config = fake_server_config("echo", extra_args=["--exit-after-init"])

        try:
            await manager.connect("alpha", config)
            await asyncio.wait_for(exited.wait(), timeout=10)

            connection = manager.get_connection("alpha")
            assert connection.status == ServerStatus.DISCONNECTED
            assert connection.error == "server process exited"
            assert connection.tool_names == []
        finally:
            await manager.disconnect_all()

    @pytest.mark.asyncio
    async def test_reconnect_closes_previous_client(self):
        """Test connecting twice under one name replaces the client."""
        manager = McpClientManager()
        try:
            first = await manager.connect("alpha", fake_server_config("echo"))
            old_client = first.client
            second = await manager.connect("alpha", fake_server_config("echo"))

            assert second.client is not old_client
            assert old_client.is_running is False
            assert len(manager) == 1
        finally:
            await manager.disconnect_all()

    @pytest.mark.asyncio
    async def test_disconnect_all(self):
        """Test every transport is closed."""
        manager = McpClientManager()
        await manager.connect("alpha", fake_server_config("echo"))
        await manager.connect("beta", fake_server_config("echo"))
        clients = [conn.client for conn in manager.connections.values()]

        await manager.disconnect_all()

        assert len(manager) == 0
        assert all(not client.is_running for client in clients)
        assert manager.get_status("alpha") == ServerStatus.DISCONNECTED
