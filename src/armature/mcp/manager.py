"""Lifecycle management for MCP server connections."""

import asyncio
import logging
from typing import Any, Callable, Optional

from armature.config.schema import McpServerConfig
from armature.mcp.client import McpCancelledError, McpClient, McpConnectionError, McpError
from armature.mcp.models import McpCallResult, McpToolDeclaration, ServerConnection, ServerStatus
from armature.tools.cancellation import CancellationToken

logger = logging.getLogger(__name__)

StatusListener = Callable[[str, ServerStatus], None]
ClientFactory = Callable[..., McpClient]


class McpClientManager:
    """Owns one connection per configured MCP server.

    Failures are isolated per server: connect() never raises for a server
    that cannot be reached, it records the connection as disconnected with
    the error instead. A disconnected connection has no tools attributed.
    """

    def __init__(self, client_factory: ClientFactory = McpClient):
        """Initialize the manager.

        Args:
            client_factory: Callable building an McpClient (replaceable in tests)
        """
        self._client_factory = client_factory
        self._connections: dict[str, ServerConnection] = {}
        self._listeners: list[StatusListener] = []

    @property
    def connections(self) -> dict[str, ServerConnection]:
        """Snapshot of all connections by server name."""
        return dict(self._connections)

    def get_connection(self, server_name: str) -> Optional[ServerConnection]:
        """Get the connection for a server."""
        return self._connections.get(server_name)

    def get_status(self, server_name: str) -> ServerStatus:
        """Get a server's status (DISCONNECTED when unknown)."""
        connection = self._connections.get(server_name)
        return connection.status if connection else ServerStatus.DISCONNECTED

    def add_status_listener(self, listener: StatusListener) -> None:
        """Register a callback for status transitions."""
        self._listeners.append(listener)

    def _set_status(
        self, connection: ServerConnection, status: ServerStatus, error: Optional[str] = None
    ) -> None:
        if connection.status == status and status == ServerStatus.DISCONNECTED:
            return

        connection.status = status
        if status == ServerStatus.DISCONNECTED:
            connection.tool_names = []
            connection.error = error
        elif status == ServerStatus.CONNECTED:
            connection.error = None

        for listener in list(self._listeners):
            try:
                listener(connection.server_name, status)
            except Exception as e:
                logger.warning(f"MCP status listener error: {e}")

    async def connect(self, server_name: str, config: McpServerConfig) -> ServerConnection:
        """Spawn a server and perform the handshake.

        Bounded by config.connect_timeout. Any existing connection under the
        same name is closed first.

        Returns:
            The connection, CONNECTED on success or DISCONNECTED with `error`
        """
        if server_name in self._connections:
            await self.disconnect(server_name)

        connection = ServerConnection(server_name=server_name, display_command=config.display_command)
        self._connections[server_name] = connection
        self._set_status(connection, ServerStatus.CONNECTING)

        client = self._client_factory(
            server_name,
            config.command,
            config.args,
            env=config.env,
            cwd=config.cwd,
            request_timeout=config.timeout,
            on_exit=lambda: self._handle_exit(server_name, client),
        )
        connection.client = client

        error: Optional[str] = None
        try:
            await asyncio.wait_for(client.connect(timeout=config.connect_timeout), timeout=config.connect_timeout)
        except asyncio.TimeoutError:
            error = f"connect timed out after {config.connect_timeout}s"
        except (McpError, OSError) as e:
            error = str(e)

        if error is not None:
            logger.error(
                f"Failed to connect to MCP server '{server_name}' ({config.display_command}): {error}"
            )
            await client.close()
            self._set_status(connection, ServerStatus.DISCONNECTED, error)
            return connection

        self._set_status(connection, ServerStatus.CONNECTED)
        logger.info(f"Connected to MCP server: {server_name} ({config.display_command})")
        return connection

    def _require_connected(self, server_name: str) -> ServerConnection:
        connection = self._connections.get(server_name)
        if connection is None or not connection.is_connected or connection.client is None:
            raise McpConnectionError(f"MCP server '{server_name}' is not connected")
        return connection

    async def list_tools(self, server_name: str, timeout: Optional[float] = None) -> list[McpToolDeclaration]:
        """List the tools of a connected server.

        Raises:
            McpError: If the server is not connected or the request fails
        """
        connection = self._require_connected(server_name)
        return await connection.client.list_tools(timeout=timeout)

    def attribute_tools(self, server_name: str, tool_names: list[str]) -> None:
        """Record which registered tools belong to a connected server."""
        connection = self._connections.get(server_name)
        if connection is not None and connection.is_connected:
            connection.tool_names = list(tool_names)

    async def call_tool(
        self,
        server_name: str,
        tool_name: str,
        args: dict[str, Any],
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> McpCallResult:
        """Call a tool on a server.

        Transport and protocol failures come back as an error result instead
        of an exception.
        """
        try:
            connection = self._require_connected(server_name)
            return await connection.client.call_tool(tool_name, args, timeout=timeout, cancel=cancel)
        except McpCancelledError:
            logger.info(f"MCP call {server_name}.{tool_name} cancelled")
            return McpCallResult.from_error(f"Tool call {tool_name} on '{server_name}' was cancelled")
        except McpError as e:
            logger.error(f"MCP call {server_name}.{tool_name} failed: {e}")
            return McpCallResult.from_error(str(e))

    def _handle_exit(self, server_name: str, client: McpClient) -> None:
        connection = self._connections.get(server_name)
        if connection is not None and connection.client is client:
            self._set_status(connection, ServerStatus.DISCONNECTED, "server process exited")

    async def disconnect(self, server_name: str) -> None:
        """Close one server's transport and forget it."""
        connection = self._connections.pop(server_name, None)
        if connection is None:
            return

        if connection.client is not None:
            try:
                await connection.client.close()
            except Exception as e:
                logger.warning(f"Error closing MCP server '{server_name}': {e}")
        self._set_status(connection, ServerStatus.DISCONNECTED, connection.error)

    async def disconnect_all(self) -> None:
        """Close every transport and clear the connection map."""
        names = list(self._connections)
        if names:
            logger.debug(f"Disconnecting MCP servers: {', '.join(names)}")
        await asyncio.gather(*(self.disconnect(name) for name in names))
        self._connections.clear()

    def __len__(self) -> int:
        return len(self._connections)

    def __repr__(self) -> str:
        """Representation."""
        states = ", ".join(f"{name}={conn.status.value}" for name, conn in self._connections.items())
        return f"<McpClientManager {states}>"
