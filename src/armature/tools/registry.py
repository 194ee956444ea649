"""Tool registry for managing available tools."""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from armature.config.schema import Config, McpServerConfig
from armature.mcp.manager import McpClientManager
from armature.mcp.models import ServerStatus
from armature.tools.base import Tool
from armature.tools.discovered import DiscoveryError, discover_command_tools
from armature.tools.mcp_tool import DiscoveredMcpTool
from armature.tools.models import ToolSource

logger = logging.getLogger(__name__)

# Function names handed to model clients are limited to this shape
_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")
_MAX_NAME_LENGTH = 63


def sanitize_tool_name(name: str) -> str:
    """Make a server-provided tool name safe to hand to a model client."""
    name = _INVALID_NAME_CHARS.sub("_", name)
    if len(name) > _MAX_NAME_LENGTH:
        name = name[:28] + "___" + name[-32:]
    return name


@dataclass
class DiscoveryReport:
    """Outcome of one discovery pass."""

    subprocess_tools: int = 0
    server_tools: dict[str, int] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        """Number of tools discovered across all sources."""
        return self.subprocess_tools + sum(self.server_tools.values())


class ToolRegistry:
    """Registry for managing available tools.

    One registry per session. Built-in tools are registered once; discovered
    tools (subprocess and MCP) are replaced on every discover_tools() pass.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        mcp_manager: Optional[McpClientManager] = None,
        root: Optional[Path] = None,
    ):
        """Initialize the tool registry.

        Args:
            config: Configuration with discovery and server settings
            mcp_manager: Manager for MCP server connections
            root: Project root discovery commands run in
        """
        self.config = config or Config()
        self.mcp_manager = mcp_manager or McpClientManager()
        self.root = root
        self._tools: dict[str, Tool] = {}
        self.mcp_manager.add_status_listener(self._on_server_status)

    def register(self, tool: Tool) -> None:
        """Register a tool. A tool with the same name is replaced.

        Args:
            tool: Tool instance to register
        """
        if tool.name in self._tools:
            logger.warning(f"Tool with name '{tool.name}' is already registered. Overwriting.")

        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name} ({tool.source.value})")

    def unregister(self, name: str) -> bool:
        """Unregister a tool.

        Args:
            name: Tool name to unregister

        Returns:
            True if tool was unregistered, False if not found
        """
        if name in self._tools:
            del self._tools[name]
            logger.debug(f"Unregistered tool: {name}")
            return True
        return False

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name.

        Args:
            name: Tool name

        Returns:
            Tool instance or None if not found
        """
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """Get list of all registered tools.

        Returns:
            List of all tools
        """
        return list(self._tools.values())

    def list_tool_names(self) -> list[str]:
        """Get list of all registered tool names.

        Returns:
            List of tool names
        """
        return list(self._tools.keys())

    def get_tool_definitions(self) -> list[dict]:
        """Get function declarations for all registered tools.

        Returns:
            List of tool definitions
        """
        return [tool.get_tool_definition() for tool in self._tools.values()]

    def get_tools_by_server(self, server_name: str) -> list[DiscoveredMcpTool]:
        """Get the tools registered from one MCP server.

        Returns:
            Tools sorted by name
        """
        tools = [
            tool
            for tool in self._tools.values()
            if isinstance(tool, DiscoveredMcpTool) and tool.server_name == server_name
        ]
        return sorted(tools, key=lambda t: t.name)

    def _remove_discovered_tools(self) -> None:
        for name in [n for n, t in self._tools.items() if t.source != ToolSource.BUILTIN]:
            del self._tools[name]

    def _remove_server_tools(self, server_name: str) -> list[str]:
        removed = [tool.name for tool in self.get_tools_by_server(server_name)]
        for name in removed:
            del self._tools[name]
        return removed

    def _on_server_status(self, server_name: str, status: ServerStatus) -> None:
        if status == ServerStatus.DISCONNECTED:
            removed = self._remove_server_tools(server_name)
            if removed:
                logger.info(f"MCP server '{server_name}' disconnected, removed tools: {', '.join(removed)}")

    async def discover_tools(self) -> DiscoveryReport:
        """Re-scan all discovery sources.

        Previously discovered tools are removed and every MCP connection is
        closed first, so repeated discovery never leaves stale tools behind.
        A failing source is logged and skipped.

        Returns:
            What was found, with per-source errors
        """
        report = DiscoveryReport()

        self._remove_discovered_tools()
        await self.mcp_manager.disconnect_all()

        await self._discover_command_tools(report)
        await self._discover_mcp_tools(report)

        logger.info(f"Tool discovery complete: {report.total} tools discovered")
        return report

    async def _discover_command_tools(self, report: DiscoveryReport) -> None:
        tools_config = self.config.tools
        if not tools_config.discovery_command:
            return
        if not tools_config.call_command:
            message = "tools.call_command is not configured"
            logger.error(f"Skipping tool discovery command: {message}")
            report.errors[tools_config.discovery_command] = message
            return

        try:
            tools = await discover_command_tools(
                tools_config.discovery_command,
                tools_config.call_command,
                cwd=str(self.root) if self.root else None,
                timeout=tools_config.discovery_timeout,
            )
        except DiscoveryError as e:
            logger.error(str(e))
            report.errors[e.source] = str(e)
            return

        for tool in tools:
            self.register(tool)
        report.subprocess_tools = len(tools)

    async def _discover_mcp_tools(self, report: DiscoveryReport) -> None:
        servers = self.config.mcp_servers
        if not servers:
            return

        names = list(servers)
        results = await asyncio.gather(
            *(self._discover_server(name, servers[name]) for name in names),
            return_exceptions=True,
        )

        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.error(f"Error discovering tools from MCP server '{name}': {result}")
                report.errors[name] = str(result)
                report.server_tools[name] = 0
            elif isinstance(result, str):
                report.errors[name] = result
                report.server_tools[name] = 0
            else:
                report.server_tools[name] = result

    async def _discover_server(self, server_name: str, server_config: McpServerConfig):
        """Connect one server and register its tools.

        Returns:
            Number of tools registered, or the error message on failure
        """
        try:
            connection = await self.mcp_manager.connect(server_name, server_config)
            if not connection.is_connected:
                return connection.error or "not connected"

            declarations = await self.mcp_manager.list_tools(
                server_name, timeout=server_config.connect_timeout
            )
        except Exception as e:
            logger.error(f"Error discovering tools from MCP server '{server_name}': {e}")
            await self.mcp_manager.disconnect(server_name)
            return str(e)

        registered = []
        for declaration in declarations:
            tool = DiscoveredMcpTool(
                self.mcp_manager,
                server_name,
                declaration.name,
                declaration.description,
                declaration.input_schema,
                timeout=server_config.timeout,
                trust=server_config.trust,
                name=sanitize_tool_name(declaration.name),
            )
            # Colliding names get the server as a prefix
            if tool.name in self._tools:
                tool = tool.with_name(sanitize_tool_name(f"{server_name}__{declaration.name}"))
            self.register(tool)
            registered.append(tool.name)

        self.mcp_manager.attribute_tools(server_name, registered)
        logger.info(f"Discovered {len(registered)} tools from MCP server '{server_name}'")
        return len(registered)

    async def close(self) -> None:
        """Drop discovered tools and close every MCP connection."""
        await self.mcp_manager.disconnect_all()
        self._remove_discovered_tools()

    def clear(self) -> None:
        """Clear all registered tools."""
        self._tools.clear()
        logger.debug("Cleared all tools from registry")

    def __len__(self) -> int:
        """Get number of registered tools."""
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        """Check if tool is registered."""
        return name in self._tools

    def __str__(self) -> str:
        """String representation."""
        return f"ToolRegistry({len(self._tools)} tools)"

    def __repr__(self) -> str:
        """Representation."""
        tools = ", ".join(self._tools.keys())
        return f"<ToolRegistry tools=[{tools}]>"


__all__ = ["DiscoveryError", "DiscoveryReport", "ToolRegistry", "sanitize_tool_name"]
