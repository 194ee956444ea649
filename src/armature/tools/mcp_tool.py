"""Tools listed by MCP servers."""

import logging
from typing import TYPE_CHECKING, Any, Optional

from armature.approval.models import ConfirmationKind, ConfirmationRequest
from armature.tools.base import Tool
from armature.tools.cancellation import CancellationToken
from armature.tools.models import ToolCallResult, ToolSource

if TYPE_CHECKING:
    from armature.mcp.manager import McpClientManager

logger = logging.getLogger(__name__)


class DiscoveredMcpTool(Tool):
    """Adapter forwarding calls to a tool on an MCP server.

    The registry may rename a tool that collides with an existing one
    (`<server>__<tool>`); `server_tool_name` keeps the name the server knows.
    """

    def __init__(
        self,
        manager: "McpClientManager",
        server_name: str,
        server_tool_name: str,
        description: str,
        parameter_schema: Optional[dict[str, Any]],
        timeout: Optional[float] = None,
        trust: bool = False,
        name: Optional[str] = None,
    ):
        """Initialize the adapter.

        Args:
            manager: Manager owning the server connection
            server_name: Configured server name
            server_tool_name: Tool name as listed by the server
            description: Description as listed by the server
            parameter_schema: inputSchema as listed by the server
            timeout: Per-call timeout in seconds (server default if None)
            trust: Skip confirmation for this server's tools
            name: Registry name, if different from server_tool_name
        """
        self._manager = manager
        self.server_name = server_name
        self.server_tool_name = server_tool_name
        self._name = name or server_tool_name
        self._declared_description = description or ""
        self._schema = parameter_schema if isinstance(parameter_schema, dict) else {}
        self.timeout = timeout
        self.trust = trust
        super().__init__()

    @property
    def name(self) -> str:
        """Registry name."""
        return self._name

    @property
    def display_name(self) -> str:
        """Name shown to the user."""
        return f"{self.server_tool_name} ({self.server_name} MCP Server)"

    @property
    def description(self) -> str:
        """Description as listed by the server."""
        return self._declared_description

    @property
    def parameter_schema(self) -> dict[str, Any]:
        """inputSchema as listed by the server."""
        return self._schema

    @property
    def source(self) -> ToolSource:
        """Listed by an MCP server."""
        return ToolSource.PROTOCOL

    def with_name(self, name: str) -> "DiscoveredMcpTool":
        """Copy of this adapter registered under another name."""
        return DiscoveredMcpTool(
            self._manager,
            self.server_name,
            self.server_tool_name,
            self._declared_description,
            self._schema,
            timeout=self.timeout,
            trust=self.trust,
            name=name,
        )

    async def should_confirm(self, args: dict[str, Any]) -> Optional[ConfirmationRequest]:
        """Confirm calls to untrusted servers."""
        if self.trust:
            return None

        return ConfirmationRequest(
            kind=ConfirmationKind.MCP,
            title="Confirm MCP Tool Execution",
            summary=f"Allow execution of '{self.server_tool_name}' on MCP server '{self.server_name}'?",
            details={"server": self.server_name, "tool": self.server_tool_name, "args": args},
            tool_name=self.server_tool_name,
            server_name=self.server_name,
        )

    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """Call the tool on its server."""
        logger.info(f"Calling MCP tool {self.server_name}.{self.server_tool_name}")
        result = await self._manager.call_tool(
            self.server_name,
            self.server_tool_name,
            args,
            cancel=cancel,
            timeout=self.timeout,
        )

        raw: Any = result.content
        if not raw and result.structured_content is not None:
            raw = result.structured_content
        display = result.text()

        if result.is_error:
            return ToolCallResult(
                raw_content=raw,
                display_content=display,
                is_error=True,
                error=display or f"MCP tool {self.server_tool_name} failed",
            )
        return ToolCallResult.success(raw, display=display)
