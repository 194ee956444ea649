"""MCP tool server support: stdio JSON-RPC client and connection manager."""

from armature.mcp.client import (
    McpCancelledError,
    McpClient,
    McpConnectionError,
    McpError,
    McpRequestError,
    McpTimeoutError,
    is_noise_line,
)
from armature.mcp.manager import McpClientManager
from armature.mcp.models import McpCallResult, McpToolDeclaration, ServerConnection, ServerStatus

__all__ = [
    "McpCallResult",
    "McpCancelledError",
    "McpClient",
    "McpClientManager",
    "McpConnectionError",
    "McpError",
    "McpRequestError",
    "McpTimeoutError",
    "McpToolDeclaration",
    "ServerConnection",
    "ServerStatus",
    "is_noise_line",
]
