"""Data models for MCP tool servers."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from armature.mcp.client import McpClient


class ServerStatus(str, Enum):
    """Connection state of one MCP server."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class McpToolDeclaration(BaseModel):
    """A tool as listed by `tools/list`."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")


class McpCallResult(BaseModel):
    """Structured result of `tools/call`.

    Transport failures are reported here with is_error=True instead of
    being raised, so callers always get a result back.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    content: list[dict[str, Any]] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")
    structured_content: Optional[Any] = Field(default=None, alias="structuredContent")

    @classmethod
    def from_error(cls, message: str) -> "McpCallResult":
        """Wrap a transport or protocol failure."""
        return cls(content=[{"type": "text", "text": message}], is_error=True)

    def text(self) -> str:
        """Flatten the content parts into display text.

        Text parts are joined as-is; anything else is rendered as JSON.
        """
        if not self.content:
            if self.structured_content is not None:
                return json.dumps(self.structured_content, ensure_ascii=False, indent=2)
            return ""

        parts = []
        for part in self.content:
            if part.get("type") == "text":
                parts.append(str(part.get("text", "")))
            else:
                parts.append(json.dumps(part, ensure_ascii=False))
        return "\n".join(parts)


@dataclass
class ServerConnection:
    """One configured server and its live client, for one discovery pass."""

    server_name: str
    display_command: str = ""
    client: Optional["McpClient"] = None
    status: ServerStatus = ServerStatus.CONNECTING
    tool_names: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        """Whether calls can be sent to the server."""
        return self.status == ServerStatus.CONNECTED
