"""Data models for the tool system."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ToolSource(str, Enum):
    """Where a tool implementation comes from."""

    BUILTIN = "builtin"
    SUBPROCESS = "subprocess"  # Found by the discovery command
    PROTOCOL = "protocol"  # Listed by an MCP server


class ToolParameter(BaseModel):
    """Defines a parameter for a built-in tool."""

    name: str
    type: str  # "string", "integer", "number", "boolean", "array", "object"
    description: str
    required: bool = True
    default: Optional[Any] = None
    enum: Optional[list[str]] = None  # For restricted choices
    minimum: Optional[float] = None


class ToolCall(BaseModel):
    """Represents a tool call proposed by the model."""

    id: str = "unknown"  # Tool use ID for tracking (from AI response)
    name: str
    args: dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.name}({', '.join(f'{k}={v}' for k, v in self.args.items())})"


class ToolCallResult(BaseModel):
    """Result of one tool call.

    raw_content is handed back to the model as-is; display_content is the
    human readable rendering of the same result.
    """

    raw_content: Any = ""
    display_content: str = ""
    is_error: bool = False
    error: Optional[str] = None
    # Declined at confirmation time; never executed, not a failure
    cancelled: bool = False

    @classmethod
    def success(cls, content: Any, display: Optional[str] = None) -> "ToolCallResult":
        """Build a successful result."""
        if display is None:
            display = content if isinstance(content, str) else str(content)
        return cls(raw_content=content, display_content=display)

    @classmethod
    def failure(cls, error: str, content: Any = None) -> "ToolCallResult":
        """Build an error result whose content explains the failure."""
        if content is None:
            content = error
        display = content if isinstance(content, str) else str(content)
        return cls(raw_content=content, display_content=display, is_error=True, error=error)

    def __str__(self) -> str:
        """String representation."""
        if self.is_error:
            return f"Error: {self.error}"
        return self.display_content[:200] + ("..." if len(self.display_content) > 200 else "")
