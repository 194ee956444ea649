"""Data models for tool execution events."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Tool execution event types for streaming."""

    TOOL_START = "tool_start"  # Tool execution starts
    TOOL_COMPLETE = "tool_complete"  # Tool execution completes
    TOOL_ERROR = "tool_error"  # Tool lookup, validation or execution fails
    TOOL_APPROVAL_NEEDED = "tool_approval_needed"  # Tool needs user approval
    TOOL_APPROVED = "tool_approved"  # Tool approved by user
    TOOL_DENIED = "tool_denied"  # Tool denied by user
    CHECKPOINT_CREATED = "checkpoint_created"  # Workspace snapshot taken before a mutating call


class ToolEvent(BaseModel):
    """Event emitted while executing a tool call."""

    model_config = ConfigDict(use_enum_values=True)

    event_type: EventType = Field(
        description="Type of event"
    )

    tool_name: Optional[str] = Field(
        default=None,
        description="Tool name"
    )

    tool_call_id: Optional[str] = Field(
        default=None,
        description="Tool call ID"
    )

    message: Optional[str] = Field(
        default=None,
        description="Human-readable message describing the event"
    )

    data: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional event data (arguments, results, checkpoint tag, etc.)"
    )

    timestamp: str = Field(
        default_factory=lambda: datetime.now().isoformat(),
        description="ISO format timestamp"
    )
