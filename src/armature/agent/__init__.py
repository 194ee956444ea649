"""Tool call orchestration: validation, approval, checkpointing and execution."""

from armature.agent.executor import EventCallback, ToolExecutor
from armature.agent.models import EventType, ToolEvent

__all__ = ["EventCallback", "EventType", "ToolEvent", "ToolExecutor"]
