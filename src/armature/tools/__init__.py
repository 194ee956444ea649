"""Tool contract and tool backends for Armature.

Every capability the agent can invoke implements the Tool contract:

- validate(args): check arguments against the parameter schema
- should_confirm(args): ask for approval of risky calls
- execute(args, cancel): run the call

Tools are built in, discovered from the project's discovery command, or
listed by MCP servers. The registry lives in `armature.tools.registry`.
"""

from armature.tools.base import Tool, ToolExecutionError, ToolValidationError
from armature.tools.cancellation import CancellationToken
from armature.tools.models import ToolCall, ToolCallResult, ToolParameter, ToolSource

__all__ = [
    "CancellationToken",
    "Tool",
    "ToolCall",
    "ToolCallResult",
    "ToolExecutionError",
    "ToolParameter",
    "ToolSource",
    "ToolValidationError",
]
