"""Data models for tool call approval."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union


class ApprovalMode(str, Enum):
    """Session approval level.

    Modes are ordered: DEFAULT < AUTO_EDIT < YOLO. A session only ever moves
    up this ordering.
    """

    DEFAULT = "default"  # Every risky call is confirmed
    AUTO_EDIT = "auto_edit"  # File edits run without confirmation
    YOLO = "yolo"  # Nothing is confirmed

    @property
    def rank(self) -> int:
        """Position of the mode in the escalation order."""
        return _MODE_ORDER.index(self)


_MODE_ORDER = [ApprovalMode.DEFAULT, ApprovalMode.AUTO_EDIT, ApprovalMode.YOLO]


class ConfirmationKind(str, Enum):
    """Kind of action a confirmation request is about."""

    EXEC = "exec"  # Shell / process execution
    EDIT = "edit"  # File modification
    INFO = "info"  # Outbound information access (web fetch)
    MCP = "mcp"  # Call into an external tool server


class ConfirmationOutcome(str, Enum):
    """Decision returned by the approval surface."""

    PROCEED_ONCE = "proceed_once"
    PROCEED_ALWAYS = "proceed_always"
    PROCEED_ALWAYS_SERVER = "proceed_always_server"  # MCP: trust the whole server
    PROCEED_ALWAYS_TOOL = "proceed_always_tool"  # MCP: trust this server tool
    CANCEL = "cancel"

    @property
    def proceeds(self) -> bool:
        """Whether the outcome lets the call run."""
        return self is not ConfirmationOutcome.CANCEL


@dataclass
class ConfirmationRequest:
    """A pending request for a human decision about one tool call."""

    kind: ConfirmationKind
    summary: str
    title: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    tool_name: Optional[str] = None
    server_name: Optional[str] = None
    on_decision: Optional[Callable[[ConfirmationOutcome], Any]] = None

    def __post_init__(self) -> None:
        if not self.title:
            self.title = f"Confirm {self.kind.value}"


ApprovalSurface = Callable[
    [ConfirmationRequest],
    Union[ConfirmationOutcome, Awaitable[ConfirmationOutcome]],
]


class ConfirmationDeclined(Exception):
    """Raised when the user cancels a tool call at confirmation time.

    This is a benign abort: the call never started and nothing failed.
    """

    def __init__(self, tool_name: str, message: str = "Tool call cancelled by user"):
        super().__init__(message)
        self.tool_name = tool_name
