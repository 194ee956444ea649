"""Approval controller gating risky tool calls behind confirmation."""

import inspect
import logging
from typing import Any, Optional

from armature.approval.models import (
    ApprovalMode,
    ApprovalSurface,
    ConfirmationKind,
    ConfirmationOutcome,
    ConfirmationRequest,
)

logger = logging.getLogger(__name__)

# Mode a ProceedAlways decision escalates to, per request kind
_ESCALATION_TARGET = {
    ConfirmationKind.EDIT: ApprovalMode.AUTO_EDIT,
    ConfirmationKind.EXEC: ApprovalMode.YOLO,
    ConfirmationKind.INFO: ApprovalMode.YOLO,
    ConfirmationKind.MCP: ApprovalMode.YOLO,
}


class ApprovalController:
    """Session-scoped approval state machine.

    Holds the current ApprovalMode plus the session allowlist of trusted MCP
    servers and server tools. Requests that the mode or allowlist already
    exempts are answered with PROCEED_ONCE without reaching the surface.
    """

    def __init__(
        self,
        mode: ApprovalMode = ApprovalMode.DEFAULT,
        surface: Optional[ApprovalSurface] = None,
    ):
        """Initialize the controller.

        Args:
            mode: Initial approval mode for the session
            surface: Callback that shows a ConfirmationRequest to the user and
                     returns (or awaits) a ConfirmationOutcome
        """
        self._mode = ApprovalMode(mode)
        self._surface = surface
        self._allowlist: set[str] = set()

    @property
    def mode(self) -> ApprovalMode:
        """Current approval mode."""
        return self._mode

    @property
    def surface(self) -> Optional[ApprovalSurface]:
        """Approval surface callback."""
        return self._surface

    @surface.setter
    def surface(self, surface: Optional[ApprovalSurface]) -> None:
        self._surface = surface

    def escalate(self, mode: ApprovalMode) -> bool:
        """Advance the approval mode.

        Args:
            mode: Target mode

        Returns:
            True if the mode changed, False if the target is not higher
        """
        mode = ApprovalMode(mode)
        if mode.rank < self._mode.rank:
            logger.warning(
                f"Refusing to lower approval mode from {self._mode.value} to {mode.value}"
            )
            return False
        if mode == self._mode:
            return False

        logger.info(f"Approval mode escalated: {self._mode.value} -> {mode.value}")
        self._mode = mode
        return True

    def is_exempt(self, kind: ConfirmationKind) -> bool:
        """Check whether the current mode skips confirmation for a kind."""
        if self._mode == ApprovalMode.YOLO:
            return True
        if self._mode == ApprovalMode.AUTO_EDIT:
            return kind == ConfirmationKind.EDIT
        return False

    def allow_server(self, server_name: str) -> None:
        """Trust every tool of an MCP server for the rest of the session."""
        self._allowlist.add(server_name)

    def allow_server_tool(self, server_name: str, tool_name: str) -> None:
        """Trust one tool of an MCP server for the rest of the session."""
        self._allowlist.add(f"{server_name}.{tool_name}")

    def is_allowlisted(self, server_name: Optional[str], tool_name: Optional[str] = None) -> bool:
        """Check whether a server (or one of its tools) is trusted."""
        if not server_name:
            return False
        if server_name in self._allowlist:
            return True
        return tool_name is not None and f"{server_name}.{tool_name}" in self._allowlist

    def requires_confirmation(self, request: ConfirmationRequest) -> bool:
        """Check whether a request has to reach the approval surface."""
        if self.is_exempt(request.kind):
            return False
        if request.kind == ConfirmationKind.MCP and self.is_allowlisted(
            request.server_name, request.tool_name
        ):
            return False
        return True

    async def request_confirmation(
        self,
        kind: ConfirmationKind,
        summary: str,
        title: str = "",
        details: Optional[dict[str, Any]] = None,
    ) -> ConfirmationOutcome:
        """Ask for confirmation of an action described by kind and summary.

        Returns:
            The decision (PROCEED_ONCE when the mode exempts the kind)
        """
        request = ConfirmationRequest(
            kind=ConfirmationKind(kind),
            summary=summary,
            title=title,
            details=details or {},
        )
        return await self.confirm(request)

    async def confirm(self, request: ConfirmationRequest) -> ConfirmationOutcome:
        """Resolve a ConfirmationRequest.

        Args:
            request: Request produced by a tool's should_confirm

        Returns:
            The decision. CANCEL means the call must not run.
        """
        if not self.requires_confirmation(request):
            logger.debug(f"Confirmation skipped ({self._mode.value} mode or allowlisted): {request.title}")
            return ConfirmationOutcome.PROCEED_ONCE

        if self._surface is None:
            logger.warning(f"Confirmation required but no approval surface: {request.title}")
            outcome = ConfirmationOutcome.CANCEL
        else:
            decision = self._surface(request)
            if inspect.isawaitable(decision):
                decision = await decision
            outcome = ConfirmationOutcome(decision)

        self._apply_outcome(request, outcome)

        if request.on_decision is not None:
            result = request.on_decision(outcome)
            if inspect.isawaitable(result):
                await result

        return outcome

    def _apply_outcome(self, request: ConfirmationRequest, outcome: ConfirmationOutcome) -> None:
        """Update session state from a decision."""
        if outcome == ConfirmationOutcome.PROCEED_ALWAYS:
            self.escalate(_ESCALATION_TARGET[request.kind])
        elif outcome == ConfirmationOutcome.PROCEED_ALWAYS_SERVER and request.server_name:
            self.allow_server(request.server_name)
        elif (
            outcome == ConfirmationOutcome.PROCEED_ALWAYS_TOOL
            and request.server_name
            and request.tool_name
        ):
            self.allow_server_tool(request.server_name, request.tool_name)

    def __repr__(self) -> str:
        """Representation."""
        return f"<ApprovalController mode={self._mode.value} allowlist={sorted(self._allowlist)}>"
