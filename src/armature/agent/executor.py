"""Tool call execution pipeline.

Each call goes through the same steps:
1. Look the tool up in the registry
2. Validate the arguments (nothing runs on invalid arguments)
3. Ask the tool whether the call needs confirmation, and resolve it
   through the approval controller
4. Snapshot the workspace before mutating calls (when checkpointing is on)
5. Execute and return the result
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Any, Callable, Optional

from armature.agent.models import EventType, ToolEvent
from armature.approval.controller import ApprovalController
from armature.approval.models import ConfirmationDeclined
from armature.checkpoint.models import CheckpointRecord
from armature.checkpoint.service import CheckpointError, CheckpointService
from armature.config.schema import CheckpointConfig
from armature.tools.base import Tool, ToolExecutionError, ToolValidationError
from armature.tools.cancellation import CancellationToken
from armature.tools.models import ToolCall, ToolCallResult
from armature.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

EventCallback = Callable[[ToolEvent], None]


class ToolExecutor:
    """Runs tool calls proposed by the model.

    Failures never escape as exceptions: unknown tools, invalid arguments,
    checkpoint failures and errors raised by a tool all come back as error
    results that can be fed to the model. A call the user declines comes
    back as a cancelled (non-error) result.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        approval: ApprovalController,
        checkpoints: Optional[CheckpointService] = None,
        checkpoint_config: Optional[CheckpointConfig] = None,
        event_callback: Optional[EventCallback] = None,
    ):
        """Initialize the executor.

        Args:
            registry: Registry to look tools up in
            approval: Session approval controller
            checkpoints: Checkpoint service for mutating calls
            checkpoint_config: Checkpoint policy (enable, fail_closed)
            event_callback: Optional callback for streaming events
        """
        self.registry = registry
        self.approval = approval
        self.checkpoints = checkpoints
        self.checkpoint_config = checkpoint_config or CheckpointConfig()
        self.event_callback = event_callback

    def _emit_event(self, event_type: EventType, call: ToolCall, message: str, **data: Any) -> None:
        """Emit an event if callback is configured."""
        if not self.event_callback:
            return
        try:
            self.event_callback(
                ToolEvent(
                    event_type=event_type,
                    tool_name=call.name,
                    tool_call_id=call.id,
                    message=message,
                    data=data or None,
                )
            )
        except Exception as e:
            logger.warning(f"Event callback error: {e}")

    @property
    def checkpointing_enabled(self) -> bool:
        """Whether mutating calls are snapshotted first."""
        return self.checkpoints is not None and self.checkpoint_config.enable

    async def execute(
        self,
        call: ToolCall,
        cancel: Optional[CancellationToken] = None,
        conversation: Any = None,
    ) -> ToolCallResult:
        """Execute a single tool call.

        Args:
            call: Tool call to execute
            cancel: Token to stop the call (a fresh one if None)
            conversation: Conversation state stored with a checkpoint

        Returns:
            Tool result
        """
        cancel = cancel or CancellationToken()

        tool = self.registry.get(call.name)
        if tool is None:
            logger.warning(f"Tool not found: {call.name}")
            return self._error(call, f"Tool '{call.name}' not found in registry.")

        try:
            tool.require_valid(call.args)
        except ToolValidationError as e:
            logger.info(str(e))
            return self._error(call, str(e))
        except Exception as e:
            logger.warning(f"Validation raised for {call.name}: {e}", exc_info=True)
            return self._error(call, f"Invalid arguments for {call.name}: {e}")

        try:
            await self._confirm(tool, call)
        except ConfirmationDeclined as e:
            logger.info(f"Tool execution denied by user: {call.name}")
            self._emit_event(EventType.TOOL_DENIED, call, f"Tool execution denied: {call.name}")
            return ToolCallResult(
                raw_content=f"Tool call {call.name} was cancelled by the user.",
                display_content=str(e),
                cancelled=True,
            )
        except Exception as e:
            logger.error(f"Confirmation failed for {call.name}: {e}", exc_info=True)
            return self._error(call, f"Confirmation failed: {e}")

        if cancel.cancelled:
            return ToolCallResult(
                raw_content=f"Tool call {call.name} was cancelled.",
                display_content=cancel.reason or "Cancelled",
                cancelled=True,
            )

        async with AsyncExitStack() as stack:
            if tool.is_mutating and self.checkpoints is not None:
                if self.checkpointing_enabled:
                    failure = await self._checkpoint(call, conversation)
                    if failure is not None:
                        return failure
                await stack.enter_async_context(self.checkpoints.mutation())

            return await self._run(tool, call, cancel)

    async def _confirm(self, tool: Tool, call: ToolCall) -> None:
        """Resolve the tool's confirmation request, if any.

        Raises:
            ConfirmationDeclined: If the user cancels
        """
        request = await tool.should_confirm(call.args)
        if request is None:
            return

        if not self.approval.requires_confirmation(request):
            await self.approval.confirm(request)
            return

        self._emit_event(
            EventType.TOOL_APPROVAL_NEEDED,
            call,
            f"Approval required for tool: {call.name}",
            kind=request.kind.value,
            title=request.title,
            tool_input=call.args,
        )

        outcome = await self.approval.confirm(request)
        if not outcome.proceeds:
            raise ConfirmationDeclined(call.name)

        self._emit_event(
            EventType.TOOL_APPROVED,
            call,
            f"Tool execution approved: {call.name}",
            outcome=outcome.value,
        )

    async def _checkpoint(self, call: ToolCall, conversation: Any) -> Optional[ToolCallResult]:
        """Snapshot the workspace before a mutating call.

        Returns:
            An error result when the call must not proceed, else None
        """
        try:
            if not self.checkpoints.initialized:
                await self.checkpoints.initialize()
            tag = self.checkpoints.make_tag(call.name, call.args)
            record = await self.checkpoints.snapshot(tag, call.model_dump(), conversation)
        except Exception as e:
            if not isinstance(e, CheckpointError):
                logger.error(f"Unexpected checkpoint failure for {call.name}: {e}", exc_info=True)
            if self.checkpoint_config.fail_closed:
                logger.error(f"Checkpoint failed, not running {call.name}: {e}")
                return self._error(call, f"Checkpoint failed, tool call aborted: {e}")
            logger.warning(f"Checkpoint failed, running {call.name} without one: {e}")
            return None

        self._emit_event(
            EventType.CHECKPOINT_CREATED,
            call,
            f"Checkpoint created: {record.tag}",
            tag=record.tag,
            commit_hash=record.commit_hash,
        )
        return None

    async def _run(self, tool: Tool, call: ToolCall, cancel: CancellationToken) -> ToolCallResult:
        self._emit_event(
            EventType.TOOL_START,
            call,
            f"Executing tool: {call.name}",
            tool_input=call.args,
        )

        try:
            result = await tool.execute(call.args, cancel)
        except asyncio.CancelledError:
            raise
        except ToolExecutionError as e:
            logger.warning(f"Tool execution error: {call.name}: {e}")
            return self._error(call, f"Tool execution failed: {e}")
        except Exception as e:
            logger.error(f"Tool execution error: {call.name}: {e}", exc_info=True)
            return self._error(call, f"Tool execution failed: {e}")

        if result.is_error:
            self._emit_event(
                EventType.TOOL_ERROR,
                call,
                f"Tool failed: {call.name}",
                error=result.error,
            )
        else:
            self._emit_event(
                EventType.TOOL_COMPLETE,
                call,
                f"Tool completed: {call.name}",
                output_length=len(result.display_content),
            )
        return result

    def _error(self, call: ToolCall, message: str) -> ToolCallResult:
        self._emit_event(EventType.TOOL_ERROR, call, message, error=message)
        return ToolCallResult.failure(message)

    async def execute_many(
        self,
        calls: list[ToolCall],
        cancel: Optional[CancellationToken] = None,
        conversation: Any = None,
    ) -> list[ToolCallResult]:
        """Execute tool calls concurrently.

        Returns:
            Results in the same order as calls
        """
        if not calls:
            return []

        results = await asyncio.gather(
            *[self.execute(call, cancel=cancel, conversation=conversation) for call in calls]
        )
        return list(results)

    async def restore_checkpoint(self, tag: str) -> CheckpointRecord:
        """Restore the workspace to a checkpoint.

        Returns:
            The record, with the tool call and conversation to restore

        Raises:
            CheckpointError: If checkpointing is unavailable or restore fails
        """
        if self.checkpoints is None:
            raise CheckpointError("Checkpointing is not enabled")
        if not self.checkpoints.initialized:
            await self.checkpoints.initialize()
        return await self.checkpoints.restore(tag)
