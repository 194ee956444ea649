"""Shell command execution tool."""

import logging
import shutil
from pathlib import Path
from typing import Any, Optional

from armature.approval.models import ConfirmationKind, ConfirmationRequest
from armature.tools.builtin.file import RootedTool
from armature.tools.cancellation import CancellationToken
from armature.tools.models import ToolCallResult, ToolParameter
from armature.tools.process import run_process

logger = logging.getLogger(__name__)

DEFAULT_SHELL_TIMEOUT = 600.0


class ShellTool(RootedTool):
    """Execute shell commands with `bash -c`.

    The command runs in its own process group under the root directory (or a
    directory below it); cancelling the call stops the whole group.
    """

    path_params = ("directory",)

    def __init__(self, root: Path, timeout: float = DEFAULT_SHELL_TIMEOUT, shell: Optional[str] = None):
        """Initialize shell tool.

        Args:
            root: Directory commands run in by default
            timeout: Seconds before a command is stopped
            shell: Shell executable (bash found on PATH when None)
        """
        self.timeout = timeout
        self.shell = shell or shutil.which("bash") or "bash"
        super().__init__(root)

    @property
    def name(self) -> str:
        """Tool name."""
        return "run_shell_command"

    @property
    def display_name(self) -> str:
        """Human readable name."""
        return "Shell"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Execute a shell command as `bash -c <command>`. "
            "Use this for: running CLI tools, build and test commands, system queries, "
            "git operations, etc. "
            "Returns Command, Directory, Stdout, Stderr, Error, Exit Code and Signal. "
            "Commands that run in the background should end with '&'; the call returns "
            "once the shell exits and background processes keep running."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="command",
                type="string",
                description=(
                    "Exact bash command to execute. "
                    "Example: 'ls -la' or 'pytest -q tests/'"
                ),
                required=True,
            ),
            ToolParameter(
                name="description",
                type="string",
                description="Brief description of the command for the user.",
                required=False,
            ),
            ToolParameter(
                name="directory",
                type="string",
                description=(
                    "Directory to run the command in, relative to the root directory. "
                    "Default: the root directory."
                ),
                required=False,
            ),
        ]

    @property
    def is_mutating(self) -> bool:
        """Commands can change the workspace."""
        return True

    def validate(self, args: dict[str, Any]) -> Optional[str]:
        """Reject empty commands and missing directories."""
        error = super().validate(args)
        if error:
            return error
        if not args["command"].strip():
            return "Command cannot be empty."
        directory = args.get("directory")
        if directory and not self.resolve_path(directory).is_dir():
            return f"Directory does not exist: {directory}"
        return None

    def _working_dir(self, args: dict[str, Any]) -> Path:
        directory = args.get("directory")
        return self.resolve_path(directory) if directory else self.root

    async def should_confirm(self, args: dict[str, Any]) -> Optional[ConfirmationRequest]:
        """Show the command before running it."""
        command = args["command"]
        root_command = command.strip().split()[0] if command.strip() else command
        return ConfirmationRequest(
            kind=ConfirmationKind.EXEC,
            title="Confirm Shell Command",
            summary=command,
            details={
                "command": command,
                "root_command": root_command,
                "directory": self.display_path(self._working_dir(args)),
                "description": args.get("description") or "",
            },
            tool_name=self.name,
        )

    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """Run the command."""
        command = args["command"]
        cwd = self._working_dir(args)
        shown_dir = self.display_path(cwd)

        logger.info(f"Executing shell command: {command[:100]}")

        result = await run_process(
            [self.shell, "-c", command],
            cwd=str(cwd),
            timeout=self.timeout,
            cancel=cancel,
        )

        if result.cancelled:
            logger.info(f"Shell command cancelled: {command[:100]}")
            return ToolCallResult.failure(
                "Command was cancelled by user before it could complete.",
                content=(
                    "Command was cancelled by user before it could complete. "
                    f"Below is the output before it was cancelled:\n{result.stdout}{result.stderr}"
                ),
            )

        error = result.error
        if result.timed_out:
            error = f"Command timed out after {self.timeout} seconds"
            logger.warning(f"Shell command timeout: {command[:100]}")

        content = "\n".join(
            [
                f"Command: {command}",
                f"Directory: {shown_dir}",
                f"Stdout: {result.stdout or '(empty)'}",
                f"Stderr: {result.stderr or '(empty)'}",
                f"Error: {error or '(none)'}",
                f"Exit Code: {result.exit_code if result.exit_code is not None else '(none)'}",
                f"Signal: {result.signal if result.signal is not None else '(none)'}",
            ]
        )
        display = (result.stdout + result.stderr).strip() or "(no output)"

        if error or result.signal is not None or result.exit_code != 0:
            return ToolCallResult(
                raw_content=content,
                display_content=display,
                is_error=True,
                error=error or f"Command failed with exit code {result.exit_code}",
            )

        return ToolCallResult.success(content, display=display)
