"""Tools discovered by running the project's discovery command.

The discovery command prints a JSON array whose items each carry a
`function_declarations` list of {name, description, parameters}. Every
declaration becomes a DiscoveredTool that runs `<call_command> <name>` with
the JSON-encoded arguments on stdin.
"""

import json
import logging
import shlex
from typing import Any, Optional

from armature.tools.base import Tool, ToolExecutionError
from armature.tools.cancellation import CancellationToken
from armature.tools.models import ToolCallResult, ToolSource
from armature.tools.process import ProcessResult, run_process

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Raised when one discovery source fails.

    Discovery errors are isolated per source: the registry logs them and
    carries on with the remaining sources.
    """

    def __init__(self, source: str, message: str):
        super().__init__(f"Tool discovery failed for {source}: {message}")
        self.source = source


def parse_function_declarations(output: str) -> list[dict[str, Any]]:
    """Extract function declarations from discovery command output.

    Args:
        output: Raw stdout of the discovery command

    Returns:
        Declarations with a string name, in output order

    Raises:
        ValueError: If the output is not a JSON array
    """
    data = json.loads(output.strip() or "[]")
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")

    declarations = []
    for item in data:
        if not isinstance(item, dict):
            continue
        functions = item.get("function_declarations")
        if not isinstance(functions, list):
            continue
        for func in functions:
            if isinstance(func, dict) and isinstance(func.get("name"), str) and func["name"]:
                declarations.append(func)
            else:
                logger.warning(f"Skipping malformed function declaration: {func!r}")
    return declarations


def format_process_failure(result: ProcessResult) -> str:
    """Describe a failed call for the model."""
    return "\n".join(
        [
            f"Stdout: {result.stdout or '(empty)'}",
            f"Stderr: {result.stderr or '(empty)'}",
            f"Error: {result.error or '(none)'}",
            f"Exit Code: {result.exit_code if result.exit_code is not None else '(none)'}",
            f"Signal: {result.signal if result.signal is not None else '(none)'}",
        ]
    )


class DiscoveredTool(Tool):
    """Adapter running a project-declared tool as a subprocess."""

    def __init__(
        self,
        name: str,
        description: str,
        parameter_schema: Optional[dict[str, Any]],
        call_command: str,
        discovery_command: str = "",
        cwd: Optional[str] = None,
    ):
        """Initialize the adapter.

        Args:
            name: Tool name from the declaration
            description: Description from the declaration
            parameter_schema: JSON schema from the declaration
            call_command: Command line the tool name is appended to
            discovery_command: Command that declared the tool (for the description)
            cwd: Directory the call command runs in
        """
        self._name = name
        self._declared_description = description or ""
        self._schema = parameter_schema if isinstance(parameter_schema, dict) else {}
        self._call_command = call_command
        self._discovery_command = discovery_command
        self._cwd = cwd
        super().__init__()

    @property
    def name(self) -> str:
        """Tool name."""
        return self._name

    @property
    def description(self) -> str:
        """Declared description plus how the tool is run."""
        return (
            f"{self._declared_description}\n\n"
            f"This tool was discovered from the project by executing the command "
            f"`{self._discovery_command}` on project root.\n"
            f"When called, this tool will execute the command `{self._call_command} {self._name}` "
            f"on project root.\n"
            "Tool discovery and call commands can be configured in project settings.\n\n"
            "When called, the tool call command is executed as a subprocess.\n"
            "On success, tool output is returned as a json string.\n"
            "Otherwise, the following information is returned:\n\n"
            "Stdout: Output on stdout stream. Can be `(empty)` or partial.\n"
            "Stderr: Output on stderr stream. Can be `(empty)` or partial.\n"
            "Error: Error or `(none)` if no error was reported for the subprocess.\n"
            "Exit Code: Exit code or `(none)` if terminated by signal.\n"
            "Signal: Signal number or `(none)` if no signal was received.\n"
        )

    @property
    def parameter_schema(self) -> dict[str, Any]:
        """Schema exactly as declared."""
        return self._schema

    @property
    def source(self) -> ToolSource:
        """Discovered through the discovery command."""
        return ToolSource.SUBPROCESS

    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """Run `<call_command> <name>` with the arguments on stdin.

        Raises:
            ToolExecutionError: If the call command cannot be started
        """
        argv = shlex.split(self._call_command) + [self._name]
        logger.info(f"Calling discovered tool: {' '.join(argv)}")

        result = await run_process(
            argv,
            stdin_data=json.dumps(args),
            cwd=self._cwd,
            cancel=cancel,
        )

        if result.error:
            raise ToolExecutionError(f"Could not run tool call command for {self._name}: {result.error}")

        if result.cancelled:
            return ToolCallResult.failure(
                f"Tool call cancelled: {cancel.reason or 'cancelled'}",
                content=format_process_failure(result),
            )

        # Any stderr output counts as failure, as do signals and non-zero exits
        if result.exit_code != 0 or result.signal is not None or result.stderr:
            logger.warning(f"Discovered tool {self._name} failed (exit={result.exit_code})")
            return ToolCallResult.failure(
                f"Tool call command failed for {self._name}",
                content=format_process_failure(result),
            )

        return ToolCallResult.success(result.stdout)


async def discover_command_tools(
    discovery_command: str,
    call_command: str,
    cwd: Optional[str] = None,
    timeout: float = 30.0,
) -> list[DiscoveredTool]:
    """Run the discovery command and wrap every declaration it prints.

    Raises:
        DiscoveryError: If the command fails, times out or prints invalid JSON
    """
    result = await run_process(discovery_command, shell=True, cwd=cwd, timeout=timeout)

    if result.timed_out:
        raise DiscoveryError(discovery_command, f"timed out after {timeout}s")
    if not result.success:
        raise DiscoveryError(discovery_command, format_process_failure(result))

    try:
        declarations = parse_function_declarations(result.stdout)
    except ValueError as e:
        raise DiscoveryError(discovery_command, f"invalid output: {e}") from e

    return [
        DiscoveredTool(
            name=func["name"],
            description=str(func.get("description") or ""),
            parameter_schema=func.get("parameters"),
            call_command=call_command,
            discovery_command=discovery_command,
            cwd=cwd,
        )
        for func in declarations
    ]
