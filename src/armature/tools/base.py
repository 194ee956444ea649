"""Base classes for tool implementation."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from armature.approval.models import ConfirmationRequest
from armature.tools.cancellation import CancellationToken
from armature.tools.models import ToolCallResult, ToolParameter, ToolSource
from armature.tools.schema import validate_against_schema


class ToolExecutionError(Exception):
    """Raised when tool execution fails."""

    def __init__(self, message: str, exit_code: Optional[int] = None):
        """Initialize error.

        Args:
            message: Error message
            exit_code: Optional exit code
        """
        super().__init__(message)
        self.exit_code = exit_code


class ToolValidationError(ValueError):
    """Raised when tool arguments fail validation."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Invalid arguments for {tool_name}: {message}")
        self.tool_name = tool_name
        self.reason = message


class Tool(ABC):
    """Base class for all tools.

    Every tool, whatever its backend, exposes the same three operations:

    - validate(args): pure check of the arguments, no side effects
    - should_confirm(args): None to run directly, or a ConfirmationRequest
    - execute(args, cancel): the only operation allowed side effects

    Callers must not call execute() for arguments that failed validate().
    Built-in tools describe their inputs with `parameters`; discovered tools
    override `parameter_schema` with the schema they were declared with.
    """

    def __init__(self):
        """Initialize the tool."""
        self._validate_definition()

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name (must be unique)."""
        pass

    @property
    def display_name(self) -> str:
        """Human readable name."""
        return self.name

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does (for AI)."""
        pass

    @property
    def parameters(self) -> list[ToolParameter]:
        """List of tool parameters."""
        return []

    @property
    def source(self) -> ToolSource:
        """Backend the tool comes from."""
        return ToolSource.BUILTIN

    @property
    def is_mutating(self) -> bool:
        """Whether the tool changes the workspace.

        Mutating calls are checkpointed before they run when checkpointing is
        enabled.
        """
        return False

    @property
    def parameter_schema(self) -> dict[str, Any]:
        """JSON schema describing tool parameters."""
        properties = {}
        required = []

        for param in self.parameters:
            param_schema: dict[str, Any] = {
                "type": param.type,
                "description": param.description,
            }

            if param.enum:
                param_schema["enum"] = param.enum

            if param.default is not None:
                param_schema["default"] = param.default

            if param.minimum is not None:
                param_schema["minimum"] = param.minimum

            properties[param.name] = param_schema

            if param.required:
                required.append(param.name)

        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }

    def get_tool_definition(self) -> dict[str, Any]:
        """Get the function declaration handed to the model client.

        Returns:
            Tool definition with name, description and parameters
        """
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameter_schema,
        }

    def validate(self, args: dict[str, Any]) -> Optional[str]:
        """Validate arguments against the parameter schema.

        Fails closed: anything the schema rejects is an error.

        Args:
            args: Tool arguments

        Returns:
            Error message, or None when the arguments are valid
        """
        return validate_against_schema(self.parameter_schema, args)

    def require_valid(self, args: dict[str, Any]) -> None:
        """Validate arguments, raising on failure.

        Raises:
            ToolValidationError: If the arguments are invalid
        """
        error = self.validate(args)
        if error:
            raise ToolValidationError(self.name, error)

    async def should_confirm(self, args: dict[str, Any]) -> Optional[ConfirmationRequest]:
        """Decide whether the call needs human confirmation.

        May do read-only preparation (e.g. computing a diff to show) and cache
        it for execute().

        Args:
            args: Validated tool arguments

        Returns:
            A ConfirmationRequest, or None to execute directly
        """
        return None

    @abstractmethod
    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """Execute the tool.

        Args:
            args: Validated tool arguments
            cancel: Token signalled when the call should stop

        Returns:
            ToolCallResult with output or error

        Raises:
            ToolExecutionError: If execution fails critically
        """
        pass

    def _validate_definition(self) -> None:
        """Validate tool definition is correct.

        Raises:
            ValueError: If tool definition is invalid
        """
        if not self.name:
            raise ValueError("Tool name cannot be empty")

        if self.description is None:
            raise ValueError("Tool description cannot be None")

        param_names = [p.name for p in self.parameters]
        if len(param_names) != len(set(param_names)):
            raise ValueError("Parameter names must be unique")

    def __str__(self) -> str:
        """String representation."""
        return f"Tool({self.name})"

    def __repr__(self) -> str:
        """Representation."""
        return f"<Tool name={self.name} source={self.source.value}>"
