"""
Pydantic configuration schema for Armature.

This module defines all configuration models with validation.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from armature.approval.models import ApprovalMode

# =============================================================================
# Tool Configuration
# =============================================================================


class ToolsConfig(BaseModel):
    """Built-in tool selection and subprocess tool discovery."""

    model_config = ConfigDict(extra="allow")

    # Shell command printing a JSON array of {function_declarations: [...]}
    discovery_command: str | None = None
    # Command invoked as `<call_command> <tool_name>` with JSON args on stdin
    call_command: str | None = None
    discovery_timeout: float = Field(default=30.0, gt=0)

    # None = all built-in tools
    core_tools: list[str] | None = None
    exclude_tools: list[str] = Field(default_factory=list)

    shell_timeout: float = Field(default=600.0, gt=0)


# =============================================================================
# MCP Server Configuration
# =============================================================================


class McpServerConfig(BaseModel):
    """Launch settings for one MCP tool server."""

    model_config = ConfigDict(extra="allow")

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None

    # Per-call timeout in seconds (10 minutes by default)
    timeout: float = Field(default=600.0, gt=0)
    connect_timeout: float = Field(default=30.0, gt=0)

    # Trusted servers never ask for confirmation
    trust: bool = False

    @property
    def display_command(self) -> str:
        """Command line as shown in logs and tool descriptions."""
        return " ".join([self.command, *self.args])


# =============================================================================
# Approval Configuration
# =============================================================================


class ApprovalConfig(BaseModel):
    """Initial approval mode for new sessions."""

    mode: ApprovalMode = ApprovalMode.DEFAULT


# =============================================================================
# Checkpoint Configuration
# =============================================================================


class CheckpointConfig(BaseModel):
    """Workspace checkpointing before mutating tool calls."""

    enable: bool = False
    # Abort a mutating call when its checkpoint cannot be taken
    fail_closed: bool = True
    max_checkpoints: int | None = Field(default=None, ge=1)


# =============================================================================
# Root Configuration
# =============================================================================


class Config(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="allow")

    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    mcp_servers: dict[str, McpServerConfig] = Field(default_factory=dict)
    approval: ApprovalConfig = Field(default_factory=ApprovalConfig)
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)

    @field_validator("mcp_servers")
    @classmethod
    def _check_server_names(cls, value: dict[str, McpServerConfig]) -> dict[str, McpServerConfig]:
        for name in value:
            if not name or any(ch.isspace() for ch in name):
                raise ValueError(f"Invalid MCP server name: {name!r}")
        return value
