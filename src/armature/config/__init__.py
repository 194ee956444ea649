"""Configuration loading and schema."""

from armature.config.loader import ConfigurationError, load_config
from armature.config.schema import (
    ApprovalConfig,
    CheckpointConfig,
    Config,
    McpServerConfig,
    ToolsConfig,
)

__all__ = [
    "ApprovalConfig",
    "CheckpointConfig",
    "Config",
    "ConfigurationError",
    "McpServerConfig",
    "ToolsConfig",
    "load_config",
]
