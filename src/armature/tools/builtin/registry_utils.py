"""Utility functions for tool registry setup."""

import logging
from pathlib import Path
from typing import Optional

from armature.config.schema import ToolsConfig
from armature.tools.base import Tool
from armature.tools.builtin.bash import ShellTool
from armature.tools.builtin.file import ListDirectoryTool, ReadFileTool, ReplaceTool, WriteFileTool
from armature.tools.builtin.http import WebFetchTool
from armature.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def create_builtin_tools(root: Path, config: Optional[ToolsConfig] = None) -> list[Tool]:
    """Instantiate every built-in tool for a root directory."""
    config = config or ToolsConfig()
    return [
        ReadFileTool(root),
        ListDirectoryTool(root),
        WriteFileTool(root),
        ReplaceTool(root),
        ShellTool(root, timeout=config.shell_timeout),
        WebFetchTool(),
    ]


def register_builtin_tools(
    registry: ToolRegistry,
    root: Path,
    config: Optional[ToolsConfig] = None,
) -> list[str]:
    """Register the built-in tools selected by configuration.

    Args:
        registry: ToolRegistry to register tools in
        root: Directory the tools are confined to
        config: Tool settings; `core_tools` limits the set, `exclude_tools`
                removes from it

    Returns:
        Names of the registered tools
    """
    config = config or ToolsConfig()
    core = set(config.core_tools) if config.core_tools is not None else None
    excluded = set(config.exclude_tools)

    registered = []
    for tool in create_builtin_tools(root, config):
        if core is not None and tool.name not in core:
            continue
        if tool.name in excluded:
            continue
        registry.register(tool)
        registered.append(tool.name)

    logger.info(f"Registered {len(registered)} built-in tools")
    return registered
