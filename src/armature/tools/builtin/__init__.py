"""Built-in tools.

Standard tools confined to the session's root directory:
- Read, list, write and edit files
- Execute shell commands
- Fetch web content
"""

from armature.tools.builtin.bash import ShellTool
from armature.tools.builtin.file import (
    ListDirectoryTool,
    ReadFileTool,
    ReplaceTool,
    RootedTool,
    WriteFileTool,
)
from armature.tools.builtin.http import WebFetchTool
from armature.tools.builtin.registry_utils import create_builtin_tools, register_builtin_tools

__all__ = [
    "ListDirectoryTool",
    "ReadFileTool",
    "ReplaceTool",
    "RootedTool",
    "ShellTool",
    "WebFetchTool",
    "WriteFileTool",
    "create_builtin_tools",
    "register_builtin_tools",
]
