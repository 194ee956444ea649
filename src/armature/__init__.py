"""
Armature - tool execution core for AI agent CLIs

Validates, gates, executes and checkpoints tool calls from built-in tools,
subprocess-discovered tools and MCP tool servers.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("armature")
except PackageNotFoundError:
    __version__ = "0.4.0"

__all__ = [
    "__version__",
]
