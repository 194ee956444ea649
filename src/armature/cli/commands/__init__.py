"""CLI command groups."""

from armature.cli.commands import checkpoint, servers, tools

__all__ = ["checkpoint", "servers", "tools"]
