"""Shared helpers for armature tests."""

import shlex
import shutil
import sys
from pathlib import Path

import pytest

from armature.config.schema import McpServerConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"
FAKE_TOOLS_SCRIPT = FIXTURES_DIR / "fake_tools.py"
FAKE_MCP_SERVER = FIXTURES_DIR / "fake_mcp_server.py"

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def python_command(script: Path, *args: str) -> str:
    """Shell command line running a fixture script with this interpreter."""
    return " ".join(shlex.quote(part) for part in [sys.executable, str(script), *args])


def fake_server_config(*tools: str, extra_args: list[str] | None = None, **kwargs) -> McpServerConfig:
    """Config launching the fake MCP server with the given tools."""
    args = [str(FAKE_MCP_SERVER)]
    if tools:
        args += ["--tools", ",".join(tools)]
    args += extra_args or []
    kwargs.setdefault("connect_timeout", 15)
    return McpServerConfig(command=sys.executable, args=args, **kwargs)
