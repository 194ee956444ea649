"""Tests for the built-in shell tool."""

import asyncio
import os
import shutil
import signal
import time
from pathlib import Path

import pytest

from armature.approval.models import ConfirmationKind
from armature.tools.builtin.bash import ShellTool
from armature.tools.cancellation import CancellationToken

requires_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash is not installed")


class TestShellToolDefinition:
    """Tests for ShellTool properties and validation."""

    def test_tool_properties(self, tmp_path: Path):
        """Test tool basic properties."""
        tool = ShellTool(tmp_path)

        assert tool.name == "run_shell_command"
        assert tool.is_mutating is True
        assert tool.parameter_schema["required"] == ["command"]

    def test_empty_command(self, tmp_path: Path):
        """Test blank commands are rejected."""
        assert ShellTool(tmp_path).validate({"command": "   "}) == "Command cannot be empty."

    def test_missing_directory(self, tmp_path: Path):
        """Test a directory that does not exist."""
        error = ShellTool(tmp_path).validate({"command": "ls", "directory": "nope"})

        assert error == "Directory does not exist: nope"

    def test_directory_outside_root(self, tmp_path: Path):
        """Test the directory must stay inside the root."""
        error = ShellTool(tmp_path / "root").validate({"command": "ls", "directory": ".."})

        assert "within the root directory" in error

    @pytest.mark.asyncio
    async def test_confirmation(self, tmp_path: Path):
        """Test the confirmation shows the command."""
        (tmp_path / "src").mkdir()
        tool = ShellTool(tmp_path)

        request = await tool.should_confirm(
            {"command": "git status --short", "directory": "src", "description": "Show changes"}
        )

        assert request.kind == ConfirmationKind.EXEC
        assert request.details["root_command"] == "git"
        assert request.details["directory"] == "src"
        assert request.details["description"] == "Show changes"


@requires_bash
class TestShellToolExecution:
    """Tests for ShellTool.execute()."""

    @pytest.mark.asyncio
    async def test_success(self, tmp_path: Path):
        """Test output of a successful command."""
        tool = ShellTool(tmp_path)

        result = await tool.execute({"command": "echo hello"}, CancellationToken())

        assert result.is_error is False
        assert "Stdout: hello" in result.raw_content
        assert "Exit Code: 0" in result.raw_content
        assert "Signal: (none)" in result.raw_content
        assert result.display_content == "hello"

    @pytest.mark.asyncio
    async def test_runs_in_directory(self, tmp_path: Path):
        """Test the working directory."""
        (tmp_path / "sub").mkdir()
        tool = ShellTool(tmp_path)

        result = await tool.execute({"command": "pwd", "directory": "sub"}, CancellationToken())

        assert "Directory: sub" in result.raw_content
        assert result.display_content.endswith("sub")

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, tmp_path: Path):
        """Test failing commands are errors carrying their output."""
        tool = ShellTool(tmp_path)

        result = await tool.execute({"command": "echo oops >&2; exit 4"}, CancellationToken())

        assert result.is_error is True
        assert result.error == "Command failed with exit code 4"
        assert "Stderr: oops" in result.raw_content
        assert "Exit Code: 4" in result.raw_content

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path: Path):
        """Test long commands are stopped."""
        tool = ShellTool(tmp_path, timeout=0.5)

        result = await tool.execute({"command": "sleep 10"}, CancellationToken())

        assert result.is_error is True
        assert result.error == "Command timed out after 0.5 seconds"

    @pytest.mark.asyncio
    async def test_cancel(self, tmp_path: Path):
        """Test cancelling a running command."""
        tool = ShellTool(tmp_path)
        cancel = CancellationToken()

        task = asyncio.create_task(tool.execute({"command": "echo started; sleep 30"}, cancel))
        await asyncio.sleep(0.5)
        cancel.cancel()
        result = await asyncio.wait_for(task, timeout=10)

        assert result.is_error is True
        assert result.error == "Command was cancelled by user before it could complete."
        assert "started" in result.raw_content

    @pytest.mark.asyncio
    async def test_side_effects_in_root(self, tmp_path: Path):
        """Test commands run in the root directory by default."""
        tool = ShellTool(tmp_path)

        await tool.execute({"command": "touch created.txt"}, CancellationToken())

        assert (tmp_path / "created.txt").exists()

    @pytest.mark.asyncio
    async def test_background_process_does_not_block(self, tmp_path: Path):
        """Test a command that leaves a background job returns when the shell exits."""
        tool = ShellTool(tmp_path, timeout=10)

        started = time.monotonic()
        result = await tool.execute({"command": "sleep 30 & echo $!"}, CancellationToken())
        elapsed = time.monotonic() - started

        pid = int(result.raw_content.split("Stdout: ")[1].split()[0])
        os.kill(pid, signal.SIGTERM)

        assert elapsed < 5
        assert result.is_error is False
        assert "Exit Code: 0" in result.raw_content
