"""
Unit tests for CLI commands.
"""

import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from armature import __version__
from armature.cli.app import app
from helpers import FAKE_TOOLS_SCRIPT, python_command


def _invoke(cli_runner: CliRunner, project_dir: Path, *args: str, **kwargs):
    return cli_runner.invoke(app, ["--root", str(project_dir), *args], **kwargs)


def _write_settings(project_dir: Path, data: dict) -> None:
    settings = project_dir / ".armature" / "settings.yaml"
    settings.parent.mkdir(exist_ok=True)
    settings.write_text(yaml.safe_dump(data))


def test_version(cli_runner: CliRunner) -> None:
    """Test --version flag."""
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_help(cli_runner: CliRunner) -> None:
    """Test --help flag."""
    result = cli_runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "armature" in result.stdout
    assert "tools" in result.stdout
    assert "servers" in result.stdout
    assert "checkpoint" in result.stdout


def test_missing_root(cli_runner: CliRunner, temp_dir: Path) -> None:
    """Test a --root that does not exist."""
    result = cli_runner.invoke(app, ["--root", str(temp_dir / "missing"), "tools", "list"])
    assert result.exit_code == 1
    assert "does not exist" in result.stdout


def test_tools_list_builtin(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test listing built-in tools."""
    result = _invoke(cli_runner, project_dir, "tools", "list", "--no-discovery")
    assert result.exit_code == 0
    assert "read_file" in result.stdout
    assert "run_shell_command" in result.stdout


def test_tools_list_with_discovery(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test tools from the discovery command are listed."""
    _write_settings(
        project_dir,
        {
            "tools": {
                "discovery_command": python_command(FAKE_TOOLS_SCRIPT, "discover"),
                "call_command": python_command(FAKE_TOOLS_SCRIPT, "call"),
            }
        },
    )

    result = _invoke(cli_runner, project_dir, "tools", "list")

    assert result.exit_code == 0
    assert "foo" in result.stdout


def test_tools_info(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test showing a tool."""
    result = _invoke(cli_runner, project_dir, "tools", "info", "replace")
    assert result.exit_code == 0
    assert "old_string" in result.stdout
    assert "Mutating: yes" in result.stdout


def test_tools_info_unknown(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test showing a tool that does not exist."""
    result = _invoke(cli_runner, project_dir, "tools", "info", "nope")
    assert result.exit_code == 1
    assert "Tool not found" in result.stdout


def test_tools_call_read_file(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test calling a read-only tool."""
    (project_dir / "notes.txt").write_text("hello\n")

    result = _invoke(cli_runner, project_dir, "tools", "call", "read_file", "--args", json.dumps({"path": "notes.txt"}))

    assert result.exit_code == 0
    assert "Read 1 lines from notes.txt" in result.stdout


def test_tools_call_write_with_yes(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test --yes skips the confirmation prompt."""
    args = json.dumps({"path": "out.txt", "content": "written"})

    result = _invoke(cli_runner, project_dir, "tools", "call", "write_file", "-a", args, "--yes")

    assert result.exit_code == 0
    assert (project_dir / "out.txt").read_text() == "written"


def test_tools_call_declined(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test answering no at the prompt."""
    args = json.dumps({"path": "out.txt", "content": "written"})

    result = _invoke(cli_runner, project_dir, "tools", "call", "write_file", "-a", args, input="n\n")

    assert result.exit_code == 0
    assert "Cancelled." in result.stdout
    assert not (project_dir / "out.txt").exists()


def test_tools_call_invalid_json(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test malformed --args."""
    result = _invoke(cli_runner, project_dir, "tools", "call", "read_file", "--args", "{not json")
    assert result.exit_code == 1
    assert "Invalid JSON" in result.stdout


def test_tools_call_non_object_args(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test --args that is not an object."""
    result = _invoke(cli_runner, project_dir, "tools", "call", "read_file", "--args", "[1, 2]")
    assert result.exit_code == 1
    assert "JSON object" in result.stdout


def test_tools_call_validation_error(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test invalid arguments are reported."""
    result = _invoke(cli_runner, project_dir, "tools", "call", "read_file", "--args", "{}")
    assert result.exit_code == 1
    assert "Missing required field" in result.stdout


def test_invalid_config(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test a broken project config."""
    _write_settings(project_dir, {"approval": {"mode": "reckless"}})

    result = _invoke(cli_runner, project_dir, "tools", "list", "--no-discovery")

    assert result.exit_code == 1
    assert "validation failed" in result.stdout


def test_servers_list_none(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test listing servers when none are configured."""
    result = _invoke(cli_runner, project_dir, "servers", "list")
    assert result.exit_code == 0
    assert "No MCP servers configured." in result.stdout


def test_checkpoint_list_empty(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test listing checkpoints before any exist."""
    result = _invoke(cli_runner, project_dir, "checkpoint", "list")
    assert result.exit_code == 0
    assert "No checkpoints found." in result.stdout


def test_checkpoint_delete_missing(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test deleting a checkpoint that does not exist."""
    result = _invoke(cli_runner, project_dir, "checkpoint", "delete", "nope")
    assert result.exit_code == 1
    assert "Checkpoint not found" in result.stdout


def test_checkpoint_restore_declined(cli_runner: CliRunner, project_dir: Path) -> None:
    """Test answering no to the restore prompt."""
    result = _invoke(cli_runner, project_dir, "checkpoint", "restore", "some-tag", input="n\n")
    assert result.exit_code == 0
    assert "Cancelled." in result.stdout
