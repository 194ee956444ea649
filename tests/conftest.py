"""
Pytest configuration and fixtures for armature tests.
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from armature.config.schema import ToolsConfig
from helpers import FAKE_TOOLS_SCRIPT, python_command


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture(autouse=True)
def armature_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ARMATURE_HOME at a temporary directory and clear ARMATURE_* overrides."""
    for key in list(os.environ):
        if key.startswith("ARMATURE_"):
            monkeypatch.delenv(key)

    home = temp_dir / ".armature-home"
    home.mkdir()
    monkeypatch.setenv("ARMATURE_HOME", str(home))
    return home


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """Provide an empty project directory."""
    project = temp_dir / "project"
    project.mkdir()
    return project


@pytest.fixture
def fake_tools_config() -> ToolsConfig:
    """Discovery and call commands backed by the fake tools script."""
    return ToolsConfig(
        discovery_command=python_command(FAKE_TOOLS_SCRIPT, "discover"),
        call_command=python_command(FAKE_TOOLS_SCRIPT, "call"),
        discovery_timeout=20,
    )
