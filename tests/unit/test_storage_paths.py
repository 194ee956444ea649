"""Tests for path utilities."""

from pathlib import Path

import pytest

from armature.storage.paths import (
    ensure_directory,
    find_project_config,
    get_armature_home,
    get_data_dir,
    get_global_config_path,
    get_history_dir,
    project_hash,
)


def test_home_from_environment(armature_home: Path):
    """Test ARMATURE_HOME is honoured."""
    assert get_armature_home() == armature_home.resolve()
    assert get_global_config_path() == armature_home.resolve() / "config.yaml"
    assert get_data_dir() == armature_home.resolve() / "data"


def test_home_default(monkeypatch: pytest.MonkeyPatch):
    """Test the default home directory."""
    monkeypatch.delenv("ARMATURE_HOME")

    assert get_armature_home() == Path.home() / ".armature"


def test_project_hash_is_stable(temp_dir: Path):
    """Test the hash depends only on the resolved path."""
    first = project_hash(temp_dir)

    assert first == project_hash(str(temp_dir) + "/")
    assert len(first) == 16
    assert first != project_hash(temp_dir / "other")


def test_history_dir(temp_dir: Path):
    """Test history lives under the data directory."""
    history = get_history_dir(temp_dir)

    assert history.parent == get_data_dir() / "history"
    assert history.name == project_hash(temp_dir)


def test_find_project_config(project_dir: Path):
    """Test walking up to the project config."""
    nested = ensure_directory(project_dir / "a" / "b")
    assert find_project_config(nested) is None

    config = project_dir / ".armature" / "settings.yaml"
    config.parent.mkdir()
    config.write_text("")

    assert find_project_config(nested) == config

