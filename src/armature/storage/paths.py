"""
Path utilities for Armature.

Provides consistent path resolution for configuration and private data,
including the per-project directories that hold checkpoint history.
"""

import hashlib
import os
from pathlib import Path

PROJECT_DIR_NAME = ".armature"
PROJECT_CONFIG_NAME = "settings.yaml"


def get_armature_home() -> Path:
    """
    Get the Armature home directory.

    Resolution order:
    1. ARMATURE_HOME environment variable
    2. Default: ~/.armature

    Returns:
        Path to the Armature home directory.
    """
    env_home = os.environ.get("ARMATURE_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".armature"


def get_global_config_path() -> Path:
    """
    Get the path to the global configuration file.

    Returns:
        Path to ~/.armature/config.yaml
    """
    return get_armature_home() / "config.yaml"


def get_data_dir() -> Path:
    """
    Get the private data directory.

    Returns:
        Path to ~/.armature/data/
    """
    return get_armature_home() / "data"


def project_hash(project_root: str | Path) -> str:
    """
    Hash a project path into a stable directory name.

    Args:
        project_root: Project root directory.

    Returns:
        First 16 hex characters of the SHA-256 of the resolved path.
    """
    resolved = str(Path(project_root).expanduser().resolve())
    return hashlib.sha256(resolved.encode("utf-8")).hexdigest()[:16]


def get_history_dir(project_root: str | Path) -> Path:
    """
    Get the checkpoint history directory for a project.

    The directory lives under the private data directory, keyed by a hash of
    the project path, so it never appears inside the project itself.

    Args:
        project_root: Project root directory.

    Returns:
        Path to ~/.armature/data/history/<hash>/
    """
    return get_data_dir() / "history" / project_hash(project_root)


def find_project_config(start_path: Path | None = None) -> Path | None:
    """
    Find the project configuration file by traversing up the directory tree.

    Looks for .armature/settings.yaml starting from the given path
    (or current directory) and moving up to the root.

    Args:
        start_path: Starting directory to search from. Defaults to cwd.

    Returns:
        Path to the project config if found, None otherwise.
    """
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path).resolve()

    current = start_path
    while True:
        project_config = current / PROJECT_DIR_NAME / PROJECT_CONFIG_NAME
        if project_config.exists():
            return project_config
        if current == current.parent:
            return None
        current = current.parent

