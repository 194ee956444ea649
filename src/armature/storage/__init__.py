"""Storage utilities for Armature."""

from armature.storage.paths import (
    ensure_directory,
    find_project_config,
    get_armature_home,
    get_data_dir,
    get_global_config_path,
    get_history_dir,
    project_hash,
)

__all__ = [
    "ensure_directory",
    "find_project_config",
    "get_armature_home",
    "get_data_dir",
    "get_global_config_path",
    "get_history_dir",
    "project_hash",
]
