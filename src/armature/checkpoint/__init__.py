"""Workspace checkpoints for undoing tool calls."""

from armature.checkpoint.models import CheckpointRecord
from armature.checkpoint.service import CheckpointError, CheckpointService, validate_tag

__all__ = ["CheckpointError", "CheckpointRecord", "CheckpointService", "validate_tag"]
