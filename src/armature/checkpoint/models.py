"""Data models for workspace checkpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CheckpointRecord(BaseModel):
    """Side record of one checkpoint.

    Records are never modified; a new snapshot under the same tag replaces
    the previous record.
    """

    model_config = ConfigDict(frozen=True)

    tag: str
    commit_hash: str
    tool_call: dict[str, Any] = Field(default_factory=dict)
    conversation: Any = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def tool_name(self) -> str:
        """Name of the checkpointed tool call, if recorded."""
        return str(self.tool_call.get("name", ""))
