"""
Checkpoint service backed by a hidden git repository.

The repository's git directory lives in the private data directory,
keyed by a hash of the project path; its work tree is the project root.
Snapshots therefore capture the whole workspace without ever touching the
project's own version history.
"""

import asyncio
import logging
import os
import re
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from git import Git
from git.exc import GitCommandError, GitCommandNotFound
from pydantic import ValidationError

from armature.checkpoint.models import CheckpointRecord
from armature.storage.paths import ensure_directory, get_history_dir

logger = logging.getLogger(__name__)

AUTHOR_NAME = "Armature"
AUTHOR_EMAIL = "armature@localhost"
INITIAL_COMMIT_MESSAGE = "Initial commit"

_TAG_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
_TAG_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class CheckpointError(Exception):
    """Raised when a checkpoint cannot be created, read or restored."""


def validate_tag(tag: str) -> str:
    """Check a checkpoint tag only uses [A-Za-z0-9._-].

    Raises:
        CheckpointError: If the tag is empty or has other characters
    """
    if not tag or not _TAG_PATTERN.match(tag) or tag in (".", ".."):
        raise CheckpointError(f"Invalid checkpoint tag: {tag!r}")
    return tag


class _MutationGate:
    """Shared/exclusive hold over the workspace.

    Mutating tool calls share the gate; snapshot and restore hold it
    exclusively. Waiting exclusive holders block new shared holders.
    """

    def __init__(self):
        self._cond = asyncio.Condition()
        self._shared = 0
        self._exclusive = False
        self._waiting_exclusive = 0

    @asynccontextmanager
    async def shared(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._exclusive and not self._waiting_exclusive)
            self._shared += 1
        try:
            yield
        finally:
            async with self._cond:
                self._shared -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._cond:
            self._waiting_exclusive += 1
            try:
                await self._cond.wait_for(lambda: not self._exclusive and self._shared == 0)
            finally:
                self._waiting_exclusive -= 1
            self._exclusive = True
        try:
            yield
        finally:
            async with self._cond:
                self._exclusive = False
                self._cond.notify_all()


class CheckpointService:
    """Snapshots and restores the workspace of one project."""

    def __init__(
        self,
        project_root: Path,
        history_dir: Optional[Path] = None,
        max_checkpoints: Optional[int] = None,
    ):
        """Initialize the service. Nothing touches disk until initialize().

        Args:
            project_root: Project directory to snapshot
            history_dir: Directory for the hidden repository and records
                         (defaults to the per-project data directory)
            max_checkpoints: Keep at most this many checkpoints (unlimited if None)
        """
        self.project_root = Path(project_root).expanduser().resolve()
        self.history_dir = Path(history_dir) if history_dir else get_history_dir(self.project_root)
        self.repo_dir = self.history_dir / "repository"
        self.records_dir = self.history_dir / "checkpoints"
        self.max_checkpoints = max_checkpoints

        self._git = Git(str(self.project_root))
        self._git.update_environment(
            GIT_DIR=str(self.repo_dir),
            GIT_WORK_TREE=str(self.project_root),
            GIT_AUTHOR_NAME=AUTHOR_NAME,
            GIT_AUTHOR_EMAIL=AUTHOR_EMAIL,
            GIT_COMMITTER_NAME=AUTHOR_NAME,
            GIT_COMMITTER_EMAIL=AUTHOR_EMAIL,
        )
        self._gate = _MutationGate()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        """Whether initialize() has completed."""
        return self._initialized

    # =========================================================================
    # Repository setup
    # =========================================================================

    async def initialize(self) -> None:
        """Create the hidden repository if needed.

        Raises:
            CheckpointError: If git is missing or the repository cannot be set up
        """
        async with self._gate.exclusive():
            await asyncio.to_thread(self._initialize_sync)
        self._initialized = True

    def _initialize_sync(self) -> None:
        try:
            self._git.version()
        except GitCommandNotFound as e:
            raise CheckpointError("Checkpointing requires git to be installed") from e

        if not self.project_root.is_dir():
            raise CheckpointError(f"Project root does not exist: {self.project_root}")

        ensure_directory(self.history_dir)
        ensure_directory(self.records_dir)

        try:
            if not (self.repo_dir / "HEAD").exists():
                logger.info(f"Creating checkpoint repository: {self.repo_dir}")
                self._git.init()

            self._git.config("user.name", AUTHOR_NAME)
            self._git.config("user.email", AUTHOR_EMAIL)
            self._git.config("commit.gpgsign", "false")

            if not self._git.rev_list("--all", "--max-count=1").strip():
                self._git.commit("--allow-empty", "--no-verify", "-m", INITIAL_COMMIT_MESSAGE)
        except GitCommandError as e:
            raise CheckpointError(f"Failed to set up checkpoint repository: {e}") from e

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise CheckpointError("Checkpoint service is not initialized")

    # =========================================================================
    # Snapshot / restore
    # =========================================================================

    @asynccontextmanager
    async def mutation(self) -> AsyncIterator[None]:
        """Hold the workspace for a mutating tool call.

        Any number of mutating calls may hold it at once; snapshot() and
        restore() wait for all of them to finish.
        """
        async with self._gate.shared():
            yield

    async def snapshot(
        self,
        tag: str,
        tool_call: Optional[dict[str, Any]] = None,
        conversation: Any = None,
    ) -> CheckpointRecord:
        """Commit the whole workspace and record it under a tag.

        A clean work tree still yields a new (empty) commit.

        Args:
            tag: Checkpoint tag
            tool_call: Serialized tool call about to run
            conversation: Conversation state to restore alongside the files

        Returns:
            The new record

        Raises:
            CheckpointError: If the tag is invalid or git fails
        """
        validate_tag(tag)
        self._require_initialized()

        async with self._gate.exclusive():
            record = await asyncio.to_thread(self._snapshot_sync, tag, tool_call or {}, conversation)

        logger.info(f"Created checkpoint {tag} at {record.commit_hash[:12]}")
        if self.max_checkpoints:
            await self.prune(self.max_checkpoints)
        return record

    def _snapshot_sync(self, tag: str, tool_call: dict[str, Any], conversation: Any) -> CheckpointRecord:
        # Reject unserializable state before anything is committed
        try:
            record = CheckpointRecord(tag=tag, commit_hash="", tool_call=tool_call, conversation=conversation)
            record.model_dump_json()
        except ValueError as e:
            raise CheckpointError(f"Cannot record checkpoint {tag}: {e}") from e

        try:
            self._git.add("-A")
            self._git.commit("--allow-empty", "--no-verify", "-m", f"Checkpoint: {tag}")
            commit_hash = self._git.rev_parse("HEAD").strip()
            # Keep the commit reachable for as long as the record exists
            self._git.tag("-f", f"checkpoint-{tag}", commit_hash)
        except GitCommandError as e:
            raise CheckpointError(f"Failed to create checkpoint {tag}: {e}") from e

        record = record.model_copy(update={"commit_hash": commit_hash})
        try:
            self._write_record(record)
        except (OSError, ValueError) as e:
            self._delete_tag(tag)
            raise CheckpointError(f"Failed to write checkpoint record {tag}: {e}") from e
        return record

    async def restore(self, tag: str) -> CheckpointRecord:
        """Reset the workspace to a checkpoint.

        Tracked files are hard-reset and untracked files removed. Files the
        project ignores are left alone.

        Returns:
            The stored record, so the caller can restore the conversation and
            re-offer the tool call

        Raises:
            CheckpointError: If the checkpoint is unknown or git fails
        """
        validate_tag(tag)
        self._require_initialized()

        async with self._gate.exclusive():
            record = await asyncio.to_thread(self._restore_sync, tag)

        logger.info(f"Restored checkpoint {tag} ({record.commit_hash[:12]})")
        return record

    def _restore_sync(self, tag: str) -> CheckpointRecord:
        record = self._read_record(tag)
        if record is None:
            raise CheckpointError(f"No checkpoint found with tag: {tag}")

        try:
            self._git.cat_file("-e", f"{record.commit_hash}^{{commit}}")
        except GitCommandError as e:
            raise CheckpointError(
                f"Checkpoint {tag} refers to a missing commit: {record.commit_hash}"
            ) from e

        try:
            self._git.reset("--hard", record.commit_hash)
            self._git.clean("-fd")
        except GitCommandError as e:
            raise CheckpointError(f"Failed to restore checkpoint {tag}: {e}") from e
        return record

    # =========================================================================
    # Records
    # =========================================================================

    def _record_path(self, tag: str) -> Path:
        return self.records_dir / f"checkpoint-{tag}.json"

    def _write_record(self, record: CheckpointRecord) -> None:
        ensure_directory(self.records_dir)
        path = self._record_path(record.tag)
        tmp = path.with_name(f".{path.name}.tmp")
        tmp.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)

    def _read_record(self, tag: str) -> Optional[CheckpointRecord]:
        path = self._record_path(tag)
        if not path.exists():
            return None
        try:
            return CheckpointRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise CheckpointError(f"Failed to read checkpoint {tag}: {e}") from e

    def get(self, tag: str) -> Optional[CheckpointRecord]:
        """Get the record for a tag, or None if there is none."""
        return self._read_record(validate_tag(tag))

    async def delete(self, tag: str) -> bool:
        """Delete a checkpoint record and release its commit.

        Returns:
            True if a checkpoint was deleted
        """
        validate_tag(tag)
        async with self._gate.exclusive():
            return await asyncio.to_thread(self._delete_sync, tag)

    def _delete_sync(self, tag: str) -> bool:
        path = self._record_path(tag)
        if not path.exists():
            return False

        path.unlink()
        self._delete_tag(tag)
        logger.info(f"Deleted checkpoint {tag}")
        return True

    def _delete_tag(self, tag: str) -> None:
        try:
            self._git.tag("-d", f"checkpoint-{tag}")
        except GitCommandError as e:
            logger.debug(f"No git tag for checkpoint {tag}: {e}")

    async def prune(self, keep: int) -> list[str]:
        """Delete all but the newest `keep` checkpoints.

        Returns:
            Tags that were deleted
        """
        async with self._gate.exclusive():
            deleted = await asyncio.to_thread(self._prune_sync, keep)
        if deleted:
            logger.debug(f"Pruned {len(deleted)} old checkpoints")
        return deleted

    def _prune_sync(self, keep: int) -> list[str]:
        records = [record for record in (self._read_record(tag) for tag in self.list()) if record]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return [record.tag for record in records[max(keep, 0) :] if self._delete_sync(record.tag)]

    @staticmethod
    def make_tag(tool_name: str, args: Optional[dict[str, Any]] = None) -> str:
        """Build a tag from the current time, the target file and the tool name."""
        timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
        parts = [timestamp]

        path = (args or {}).get("path") or (args or {}).get("file_path")
        if isinstance(path, str) and path:
            parts.append(Path(path).name)
        parts.append(tool_name)

        tag = _TAG_UNSAFE_CHARS.sub("_", "-".join(parts)).strip("._-")
        return tag or timestamp

    # Defined last: the method name shadows the builtin in the class body
    def list(self) -> list[str]:
        """List checkpoint tags, sorted."""
        if not self.records_dir.exists():
            return []
        return sorted(
            path.stem[len("checkpoint-") :]
            for path in self.records_dir.glob("checkpoint-*.json")
        )

    def __repr__(self) -> str:
        """Representation."""
        return f"<CheckpointService project={self.project_root} repo={self.repo_dir}>"
