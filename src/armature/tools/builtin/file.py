"""File operation tools."""

import difflib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from armature.approval.models import ConfirmationKind, ConfirmationRequest
from armature.tools.base import Tool
from armature.tools.cache import TimedCache, args_key
from armature.tools.cancellation import CancellationToken
from armature.tools.models import ToolCallResult, ToolParameter

logger = logging.getLogger(__name__)

# Lines returned by read_file when no limit is given
DEFAULT_READ_LIMIT = 2000


class RootedTool(Tool):
    """Base for built-in tools confined to the session's root directory.

    Relative paths resolve against the root; paths that escape it fail
    validation.
    """

    # Parameters holding paths that must stay inside the root
    path_params: tuple[str, ...] = ("path",)

    def __init__(self, root: Path):
        """Initialize the tool.

        Args:
            root: Directory the tool may read and modify
        """
        self.root = Path(root).expanduser().resolve()
        super().__init__()

    def resolve_path(self, path: str) -> Path:
        """Resolve a user-supplied path against the root."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate.resolve()

    def is_within_root(self, path: Path) -> bool:
        """Check a resolved path is the root or below it."""
        return path == self.root or self.root in path.parents

    def display_path(self, path: Path) -> str:
        """Path relative to the root for messages."""
        try:
            return str(path.relative_to(self.root)) or "."
        except ValueError:
            return str(path)

    def validate(self, args: dict[str, Any]) -> Optional[str]:
        """Schema validation plus root confinement."""
        error = super().validate(args)
        if error:
            return error

        for param in self.path_params:
            value = args.get(param)
            if value is None:
                continue
            if not str(value).strip():
                return f"'{param}' must not be empty"
            try:
                resolved = self.resolve_path(value)
            except (RuntimeError, ValueError, OSError) as e:
                return f"Invalid path for '{param}': {e}"
            if not self.is_within_root(resolved):
                return f"Path must be within the root directory ({self.root}): {value}"
        return None


class ReadFileTool(RootedTool):
    """Read file contents.

    Safe read-only operation that reads text files and returns their content.
    """

    @property
    def name(self) -> str:
        """Tool name."""
        return "read_file"

    @property
    def display_name(self) -> str:
        """Human readable name."""
        return "ReadFile"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Read the contents of a text file. "
            "Use this to: examine source code, read configuration files, "
            "inspect logs, analyze data files, etc. "
            "For large files, use 'offset' and 'limit' to read a range of lines."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="path",
                type="string",
                description=(
                    "Path to the file to read, absolute or relative to the root directory. "
                    "Example: 'config.yaml' or 'src/main.py'"
                ),
                required=True,
            ),
            ToolParameter(
                name="offset",
                type="integer",
                description="0-based line number to start reading from. Default: 0.",
                required=False,
                minimum=0,
            ),
            ToolParameter(
                name="limit",
                type="integer",
                description=f"Maximum number of lines to read. Default: {DEFAULT_READ_LIMIT}.",
                required=False,
                minimum=1,
            ),
        ]

    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """Read file contents."""
        file_path = self.resolve_path(args["path"])
        offset = args.get("offset") or 0
        limit = args.get("limit") or DEFAULT_READ_LIMIT
        shown = self.display_path(file_path)

        logger.info(f"Reading file: {file_path}")

        if not file_path.exists():
            return ToolCallResult.failure(f"File not found: {shown}")
        if not file_path.is_file():
            return ToolCallResult.failure(f"Not a file: {shown}")

        try:
            lines = file_path.read_text(encoding="utf-8").splitlines(keepends=True)
        except UnicodeDecodeError:
            return ToolCallResult.failure(f"Cannot read binary or non UTF-8 file: {shown}")
        except PermissionError:
            logger.warning(f"File permission denied: {file_path}")
            return ToolCallResult.failure(f"Permission denied: {shown}")

        selected = lines[offset : offset + limit]
        content = "".join(selected)
        if offset + limit < len(lines):
            content += (
                f"\n[File content truncated: showing lines {offset + 1}-{offset + len(selected)} "
                f"of {len(lines)}]"
            )

        return ToolCallResult.success(content, display=f"Read {len(selected)} lines from {shown}")


class ListDirectoryTool(RootedTool):
    """List directory contents.

    Safe read-only operation that lists files and directories.
    """

    @property
    def name(self) -> str:
        """Tool name."""
        return "list_directory"

    @property
    def display_name(self) -> str:
        """Human readable name."""
        return "ReadFolder"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "List files and subdirectories directly within a directory. "
            "Directories are listed first and marked with [DIR]. "
            "Use this to explore the project layout."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="path",
                type="string",
                description="Directory to list. Default: the root directory.",
                required=False,
                default=".",
            ),
            ToolParameter(
                name="ignore",
                type="array",
                description="Glob patterns of entry names to leave out. Example: ['*.pyc', '.git']",
                required=False,
            ),
        ]

    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """List directory contents."""
        dir_path = self.resolve_path(args.get("path") or ".")
        ignore = args.get("ignore") or []
        shown = self.display_path(dir_path)

        logger.info(f"Listing directory: {dir_path}")

        if not dir_path.exists():
            return ToolCallResult.failure(f"Directory not found: {shown}")
        if not dir_path.is_dir():
            return ToolCallResult.failure(f"Not a directory: {shown}")

        try:
            entries = [
                item
                for item in dir_path.iterdir()
                if not any(Path(item.name).match(str(pattern)) for pattern in ignore)
            ]
        except PermissionError:
            logger.warning(f"Directory permission denied: {dir_path}")
            return ToolCallResult.failure(f"Permission denied: {shown}")

        # Directories first, then by name
        entries.sort(key=lambda item: (not item.is_dir(), item.name.lower()))

        if not entries:
            return ToolCallResult.success(f"Directory {shown} is empty.")

        lines = [f"Directory listing for {shown}:"]
        for item in entries:
            lines.append(f"[DIR] {item.name}" if item.is_dir() else item.name)

        return ToolCallResult.success("\n".join(lines), display=f"Listed {len(entries)} item(s).")


def make_diff(path: str, old: str, new: str) -> str:
    """Unified diff between two versions of a file."""
    return "".join(
        difflib.unified_diff(
            old.splitlines(keepends=True),
            new.splitlines(keepends=True),
            fromfile=f"Current: {path}",
            tofile=f"Proposed: {path}",
        )
    )


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp-{os.getpid()}")
    tmp.write_text(content, encoding="utf-8")
    os.replace(tmp, path)


class WriteFileTool(RootedTool):
    """Write content to a file.

    Creates or overwrites the file; the change is shown as a diff for
    confirmation first.
    """

    @property
    def name(self) -> str:
        """Tool name."""
        return "write_file"

    @property
    def display_name(self) -> str:
        """Human readable name."""
        return "WriteFile"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Write content to a file, creating it (and missing parent directories) "
            "if needed or overwriting it if it exists."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="path",
                type="string",
                description="Path of the file to write. Example: 'output.txt'",
                required=True,
            ),
            ToolParameter(
                name="content",
                type="string",
                description="Full content to write to the file.",
                required=True,
            ),
        ]

    @property
    def is_mutating(self) -> bool:
        """Writes change the workspace."""
        return True

    def validate(self, args: dict[str, Any]) -> Optional[str]:
        """Reject writes onto directories."""
        error = super().validate(args)
        if error:
            return error
        if self.resolve_path(args["path"]).is_dir():
            return f"Path is a directory, not a file: {args['path']}"
        return None

    def _read_current(self, file_path: Path) -> str:
        if not file_path.exists():
            return ""
        return file_path.read_text(encoding="utf-8")

    async def should_confirm(self, args: dict[str, Any]) -> Optional[ConfirmationRequest]:
        """Show the write as a diff."""
        file_path = self.resolve_path(args["path"])
        shown = self.display_path(file_path)
        try:
            current = self._read_current(file_path)
        except (OSError, UnicodeDecodeError) as e:
            # execute() reports the read error
            logger.debug(f"Cannot diff {file_path}: {e}")
            current = ""

        diff = make_diff(shown, current, args["content"])
        return ConfirmationRequest(
            kind=ConfirmationKind.EDIT,
            title=f"Confirm Write: {shown}",
            summary=diff or f"No changes to {shown}",
            details={"file_path": str(file_path), "diff": diff},
            tool_name=self.name,
        )

    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """Write the file."""
        file_path = self.resolve_path(args["path"])
        content = args["content"]
        shown = self.display_path(file_path)
        existed = file_path.exists()

        logger.info(f"Writing file: {file_path}")

        try:
            old = self._read_current(file_path) if existed else ""
            _write_text(file_path, content)
        except PermissionError:
            logger.warning(f"File permission denied: {file_path}")
            return ToolCallResult.failure(f"Permission denied: {shown}")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"File write error: {file_path}: {e}")
            return ToolCallResult.failure(f"Failed to write file {shown}: {e}")

        action = "Overwrote" if existed else "Created new"
        return ToolCallResult.success(
            f"Successfully {'overwrote' if existed else 'created and wrote to new'} file: {file_path}",
            display=f"{action} file {shown}\n{make_diff(shown, old, content)}",
        )


@dataclass
class EditPlan:
    """Result of applying a replacement in memory."""

    current: str
    new: str
    occurrences: int
    is_new_file: bool = False
    error: Optional[str] = None


class ReplaceTool(RootedTool):
    """Replace text within a file.

    The edit is computed once for the confirmation diff and reused by
    execute() while it is fresh.
    """

    def __init__(self, root: Path, cache: Optional[TimedCache[EditPlan]] = None):
        """Initialize the tool.

        Args:
            root: Directory the tool may modify
            cache: Cache for computed edits (30 second TTL by default)
        """
        self._plans: TimedCache[EditPlan] = cache if cache is not None else TimedCache()
        super().__init__(root)

    @property
    def name(self) -> str:
        """Tool name."""
        return "replace"

    @property
    def display_name(self) -> str:
        """Human readable name."""
        return "Edit"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Replace text within a file. By default replaces a single occurrence; "
            "set 'expected_replacements' to replace several. 'old_string' must match "
            "the file content exactly, including whitespace and indentation. "
            "To create a new file, use an empty 'old_string' and a path that does not exist."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="path",
                type="string",
                description="Path of the file to modify.",
                required=True,
            ),
            ToolParameter(
                name="old_string",
                type="string",
                description="Exact text to replace. Include surrounding context so it is unique.",
                required=True,
            ),
            ToolParameter(
                name="new_string",
                type="string",
                description="Text to replace old_string with.",
                required=True,
            ),
            ToolParameter(
                name="expected_replacements",
                type="integer",
                description="Number of occurrences to replace. Default: 1.",
                required=False,
                default=1,
                minimum=1,
            ),
        ]

    @property
    def is_mutating(self) -> bool:
        """Edits change the workspace."""
        return True

    def calculate_edit(self, args: dict[str, Any]) -> EditPlan:
        """Apply the replacement in memory without touching the file."""
        file_path = self.resolve_path(args["path"])
        shown = self.display_path(file_path)
        old_string = args["old_string"]
        new_string = args["new_string"]
        expected = args.get("expected_replacements") or 1

        if not file_path.exists():
            if old_string == "":
                return EditPlan(current="", new=new_string, occurrences=1, is_new_file=True)
            return EditPlan(
                current="",
                new="",
                occurrences=0,
                error=f"File not found: {shown}. Use an empty old_string to create a new file.",
            )

        try:
            current = file_path.read_text(encoding="utf-8").replace("\r\n", "\n")
        except (OSError, UnicodeDecodeError) as e:
            return EditPlan(current="", new="", occurrences=0, error=f"Failed to read {shown}: {e}")

        if old_string == "":
            return EditPlan(
                current=current,
                new=current,
                occurrences=0,
                error=f"File already exists, cannot create: {shown}",
            )

        occurrences = current.count(old_string)
        if occurrences == 0:
            return EditPlan(
                current=current,
                new=current,
                occurrences=0,
                error=f"Failed to edit, could not find the string to replace in {shown}",
            )
        if occurrences != expected:
            return EditPlan(
                current=current,
                new=current,
                occurrences=occurrences,
                error=(
                    f"Failed to edit, expected {expected} occurrence(s) "
                    f"but found {occurrences} in {shown}"
                ),
            )

        return EditPlan(current=current, new=current.replace(old_string, new_string), occurrences=occurrences)

    def _plan(self, args: dict[str, Any]) -> EditPlan:
        key = args_key(args)
        plan = self._plans.get(key)
        if plan is None:
            plan = self.calculate_edit(args)
            self._plans.put(key, plan)
        return plan

    async def should_confirm(self, args: dict[str, Any]) -> Optional[ConfirmationRequest]:
        """Show the edit as a diff. Failing edits need no confirmation."""
        plan = self._plan(args)
        if plan.error:
            return None

        file_path = self.resolve_path(args["path"])
        shown = self.display_path(file_path)
        diff = make_diff(shown, plan.current, plan.new)
        return ConfirmationRequest(
            kind=ConfirmationKind.EDIT,
            title=f"Confirm Edit: {shown}",
            summary=diff,
            details={"file_path": str(file_path), "diff": diff},
            tool_name=self.name,
        )

    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """Apply the edit."""
        plan = self._plans.pop(args_key(args)) or self.calculate_edit(args)
        file_path = self.resolve_path(args["path"])
        shown = self.display_path(file_path)

        if plan.error:
            return ToolCallResult.failure(plan.error)

        logger.info(f"Editing file: {file_path}")
        try:
            _write_text(file_path, plan.new)
        except OSError as e:
            logger.error(f"File edit error: {file_path}: {e}")
            return ToolCallResult.failure(f"Failed to write {shown}: {e}")

        if plan.is_new_file:
            return ToolCallResult.success(f"Created new file: {file_path} with provided content.")
        return ToolCallResult.success(
            f"Successfully modified file: {file_path} ({plan.occurrences} replacements).",
            display=make_diff(shown, plan.current, plan.new),
        )
