"""Shared CLI state and session helpers."""

from dataclasses import dataclass, field
from pathlib import Path

import typer

from armature.approval.models import ApprovalSurface
from armature.cli.output import print_error, prompt_confirmation
from armature.config.loader import ConfigurationError
from armature.session import ToolSession


@dataclass
class CliState:
    """Options given to the root command."""

    root: Path = field(default_factory=Path.cwd)
    verbose: bool = False


def get_state(ctx: typer.Context) -> CliState:
    """Get the root command options (defaults when invoked standalone)."""
    root_ctx = ctx.find_root()
    if isinstance(root_ctx.obj, CliState):
        return root_ctx.obj
    return CliState()


def open_session(ctx: typer.Context, approval_surface: ApprovalSurface | None = prompt_confirmation) -> ToolSession:
    """Create a session for the project at --root.

    Exits with status 1 when the configuration is invalid.
    """
    state = get_state(ctx)
    try:
        return ToolSession.from_project(state.root, approval_surface=approval_surface)
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1)
