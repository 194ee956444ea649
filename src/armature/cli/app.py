"""
Main Typer application for the armature CLI.

This module defines the root CLI application and registers all command groups.
"""

from pathlib import Path
from typing import Annotated

import typer

from armature import __version__
from armature.cli.commands import checkpoint, servers, tools
from armature.cli.context import CliState
from armature.cli.output import print_error, print_info, setup_logging

# Create the main Typer app
app = typer.Typer(
    name="armature",
    help="Tool-execution core for AI agents: built-in, discovered and MCP tools.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        print_info(f"armature version [green]{__version__}[/green]")
        raise typer.Exit()


# noinspection PyUnusedLocal
@app.callback()
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging.",
        ),
    ] = False,
    root: Annotated[
        Path | None,
        typer.Option(
            "--root",
            "-r",
            help="Project root directory (default: current directory).",
        ),
    ] = None,
) -> None:
    """
    [bold blue]armature[/bold blue] - tool execution for AI agents

    Validates, confirms, checkpoints and runs tool calls from built-in
    tools, the project's discovery command and MCP servers.
    """
    setup_logging(verbose)

    project_root = (root or Path.cwd()).expanduser().resolve()
    if not project_root.is_dir():
        print_error(f"Root directory does not exist: {project_root}")
        raise typer.Exit(1)

    ctx.obj = CliState(root=project_root, verbose=verbose)


# Register command groups
app.add_typer(tools.app, name="tools")
app.add_typer(servers.app, name="servers")
app.add_typer(checkpoint.app, name="checkpoint")


if __name__ == "__main__":
    app()
