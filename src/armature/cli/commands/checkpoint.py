"""
armature checkpoint - Manage workspace checkpoints.

Usage:
    armature checkpoint list
    armature checkpoint restore <tag>
    armature checkpoint delete <tag>
"""

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from armature.checkpoint.service import CheckpointError
from armature.cli.context import open_session
from armature.cli.output import print_error, print_success

app = typer.Typer(
    name="checkpoint",
    help="List, restore and delete workspace checkpoints.",
)

console = Console()


@app.command("list")
def list_checkpoints(ctx: typer.Context) -> None:
    """List checkpoints for the project."""
    session = open_session(ctx)
    try:
        tags = session.checkpoints.list()
        if not tags:
            console.print("[yellow]No checkpoints found.[/yellow]")
            return

        table = Table(title="Checkpoints")
        table.add_column("Tag", style="cyan", no_wrap=True)
        table.add_column("Tool")
        table.add_column("Commit")
        table.add_column("Created")

        for tag in tags:
            record = session.checkpoints.get(tag)
            if record is None:
                continue
            table.add_row(
                record.tag,
                record.tool_name,
                record.commit_hash[:12],
                record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        console.print(table)
    except CheckpointError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("restore")
def restore_checkpoint(
    ctx: typer.Context,
    tag: Annotated[str, typer.Argument(help="Checkpoint tag to restore")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Restore the workspace to a checkpoint."""
    session = open_session(ctx)

    if not force:
        confirm = typer.confirm(f"Restore {session.root} to checkpoint '{tag}'? Uncommitted changes are lost")
        if not confirm:
            console.print("[dim]Cancelled.[/dim]")
            return

    try:
        record = asyncio.run(session.executor.restore_checkpoint(tag))
    except CheckpointError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Restored checkpoint {record.tag} ({record.commit_hash[:12]})")
    if record.tool_call:
        console.print(f"[dim]Checkpointed tool call: {record.tool_name} {record.tool_call.get('args', {})}[/dim]")


@app.command("delete")
def delete_checkpoint(
    ctx: typer.Context,
    tag: Annotated[str, typer.Argument(help="Checkpoint tag to delete")],
) -> None:
    """Delete a checkpoint."""
    session = open_session(ctx)
    try:
        deleted = asyncio.run(session.checkpoints.delete(tag))
    except CheckpointError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not deleted:
        print_error(f"Checkpoint not found: {tag}")
        raise typer.Exit(1)
    print_success(f"Deleted checkpoint: {tag}")
