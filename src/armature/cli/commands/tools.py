"""
armature tools - Inspect and call tools.

Usage:
    armature tools list
    armature tools info <tool-name>
    armature tools call <tool-name> --args '{"path": "README.md"}'
"""

import asyncio
import json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from armature.approval.models import ConfirmationOutcome
from armature.cli.context import open_session
from armature.session import ToolSession
from armature.tools.models import ToolCall

app = typer.Typer(
    name="tools",
    help="Inspect and call tools.",
)

console = Console()


def _print_discovery_errors(session: ToolSession) -> None:
    if session.discovery is None:
        return
    for source, error in session.discovery.errors.items():
        console.print(f"[yellow]Discovery failed for {source}:[/yellow] {error}")


@app.command("list")
def list_tools(
    ctx: typer.Context,
    no_discovery: Annotated[
        bool,
        typer.Option(
            "--no-discovery",
            help="Only list built-in tools.",
        ),
    ] = False,
) -> None:
    """List all available tools."""

    async def _list() -> None:
        session = open_session(ctx)
        await session.start(discover=not no_discovery)
        try:
            _print_discovery_errors(session)
            all_tools = session.registry.list_tools()

            if not all_tools:
                console.print("[yellow]No tools registered.[/yellow]")
                return

            table = Table(title="Available Tools")
            table.add_column("Name", style="cyan", no_wrap=True)
            table.add_column("Source", style="magenta")
            table.add_column("Description")

            for tool in all_tools:
                first_line = tool.description.strip().splitlines()[0] if tool.description.strip() else ""
                desc = first_line[:80] + "..." if len(first_line) > 80 else first_line
                table.add_row(tool.name, tool.source.value, desc)

            console.print(table)
            console.print(f"\n[dim]Total: {len(all_tools)} tool(s)[/dim]")
        finally:
            await session.close()

    asyncio.run(_list())


@app.command("info")
def tool_info(
    ctx: typer.Context,
    tool_name: Annotated[
        str,
        typer.Argument(help="Tool name to get info about"),
    ],
) -> None:
    """Show detailed information about a tool."""

    async def _info() -> bool:
        session = open_session(ctx)
        await session.start()
        try:
            tool = session.registry.get(tool_name)

            if not tool:
                console.print(f"[red]Error:[/red] Tool not found: {tool_name}")
                available = session.registry.list_tool_names()
                console.print(f"\n[dim]Available tools: {', '.join(available)}[/dim]")
                return False

            console.print(f"\n[bold cyan]{tool.name}[/bold cyan] ({tool.display_name})")
            console.print(f"Source: {tool.source.value}")
            console.print(f"Mutating: {'yes' if tool.is_mutating else 'no'}")
            console.print(f"\n[bold]Description:[/bold]\n{tool.description}")

            console.print("\n[bold]Parameter Schema:[/bold]")
            console.print_json(json.dumps(tool.parameter_schema))
            return True
        finally:
            await session.close()

    if not asyncio.run(_info()):
        raise typer.Exit(1)


@app.command("call")
def call_tool(
    ctx: typer.Context,
    tool_name: Annotated[
        str,
        typer.Argument(help="Tool name to call"),
    ],
    args: Annotated[
        str,
        typer.Option(
            "--args",
            "-a",
            help="Tool arguments as a JSON object",
        ),
    ] = "{}",
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Run without asking for confirmation.",
        ),
    ] = False,
) -> None:
    """Call a tool through validation, approval and checkpointing."""
    try:
        tool_args = json.loads(args)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] Invalid JSON arguments: {e}")
        raise typer.Exit(1)

    if not isinstance(tool_args, dict):
        console.print("[red]Error:[/red] Arguments must be a JSON object")
        raise typer.Exit(1)

    async def _call():
        if yes:
            session = open_session(ctx, approval_surface=lambda request: ConfirmationOutcome.PROCEED_ONCE)
        else:
            session = open_session(ctx)
        await session.start()
        try:
            _print_discovery_errors(session)
            return await session.executor.execute(ToolCall(id="cli", name=tool_name, args=tool_args))
        finally:
            await session.close()

    result = asyncio.run(_call())

    if result.cancelled:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    if result.is_error:
        console.print(f"[red]Error:[/red] {result.error}")
        if result.display_content and result.display_content != result.error:
            console.print(result.display_content, markup=False)
        raise typer.Exit(1)

    console.print(result.display_content, markup=False)
