"""
armature servers - Inspect MCP tool servers.

Usage:
    armature servers list
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from armature.cli.context import open_session
from armature.mcp.models import ServerStatus

app = typer.Typer(
    name="servers",
    help="Inspect configured MCP tool servers.",
)

console = Console()

_STATUS_STYLE = {
    ServerStatus.CONNECTED: "[green]connected[/green]",
    ServerStatus.CONNECTING: "[yellow]connecting[/yellow]",
    ServerStatus.DISCONNECTED: "[red]disconnected[/red]",
}


@app.command("list")
def list_servers(ctx: typer.Context) -> None:
    """Connect to every configured server and show its status and tools."""

    async def _list() -> None:
        session = open_session(ctx)
        if not session.config.mcp_servers:
            console.print("[yellow]No MCP servers configured.[/yellow]")
            return

        await session.start()
        try:
            table = Table(title="MCP Servers")
            table.add_column("Name", style="cyan", no_wrap=True)
            table.add_column("Command")
            table.add_column("Status")
            table.add_column("Tools")

            for name, server_config in session.config.mcp_servers.items():
                connection = session.mcp_manager.get_connection(name)
                status = session.mcp_manager.get_status(name)
                if connection is not None and connection.is_connected:
                    detail = ", ".join(connection.tool_names) or "(none)"
                else:
                    detail = (connection.error if connection else None) or "-"
                table.add_row(name, server_config.display_command, _STATUS_STYLE[status], detail)

            console.print(table)
        finally:
            await session.close()

    asyncio.run(_list())
