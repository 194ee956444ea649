"""
Output formatting utilities for the CLI.

Provides consistent output formatting, logging setup and the console
approval prompt across all CLI commands.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.syntax import Syntax
from rich.table import Table

from armature.approval.models import ConfirmationKind, ConfirmationOutcome, ConfirmationRequest

# Global console instances
console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Route log records to stderr through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]i[/blue] {message}")


def print_panel(content: Any, title: str | None = None) -> None:
    """Print content in a panel."""
    console.print(Panel(content, title=title))


def print_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str | None = None,
) -> None:
    """Print a table."""
    table = Table(title=title)

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)


# Choice key -> outcome, per request kind
_CHOICES: dict[str, ConfirmationOutcome] = {
    "y": ConfirmationOutcome.PROCEED_ONCE,
    "a": ConfirmationOutcome.PROCEED_ALWAYS,
    "n": ConfirmationOutcome.CANCEL,
}
_MCP_CHOICES: dict[str, ConfirmationOutcome] = {
    "y": ConfirmationOutcome.PROCEED_ONCE,
    "t": ConfirmationOutcome.PROCEED_ALWAYS_TOOL,
    "s": ConfirmationOutcome.PROCEED_ALWAYS_SERVER,
    "n": ConfirmationOutcome.CANCEL,
}
_CHOICE_HELP = {
    "y": "yes, once",
    "a": "yes, always",
    "t": "always allow this tool",
    "s": "always allow this server",
    "n": "no",
}


def prompt_confirmation(request: ConfirmationRequest) -> ConfirmationOutcome:
    """Ask the user to confirm a tool call on the console."""
    if request.kind == ConfirmationKind.EDIT and request.details.get("diff"):
        body: Any = Syntax(request.details["diff"], "diff", theme="ansi_dark")
    else:
        body = request.summary
    console.print(Panel(body, title=f"[bold yellow]{request.title}[/bold yellow]"))

    choices = _MCP_CHOICES if request.kind == ConfirmationKind.MCP else _CHOICES
    hint = ", ".join(f"{key}={_CHOICE_HELP[key]}" for key in choices)
    answer = Prompt.ask(f"Proceed? ({hint})", choices=list(choices), default="n", console=console)
    return choices[answer]
