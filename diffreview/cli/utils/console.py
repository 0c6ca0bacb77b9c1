"""Shared rich console for CLI status output.

Status lines go to stderr; stdout is reserved for the report itself.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape

_console: Optional[Console] = None


def get_console() -> Console:
    """Get the shared stderr console."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def print_error(message: str) -> None:
    get_console().print(f"[red]Error:[/red] {escape(message)}")


def print_warning(message: str) -> None:
    get_console().print(f"[yellow]Warning:[/yellow] {escape(message)}")


def print_success(message: str) -> None:
    get_console().print(f"[green]✓[/green] {escape(message)}")


def print_info(message: str) -> None:
    get_console().print(f"[dim]{escape(message)}[/dim]")
