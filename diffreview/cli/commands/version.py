"""Version command for diffreview CLI."""

import typer


def version() -> None:
    """Show version information."""
    from diffreview import __version__

    typer.echo(f"diffreview {__version__}")
