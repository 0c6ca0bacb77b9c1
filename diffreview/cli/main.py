"""diffreview CLI - Main entry point."""

import typer

from diffreview.cli.commands import review, version

# Create main application
app = typer.Typer(
    name="diffreview",
    help="AI code review for git commits, branches and staged changes",
    add_completion=False,
    no_args_is_help=True,
)

app.command()(review)
app.command()(version)


# Version callback for --version flag
def _version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from diffreview import __version__
        typer.echo(f"diffreview {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def _main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit"
    ),
) -> None:
    """AI code review for git changes."""
    pass


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
