"""
Main CLI entry point.
"""

import typer

from sfbwatch import __version__
from sfbwatch.cli import history, scan, settings, status, watch


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"sfbwatch version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="sfbwatch",
    help="sfbwatch - watch SfB user export files and sync them into storage",
    add_completion=True,
)

app.add_typer(watch.app, name="watch")
app.add_typer(scan.scan_app, name="scan")
app.add_typer(scan.sync_app, name="sync")
app.add_typer(status.app, name="status")
app.add_typer(history.app, name="history")
app.add_typer(settings.app, name="settings")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    sfbwatch - watch SfB user export files and sync them into storage.

    Run 'sfbwatch <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
