"""
sfbwatch settings - read and write the stored monitor settings.

Stored settings override ``monitor.watch_path`` and
``monitor.check_interval_ms`` from config.yaml when the monitor starts.
"""

import asyncio
from pathlib import Path

import typer
from rich.table import Table

from sfbwatch.cli.common import ENV_OPTION, PROJECT_DIR_OPTION, build_runtime, console, fail
from sfbwatch.exceptions import SfbWatchError
from sfbwatch.storage import SETTING_CHECK_INTERVAL, SETTING_WATCH_PATH, Storage

app = typer.Typer(name="settings", help="Show or change stored monitor settings")

_KEYS = {
    "path": SETTING_WATCH_PATH,
    "interval": SETTING_CHECK_INTERVAL,
}


async def _read_all(storage: Storage) -> dict[str, str | None]:
    async with storage:
        return {key: await storage.get_setting(key) for key in _KEYS.values()}


async def _write(storage: Storage, key: str, value: str) -> None:
    async with storage:
        await storage.set_setting(key, value)


@app.command("show")
def show(
    env: str | None = ENV_OPTION,
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Show stored settings."""
    runtime = build_runtime(project_dir, env=env)
    try:
        values = asyncio.run(_read_all(runtime.storage))
    except SfbWatchError as e:
        fail(e.message)

    table = Table(title="Stored settings", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in values.items():
        table.add_row(key, value if value is not None else "[dim](not set)[/dim]")
    console.print(table)


@app.command("set")
def set_setting(
    name: str = typer.Argument(..., help="Setting to change: path or interval"),
    value: str = typer.Argument(..., help="New value (interval in milliseconds)"),
    env: str | None = ENV_OPTION,
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Store a watch path or check interval override."""
    if name not in _KEYS:
        fail(f"Unknown setting '{name}'. Expected one of: {', '.join(_KEYS)}")
    if name == "interval" and not (value.isdigit() and int(value) > 0):
        fail(f"Interval must be a positive number of milliseconds, got '{value}'")

    runtime = build_runtime(project_dir, env=env)
    try:
        asyncio.run(_write(runtime.storage, _KEYS[name], value))
    except SfbWatchError as e:
        fail(e.message)
    console.print(f"[green]Set {_KEYS[name]} = {value}[/green]")
