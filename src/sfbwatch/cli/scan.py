"""
sfbwatch scan / sfbwatch sync - one-shot processing.
"""

import asyncio
from pathlib import Path

import typer
from rich.table import Table

from sfbwatch.cli.common import ENV_OPTION, PROJECT_DIR_OPTION, VERBOSE_OPTION, Runtime, build_runtime, console, fail
from sfbwatch.exceptions import SfbWatchError
from sfbwatch.monitor.types import ProcessingResult

scan_app = typer.Typer(name="scan", help="Scan the export directory once", invoke_without_command=True)
sync_app = typer.Typer(name="sync", help="Force a sync of the latest export file", invoke_without_command=True)


def print_result(result: ProcessingResult) -> None:
    table = Table(title="Processing result" if result.success else "Processing failed", show_header=True)
    table.add_column("Processed", style="cyan", justify="right")
    table.add_column("Inserted", style="green", justify="right")
    table.add_column("Updated", style="yellow", justify="right")
    table.add_column("Failed", style="red", justify="right")
    table.add_column("Duration", style="dim", justify="right")
    table.add_row(
        str(result.records_processed),
        str(result.records_inserted),
        str(result.records_updated),
        str(result.records_failed),
        f"{result.duration_ms}ms",
    )
    console.print(table)
    for error in result.errors:
        console.print(f"[red]  {error}[/red]")


async def _scan(runtime: Runtime) -> ProcessingResult | None:
    async with runtime.storage:
        await runtime.monitor.refresh_settings()
        return await runtime.monitor.scan_once()


async def _sync(runtime: Runtime) -> ProcessingResult:
    async with runtime.storage:
        return await runtime.monitor.force_sync()


@scan_app.callback()
def scan(
    ctx: typer.Context,
    env: str | None = ENV_OPTION,
    project_dir: Path = PROJECT_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Detect new or changed export files and process the latest one if needed.
    """
    if ctx.invoked_subcommand is not None:
        return
    runtime = build_runtime(project_dir, env=env, verbose=verbose)
    try:
        result = asyncio.run(_scan(runtime))
    except SfbWatchError as e:
        fail(e.message)

    if result is None:
        console.print("[dim]Nothing to process[/dim]")
        return
    print_result(result)
    if not result.success:
        raise typer.Exit(1)


@sync_app.callback()
def sync(
    ctx: typer.Context,
    env: str | None = ENV_OPTION,
    project_dir: Path = PROJECT_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Re-process the latest known export file, whatever its status.
    """
    if ctx.invoked_subcommand is not None:
        return
    runtime = build_runtime(project_dir, env=env, verbose=verbose)
    try:
        result = asyncio.run(_sync(runtime))
    except SfbWatchError as e:
        fail(e.message)

    print_result(result)
    if not result.success:
        raise typer.Exit(1)
