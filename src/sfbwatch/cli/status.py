"""
sfbwatch status - show monitor settings and the latest export file.
"""

import asyncio
from pathlib import Path

import typer
from rich.table import Table

from sfbwatch.cli.common import ENV_OPTION, PROJECT_DIR_OPTION, Runtime, build_runtime, console, fail
from sfbwatch.exceptions import SfbWatchError
from sfbwatch.monitor.types import MonitorEntry, MonitorStatus

app = typer.Typer(name="status", help="Show monitor status", invoke_without_command=True)


async def _status(runtime: Runtime) -> tuple[MonitorStatus, MonitorEntry | None]:
    async with runtime.storage:
        await runtime.monitor.refresh_settings()
        return runtime.monitor.get_status(), await runtime.monitor.get_latest_file()


@app.callback()
def status(
    ctx: typer.Context,
    env: str | None = ENV_OPTION,
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """
    Show the effective watch path and interval, and the latest file processed.
    """
    if ctx.invoked_subcommand is not None:
        return
    runtime = build_runtime(project_dir, env=env)
    try:
        monitor_status, latest = asyncio.run(_status(runtime))
    except SfbWatchError as e:
        fail(e.message)

    console.print(f"\n[bold blue]Watch path:[/bold blue] {monitor_status.watch_path}")
    console.print(f"[bold blue]Interval:[/bold blue] {monitor_status.check_interval_ms // 1000}s")
    console.print(f"[bold blue]Monitoring:[/bold blue] {'yes' if monitor_status.is_monitoring else 'no'}\n")

    if latest is None:
        console.print("[dim]No export files recorded yet[/dim]")
        return

    table = Table(title="Latest file", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("File", latest.file_name)
    table.add_row("Status", latest.processing_status.value)
    table.add_row("Modified", latest.last_modified_at.isoformat())
    table.add_row("Size", f"{latest.file_size_bytes} bytes")
    table.add_row(
        "Records",
        f"{latest.records_processed} processed, {latest.records_inserted} inserted, "
        f"{latest.records_updated} updated, {latest.records_failed} failed",
    )
    if latest.error_message:
        table.add_row("Error", f"[red]{latest.error_message}[/red]")
    console.print(table)
