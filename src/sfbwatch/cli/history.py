"""
sfbwatch history - show sync history or file history.
"""

import asyncio
from pathlib import Path

import typer
from rich.table import Table

from sfbwatch.cli.common import ENV_OPTION, PROJECT_DIR_OPTION, Runtime, build_runtime, console, fail
from sfbwatch.exceptions import SfbWatchError
from sfbwatch.monitor.types import MonitorEntry, ProcessingStatus, SyncHistoryEntry, SyncStatus

app = typer.Typer(name="history", help="Show sync or file history", invoke_without_command=True)

_STATUS_STYLES = {
    ProcessingStatus.PENDING: "yellow",
    ProcessingStatus.PROCESSING: "blue",
    ProcessingStatus.COMPLETED: "green",
    ProcessingStatus.FAILED: "red",
}


async def _load(runtime: Runtime, files: bool, limit: int) -> list[MonitorEntry] | list[SyncHistoryEntry]:
    async with runtime.storage:
        if files:
            return (await runtime.monitor.get_file_history())[:limit]
        return await runtime.monitor.get_sync_history(limit)


def _sync_table(entries: list[SyncHistoryEntry]) -> Table:
    table = Table(title=f"Sync history ({len(entries)})", show_header=True)
    table.add_column("Started", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    table.add_column("Processed", justify="right")
    table.add_column("OK", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Trigger", style="magenta")
    table.add_column("Error", style="dim")
    for entry in entries:
        style = "green" if entry.sync_status == SyncStatus.COMPLETED else "red"
        table.add_row(
            entry.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            Path(entry.sync_source).name,
            f"[{style}]{entry.sync_status.value}[/{style}]",
            str(entry.processed_records),
            str(entry.successful_records),
            str(entry.failed_records),
            entry.triggered_by,
            entry.error_message or "",
        )
    return table


def _file_table(entries: list[MonitorEntry]) -> Table:
    table = Table(title=f"Files ({len(entries)})", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Modified", style="dim")
    table.add_column("Status")
    table.add_column("Records", justify="right")
    table.add_column("Latest", justify="center")
    for entry in entries:
        style = _STATUS_STYLES[entry.processing_status]
        table.add_row(
            entry.file_name,
            entry.last_modified_at.strftime("%Y-%m-%d %H:%M:%S"),
            f"[{style}]{entry.processing_status.value}[/{style}]",
            str(entry.records_processed),
            "*" if entry.is_latest else "",
        )
    return table


@app.callback()
def history(
    ctx: typer.Context,
    files: bool = typer.Option(False, "--files", help="Show monitored files instead of sync attempts"),
    limit: int = typer.Option(50, "--limit", "-n", min=1, help="Maximum rows to show"),
    env: str | None = ENV_OPTION,
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """
    Show recent sync attempts (default) or the monitored files.
    """
    if ctx.invoked_subcommand is not None:
        return
    runtime = build_runtime(project_dir, env=env)
    try:
        entries = asyncio.run(_load(runtime, files, limit))
    except SfbWatchError as e:
        fail(e.message)

    if not entries:
        console.print("[dim]No history yet[/dim]")
        return
    console.print(_file_table(entries) if files else _sync_table(entries))
