"""
sfbwatch watch - run the file monitor until interrupted.
"""

import asyncio
from pathlib import Path

import typer

from sfbwatch.cli.common import ENV_OPTION, PROJECT_DIR_OPTION, VERBOSE_OPTION, Runtime, build_runtime, console, fail
from sfbwatch.events import MonitorEvent, format_event_line
from sfbwatch.exceptions import SfbWatchError

app = typer.Typer(name="watch", help="Watch the export directory and sync new files", invoke_without_command=True)

_EVENT_STYLES = {
    MonitorEvent.STARTED: "green",
    MonitorEvent.STOPPED: "yellow",
    MonitorEvent.FILE_DETECTED: "cyan",
    MonitorEvent.PROCESSING_STARTED: "blue",
    MonitorEvent.PROCESSING_COMPLETED: "green",
    MonitorEvent.PROCESSING_FAILED: "red",
    MonitorEvent.ERROR: "red",
}


def _describe(event: dict) -> str:
    data = event["data"]
    name = event["event"]
    if name == MonitorEvent.STARTED:
        return f"watching {data['watch_path']} every {data['interval'] // 1000}s"
    if name == MonitorEvent.FILE_DETECTED:
        return f"{data['file_name']} ({'new' if data['is_new'] else 'changed'}, {data['file_size_bytes']} bytes)"
    if name == MonitorEvent.PROCESSING_COMPLETED:
        result = data["result"]
        return (
            f"{data['file_path']}: {result['records_inserted']} inserted, "
            f"{result['records_updated']} updated, {result['records_failed']} failed"
        )
    if name == MonitorEvent.PROCESSING_FAILED:
        return f"{data['file_path']}: {data['error']}"
    if name == MonitorEvent.ERROR:
        return str(data.get("cause", ""))
    return str(data.get("file_path", ""))


async def _watch(runtime: Runtime, as_json: bool = False) -> None:
    monitor = runtime.monitor
    async with runtime.storage:
        queue = monitor.event_bus.subscribe()
        await monitor.start_monitoring()
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                if as_json:
                    console.print(format_event_line(event), markup=False, highlight=False, soft_wrap=True)
                    continue
                style = _EVENT_STYLES.get(event["event"], "white")
                console.print(f"[{style}]{event['event']}[/{style}] {_describe(event)}")
        finally:
            await monitor.stop_monitoring()
            await monitor.event_bus.shutdown()


@app.callback()
def watch(
    ctx: typer.Context,
    env: str | None = ENV_OPTION,
    project_dir: Path = PROJECT_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print events as JSON lines"),
) -> None:
    """
    Start the file monitor and print its events until Ctrl+C.
    """
    if ctx.invoked_subcommand is None:
        runtime = build_runtime(project_dir, env=env, verbose=verbose)
        try:
            asyncio.run(_watch(runtime, as_json))
        except SfbWatchError as e:
            fail(e.message)
        except KeyboardInterrupt:
            console.print("[yellow]Stopped[/yellow]")
