"""
Shared CLI plumbing: build the monitor from project configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from sfbwatch.config import Config, MonitorSettings, load_config
from sfbwatch.events import EventBus
from sfbwatch.exceptions import ConfigurationError
from sfbwatch.monitor.file_monitor import FileMonitor
from sfbwatch.observability import setup_structured_logging
from sfbwatch.storage import Storage, create_storage
from sfbwatch.utils.logging import setup_logging_from_config

console = Console()

PROJECT_DIR_OPTION = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory")
ENV_OPTION = typer.Option(None, help="Environment (dev, staging, prod)")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose output")


@dataclass
class Runtime:
    config: Config
    storage: Storage
    monitor: FileMonitor


def fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def build_runtime(project_dir: Path, env: str | None = None, verbose: bool = False) -> Runtime:
    """
    Load configuration, set up logging and build storage plus monitor.

    Exits with status 1 on configuration errors.
    """
    try:
        config = load_config(project_dir, env=env, required=False)
        settings = MonitorSettings.from_config(config)
        storage = create_storage(config.data, project_dir)
    except ConfigurationError as e:
        fail(e.message)

    logger = setup_logging_from_config(config.data, project_dir)
    if verbose:
        logger.setLevel(logging.DEBUG)
    if config.get("logging.structured"):
        structured_file = config.get("logging.structured_file")
        if structured_file and not Path(structured_file).is_absolute():
            structured_file = project_dir / structured_file
        setup_structured_logging(level=logger.level, log_file=structured_file)

    monitor = FileMonitor(storage, settings, event_bus=EventBus())
    return Runtime(config=config, storage=storage, monitor=monitor)
