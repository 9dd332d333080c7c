"""
Logging configuration for sfbwatch.

Everything logs under the ``sfbwatch`` logger. The console gets a Rich
handler (or a plain formatter with ``console_type: plain``); an optional
log file gets one parseable line per record.
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "sfbwatch"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class FileFormatter(logging.Formatter):
    """``time [LEVEL   ] logger: message``, with full chained tracebacks."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt=DATE_FORMAT)

    def formatException(self, ei: Any) -> str:
        return "".join(traceback.format_exception(*ei)).rstrip("\n")


class ConsoleFormatter(logging.Formatter):
    """Plain console format: ``LEVEL: time - msg``; errors also get file:line."""

    def __init__(self) -> None:
        super().__init__(datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        prefix = f"{record.levelname}: {self.formatTime(record)}"
        if record.levelno >= logging.ERROR and record.pathname:
            prefix = f"{prefix} - {Path(record.pathname).name}:{record.lineno}"
        return f"{prefix} - {record.getMessage()}"


_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """Level name or number to a logging constant; unknown names give INFO."""
    if isinstance(level, int):
        return level
    return _LEVELS.get(str(level).strip().upper(), logging.INFO)


def _console_handler(level: int, use_rich: bool) -> logging.Handler:
    if use_rich:
        return RichHandler(
            level=level,
            show_time=True,
            show_path=True,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            log_time_format="[%X]",
            omit_repeated_times=False,
        )
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ConsoleFormatter())
    return handler


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    # The file takes whatever the logger lets through
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(FileFormatter())
    return handler


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Configure the ``sfbwatch`` logger.

    Handlers previously installed on it are replaced; the root logger and
    child loggers are left alone.

    Args:
        level: Level name (DEBUG, INFO, ...) or number
        log_file: Also append to this file (parent directories are created)
        console_enabled: Log to the console
        use_rich: Use RichHandler for the console, else a plain stderr handler

    Returns:
        The ``sfbwatch`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        logger.addHandler(_console_handler(level_int, use_rich))
    if log_file:
        logger.addHandler(_file_handler(Path(log_file)))

    logger.propagate = True
    return logger


def setup_logging_from_config(config: dict[str, Any], project_dir: Path | None = None) -> logging.Logger:
    """
    Configure logging from the ``logging`` config section.

    Keys: ``level``, ``file``, ``file_enabled``, ``console_enabled`` and
    ``console_type`` (``rich`` or ``plain``). A relative ``file`` is resolved
    against ``project_dir``.
    """
    section = config.get("logging") or {}

    log_file: Path | None = None
    if section.get("file_enabled", True) and section.get("file"):
        log_file = Path(section["file"])
        if project_dir is not None and not log_file.is_absolute():
            log_file = project_dir / log_file

    return setup_logging(
        level=section.get("level", logging.INFO),
        log_file=log_file,
        console_enabled=section.get("console_enabled", True),
        use_rich=section.get("console_type", "rich") == "rich",
    )


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Logger under the sfbwatch hierarchy; propagates so sfbwatch handlers see it."""
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
