"""
Structured logging for sfbwatch.

JSON-formatted log lines carrying a correlation id, so all lines written
while one export file is processed can be grouped.

Usage:
    from sfbwatch.observability import add_correlation_id

    with add_correlation_id() as cid:
        logger.info("Processing file")  # includes correlation_id
"""

import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sfbwatch.utils.logging import ROOT_LOGGER_NAME, _parse_level

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# LogRecord attributes that are not "extra" fields
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "message",
        "thread",
        "threadName",
        "taskName",
    }
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def add_correlation_id(correlation_id: str | None = None) -> Iterator[str]:
    """
    Context manager to add a correlation ID to logs.

    Args:
        correlation_id: Correlation ID (auto-generated if not provided)

    Yields:
        The correlation ID
    """
    cid = correlation_id or uuid.uuid4().hex[:8]
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


class StructuredFormatter(logging.Formatter):
    """
    JSON log formatter: timestamp, level, logger, message, correlation id,
    location, exception info and any ``extra`` fields.
    """

    def __init__(self, extra_fields: dict[str, Any] | None = None):
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        log_data["location"] = {"file": record.filename, "line": record.lineno, "function": record.funcName}

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        log_data.update(self.extra_fields)
        return json.dumps(log_data, default=str)


def setup_structured_logging(
    level: str | int = "INFO",
    log_file: str | Path | None = None,
    extra_fields: dict[str, Any] | None = None,
) -> logging.Logger:
    """
    Attach a JSON handler to the ``sfbwatch`` logger.

    Writes to ``log_file`` when given, otherwise to stderr. Existing handlers
    are left in place.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level_int = _parse_level(level)

    handler: logging.Handler
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setLevel(level_int)
    handler.setFormatter(StructuredFormatter(extra_fields=extra_fields))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level_int:
        logger.setLevel(level_int)
    return logger
