"""
Tests for logging setup and structured logging.
"""

import json
import logging
import sys

import pytest
from rich.logging import RichHandler

from sfbwatch.observability import (
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
    setup_structured_logging,
)
from sfbwatch.utils.logging import (
    ConsoleFormatter,
    FileFormatter,
    _parse_level,
    get_logger,
    setup_logging,
    setup_logging_from_config,
)


@pytest.fixture
def clean_logger():
    """Restore the sfbwatch logger's handlers and level after the test."""
    logger = logging.getLogger("sfbwatch")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)


def make_record(msg: str = "hello", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("sfbwatch.test", level, "monitor.py", 42, msg, (), None, func="scan")
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationId:
    def test_none_outside_context(self):
        assert get_correlation_id() is None

    def test_generated_and_reset(self):
        with add_correlation_id() as cid:
            assert len(cid) == 8
            assert get_correlation_id() == cid
        assert get_correlation_id() is None

    def test_explicit_and_nested(self):
        with add_correlation_id("outer"):
            with add_correlation_id("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"


class TestStructuredFormatter:
    def test_basic_fields(self):
        data = json.loads(StructuredFormatter().format(make_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "sfbwatch.test"
        assert data["message"] == "hello"
        assert data["location"] == {"file": "monitor.py", "line": 42, "function": "scan"}
        assert "correlation_id" not in data

    def test_correlation_id_included(self):
        with add_correlation_id("abc12345"):
            data = json.loads(StructuredFormatter().format(make_record()))
        assert data["correlation_id"] == "abc12345"

    def test_extra_fields(self):
        formatter = StructuredFormatter(extra_fields={"service": "sfbwatch"})
        data = json.loads(formatter.format(make_record(file_path="/data/a.json")))
        assert data["service"] == "sfbwatch"
        assert data["file_path"] == "/data/a.json"

    def test_exception(self):
        try:
            raise ValueError("bad export")
        except ValueError:
            record = logging.LogRecord("sfbwatch", logging.ERROR, "x.py", 1, "failed", (), sys.exc_info())
        data = json.loads(StructuredFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad export"
        assert "Traceback" in data["exception"]["traceback"]

    def test_setup_writes_json_file(self, clean_logger, tmp_path):
        log_file = tmp_path / "logs" / "sfbwatch.jsonl"
        setup_structured_logging("INFO", log_file=log_file)

        with add_correlation_id("run1"):
            get_logger("sfbwatch.monitor").info("Processed file")
        for handler in clean_logger.handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert lines[-1]["message"] == "Processed file"
        assert lines[-1]["correlation_id"] == "run1"


class TestSetupLogging:
    def test_parse_level(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level(logging.WARNING) == logging.WARNING
        assert _parse_level("nonsense") == logging.INFO

    def test_rich_console_by_default(self, clean_logger):
        logger = setup_logging("DEBUG")
        assert logger.level == logging.DEBUG
        assert [type(h) for h in logger.handlers] == [RichHandler]

    def test_plain_console(self, clean_logger):
        logger = setup_logging(use_rich=False)
        (handler,) = logger.handlers
        assert isinstance(handler.formatter, ConsoleFormatter)

    def test_file_handler(self, clean_logger, tmp_path):
        log_file = tmp_path / "nested" / "run.log"
        logger = setup_logging(log_file=log_file, console_enabled=False)

        get_logger("sfbwatch.scanner").warning("Cannot stat file")
        for handler in logger.handlers:
            handler.flush()

        (handler,) = logger.handlers
        assert isinstance(handler.formatter, FileFormatter)
        assert "[WARNING ] sfbwatch.scanner: Cannot stat file" in log_file.read_text()

    def test_from_config_resolves_relative_file(self, clean_logger, tmp_path):
        config = {"logging": {"level": "WARNING", "file": "logs/x.log", "console_type": "plain"}}
        logger = setup_logging_from_config(config, project_dir=tmp_path)

        assert logger.level == logging.WARNING
        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert file_handlers[0].baseFilename == str(tmp_path / "logs" / "x.log")

    def test_from_config_file_disabled(self, clean_logger):
        logger = setup_logging_from_config({"logging": {"file": "x.log", "file_enabled": False}})
        assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)


class TestConsoleFormatter:
    def test_error_includes_location(self):
        record = logging.LogRecord("sfbwatch", logging.ERROR, "/src/monitor.py", 7, "boom", (), None)
        assert "monitor.py:7 - boom" in ConsoleFormatter().format(record)

    def test_info_plain(self):
        text = ConsoleFormatter().format(make_record("scan done"))
        assert text.startswith("INFO: ")
        assert text.endswith(" - scan done")
