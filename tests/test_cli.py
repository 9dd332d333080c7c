"""
Tests for CLI commands.

Uses typer's CliRunner against a temporary project directory backed by a
DuckDB file, so state carries over between invocations.
"""

import asyncio
import json

import pytest
from typer.testing import CliRunner

from sfbwatch.cli.common import Runtime
from sfbwatch.cli.main import app
from sfbwatch.cli.watch import _watch
from sfbwatch.config import Config
from sfbwatch.events import MonitorEvent
from sfbwatch.monitor.file_monitor import FileMonitor

runner = CliRunner()

EXPORT = "SfbEnabledObjects_1.json"


@pytest.fixture
def project(tmp_path, watch_dir):
    """Project directory whose config watches ``watch_dir``."""
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    (project_dir / "config.yaml").write_text(
        "monitor:\n"
        f"  watch_path: '{watch_dir}'\n"
        "storage:\n"
        "  type: duckdb\n"
        "  path: data/sfbwatch.duckdb\n"
        "logging:\n"
        "  console_enabled: false\n"
        "  file_enabled: false\n"
    )
    return project_dir


def invoke(project_dir, *args):
    return runner.invoke(app, [*args, "--project-dir", str(project_dir)])


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "sfbwatch version 0.1.0" in result.output


class TestHelp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "sfbwatch" in result.output.lower()

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "watch" in result.output

    @pytest.mark.parametrize("command", ["watch", "scan", "sync", "status", "history", "settings"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


class TestScan:
    def test_scan_processes_latest(self, project, write_export, json_users):
        write_export(EXPORT, json_users)

        result = invoke(project, "scan")
        assert result.exit_code == 0, result.output
        assert "Processing result" in result.output

        again = invoke(project, "scan")
        assert again.exit_code == 0
        assert "Nothing to process" in again.output

    def test_scan_empty_directory(self, project):
        result = invoke(project, "scan")
        assert result.exit_code == 0
        assert "Nothing to process" in result.output

    def test_scan_failed_file_exits_nonzero(self, project, write_export):
        write_export(EXPORT, "<Users/>")
        result = invoke(project, "scan")
        assert result.exit_code == 1
        assert "Processing failed" in result.output

    def test_scan_missing_watch_dir(self, project, watch_dir):
        watch_dir.rmdir()
        result = invoke(project, "scan")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_config(self, tmp_path):
        (tmp_path / "config.yaml").write_text("monitor:\n  batch_size: 0\n")
        result = invoke(tmp_path, "scan")
        assert result.exit_code == 1
        assert "must be a positive integer" in result.output


class TestSync:
    def test_sync_without_files(self, project):
        result = invoke(project, "sync")
        assert result.exit_code == 1
        assert "No SfB files found to process" in result.output

    def test_sync_after_scan(self, project, write_export, json_users):
        write_export(EXPORT, json_users)
        invoke(project, "scan")

        result = invoke(project, "sync")
        assert result.exit_code == 0, result.output

        history = invoke(project, "history")
        assert "Sync history (2)" in history.output


class TestStatus:
    def test_status_empty(self, project):
        result = invoke(project, "status")
        assert result.exit_code == 0
        assert "Interval: 900s" in result.output
        assert "Monitoring: no" in result.output
        assert "No export files recorded yet" in result.output

    def test_status_after_scan(self, project, write_export, json_users):
        write_export(EXPORT, json_users)
        invoke(project, "scan")

        result = invoke(project, "status")
        assert result.exit_code == 0
        assert EXPORT in result.output
        assert "completed" in result.output


class TestHistory:
    def test_empty(self, project):
        result = invoke(project, "history")
        assert result.exit_code == 0
        assert "No history yet" in result.output

    def test_files(self, project, write_export, json_users):
        write_export(EXPORT, json_users)
        invoke(project, "scan")

        result = invoke(project, "history", "--files")
        assert result.exit_code == 0
        assert "Files (1)" in result.output

    def test_limit_must_be_positive(self, project):
        result = invoke(project, "history", "--limit", "0")
        assert result.exit_code != 0


class TestSettings:
    def test_set_and_show(self, project):
        result = invoke(project, "settings", "set", "interval", "120000")
        assert result.exit_code == 0, result.output
        assert "Set sfb_file_monitor_interval = 120000" in result.output

        shown = invoke(project, "settings", "show")
        assert "120000" in shown.output

        status = invoke(project, "status")
        assert "Interval: 120s" in status.output

    def test_unknown_setting(self, project):
        result = invoke(project, "settings", "set", "colour", "blue")
        assert result.exit_code == 1
        assert "Unknown setting" in result.output

    def test_invalid_interval(self, project):
        result = invoke(project, "settings", "set", "interval", "soon")
        assert result.exit_code == 1
        assert "Interval must be a positive number" in result.output


class TestWatch:
    def test_missing_watch_dir(self, project, watch_dir):
        watch_dir.rmdir()
        result = invoke(project, "watch")
        assert result.exit_code == 1
        assert "Watch directory is not accessible" in result.output

    @pytest.mark.asyncio
    async def test_json_event_lines(self, storage, settings, capsys):
        monitor = FileMonitor(storage, settings)
        started = monitor.event_bus.subscribe([MonitorEvent.STARTED])
        task = asyncio.create_task(_watch(Runtime(Config({}), storage, monitor), as_json=True))

        await asyncio.wait_for(started.get(), timeout=5)
        await monitor.event_bus.shutdown()
        await asyncio.wait_for(task, timeout=5)

        lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
        event = json.loads(lines[0])
        assert event["event"] == "started"
        assert event["data"]["watch_path"] == settings.watch_path
        assert monitor.get_status().is_monitoring is False
