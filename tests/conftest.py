"""
Shared fixtures for sfbwatch tests.
"""

import json
import os
from pathlib import Path

import pytest

from sfbwatch.config import MonitorSettings
from sfbwatch.storage import InMemoryStorage


def _write(directory: Path, name: str, content: str, mtime: float | None = None) -> Path:
    path = directory / name
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def watch_dir(tmp_path):
    """Empty watch directory."""
    directory = tmp_path / "exports"
    directory.mkdir()
    return directory


@pytest.fixture
def write_export(watch_dir):
    """Write a file into the watch directory, optionally with a fixed mtime."""

    def write(name: str, content: str, mtime: float | None = None) -> Path:
        return _write(watch_dir, name, content, mtime)

    return write


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def settings(watch_dir):
    return MonitorSettings(watch_path=str(watch_dir), check_interval_ms=60_000)


@pytest.fixture
def json_users():
    """JSON export with two users."""
    return json.dumps(
        [
            {
                "SipAddress": "sip:alice@contoso.com",
                "DisplayName": "Alice Smith",
                "LineURI": "tel:+15551234567",
                "EnterpriseVoiceEnabled": True,
                "Department": "Sales",
            },
            {
                "SipAddress": "sip:bob@contoso.com",
                "DisplayName": "Bob Jones",
                "Enabled": "false",
            },
        ]
    )
