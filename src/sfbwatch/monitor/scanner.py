"""
Watch directory listing.
"""

from __future__ import annotations

import os
import re
from datetime import UTC, datetime
from pathlib import Path

from sfbwatch.exceptions import WatchPathError
from sfbwatch.monitor.types import ScannedFile
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.monitor.scanner")

DEFAULT_FILE_PATTERN = r"^SfbEnabledObjects_.+$"


def compile_pattern(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Compile a file name pattern, case-insensitive."""
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern, re.IGNORECASE)


def scan_directory(directory: str | Path, pattern: str | re.Pattern[str] = DEFAULT_FILE_PATTERN) -> list[ScannedFile]:
    """
    List export files in ``directory`` whose name matches ``pattern``.

    Results are ordered most recently modified first; files with the same
    modification time are ordered by name.

    Raises:
        WatchPathError: If the directory cannot be listed
    """
    regex = compile_pattern(pattern)
    directory = Path(directory)

    try:
        names = os.listdir(directory)
    except OSError as e:
        raise WatchPathError(f"Cannot read watch directory {directory}: {e}", path=str(directory)) from e

    files: list[ScannedFile] = []
    for name in names:
        if not regex.match(name):
            continue
        path = directory / name
        try:
            stat = path.stat()
        except FileNotFoundError:
            # Removed between listdir and stat
            logger.debug(f"File disappeared during scan: {path}")
            continue
        if not path.is_file():
            continue
        files.append(
            ScannedFile(
                name=name,
                path=str(path),
                modified_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                size_bytes=stat.st_size,
            )
        )

    files.sort(key=lambda f: f.name)
    files.sort(key=lambda f: f.modified_at, reverse=True)
    return files
