"""
Storage backends.

``create_storage`` builds the backend named in the ``storage`` config section
(``duckdb`` or ``memory``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sfbwatch.exceptions import ConfigurationError
from sfbwatch.storage.base import SETTING_CHECK_INTERVAL, SETTING_WATCH_PATH, Storage
from sfbwatch.storage.duckdb import DuckDBStorage
from sfbwatch.storage.memory import InMemoryStorage


def create_storage(config: dict[str, Any], project_dir: Path | None = None) -> Storage:
    """
    Create a storage backend from configuration.

    Args:
        config: Full configuration dictionary (reads the ``storage`` section)
        project_dir: Base directory for relative database paths

    Raises:
        ConfigurationError: Unknown storage type
    """
    storage_config = config.get("storage") or {}
    storage_type = storage_config.get("type", "duckdb")

    if storage_type == "memory":
        return InMemoryStorage()
    if storage_type == "duckdb":
        path = storage_config.get("path", ":memory:")
        if path != ":memory:" and project_dir is not None and not Path(path).is_absolute():
            path = str(project_dir / path)
        return DuckDBStorage(path)

    raise ConfigurationError(
        f"Unknown storage type '{storage_type}'. Expected 'duckdb' or 'memory'.",
        details={"storage_type": storage_type},
    )


__all__ = [
    "SETTING_CHECK_INTERVAL",
    "SETTING_WATCH_PATH",
    "DuckDBStorage",
    "InMemoryStorage",
    "Storage",
    "create_storage",
]
