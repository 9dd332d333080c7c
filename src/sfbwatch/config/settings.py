"""
Monitor settings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any

from sfbwatch.config.loader import Config
from sfbwatch.exceptions import ConfigurationError
from sfbwatch.monitor.reconciler import DEFAULT_BATCH_SIZE, DEFAULT_MAX_ERRORS, DEFAULT_YIELD_EVERY
from sfbwatch.monitor.scanner import DEFAULT_FILE_PATTERN

DEFAULT_WATCH_PATH = "c:\\sfbenabledobjects"
DEFAULT_CHECK_INTERVAL_MS = 15 * 60 * 1000

INT_FIELDS = ("check_interval_ms", "batch_size", "yield_every", "max_errors")


@dataclass(frozen=True)
class MonitorSettings:
    watch_path: str = DEFAULT_WATCH_PATH
    file_pattern: str = DEFAULT_FILE_PATTERN
    check_interval_ms: int = DEFAULT_CHECK_INTERVAL_MS
    batch_size: int = DEFAULT_BATCH_SIZE
    yield_every: int = DEFAULT_YIELD_EVERY
    max_errors: int = DEFAULT_MAX_ERRORS

    def __post_init__(self) -> None:
        for name in INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(
                    f"monitor.{name} must be a positive integer, got {value!r}",
                    details={"key": f"monitor.{name}", "value": value},
                )
        if not self.watch_path:
            raise ConfigurationError("monitor.watch_path must not be empty")
        try:
            re.compile(self.file_pattern)
        except re.error as e:
            raise ConfigurationError(
                f"monitor.file_pattern is not a valid regular expression: {e}",
                details={"key": "monitor.file_pattern", "value": self.file_pattern},
            ) from e

    @classmethod
    def from_config(cls, config: Config | dict[str, Any]) -> MonitorSettings:
        """
        Build settings from the ``monitor`` config section.

        Missing keys keep their defaults.

        Raises:
            ConfigurationError: A value is invalid
        """
        data = config.data if isinstance(config, Config) else config
        section = data.get("monitor") or {}
        known = {k: v for k, v in section.items() if k in cls.__dataclass_fields__}
        if "watch_path" in known:
            known["watch_path"] = str(known["watch_path"])
        # Values substituted from ${VAR} arrive as strings
        for name in INT_FIELDS:
            value = known.get(name)
            if isinstance(value, str) and value.strip().isdigit():
                known[name] = int(value)
        return cls(**known)

    def with_overrides(self, watch_path: str | None = None, check_interval_ms: int | None = None) -> MonitorSettings:
        changes: dict[str, Any] = {}
        if watch_path:
            changes["watch_path"] = watch_path
        if check_interval_ms is not None:
            changes["check_interval_ms"] = check_interval_ms
        return replace(self, **changes) if changes else self
