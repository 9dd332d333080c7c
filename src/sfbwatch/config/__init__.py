"""
Configuration loading and monitor settings.
"""

from sfbwatch.config.loader import Config, load_config
from sfbwatch.config.resolver import resolve_config
from sfbwatch.config.settings import DEFAULT_CHECK_INTERVAL_MS, DEFAULT_WATCH_PATH, MonitorSettings

__all__ = [
    "DEFAULT_CHECK_INTERVAL_MS",
    "DEFAULT_WATCH_PATH",
    "Config",
    "MonitorSettings",
    "load_config",
    "resolve_config",
]
