"""
sfbwatch - watch SfB user export files and sync them into storage.

Detects new or changed ``SfbEnabledObjects_*`` exports by content hash,
parses JSON / CSV / delimited exports into canonical user records, upserts
them by SIP address and keeps a history of every sync attempt.
"""

__version__ = "0.1.0"

from sfbwatch.config import Config, MonitorSettings, load_config
from sfbwatch.events import EventBus, MonitorEvent
from sfbwatch.exceptions import (
    ConfigurationError,
    FormatUnsupportedError,
    NoFilesFoundError,
    PersistenceError,
    RecordFailureError,
    SfbWatchError,
    WatchPathError,
)
from sfbwatch.monitor.file_monitor import FileMonitor
from sfbwatch.monitor.types import (
    CanonicalUserRecord,
    MonitorEntry,
    MonitorStatus,
    ProcessingResult,
    ProcessingStatus,
    SyncHistoryEntry,
)
from sfbwatch.parsing import ExportFormat, classify_format, normalize_record, parse_content, parse_export
from sfbwatch.storage import DuckDBStorage, InMemoryStorage, Storage, create_storage
from sfbwatch.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Monitor
    "FileMonitor",
    "MonitorSettings",
    "MonitorStatus",
    "MonitorEntry",
    "ProcessingResult",
    "ProcessingStatus",
    "SyncHistoryEntry",
    "CanonicalUserRecord",
    # Events
    "EventBus",
    "MonitorEvent",
    # Parsing
    "ExportFormat",
    "classify_format",
    "normalize_record",
    "parse_content",
    "parse_export",
    # Storage
    "Storage",
    "InMemoryStorage",
    "DuckDBStorage",
    "create_storage",
    # Config
    "Config",
    "load_config",
    # Exceptions
    "SfbWatchError",
    "ConfigurationError",
    "WatchPathError",
    "FormatUnsupportedError",
    "RecordFailureError",
    "PersistenceError",
    "NoFilesFoundError",
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
]
