"""
File monitor: directory scanning, change detection, reconciliation and the
periodic scheduler that ties them together.

``FileMonitor`` lives in ``sfbwatch.monitor.file_monitor``; this package
only re-exports the plain data types so parsers can import them without
pulling in the scheduler.
"""

from sfbwatch.monitor.types import (
    CanonicalUserRecord,
    MonitorEntry,
    MonitorStatus,
    ProcessingResult,
    ProcessingStatus,
    ScannedFile,
    StoredUser,
    SyncHistoryEntry,
    SyncMetadata,
    SyncStatus,
)

__all__ = [
    "CanonicalUserRecord",
    "MonitorEntry",
    "MonitorStatus",
    "ProcessingResult",
    "ProcessingStatus",
    "ScannedFile",
    "StoredUser",
    "SyncHistoryEntry",
    "SyncMetadata",
    "SyncStatus",
]
