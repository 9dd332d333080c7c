"""
Sync history recording.

One immutable ``SyncHistoryEntry`` is appended per processing attempt,
successful or not.
"""

from __future__ import annotations

from datetime import datetime

from sfbwatch.monitor.reconciler import ReconcileResult
from sfbwatch.monitor.types import SyncHistoryEntry, SyncStatus, utcnow
from sfbwatch.storage.base import Storage
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.monitor.history")


class SyncHistoryRecorder:
    def __init__(self, storage: Storage, max_errors: int = 10):
        self.storage = storage
        self.max_errors = max_errors

    async def record_success(
        self,
        file_path: str,
        result: ReconcileResult,
        *,
        started_at: datetime,
        duration_ms: int,
        triggered_by: str = "file_monitor",
    ) -> SyncHistoryEntry:
        """
        Append a ``completed`` entry for a processed file.

        Raises:
            PersistenceError: If the entry cannot be written
        """
        entry = SyncHistoryEntry(
            sync_source=file_path,
            sync_status=SyncStatus.COMPLETED,
            total_records=result.processed,
            processed_records=result.processed,
            successful_records=result.inserted + result.updated,
            failed_records=result.failed,
            sync_duration_ms=duration_ms,
            sync_summary={
                "inserted": result.inserted,
                "updated": result.updated,
                "failed": result.failed,
                "errors": result.errors[: self.max_errors],
            },
            triggered_by=triggered_by,
            started_at=started_at,
            completed_at=utcnow(),
        )
        try:
            await self.storage.append_sync_history(entry)
        except Exception:
            logger.error(
                f"Could not record sync history for {file_path} "
                f"({entry.processed_records} processed, {entry.failed_records} failed)",
                exc_info=True,
            )
            raise
        return entry

    async def record_failure(
        self,
        file_path: str,
        error: str,
        *,
        started_at: datetime,
        duration_ms: int,
        processed: int = 0,
        failed: int = 0,
        triggered_by: str = "file_monitor",
    ) -> SyncHistoryEntry:
        """
        Append a ``failed`` entry for a file that could not be processed.

        A storage failure here is logged, not raised, so the original error
        is still what the caller reports.
        """
        entry = SyncHistoryEntry(
            sync_source=file_path,
            sync_status=SyncStatus.FAILED,
            total_records=processed,
            processed_records=processed,
            successful_records=0,
            failed_records=failed,
            sync_duration_ms=duration_ms,
            sync_summary={"inserted": 0, "updated": 0, "failed": failed, "errors": [error]},
            error_message=error,
            triggered_by=triggered_by,
            started_at=started_at,
            completed_at=utcnow(),
        )
        try:
            await self.storage.append_sync_history(entry)
        except Exception as e:
            logger.error(f"Could not record failed sync for {file_path} (original error: {error}): {e}")
        return entry
