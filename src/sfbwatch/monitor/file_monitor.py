"""
File monitor - watches a directory for export files and syncs the latest one.

Each scan lists matching files newest first, records new or changed content
as pending monitor entries, then processes the newest file if it has not
been processed yet. Processing runs parse -> reconcile -> history, and
publishes lifecycle events on the event bus.

Usage:
    monitor = FileMonitor(storage, MonitorSettings(watch_path="/data/exports"))
    await monitor.start_monitoring()
    ...
    await monitor.stop_monitoring()
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import aiofiles

from sfbwatch.config.settings import MonitorSettings
from sfbwatch.events import EventBus, MonitorEvent
from sfbwatch.exceptions import NoFilesFoundError, PersistenceError, WatchPathError
from sfbwatch.monitor.change_detector import ChangeDetector
from sfbwatch.monitor.history import SyncHistoryRecorder
from sfbwatch.monitor.reconciler import ReconcileResult, UpsertReconciler
from sfbwatch.monitor.scanner import compile_pattern, scan_directory
from sfbwatch.monitor.types import (
    MonitorEntry,
    MonitorStatus,
    ProcessingResult,
    ProcessingStatus,
    SyncHistoryEntry,
    utcnow,
)
from sfbwatch.observability import add_correlation_id
from sfbwatch.parsing import parse_export
from sfbwatch.storage.base import SETTING_CHECK_INTERVAL, SETTING_WATCH_PATH, Storage
from sfbwatch.utils.hashing import calculate_file_hash_async
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.monitor")

TRIGGER_FILE_MONITOR = "file_monitor"
TRIGGER_MANUAL = "manual"


class FileMonitor:
    """
    Periodic watcher for one export directory.

    One monitor owns its digest cache and runtime status. Scans are
    single-flight: a periodic tick that finds a scan still running is skipped.
    """

    def __init__(
        self,
        storage: Storage,
        settings: MonitorSettings | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """
        Args:
            storage: Storage backend
            settings: Monitor settings (defaults when omitted)
            event_bus: Bus to publish lifecycle events on (a private one when omitted)
            clock: Monotonic clock in seconds, used for durations
        """
        self.storage = storage
        self.settings = settings or MonitorSettings()
        self.event_bus = event_bus or EventBus()
        self._clock = clock or time.monotonic

        self.detector = ChangeDetector(storage)
        self.reconciler = UpsertReconciler(
            storage,
            batch_size=self.settings.batch_size,
            yield_every=self.settings.yield_every,
            max_errors=self.settings.max_errors,
        )
        self.history = SyncHistoryRecorder(storage, max_errors=self.settings.max_errors)

        self._pattern = compile_pattern(self.settings.file_pattern)
        self._is_monitoring = False
        self._loop_task: asyncio.Task | None = None
        self._current_scan: asyncio.Task | None = None
        self._scan_lock = asyncio.Lock()

    # --- Lifecycle ----------------------------------------------------------

    async def start_monitoring(self) -> None:
        """
        Start watching.

        Applies stored path/interval settings, verifies the watch directory,
        runs one scan immediately and then every ``check_interval_ms``.

        Raises:
            WatchPathError: The watch directory is missing or unreadable
        """
        if self._is_monitoring:
            logger.info("File monitor is already running")
            return

        await self.refresh_settings()

        watch_path = Path(self.settings.watch_path)
        if not watch_path.is_dir() or not os.access(watch_path, os.R_OK):
            error = WatchPathError(f"Watch directory is not accessible: {watch_path}", path=str(watch_path))
            logger.error(f"Failed to start file monitor: {error}")
            await self.event_bus.emit(MonitorEvent.ERROR, {"cause": str(error)})
            raise error

        self._is_monitoring = True
        await self._tick()
        if not self._is_monitoring:
            # stop_monitoring() ran during the first scan
            return
        self._loop_task = asyncio.create_task(self._monitor_loop())

        logger.info(f"File monitor started, watching: {watch_path}")
        await self.event_bus.emit(
            MonitorEvent.STARTED,
            {"watch_path": self.settings.watch_path, "interval": self.settings.check_interval_ms},
        )

    async def stop_monitoring(self) -> None:
        """
        Stop watching.

        The periodic loop is cancelled; a scan already in progress is allowed
        to finish before this returns.
        """
        if not self._is_monitoring:
            return

        self._is_monitoring = False
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if self._current_scan is not None and not self._current_scan.done():
            await self._current_scan
        self._current_scan = None

        self.detector.reset()
        logger.info("File monitor stopped")
        await self.event_bus.emit(MonitorEvent.STOPPED, {})

    async def refresh_settings(self) -> None:
        """
        Apply watch path and interval overrides saved in storage settings.

        When the settings cannot be read the configured values stay in place.
        """
        try:
            watch_path = await self.storage.get_setting(SETTING_WATCH_PATH)
            interval_raw = await self.storage.get_setting(SETTING_CHECK_INTERVAL)
        except PersistenceError as e:
            logger.warning(f"Could not load stored monitor settings, using configured values: {e}")
            return

        interval: int | None = None
        if interval_raw:
            try:
                interval = int(interval_raw)
                if interval < 1:
                    raise ValueError(interval_raw)
            except ValueError:
                logger.warning(f"Ignoring invalid stored check interval: {interval_raw!r}")
                interval = None

        self.settings = self.settings.with_overrides(watch_path=watch_path, check_interval_ms=interval)

    async def _monitor_loop(self) -> None:
        while self._is_monitoring:
            await asyncio.sleep(self.settings.check_interval_ms / 1000)
            await self._tick()

    async def _tick(self) -> ProcessingResult | None:
        if self._scan_lock.locked():
            logger.warning("Previous scan still running, skipping this tick")
            return None
        self._current_scan = asyncio.create_task(self._guarded_scan())
        # Shielded so cancelling the loop does not abort a scan mid-file
        return await asyncio.shield(self._current_scan)

    async def _guarded_scan(self) -> ProcessingResult | None:
        try:
            return await self.scan_once()
        except Exception as e:
            logger.error(f"Error during file scan: {e}")
            await self.event_bus.emit(MonitorEvent.ERROR, {"cause": str(e)})
            return None

    # --- Scanning -----------------------------------------------------------

    async def scan_once(self) -> ProcessingResult | None:
        """
        Run one scan pass.

        Returns:
            The processing result for the latest file, or None when nothing
            needed processing

        Raises:
            WatchPathError: The watch directory cannot be listed
        """
        async with self._scan_lock:
            files = await asyncio.to_thread(scan_directory, self.settings.watch_path, self._pattern)
            if not files:
                logger.debug(f"No export files in {self.settings.watch_path}")
                return None

            for file in files:
                try:
                    change = await self.detector.check(file)
                except Exception as e:
                    logger.error(f"Error checking file {file.name}: {e}")
                    continue
                if change is not None:
                    await self.event_bus.emit(
                        MonitorEvent.FILE_DETECTED,
                        {
                            "file_path": file.path,
                            "file_name": file.name,
                            "file_size_bytes": file.size_bytes,
                            "last_modified_at": file.modified_at.isoformat(),
                            "is_new": change.is_new,
                        },
                        file_path=file.path,
                    )

            latest = files[0]
            entry = await self.storage.find_monitor_entry_by_path(latest.path)
            if entry is None or entry.needs_processing:
                return await self._process_file(latest.path, mark_latest=True, triggered_by=TRIGGER_FILE_MONITOR)
            return None

    # --- Processing ---------------------------------------------------------

    async def process_file(
        self,
        file_path: str,
        mark_latest: bool = False,
        triggered_by: str = TRIGGER_FILE_MONITOR,
    ) -> ProcessingResult:
        """
        Parse and reconcile one file.

        File-level failures (unreadable file, unsupported format, storage
        errors) are captured in the monitor entry and sync history and
        reported through the result; they are not raised.
        """
        async with self._scan_lock:
            return await self._process_file(file_path, mark_latest, triggered_by)

    async def force_sync(self) -> ProcessingResult:
        """
        Re-process the latest known file regardless of its status.

        Raises:
            NoFilesFoundError: No export file has been recorded yet
        """
        latest = await self.get_latest_file()
        if latest is None:
            raise NoFilesFoundError("No SfB files found to process")
        logger.info(f"Forcing sync of {latest.file_name}")
        return await self.process_file(latest.file_path, mark_latest=True, triggered_by=TRIGGER_MANUAL)

    async def _process_file(self, file_path: str, mark_latest: bool, triggered_by: str) -> ProcessingResult:
        started_at = utcnow()
        start = self._clock()
        entry: MonitorEntry | None = None
        reconciled: ReconcileResult | None = None

        with add_correlation_id():
            try:
                entry = await self._ensure_entry(file_path)
                entry.processing_status = ProcessingStatus.PROCESSING
                entry.processing_started_at = started_at
                entry = await self.storage.upsert_monitor_entry(entry)

                logger.info(f"Processing export file: {entry.file_name}")
                await self.event_bus.emit(
                    MonitorEvent.PROCESSING_STARTED,
                    {"file_path": file_path, "marked_latest": mark_latest},
                    file_path=file_path,
                )

                content = await self._read_file(file_path)
                parsed = parse_export(content)
                if parsed.skipped:
                    logger.info(f"Skipped {len(parsed.skipped)} rows in {entry.file_name}")

                reconciled = await self.reconciler.reconcile(parsed.records, file_path)
                duration_ms = self._elapsed_ms(start)

                entry.processing_status = ProcessingStatus.COMPLETED
                entry.processing_completed_at = utcnow()
                entry.processing_duration_ms = duration_ms
                entry.records_processed = reconciled.processed
                entry.records_inserted = reconciled.inserted
                entry.records_updated = reconciled.updated
                entry.records_failed = reconciled.failed
                entry.error_message = None
                entry.error_details = list(reconciled.errors)
                entry.is_latest = mark_latest or entry.is_latest
                entry = await self.storage.upsert_monitor_entry(entry)
                if mark_latest:
                    await self.storage.set_latest_monitor_entry(file_path)

                await self.history.record_success(
                    file_path,
                    reconciled,
                    started_at=started_at,
                    duration_ms=duration_ms,
                    triggered_by=triggered_by,
                )
            except Exception as e:
                return await self._fail(file_path, entry, e, reconciled, started_at, start, triggered_by)

            result = ProcessingResult(
                success=True,
                records_processed=reconciled.processed,
                records_inserted=reconciled.inserted,
                records_updated=reconciled.updated,
                records_failed=reconciled.failed,
                duration_ms=duration_ms,
                errors=list(reconciled.errors),
            )
            logger.info(
                f"Processed {entry.file_name}: {result.records_processed} records "
                f"({result.records_inserted} inserted, {result.records_updated} updated, "
                f"{result.records_failed} failed) in {duration_ms}ms"
            )
            await self.event_bus.emit(
                MonitorEvent.PROCESSING_COMPLETED,
                {"file_path": file_path, "result": result.to_dict()},
                file_path=file_path,
            )
            return result

    async def _fail(
        self,
        file_path: str,
        entry: MonitorEntry | None,
        error: Exception,
        reconciled: ReconcileResult | None,
        started_at: datetime,
        start: float,
        triggered_by: str,
    ) -> ProcessingResult:
        duration_ms = self._elapsed_ms(start)
        message = str(error)
        processed = reconciled.processed if reconciled else 0
        failed = reconciled.failed if reconciled else 0
        logger.error(f"Failed to process export file {file_path}: {message}", exc_info=True)

        if entry is not None:
            entry.processing_status = ProcessingStatus.FAILED
            entry.processing_completed_at = utcnow()
            entry.processing_duration_ms = duration_ms
            entry.error_message = message
            entry.error_details = [message]
            try:
                await self.storage.upsert_monitor_entry(entry)
            except Exception as e:
                logger.error(f"Could not mark {file_path} as failed: {e}")

        await self.history.record_failure(
            file_path,
            message,
            started_at=started_at,
            duration_ms=duration_ms,
            processed=processed,
            failed=failed,
            triggered_by=triggered_by,
        )
        await self.event_bus.emit(
            MonitorEvent.PROCESSING_FAILED,
            {"file_path": file_path, "error": message},
            file_path=file_path,
        )
        return ProcessingResult(
            success=False,
            records_processed=processed,
            records_failed=failed,
            duration_ms=duration_ms,
            errors=[message],
        )

    async def _ensure_entry(self, file_path: str) -> MonitorEntry:
        entry = await self.storage.find_monitor_entry_by_path(file_path)
        if entry is not None:
            return entry

        # Processing a path the scanner has not recorded yet
        path = Path(file_path)
        try:
            stat = path.stat()
        except OSError as e:
            raise WatchPathError(f"Cannot read export file {file_path}: {e}", path=file_path) from e
        return MonitorEntry(
            file_path=file_path,
            file_name=path.name,
            file_size_bytes=stat.st_size,
            content_hash=await calculate_file_hash_async(file_path),
            last_modified_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
        )

    @staticmethod
    async def _read_file(file_path: str) -> str:
        try:
            async with aiofiles.open(file_path, encoding="utf-8-sig") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise WatchPathError(f"Cannot read export file {file_path}: {e}", path=file_path) from e

    def _elapsed_ms(self, start: float) -> int:
        return int((self._clock() - start) * 1000)

    # --- Queries ------------------------------------------------------------

    def get_status(self) -> MonitorStatus:
        return MonitorStatus(
            is_monitoring=self._is_monitoring,
            watch_path=self.settings.watch_path,
            check_interval_ms=self.settings.check_interval_ms,
        )

    async def get_file_history(self) -> list[MonitorEntry]:
        """All monitor entries, most recently modified first."""
        return await self.storage.list_monitor_entries()

    async def get_sync_history(self, limit: int = 50) -> list[SyncHistoryEntry]:
        return await self.storage.list_sync_history(limit)

    async def get_latest_file(self) -> MonitorEntry | None:
        """The entry flagged latest, else the most recently modified one."""
        entries = await self.storage.list_monitor_entries()
        if not entries:
            return None
        return next((e for e in entries if e.is_latest), entries[0])
