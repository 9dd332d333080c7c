"""
Change detection by content fingerprint.

Two levels: a volatile digest cache (file name -> last digest seen by this
monitor), then the persisted monitor entry. Only a digest that differs from
both produces a change.
"""

from __future__ import annotations

from dataclasses import dataclass

from sfbwatch.monitor.types import MonitorEntry, ProcessingStatus, ScannedFile
from sfbwatch.storage.base import Storage
from sfbwatch.utils.hashing import calculate_file_hash_async
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.monitor.change_detector")


@dataclass(frozen=True)
class ChangeResult:
    """A new or changed file, already recorded as a pending entry."""

    file: ScannedFile
    digest: str
    entry: MonitorEntry
    is_new: bool


class ChangeDetector:
    def __init__(self, storage: Storage):
        self.storage = storage
        self.digests: dict[str, str] = {}

    def reset(self) -> None:
        """Forget every cached digest."""
        self.digests.clear()

    async def check(self, file: ScannedFile) -> ChangeResult | None:
        """
        Check one scanned file for changes.

        A new or changed digest is written to storage as a ``pending`` entry,
        reusing the existing row for the path.

        Returns:
            ChangeResult for a new/changed file, None when unchanged
        """
        digest = await calculate_file_hash_async(file.path)
        if self.digests.get(file.name) == digest:
            return None

        # The cache only learns a digest once storage agrees with it
        existing = await self.storage.find_monitor_entry_by_path(file.path)
        if existing is not None and existing.content_hash == digest:
            self.digests[file.name] = digest
            return None

        if existing is None:
            entry = MonitorEntry(
                file_path=file.path,
                file_name=file.name,
                file_size_bytes=file.size_bytes,
                content_hash=digest,
                last_modified_at=file.modified_at,
            )
        else:
            entry = existing
            entry.file_name = file.name
            entry.file_size_bytes = file.size_bytes
            entry.content_hash = digest
            entry.last_modified_at = file.modified_at
            entry.processing_status = ProcessingStatus.PENDING
            entry.error_message = None
            entry.error_details = []

        entry = await self.storage.upsert_monitor_entry(entry)
        self.digests[file.name] = digest
        logger.info(f"{'New' if existing is None else 'Changed'} file detected: {file.name}")
        return ChangeResult(file=file, digest=digest, entry=entry, is_new=existing is None)
