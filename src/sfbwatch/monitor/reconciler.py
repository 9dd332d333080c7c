"""
Upsert reconciler - merge parsed records into storage by SIP address.

Existing users are updated in place, new ones inserted. A failure on one
record is counted and reported; it never aborts the file.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from sfbwatch.exceptions import RecordFailureError
from sfbwatch.monitor.types import CanonicalUserRecord, SyncMetadata
from sfbwatch.storage.base import Storage
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.monitor.reconciler")

DEFAULT_BATCH_SIZE = 100
DEFAULT_YIELD_EVERY = 10
DEFAULT_MAX_ERRORS = 10


@dataclass
class ReconcileResult:
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class UpsertReconciler:
    """Applies canonical records to storage, one upsert per record."""

    def __init__(
        self,
        storage: Storage,
        batch_size: int = DEFAULT_BATCH_SIZE,
        yield_every: int = DEFAULT_YIELD_EVERY,
        max_errors: int = DEFAULT_MAX_ERRORS,
    ):
        if batch_size < 1 or yield_every < 1:
            raise ValueError("batch_size and yield_every must be positive")
        self.storage = storage
        self.batch_size = batch_size
        self.yield_every = yield_every
        self.max_errors = max_errors

    async def reconcile(self, records: Sequence[CanonicalUserRecord], file_source: str) -> ReconcileResult:
        """
        Upsert every record, in batches of ``batch_size``.

        Control is yielded to the event loop after every ``yield_every``
        records. The returned error list holds at most ``max_errors`` entries;
        ``failed`` counts all of them.
        """
        result = ReconcileResult()
        metadata = SyncMetadata(file_source=file_source)

        for start in range(0, len(records), self.batch_size):
            batch = records[start : start + self.batch_size]
            logger.debug(f"Reconciling batch {start // self.batch_size + 1} ({len(batch)} records)")

            for record in batch:
                try:
                    inserted = await self._upsert(record, metadata)
                except RecordFailureError as e:
                    result.failed += 1
                    result.errors.append(e.message)
                    logger.warning(e.message)
                else:
                    if inserted:
                        result.inserted += 1
                    else:
                        result.updated += 1

                result.processed += 1
                if result.processed % self.yield_every == 0:
                    await asyncio.sleep(0)

        result.errors = result.errors[: self.max_errors]
        logger.info(
            f"Reconciled {result.processed} records from {file_source}: "
            f"{result.inserted} inserted, {result.updated} updated, {result.failed} failed"
        )
        return result

    async def _upsert(self, record: CanonicalUserRecord, metadata: SyncMetadata) -> bool:
        """Returns True when inserted, False when updated."""
        try:
            existing = await self.storage.find_user_by_key(record.sip_address)
            if existing is not None:
                await self.storage.update_user(existing.id, record, metadata)
                return False
            await self.storage.insert_user(record, metadata)
            return True
        except Exception as e:
            raise RecordFailureError(record.sip_address, str(e), cause=e) from e
