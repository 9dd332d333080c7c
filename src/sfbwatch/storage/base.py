"""
Storage interface.

The monitor, reconciler and history recorder only talk to storage through
``Storage``. Methods are coroutines so every storage call is a suspension
point for the event loop. Implementations wrap backend failures in
``PersistenceError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from sfbwatch.monitor.types import (
    CanonicalUserRecord,
    MonitorEntry,
    StoredUser,
    SyncHistoryEntry,
    SyncMetadata,
)

# Settings keys read by the monitor at start
SETTING_WATCH_PATH = "sfb_file_monitor_path"
SETTING_CHECK_INTERVAL = "sfb_file_monitor_interval"


class Storage(ABC):
    """Persistent storage for users, monitor entries, sync history and settings."""

    async def initialize(self) -> None:
        """Prepare the backend (create tables, open connections)."""

    async def close(self) -> None:
        """Release backend resources."""

    async def __aenter__(self) -> Storage:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- Users --------------------------------------------------------------

    @abstractmethod
    async def find_user_by_key(self, sip_address: str) -> StoredUser | None:
        """Find a stored user by natural key."""

    @abstractmethod
    async def insert_user(self, record: CanonicalUserRecord, metadata: SyncMetadata) -> StoredUser:
        """Insert a new user."""

    @abstractmethod
    async def update_user(self, user_id: str, record: CanonicalUserRecord, metadata: SyncMetadata) -> StoredUser:
        """Overwrite an existing user's fields and sync metadata."""

    # --- Monitor entries ----------------------------------------------------

    @abstractmethod
    async def upsert_monitor_entry(self, entry: MonitorEntry) -> MonitorEntry:
        """Insert or replace the entry for ``entry.file_path``."""

    @abstractmethod
    async def find_monitor_entry_by_path(self, file_path: str) -> MonitorEntry | None:
        """Find the entry for a file path."""

    @abstractmethod
    async def list_monitor_entries(self) -> list[MonitorEntry]:
        """All entries, most recently modified first."""

    @abstractmethod
    async def set_latest_monitor_entry(self, file_path: str) -> None:
        """Flag ``file_path`` as latest and clear the flag on every other entry."""

    # --- Sync history -------------------------------------------------------

    @abstractmethod
    async def append_sync_history(self, entry: SyncHistoryEntry) -> None:
        """Append one history entry."""

    @abstractmethod
    async def list_sync_history(self, limit: int = 50) -> list[SyncHistoryEntry]:
        """Most recent history entries first."""

    # --- Settings -----------------------------------------------------------

    @abstractmethod
    async def get_setting(self, key: str) -> str | None: ...

    @abstractmethod
    async def set_setting(self, key: str, value: str) -> None: ...
