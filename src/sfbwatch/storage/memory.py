"""
In-memory storage for testing and embedding.

Example:
    from sfbwatch.storage import InMemoryStorage

    storage = InMemoryStorage()
    storage.fail_on("insert_user", lambda record, metadata: record.sip_address == "bad@example.com")
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

from sfbwatch.exceptions import PersistenceError
from sfbwatch.monitor.types import (
    CanonicalUserRecord,
    MonitorEntry,
    StoredUser,
    SyncHistoryEntry,
    SyncMetadata,
    new_id,
    utcnow,
)
from sfbwatch.storage.base import Storage


class InMemoryStorage(Storage):
    """
    Dict-backed storage.

    Values are copied on the way in and out so callers cannot mutate stored
    state by accident. ``fail_on`` injects failures per operation.
    """

    def __init__(self) -> None:
        self.users: dict[str, StoredUser] = {}
        self.monitor_entries: dict[str, MonitorEntry] = {}
        self.sync_history: list[SyncHistoryEntry] = []
        self.settings: dict[str, str] = {}
        self._failures: dict[str, Callable[..., bool]] = {}

    def fail_on(self, operation: str, predicate: Callable[..., bool] | None = None) -> None:
        """
        Make ``operation`` raise ``PersistenceError``.

        Args:
            operation: Storage method name (e.g. ``"insert_user"``)
            predicate: Called with the method's arguments; fail only when it
                returns True. Fails every call when omitted.
        """
        self._failures[operation] = predicate or (lambda *args: True)

    def clear_failures(self) -> None:
        self._failures.clear()

    def _check(self, operation: str, *args: Any) -> None:
        predicate = self._failures.get(operation)
        if predicate is not None and predicate(*args):
            raise PersistenceError(operation, "injected failure")

    async def find_user_by_key(self, sip_address: str) -> StoredUser | None:
        self._check("find_user_by_key", sip_address)
        for user in self.users.values():
            if user.record.sip_address == sip_address:
                return copy.deepcopy(user)
        return None

    async def insert_user(self, record: CanonicalUserRecord, metadata: SyncMetadata) -> StoredUser:
        self._check("insert_user", record, metadata)
        now = utcnow()
        user = StoredUser(
            id=new_id(),
            record=copy.deepcopy(record),
            data_source=metadata.data_source,
            last_sync_time=metadata.last_sync_time,
            file_source=metadata.file_source,
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return copy.deepcopy(user)

    async def update_user(self, user_id: str, record: CanonicalUserRecord, metadata: SyncMetadata) -> StoredUser:
        self._check("update_user", user_id, record, metadata)
        user = self.users.get(user_id)
        if user is None:
            raise PersistenceError("update_user", f"user {user_id} not found")
        user.record = copy.deepcopy(record)
        user.data_source = metadata.data_source
        user.last_sync_time = metadata.last_sync_time
        user.file_source = metadata.file_source
        user.updated_at = utcnow()
        return copy.deepcopy(user)

    async def upsert_monitor_entry(self, entry: MonitorEntry) -> MonitorEntry:
        self._check("upsert_monitor_entry", entry)
        existing = self.monitor_entries.get(entry.file_path)
        stored = copy.deepcopy(entry)
        if existing is not None:
            stored.id = existing.id
        self.monitor_entries[entry.file_path] = stored
        return copy.deepcopy(stored)

    async def find_monitor_entry_by_path(self, file_path: str) -> MonitorEntry | None:
        self._check("find_monitor_entry_by_path", file_path)
        entry = self.monitor_entries.get(file_path)
        return copy.deepcopy(entry) if entry is not None else None

    async def list_monitor_entries(self) -> list[MonitorEntry]:
        self._check("list_monitor_entries")
        entries = sorted(self.monitor_entries.values(), key=lambda e: e.file_name)
        entries.sort(key=lambda e: e.last_modified_at, reverse=True)
        return [copy.deepcopy(e) for e in entries]

    async def set_latest_monitor_entry(self, file_path: str) -> None:
        self._check("set_latest_monitor_entry", file_path)
        for path, entry in self.monitor_entries.items():
            entry.is_latest = path == file_path

    async def append_sync_history(self, entry: SyncHistoryEntry) -> None:
        self._check("append_sync_history", entry)
        self.sync_history.append(entry)

    async def list_sync_history(self, limit: int = 50) -> list[SyncHistoryEntry]:
        self._check("list_sync_history", limit)
        return list(reversed(self.sync_history))[:limit]

    async def get_setting(self, key: str) -> str | None:
        self._check("get_setting", key)
        return self.settings.get(key)

    async def set_setting(self, key: str, value: str) -> None:
        self._check("set_setting", key, value)
        self.settings[key] = value
