"""
DuckDB storage backed by an ibis connection.

Automatically creates the sfbwatch schema and tables if they don't exist.
Timestamps are stored as ISO-8601 strings and structured fields as JSON text,
so rows round-trip without depending on backend type mapping.
"""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Callable
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

import ibis

from sfbwatch.exceptions import PersistenceError
from sfbwatch.monitor.types import (
    CanonicalUserRecord,
    MonitorEntry,
    ProcessingStatus,
    StoredUser,
    SyncHistoryEntry,
    SyncMetadata,
    SyncStatus,
    new_id,
    utcnow,
)
from sfbwatch.storage.base import Storage
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.storage.duckdb")

SCHEMA_NAME = "sfbwatch"

T = TypeVar("T")


def _escape_sql_string(value: str) -> str:
    """Escape single quotes for SQL strings."""
    return value.replace("'", "''")


def _quote_identifier(name: str) -> str:
    """Quote a SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def _sql_value(value: Any) -> str:
    """Convert Python value to SQL literal."""
    if value is None:
        return "NULL"
    # bool before int: bool is an int subclass
    elif isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, datetime):
        return f"'{value.isoformat()}'"
    elif isinstance(value, (dict, list)):
        return f"'{_escape_sql_string(json.dumps(value))}'"
    else:
        return f"'{_escape_sql_string(str(value))}'"


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


_TABLES = {
    "users": """
        id VARCHAR PRIMARY KEY,
        sip_address VARCHAR NOT NULL,
        record_json VARCHAR NOT NULL,
        data_source VARCHAR,
        last_sync_time VARCHAR,
        file_source VARCHAR,
        created_at VARCHAR,
        updated_at VARCHAR
    """,
    "file_monitor": """
        id VARCHAR,
        file_path VARCHAR PRIMARY KEY,
        file_name VARCHAR,
        file_size_bytes BIGINT,
        content_hash VARCHAR,
        last_modified_at VARCHAR,
        processing_status VARCHAR,
        processing_started_at VARCHAR,
        processing_completed_at VARCHAR,
        processing_duration_ms BIGINT,
        records_processed INTEGER,
        records_inserted INTEGER,
        records_updated INTEGER,
        records_failed INTEGER,
        error_message VARCHAR,
        error_details VARCHAR,
        is_latest BOOLEAN
    """,
    "sync_history": """
        id VARCHAR PRIMARY KEY,
        sync_type VARCHAR,
        sync_source VARCHAR,
        sync_target VARCHAR,
        sync_status VARCHAR,
        total_records INTEGER,
        processed_records INTEGER,
        successful_records INTEGER,
        failed_records INTEGER,
        sync_duration_ms BIGINT,
        sync_summary VARCHAR,
        error_message VARCHAR,
        triggered_by VARCHAR,
        started_at VARCHAR,
        completed_at VARCHAR,
        seq BIGINT
    """,
    "settings": """
        key VARCHAR PRIMARY KEY,
        value VARCHAR,
        updated_at VARCHAR
    """,
}

_MONITOR_COLUMNS = [f.name for f in fields(MonitorEntry)]


class DuckDBStorage(Storage):
    """
    Storage on a DuckDB database through ibis.

    Blocking DuckDB calls run in a worker thread; one lock serialises access
    to the connection.
    """

    def __init__(self, path: str | Path = ":memory:", connection: ibis.BaseBackend | None = None):
        """
        Initialize DuckDB storage.

        Args:
            path: Database file, or ``:memory:``
            connection: Existing ibis DuckDB backend to use instead of opening ``path``
        """
        self.path = str(path)
        self._connection = connection
        self._initialized = False
        self._lock = threading.Lock()
        self._seq = 0
        self._schema = SCHEMA_NAME

    def _get_connection(self) -> ibis.BaseBackend:
        if self._connection is None:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = ibis.duckdb.connect(database=self.path)
        if not self._initialized:
            self._initialize_schema(self._connection)
        return self._connection

    def _initialize_schema(self, conn: ibis.BaseBackend) -> None:
        """Create sfbwatch schema and tables if they don't exist."""
        # Catalog-qualified: a database file named sfbwatch.duckdb has a catalog called sfbwatch
        catalog = self._fetch(conn, "SELECT current_database() AS catalog")[0]["catalog"]
        self._schema = f"{_quote_identifier(catalog)}.{SCHEMA_NAME}"
        conn.raw_sql(f"CREATE SCHEMA IF NOT EXISTS {self._schema}")
        for table, columns in _TABLES.items():
            conn.raw_sql(f"CREATE TABLE IF NOT EXISTS {self._schema}.{table} ({columns})")
        self._initialized = True

        rows = self._fetch(conn, f"SELECT COALESCE(MAX(seq), 0) AS seq FROM {self._schema}.sync_history")
        self._seq = rows[0]["seq"]
        logger.debug(f"Initialized DuckDB storage at {self.path}")

    @staticmethod
    def _execute(conn: ibis.BaseBackend, query: str) -> None:
        conn.raw_sql(query)

    @staticmethod
    def _fetch(conn: ibis.BaseBackend, query: str) -> list[dict[str, Any]]:
        cursor = conn.raw_sql(query)
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row, strict=False)) for row in cursor.fetchall()]

    async def _run(self, operation: str, func: Callable[[ibis.BaseBackend], T]) -> T:
        def call() -> T:
            with self._lock:
                return func(self._get_connection())

        try:
            return await asyncio.to_thread(call)
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"DuckDB {operation} failed: {e}")
            raise PersistenceError(operation, str(e), cause=e) from e

    async def initialize(self) -> None:
        await self._run("initialize", lambda conn: None)

    async def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.disconnect()
                self._connection = None
                self._initialized = False

    # --- Users --------------------------------------------------------------

    @staticmethod
    def _row_to_user(row: dict[str, Any]) -> StoredUser:
        return StoredUser(
            id=row["id"],
            record=CanonicalUserRecord(**json.loads(row["record_json"])),
            data_source=row["data_source"],
            last_sync_time=_parse_timestamp(row["last_sync_time"]),
            file_source=row["file_source"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    async def find_user_by_key(self, sip_address: str) -> StoredUser | None:
        def query(conn: ibis.BaseBackend) -> StoredUser | None:
            rows = self._fetch(
                conn, f"SELECT * FROM {self._schema}.users WHERE sip_address = {_sql_value(sip_address)} LIMIT 1"
            )
            return self._row_to_user(rows[0]) if rows else None

        return await self._run("find_user_by_key", query)

    async def insert_user(self, record: CanonicalUserRecord, metadata: SyncMetadata) -> StoredUser:
        now = utcnow()
        user = StoredUser(
            id=new_id(),
            record=record,
            data_source=metadata.data_source,
            last_sync_time=metadata.last_sync_time,
            file_source=metadata.file_source,
            created_at=now,
            updated_at=now,
        )

        def query(conn: ibis.BaseBackend) -> StoredUser:
            values = ", ".join(
                _sql_value(v)
                for v in (
                    user.id,
                    record.sip_address,
                    record.to_dict(),
                    user.data_source,
                    user.last_sync_time,
                    user.file_source,
                    user.created_at,
                    user.updated_at,
                )
            )
            self._execute(
                conn,
                f"INSERT INTO {self._schema}.users "
                f"(id, sip_address, record_json, data_source, last_sync_time, file_source, created_at, updated_at) "
                f"VALUES ({values})",
            )
            return user

        return await self._run("insert_user", query)

    async def update_user(self, user_id: str, record: CanonicalUserRecord, metadata: SyncMetadata) -> StoredUser:
        def query(conn: ibis.BaseBackend) -> StoredUser:
            rows = self._fetch(conn, f"SELECT * FROM {self._schema}.users WHERE id = {_sql_value(user_id)}")
            if not rows:
                raise PersistenceError("update_user", f"user {user_id} not found")
            user = self._row_to_user(rows[0])
            user.record = record
            user.data_source = metadata.data_source
            user.last_sync_time = metadata.last_sync_time
            user.file_source = metadata.file_source
            user.updated_at = utcnow()
            self._execute(
                conn,
                f"UPDATE {self._schema}.users SET "
                f"sip_address = {_sql_value(record.sip_address)}, "
                f"record_json = {_sql_value(record.to_dict())}, "
                f"data_source = {_sql_value(user.data_source)}, "
                f"last_sync_time = {_sql_value(user.last_sync_time)}, "
                f"file_source = {_sql_value(user.file_source)}, "
                f"updated_at = {_sql_value(user.updated_at)} "
                f"WHERE id = {_sql_value(user_id)}",
            )
            return user

        return await self._run("update_user", query)

    # --- Monitor entries ----------------------------------------------------

    @staticmethod
    def _row_to_entry(row: dict[str, Any]) -> MonitorEntry:
        return MonitorEntry(
            id=row["id"],
            file_path=row["file_path"],
            file_name=row["file_name"],
            file_size_bytes=row["file_size_bytes"],
            content_hash=row["content_hash"],
            last_modified_at=_parse_timestamp(row["last_modified_at"]),
            processing_status=ProcessingStatus(row["processing_status"]),
            processing_started_at=_parse_timestamp(row["processing_started_at"]),
            processing_completed_at=_parse_timestamp(row["processing_completed_at"]),
            processing_duration_ms=row["processing_duration_ms"] or 0,
            records_processed=row["records_processed"] or 0,
            records_inserted=row["records_inserted"] or 0,
            records_updated=row["records_updated"] or 0,
            records_failed=row["records_failed"] or 0,
            error_message=row["error_message"],
            error_details=json.loads(row["error_details"]) if row["error_details"] else [],
            is_latest=bool(row["is_latest"]),
        )

    async def upsert_monitor_entry(self, entry: MonitorEntry) -> MonitorEntry:
        def query(conn: ibis.BaseBackend) -> MonitorEntry:
            table = f"{self._schema}.file_monitor"
            existing = self._fetch(conn, f"SELECT id FROM {table} WHERE file_path = {_sql_value(entry.file_path)}")
            if existing:
                entry.id = existing[0]["id"]

            # Delete-then-insert for upsert portability
            self._execute(conn, f"DELETE FROM {table} WHERE file_path = {_sql_value(entry.file_path)}")
            values = ", ".join(
                _sql_value(entry.processing_status.value if name == "processing_status" else getattr(entry, name))
                for name in _MONITOR_COLUMNS
            )
            self._execute(conn, f"INSERT INTO {table} ({', '.join(_MONITOR_COLUMNS)}) VALUES ({values})")
            return entry

        return await self._run("upsert_monitor_entry", query)

    async def find_monitor_entry_by_path(self, file_path: str) -> MonitorEntry | None:
        def query(conn: ibis.BaseBackend) -> MonitorEntry | None:
            rows = self._fetch(
                conn, f"SELECT * FROM {self._schema}.file_monitor WHERE file_path = {_sql_value(file_path)}"
            )
            return self._row_to_entry(rows[0]) if rows else None

        return await self._run("find_monitor_entry_by_path", query)

    async def list_monitor_entries(self) -> list[MonitorEntry]:
        def query(conn: ibis.BaseBackend) -> list[MonitorEntry]:
            rows = self._fetch(
                conn, f"SELECT * FROM {self._schema}.file_monitor ORDER BY last_modified_at DESC, file_name ASC"
            )
            return [self._row_to_entry(row) for row in rows]

        return await self._run("list_monitor_entries", query)

    async def set_latest_monitor_entry(self, file_path: str) -> None:
        def query(conn: ibis.BaseBackend) -> None:
            self._execute(
                conn,
                f"UPDATE {self._schema}.file_monitor SET is_latest = (file_path = {_sql_value(file_path)})",
            )

        await self._run("set_latest_monitor_entry", query)

    # --- Sync history -------------------------------------------------------

    async def append_sync_history(self, entry: SyncHistoryEntry) -> None:
        def query(conn: ibis.BaseBackend) -> None:
            self._seq += 1
            columns = [
                "id",
                "sync_type",
                "sync_source",
                "sync_target",
                "sync_status",
                "total_records",
                "processed_records",
                "successful_records",
                "failed_records",
                "sync_duration_ms",
                "sync_summary",
                "error_message",
                "triggered_by",
                "started_at",
                "completed_at",
            ]
            values = [entry.sync_status.value if c == "sync_status" else getattr(entry, c) for c in columns]
            self._execute(
                conn,
                f"INSERT INTO {self._schema}.sync_history ({', '.join(columns)}, seq) "
                f"VALUES ({', '.join(_sql_value(v) for v in values)}, {self._seq})",
            )

        await self._run("append_sync_history", query)

    async def list_sync_history(self, limit: int = 50) -> list[SyncHistoryEntry]:
        def query(conn: ibis.BaseBackend) -> list[SyncHistoryEntry]:
            rows = self._fetch(
                conn, f"SELECT * FROM {self._schema}.sync_history ORDER BY seq DESC LIMIT {int(limit)}"
            )
            return [
                SyncHistoryEntry(
                    id=row["id"],
                    sync_type=row["sync_type"],
                    sync_source=row["sync_source"],
                    sync_target=row["sync_target"],
                    sync_status=SyncStatus(row["sync_status"]),
                    total_records=row["total_records"],
                    processed_records=row["processed_records"],
                    successful_records=row["successful_records"],
                    failed_records=row["failed_records"],
                    sync_duration_ms=row["sync_duration_ms"],
                    sync_summary=json.loads(row["sync_summary"]) if row["sync_summary"] else {},
                    error_message=row["error_message"],
                    triggered_by=row["triggered_by"],
                    started_at=_parse_timestamp(row["started_at"]),
                    completed_at=_parse_timestamp(row["completed_at"]),
                )
                for row in rows
            ]

        return await self._run("list_sync_history", query)

    # --- Settings -----------------------------------------------------------

    async def get_setting(self, key: str) -> str | None:
        def query(conn: ibis.BaseBackend) -> str | None:
            rows = self._fetch(conn, f"SELECT value FROM {self._schema}.settings WHERE key = {_sql_value(key)}")
            return rows[0]["value"] if rows else None

        return await self._run("get_setting", query)

    async def set_setting(self, key: str, value: str) -> None:
        def query(conn: ibis.BaseBackend) -> None:
            table = f"{self._schema}.settings"
            self._execute(conn, f"DELETE FROM {table} WHERE key = {_sql_value(key)}")
            self._execute(
                conn,
                f"INSERT INTO {table} (key, value, updated_at) "
                f"VALUES ({_sql_value(key)}, {_sql_value(str(value))}, {_sql_value(utcnow())})",
            )

        await self._run("set_setting", query)
