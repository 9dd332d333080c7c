"""
Type definitions for the file monitor: files, monitor entries, canonical
user records, sync history rows and runtime status.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return uuid.uuid4().hex


class ProcessingStatus(str, Enum):
    """Lifecycle of a monitored file. Completed and failed can be re-entered."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ScannedFile:
    """A file in the watch directory that matched the naming pattern."""

    name: str
    path: str
    modified_at: datetime
    size_bytes: int


@dataclass
class MonitorEntry:
    """
    Tracking row for one file path.

    There is at most one entry per ``file_path``; a content change
    re-evaluates the row instead of adding a new one.
    """

    file_path: str
    file_name: str
    file_size_bytes: int
    content_hash: str
    last_modified_at: datetime
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    processing_started_at: datetime | None = None
    processing_completed_at: datetime | None = None
    processing_duration_ms: int = 0
    records_processed: int = 0
    records_inserted: int = 0
    records_updated: int = 0
    records_failed: int = 0
    error_message: str | None = None
    error_details: list[str] = field(default_factory=list)
    is_latest: bool = False
    id: str = field(default_factory=new_id)

    @property
    def needs_processing(self) -> bool:
        """Pending and failed entries are eligible for (re)processing."""
        return self.processing_status in (ProcessingStatus.PENDING, ProcessingStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["processing_status"] = self.processing_status.value
        for key in ("last_modified_at", "processing_started_at", "processing_completed_at"):
            value = data[key]
            data[key] = value.isoformat() if value is not None else None
        return data


@dataclass
class CanonicalUserRecord:
    """Vendor-agnostic user entry. ``sip_address`` is the natural key."""

    sip_address: str
    display_name: str = ""
    first_name: str | None = None
    last_name: str | None = None
    user_principal_name: str | None = None
    line_uri: str | None = None
    phone_number: str | None = None
    enterprise_voice_enabled: bool = False
    hosted_voicemail_enabled: bool = False
    department: str | None = None
    title: str | None = None
    office: str | None = None
    company: str | None = None
    manager: str | None = None
    enabled: bool = True
    registrar_pool: str | None = None
    voice_policy: str | None = None
    dial_plan: str | None = None
    location_policy: str | None = None
    conferencing_policy: str | None = None
    external_access_policy: str | None = None
    mobility_policy: str | None = None
    client_policy: str | None = None
    pin_policy: str | None = None
    archiving_policy: str | None = None
    exchange_archiving_policy: str | None = None
    retention_policy: str | None = None
    call_via_work_policy: str | None = None
    client_version_policy: str | None = None
    hosted_voice_mail_enabled: bool = False
    private_line: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]


@dataclass(frozen=True)
class SyncMetadata:
    """Metadata stamped on every stored user written by a sync."""

    file_source: str
    data_source: str = "offline"
    last_sync_time: datetime = field(default_factory=utcnow)


@dataclass
class StoredUser:
    """A user as held by the storage backend."""

    id: str
    record: CanonicalUserRecord
    data_source: str = "offline"
    last_sync_time: datetime | None = None
    file_source: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class SyncHistoryEntry:
    """Append-only record of one processing attempt."""

    sync_source: str
    sync_status: SyncStatus
    total_records: int = 0
    processed_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    sync_duration_ms: int = 0
    sync_summary: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    triggered_by: str = "file_monitor"
    sync_type: str = "file_to_db"
    sync_target: str = "sfb_users"
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["sync_status"] = self.sync_status.value
        data["started_at"] = self.started_at.isoformat()
        data["completed_at"] = self.completed_at.isoformat()
        return data


@dataclass(frozen=True)
class MonitorStatus:
    """Runtime state of a monitor. Not persisted."""

    is_monitoring: bool
    watch_path: str
    check_interval_ms: int


@dataclass
class ProcessingResult:
    """Outcome of processing one file."""

    success: bool
    records_processed: int = 0
    records_inserted: int = 0
    records_updated: int = 0
    records_failed: int = 0
    duration_ms: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
