"""
sfbwatch exception hierarchy.

All domain-specific exceptions inherit from SfbWatchError, so callers can
catch any pipeline error with a single base class while still handling the
individual failure kinds separately.

Hierarchy::

    SfbWatchError
    ├── ConfigurationError      - config loading, parsing, validation
    ├── WatchPathError          - watch directory / export file unreadable (also OSError)
    ├── FormatUnsupportedError  - content matches no known export format
    ├── RecordFailureError      - a single record could not be inserted/updated
    ├── PersistenceError        - storage backend read/write failure
    └── NoFilesFoundError       - force sync requested but no file is known

Skipped rows (column count mismatch) are not exceptions: parsers report them
as ``SkippedRow`` values and log a warning.
"""

from __future__ import annotations


class SfbWatchError(Exception):
    """Base exception for all sfbwatch errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(SfbWatchError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Filesystem --------------------------------------------------------------


class WatchPathError(SfbWatchError, OSError):
    """Raised when the watch directory or an export file cannot be read.

    Also an ``OSError`` so code that only knows about I/O errors still
    catches it.
    """

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, details={"path": path})
        self.path = path

    def __str__(self) -> str:
        return self.message


# --- Parsing -----------------------------------------------------------------


class FormatUnsupportedError(SfbWatchError):
    """Raised when file content matches no supported export format."""

    def __init__(self, message: str, *, format_name: str | None = None) -> None:
        super().__init__(message, details={"format": format_name})
        self.format_name = format_name


# --- Reconciliation ----------------------------------------------------------


class RecordFailureError(SfbWatchError):
    """Raised when one record's insert or update fails."""

    def __init__(self, sip_address: str, message: str, *, cause: Exception | None = None) -> None:
        full = f"Failed to process user {sip_address}: {message}"
        super().__init__(full, details={"sip_address": sip_address})
        self.sip_address = sip_address
        if cause is not None:
            self.__cause__ = cause


# --- Storage -----------------------------------------------------------------


class PersistenceError(SfbWatchError):
    """Raised when the storage backend cannot be read or written."""

    def __init__(self, operation: str, message: str, *, cause: Exception | None = None) -> None:
        full = f"Storage operation '{operation}' failed: {message}"
        super().__init__(full, details={"operation": operation})
        self.operation = operation
        if cause is not None:
            self.__cause__ = cause


# --- Monitor -----------------------------------------------------------------


class NoFilesFoundError(SfbWatchError):
    """Raised when a sync is forced but no export file has been seen."""
