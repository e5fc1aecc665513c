"""Custom exceptions for delta-append.

This module defines the exception hierarchy:
- DeltaTableError (base)
- MissingLog: the table has no commit log yet
- CorruptLog: a log record or checkpoint cannot be parsed or is missing
- SchemaConflict: the log declares a schema incompatible with live files
- SchemaMismatch: a row batch does not match the table schema
- CommitConflict: the commit retry bound was exhausted
- IOFailure: the underlying storage failed
- UnsupportedProtocol: the table requires a newer reader/writer
- TableAlreadyExists: the init path found version 0 already taken

None of these leave a partial commit visible: a commit either lands as a
whole through the conditional write or not at all.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "DeltaTableError",
    "MissingLog",
    "CorruptLog",
    "SchemaConflict",
    "SchemaMismatch",
    "CommitConflict",
    "IOFailure",
    "UnsupportedProtocol",
    "TableAlreadyExists",
]


class DeltaTableError(Exception):
    """Base class for all table errors.

    Attributes:
        message: Human-readable cause.
        details: Structured context (paths, versions, columns).
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MissingLog(DeltaTableError):
    """No commit records exist at the table location.

    The table is not initialized; callers run the init path instead of
    retrying.
    """

    def __init__(self, location: str, message: str | None = None) -> None:
        msg = message or f"No Delta log found at {location}"
        super().__init__(msg, details={"location": location})
        self.location = location


class CorruptLog(DeltaTableError):
    """A log record or checkpoint cannot be parsed, or versions are missing."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        version: int | None = None,
    ) -> None:
        super().__init__(message, details={"path": path, "version": version})
        self.path = path
        self.version = version


class SchemaConflict(DeltaTableError):
    """A metadata record declares a schema incompatible with live files.

    Raised by the log reader when a schema change contradicts the statistics
    recorded by a file that is still live at that point of the log.
    """

    def __init__(
        self,
        message: str,
        *,
        version: int | None = None,
        conflicts: list[str] | None = None,
    ) -> None:
        super().__init__(message, details={"version": version, "conflicts": conflicts or []})
        self.version = version
        self.conflicts = conflicts or []


class SchemaMismatch(DeltaTableError):
    """A row batch does not match the table schema.

    Example:
        >>> try:
        ...     client.append_rows([{"ts": 1, "humidity": 0.4}])
        ... except SchemaMismatch as e:
        ...     print(e.column)
    """

    def __init__(
        self,
        message: str,
        *,
        column: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(
            message,
            details={"column": column, "expected": expected, "actual": actual},
        )
        self.column = column
        self.expected = expected
        self.actual = actual


class CommitConflict(DeltaTableError):
    """Every attempt found its target version already taken."""

    def __init__(self, *, last_version: int, attempts: int) -> None:
        msg = (
            f"Commit failed after {attempts} attempts; "
            f"version {last_version} was taken by a concurrent writer"
        )
        super().__init__(msg, details={"last_version": last_version, "attempts": attempts})
        self.last_version = last_version
        self.attempts = attempts


class IOFailure(DeltaTableError):
    """The storage layer failed. Never retried internally."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, details={"path": path})
        self.path = path


class UnsupportedProtocol(DeltaTableError):
    """The table requires reader or writer features this client lacks."""

    def __init__(self, *, min_reader_version: int, min_writer_version: int) -> None:
        msg = (
            "Table requires protocol "
            f"(reader={min_reader_version}, writer={min_writer_version}), "
            "which this client does not support"
        )
        super().__init__(
            msg,
            details={
                "min_reader_version": min_reader_version,
                "min_writer_version": min_writer_version,
            },
        )


class TableAlreadyExists(DeltaTableError):
    """Version 0 of the table has already been written."""

    def __init__(self, location: str) -> None:
        super().__init__(f"Table already exists at {location}", details={"location": location})
        self.location = location
