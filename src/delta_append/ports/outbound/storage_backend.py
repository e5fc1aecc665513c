"""Storage backend port for table files.

This outbound port defines the contract for the storage that holds a table:
data files at the table root and commit records under ``_delta_log/``. All
paths are relative to the table root and use forward slashes.

The one primitive the commit protocol depends on is ``write_if_absent``: at
most one of any number of concurrent callers targeting the same path may
succeed, and a reader never observes a partially written file.

References:
    - Delta Transaction Log Protocol, "Mutual Exclusion" requirement
"""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum
from typing import Protocol


class SyncMode(Enum):
    """Storage sync modes with different durability/performance tradeoffs.

    FSYNC: Full durability - sync file and directory before returning
    NONE: No sync - rely on OS buffering (tests and scratch tables)
    """

    FSYNC = "fsync"
    NONE = "none"


class StorageBackend(Protocol):
    """Protocol for table file storage.

    Error contract:
        - ``read`` raises FileNotFoundError for a missing path.
        - Every other storage failure raises ``IOFailure``.

    Thread Safety:
        Implementations must be safe for concurrent use from multiple
        threads and, for shared media, multiple processes.
    """

    @property
    @abstractmethod
    def uri(self) -> str:
        """Return the table location this backend serves."""
        ...

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Read a whole file.

        Args:
            path: Path relative to the table root.

        Returns:
            The file contents.

        Raises:
            FileNotFoundError: If the file does not exist.
            IOFailure: If the read fails.
        """
        ...

    @abstractmethod
    def write(self, path: str, data: bytes) -> None:
        """Write a file, replacing any previous content.

        Used for data files (unique names) and checkpoint hints.

        Raises:
            IOFailure: If the write fails.
        """
        ...

    @abstractmethod
    def write_if_absent(self, path: str, data: bytes) -> bool:
        """Atomically create a file only if it does not already exist.

        Args:
            path: Path relative to the table root.
            data: Complete file contents.

        Returns:
            True if this call created the file, False if it already existed.

        Raises:
            IOFailure: If the write fails for any other reason.
        """
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if the file exists."""
        ...

    @abstractmethod
    def list(self, prefix: str) -> list[str]:
        """List file names directly under a directory.

        Args:
            prefix: Directory relative to the table root (e.g. ``_delta_log``).

        Returns:
            Sorted base names. An absent directory yields an empty list.

        Raises:
            IOFailure: If listing fails.
        """
        ...
