"""Table writer port for appending data under optimistic concurrency.

This inbound port defines the contract for turning a row batch into a new
table version. Writers stage data files first, then try to claim the next
log version with a conditional write; a lost race is retried against the
fresh state up to a configured bound.

Key guarantees:
- A commit is visible in its entirety or not at all
- Committed versions are contiguous and never overwritten
- Files staged by a failed append are never referenced by the log
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Protocol

from delta_append.domain.entities import AddFile, RowBatch, TableState
from delta_append.domain.value_objects import Version


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a successful append.

    Attributes:
        version: Version the commit landed at
        attempts: Conditional writes issued (1 when there was no conflict)
        files: Data files added by the commit
        num_records: Rows added by the commit
        state: Table state after the commit
    """

    version: Version
    attempts: int
    files: tuple[AddFile, ...]
    num_records: int
    state: TableState

    @property
    def had_conflicts(self) -> bool:
        return self.attempts > 1


class TableWriter(Protocol):
    """Protocol for appending to a table."""

    @abstractmethod
    def append(self, snapshot: TableState, batch: RowBatch) -> CommitResult:
        """Append ``batch`` on top of ``snapshot``.

        Args:
            snapshot: The state the caller read; the commit targets
                ``snapshot.version + 1``.
            batch: Rows to add.

        Returns:
            The commit outcome.

        Raises:
            SchemaMismatch: If the batch does not fit the table schema, now
                or after a concurrent schema change.
            CommitConflict: If every attempt lost its race.
            IOFailure: If storage fails.
        """
        ...
