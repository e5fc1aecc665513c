"""Log reader port for reconstructing table state.

This inbound port defines the contract for reading a table's commit log:
listing versions, loading an optional checkpoint and replaying commit
records in version order into an immutable TableState.

References:
    - Delta Transaction Log Protocol, "Action Reconciliation"
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from delta_append.domain.entities import TableState
from delta_append.domain.value_objects import Version


class LogReader(Protocol):
    """Protocol for table state reconstruction.

    Readers never modify storage. Two loads of the same version always
    produce equal states.
    """

    @abstractmethod
    def load_state(self, version: Version | None = None) -> TableState:
        """Reconstruct the table state.

        Args:
            version: Version to load; the latest one when None.

        Returns:
            The state after applying every commit up to ``version``.

        Raises:
            MissingLog: If the table has no commit records.
            CorruptLog: If a record cannot be parsed or versions are missing.
            SchemaConflict: If the log declares a schema that contradicts
                files still live at that point.
            UnsupportedProtocol: If the table requires a newer reader.
            IOFailure: If storage fails.
        """
        ...

    @abstractmethod
    def update(self, state: TableState) -> TableState:
        """Bring ``state`` up to the latest version by replaying newer commits.

        Raises:
            Same as ``load_state``.
        """
        ...

    @abstractmethod
    def latest_version(self) -> Version:
        """Return the newest committed version.

        Raises:
            MissingLog: If the table has no commit records.
        """
        ...
