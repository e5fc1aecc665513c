"""Append Client - unified entry point for writing to a table.

This module provides the AppendClient class that wires a storage backend,
the log reader and the conflict-checking writer together for one table.

Usage:
    from delta_append.application import AppendClient, WEATHER_SCHEMA

    client = AppendClient("/data/weather")
    client.ensure_table(WEATHER_SCHEMA)
    result = client.append_rows([
        {"timestamp": now, "temp": 71, "lat": 39.6, "long": -119.2},
    ])
    print(result.version)
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import pyarrow as pa

from delta_append.adapters.outbound.storage_factory import open_storage
from delta_append.domain.entities import RowBatch, TableState
from delta_append.domain.services import ConflictCheckingWriter, DeltaLogReader
from delta_append.domain.value_objects import TableSchema, Version
from delta_append.errors import MissingLog, TableAlreadyExists
from delta_append.infrastructure.config import Config, get_config
from delta_append.infrastructure.logging import get_logger
from delta_append.infrastructure.metrics import MetricsRegistry
from delta_append.ports.inbound.table_writer import CommitResult
from delta_append.ports.outbound.storage_backend import StorageBackend, SyncMode


logger = get_logger(__name__)


class AppendClient:
    """Appends rows to one table.

    Every append reads the latest state, validates the rows against its
    schema and hands them to the writer. The client keeps no state between
    calls, so several clients (or processes) may append to the same table.
    """

    def __init__(
        self,
        table_uri: str | None = None,
        *,
        storage: StorageBackend | None = None,
        config: Config | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            table_uri: Table location. Defaults to the configured one.
            storage: Pre-built backend; takes precedence over ``table_uri``.
            config: Configuration (default: global configuration).
            metrics: Metrics registry (default: global registry).

        Raises:
            ValueError: If no table location is given or configured.
        """
        config = config or get_config()
        if storage is None:
            uri = table_uri or config.resolve_table_uri()
            if not uri:
                raise ValueError(
                    "No table location configured; set DELTA_APPEND_TABLE__URI or TABLE_URI"
                )
            storage = open_storage(uri, SyncMode(config.commit.sync_mode))

        self._storage = storage
        self._reader = DeltaLogReader(storage, metrics)
        self._writer = ConflictCheckingWriter(storage, self._reader, config=config, metrics=metrics)

    @property
    def uri(self) -> str:
        return self._storage.uri

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    @property
    def reader(self) -> DeltaLogReader:
        return self._reader

    @property
    def writer(self) -> ConflictCheckingWriter:
        return self._writer

    def state(self, version: Version | None = None) -> TableState:
        """Return the table state at ``version`` (latest when None)."""
        return self._reader.load_state(version)

    def ensure_table(
        self,
        schema: TableSchema | pa.Schema,
        name: str | None = None,
        description: str | None = None,
    ) -> TableState:
        """Return the current state, creating the table first if it has no log.

        A concurrent creator winning version 0 is not an error; the table it
        created is returned.
        """
        try:
            return self._reader.load_state()
        except MissingLog:
            logger.info("table_not_initialized", table=self.uri)

        try:
            return self._writer.create_table(schema, name=name, description=description)
        except TableAlreadyExists:
            logger.info("table_created_concurrently", table=self.uri)
            return self._reader.load_state()

    def append_rows(self, rows: Iterable[Mapping[str, Any]]) -> CommitResult:
        """Append row mappings (column name -> value).

        Raises:
            ValueError: If ``rows`` is empty.
            MissingLog: If the table does not exist.
            SchemaMismatch: If a row does not fit the schema.
            CommitConflict: If the retry bound is exhausted.
            IOFailure: If storage fails.
        """
        rows = list(rows)
        if not rows:
            raise ValueError("No rows to append")
        snapshot = self._reader.load_state()
        batch = RowBatch.from_rows(snapshot.schema, rows)
        return self._writer.append(snapshot, batch)

    def append_batch(self, data: pa.Table | pa.RecordBatch) -> CommitResult:
        """Append an Arrow table or record batch.

        Raises:
            Same as ``append_rows``.
        """
        if data.num_rows == 0:
            raise ValueError("No rows to append")
        snapshot = self._reader.load_state()
        batch = RowBatch.from_arrow(snapshot.schema, data)
        return self._writer.append(snapshot, batch)

    def checkpoint(self) -> TableState:
        """Checkpoint the latest version and return the checkpointed state."""
        state = self._reader.load_state()
        self._writer.checkpoint(state)
        return state

    def __repr__(self) -> str:
        return f"AppendClient(uri={self.uri!r})"
