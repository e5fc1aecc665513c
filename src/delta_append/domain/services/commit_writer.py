"""Conflict-checking writer (optimistic concurrency control).

Appends follow the Delta optimistic protocol:

1. Validate the batch against the snapshot schema.
2. Stage the batch as Parquet data files (invisible until committed).
3. Build a commit record for ``snapshot.version + 1``.
4. Create the commit file with a conditional write. Exactly one writer can
   create a given version.
5. If the version is taken, catch up with the log, re-validate protocol and
   schema against the fresh state, and retry at the next version. The number
   of retries is bounded.

Appends are blind (they read nothing the concurrent commit could have
changed), so a lost race never needs the data files rewritten; only the
commit record is rebuilt.

Example:
    >>> writer = ConflictCheckingWriter(storage, reader)
    >>> result = writer.append(reader.load_state(), batch)
    >>> result.version
    6
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Mapping

import pyarrow as pa

from delta_append import __version__
from delta_append.domain.entities import (
    AddFile,
    CommitInfo,
    CommitRecord,
    MetadataAction,
    ProtocolAction,
    RowBatch,
    TableState,
)
from delta_append.domain.services.checkpoint import (
    checkpoint_size,
    encode_checkpoint,
    encode_last_checkpoint,
)
from delta_append.domain.services.data_file_writer import DataFileWriter
from delta_append.domain.services.log_reader import DeltaLogReader
from delta_append.domain.value_objects import (
    INITIAL_VERSION,
    LAST_CHECKPOINT_PATH,
    TableSchema,
    Version,
    checkpoint_path,
    commit_path,
)
from delta_append.errors import (
    CommitConflict,
    DeltaTableError,
    MissingLog,
    SchemaMismatch,
    TableAlreadyExists,
    UnsupportedProtocol,
)
from delta_append.infrastructure.config import Config, get_config
from delta_append.infrastructure.logging import get_logger
from delta_append.infrastructure.metrics import MetricsRegistry, get_metrics
from delta_append.infrastructure.tracing import (
    ATTR_ATTEMPTS,
    ATTR_READ_VERSION,
    ATTR_ROWS,
    ATTR_TABLE_URI,
    ATTR_VERSION,
    trace_span,
)
from delta_append.ports.inbound.log_reader import LogReader
from delta_append.ports.inbound.table_writer import CommitResult
from delta_append.ports.outbound.storage_backend import StorageBackend


logger = get_logger(__name__)

ENGINE_INFO = f"delta-append/{__version__}"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ConflictCheckingWriter:
    """Implementation of the TableWriter protocol.

    Attributes:
        storage: Backend holding the table
        reader: Log reader used to catch up after a lost race
        max_retries: Retries after the first attempt before CommitConflict
        checkpoint_interval: Checkpoint every N versions (0 disables)
    """

    def __init__(
        self,
        storage: StorageBackend,
        reader: LogReader | None = None,
        *,
        config: Config | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        config = config or get_config()
        self._storage = storage
        self._metrics = metrics or get_metrics()
        self._reader = reader or DeltaLogReader(storage, self._metrics)
        self._max_retries = config.commit.max_retries
        self._checkpoint_interval = config.table.checkpoint_interval
        self._file_writer = DataFileWriter(
            storage,
            max_rows_per_file=config.table.max_rows_per_file,
            max_workers=config.table.max_write_workers,
            compression=config.table.compression,
            metrics=self._metrics,
        )

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def append(self, snapshot: TableState, batch: RowBatch) -> CommitResult:
        started = time.perf_counter()
        with trace_span(
            "delta.append",
            {ATTR_TABLE_URI: self._storage.uri, ATTR_READ_VERSION: snapshot.version},
        ) as span:
            try:
                result = self._append(snapshot, batch)
            except CommitConflict:
                self._metrics.commits_total.labels(
                    operation="append", status="conflict_exhausted"
                ).inc()
                raise
            except DeltaTableError:
                self._metrics.commits_total.labels(operation="append", status="error").inc()
                raise
            span.set_attribute(ATTR_VERSION, result.version)
            span.set_attribute(ATTR_ATTEMPTS, result.attempts)

        self._metrics.commits_total.labels(operation="append", status="success").inc()
        self._metrics.commit_attempts.observe(result.attempts)
        self._metrics.commit_latency_seconds.observe(time.perf_counter() - started)
        self._metrics.table_version.set(result.version)

        logger.info(
            "append_committed",
            table=self._storage.uri,
            version=result.version,
            attempts=result.attempts,
            files=len(result.files),
            rows=result.num_records,
        )

        self._maybe_checkpoint(result.state)
        return result

    def _append(self, snapshot: TableState, batch: RowBatch) -> CommitResult:
        if snapshot.is_empty:
            raise MissingLog(self._storage.uri)
        self._check_writable(snapshot)
        batch = batch.revalidate(snapshot.schema)
        if batch.num_rows == 0:
            raise ValueError("Cannot append an empty batch")

        with trace_span("delta.stage_files", {ATTR_ROWS: batch.num_rows}):
            adds = tuple(self._file_writer.write(batch))

        state = snapshot
        version = Version(state.version + 1)
        attempts = 0
        for attempt in range(1, self._max_retries + 2):
            attempts = attempt
            version = Version(state.version + 1)
            record = self._build_append(version, state, adds)
            if self._storage.write_if_absent(commit_path(version), record.to_bytes()):
                return CommitResult(
                    version=version,
                    attempts=attempts,
                    files=adds,
                    num_records=batch.num_rows,
                    state=state.apply(record),
                )

            self._metrics.commit_conflicts_total.inc()
            logger.info(
                "commit_conflict",
                table=self._storage.uri,
                version=version,
                attempt=attempt,
                max_retries=self._max_retries,
            )
            if attempt > self._max_retries:
                break

            state = self._reader.update(state)
            self._check_writable(state)
            batch = self._revalidate(batch, state)

        logger.warning(
            "commit_retries_exhausted",
            table=self._storage.uri,
            version=version,
            attempts=attempts,
        )
        raise CommitConflict(last_version=version, attempts=attempts)

    def _build_append(
        self, version: Version, read_state: TableState, adds: tuple[AddFile, ...]
    ) -> CommitRecord:
        info = CommitInfo(
            timestamp=_now_ms(),
            operation="WRITE",
            operation_parameters={"mode": "Append", "partitionBy": "[]"},
            read_version=read_state.version,
            is_blind_append=True,
            engine_info=ENGINE_INFO,
        )
        return CommitRecord(version=version, actions=(info, *adds))

    def _revalidate(self, batch: RowBatch, state: TableState) -> RowBatch:
        """Check a staged batch against the schema of a newer state.

        The data files are already written with the batch's column layout,
        so only changes that leave names and types intact are tolerated.
        """
        fresh = state.schema
        staged_layout = [(f.name, f.type) for f in batch.schema]
        fresh_layout = [(f.name, f.type) for f in fresh]
        if staged_layout != fresh_layout:
            raise SchemaMismatch(
                f"Table schema changed at version {state.version} while appending",
                expected=fresh.to_json(),
                actual=batch.schema.to_json(),
            )
        return batch.revalidate(fresh)

    @staticmethod
    def _check_writable(state: TableState) -> None:
        if state.protocol is not None and not state.protocol.writable:
            raise UnsupportedProtocol(
                min_reader_version=state.protocol.min_reader_version,
                min_writer_version=state.protocol.min_writer_version,
            )

    def create_table(
        self,
        schema: TableSchema | pa.Schema,
        name: str | None = None,
        description: str | None = None,
        configuration: Mapping[str, str] | None = None,
    ) -> TableState:
        """Write version 0 of a new table.

        Raises:
            TableAlreadyExists: If version 0 already exists.
            IOFailure: If storage fails.
        """
        if isinstance(schema, pa.Schema):
            schema = TableSchema.from_arrow(schema)
        if not len(schema):
            raise ValueError("A table needs at least one column")

        created = _now_ms()
        metadata = MetadataAction(
            id=str(uuid.uuid4()),
            schema=schema,
            name=name,
            description=description,
            configuration=dict(configuration or {}),
            created_time=created,
        )
        info = CommitInfo(
            timestamp=created,
            operation="CREATE TABLE",
            operation_parameters={
                "partitionBy": "[]",
                "properties": json.dumps(dict(configuration or {})),
            },
            is_blind_append=True,
            engine_info=ENGINE_INFO,
        )
        record = CommitRecord(
            version=INITIAL_VERSION,
            actions=(info, ProtocolAction(), metadata),
        )

        with trace_span("delta.create_table", {ATTR_TABLE_URI: self._storage.uri}):
            if not self._storage.write_if_absent(commit_path(INITIAL_VERSION), record.to_bytes()):
                self._metrics.commits_total.labels(operation="create_table", status="error").inc()
                raise TableAlreadyExists(self._storage.uri)

        self._metrics.commits_total.labels(operation="create_table", status="success").inc()
        self._metrics.table_version.set(INITIAL_VERSION)
        logger.info(
            "table_created",
            table=self._storage.uri,
            table_id=metadata.id,
            columns=schema.names,
        )
        return TableState.empty().apply(record)

    def checkpoint(self, state: TableState) -> None:
        """Write a checkpoint of ``state`` and point ``_last_checkpoint`` at it.

        Raises:
            ValueError: If ``state`` is empty.
            IOFailure: If storage fails.
        """
        if state.is_empty:
            raise ValueError("Cannot checkpoint an empty table state")

        with trace_span(
            "delta.checkpoint",
            {ATTR_TABLE_URI: self._storage.uri, ATTR_VERSION: state.version},
        ):
            try:
                self._storage.write(checkpoint_path(state.version), encode_checkpoint(state))
                self._storage.write(
                    LAST_CHECKPOINT_PATH,
                    encode_last_checkpoint(state.version, checkpoint_size(state)),
                )
            except DeltaTableError:
                self._metrics.checkpoints_total.labels(status="error").inc()
                raise

        self._metrics.checkpoints_total.labels(status="success").inc()
        logger.info(
            "checkpoint_written",
            table=self._storage.uri,
            version=state.version,
            files=state.num_files,
        )

    def _maybe_checkpoint(self, state: TableState) -> None:
        interval = self._checkpoint_interval
        if interval <= 0 or state.version % interval != 0:
            return
        try:
            self.checkpoint(state)
        except DeltaTableError as e:
            # The commit is already durable; a later checkpoint supersedes this one
            logger.warning(
                "checkpoint_failed",
                table=self._storage.uri,
                version=state.version,
                error=str(e),
            )
