"""Data file writer.

Stages the rows of a batch as immutable Parquet files at the table root and
describes each file with an AddFile action carrying its statistics. Files
written here are invisible until a commit record references them; if the
commit never lands they stay behind as unreferenced orphans.

Large batches are split into chunks of at most ``max_rows_per_file`` rows
that are encoded and written concurrently.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc
import pyarrow.parquet as pq

from delta_append.domain.entities import AddFile, FileStatistics, RowBatch
from delta_append.domain.value_objects import (
    PrimitiveType,
    TableSchema,
    is_finite_number,
    new_data_file_path,
)
from delta_append.infrastructure.logging import get_logger
from delta_append.infrastructure.metrics import MetricsRegistry
from delta_append.ports.outbound.storage_backend import StorageBackend


logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
TIMESTAMP_STAT_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _stat_value(scalar: pa.Scalar, column_type: PrimitiveType) -> Any:
    """Convert a min/max scalar into its JSON statistics form, or None."""
    if not scalar.is_valid:
        return None
    if column_type is PrimitiveType.TIMESTAMP:
        micros = scalar.cast(pa.int64()).as_py()
        return (_EPOCH + timedelta(microseconds=micros)).strftime(TIMESTAMP_STAT_FORMAT)
    if column_type is PrimitiveType.DATE:
        return scalar.as_py().isoformat()
    value = scalar.as_py()
    if column_type in (PrimitiveType.FLOAT, PrimitiveType.DOUBLE):
        return float(value) if is_finite_number(value) else None
    return value


def compute_statistics(table: pa.Table, schema: TableSchema) -> FileStatistics:
    """Compute the statistics recorded in an AddFile for ``table``.

    Boolean and binary columns only get null counts. Float columns whose
    extreme is NaN or infinite get no min/max, since JSON cannot carry them.
    """
    min_values: dict[str, Any] = {}
    max_values: dict[str, Any] = {}
    null_count: dict[str, int] = {}

    for schema_field in schema:
        column = table.column(schema_field.name)
        null_count[schema_field.name] = column.null_count
        if not schema_field.type.has_min_max or column.null_count == len(column):
            continue
        extremes = pc.min_max(column)
        low = _stat_value(extremes["min"], schema_field.type)
        high = _stat_value(extremes["max"], schema_field.type)
        if low is not None and high is not None:
            min_values[schema_field.name] = low
            max_values[schema_field.name] = high

    return FileStatistics(
        num_records=table.num_rows,
        min_values=min_values,
        max_values=max_values,
        null_count=null_count,
    )


class DataFileWriter:
    """Writes row batches as Parquet data files.

    Attributes:
        storage: Backend receiving the files
        max_rows_per_file: Upper bound on rows per data file
        max_workers: Threads used when a batch spans several files
        compression: Parquet codec ("snappy", "zstd", "gzip" or "none")
    """

    def __init__(
        self,
        storage: StorageBackend,
        *,
        max_rows_per_file: int = 1_000_000,
        max_workers: int = 4,
        compression: str = "snappy",
        metrics: MetricsRegistry | None = None,
    ) -> None:
        if max_rows_per_file < 1:
            raise ValueError(f"max_rows_per_file must be positive, got {max_rows_per_file}")
        self._storage = storage
        self._max_rows_per_file = max_rows_per_file
        self._max_workers = max(1, max_workers)
        self._compression = compression
        self._metrics = metrics

    def write(self, batch: RowBatch) -> list[AddFile]:
        """Stage ``batch`` as one or more data files.

        Returns:
            AddFile actions in row order.

        Raises:
            IOFailure: If any file cannot be written. Files already written
                for the batch are left as orphans.
        """
        chunks = list(batch.slices(self._max_rows_per_file))
        if len(chunks) <= 1:
            adds = [self._write_chunk(index, chunk, batch.schema) for index, chunk in enumerate(chunks)]
        else:
            workers = min(self._max_workers, len(chunks))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="delta-write") as pool:
                futures = [
                    pool.submit(self._write_chunk, index, chunk, batch.schema)
                    for index, chunk in enumerate(chunks)
                ]
                adds = [future.result() for future in futures]

        logger.debug(
            "data_files_staged",
            files=len(adds),
            rows=batch.num_rows,
            bytes=sum(add.size for add in adds),
        )
        return adds

    def _write_chunk(self, index: int, chunk: pa.Table, schema: TableSchema) -> AddFile:
        path = new_data_file_path(index, self._compression)
        sink = pa.BufferOutputStream()
        pq.write_table(
            chunk,
            sink,
            compression=None if self._compression == "none" else self._compression,
        )
        data = sink.getvalue().to_pybytes()
        self._storage.write(path, data)

        if self._metrics is not None:
            self._metrics.data_files_written_total.inc()
            self._metrics.rows_written_total.inc(chunk.num_rows)
            self._metrics.bytes_written_total.inc(len(data))

        return AddFile(
            path=path,
            size=len(data),
            modification_time=int(time.time() * 1000),
            data_change=True,
            stats=compute_statistics(chunk, schema),
        )
