"""Row batches: rows conforming to a table schema.

A RowBatch exists only for the duration of one append. Whatever shape the
caller supplies (row mappings, an Arrow table or record batch), the batch
holds an Arrow table whose columns are exactly the schema's columns, in
schema order, with the schema's Arrow types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Iterator, Mapping

import pyarrow as pa
import pyarrow.compute as pc

from delta_append.domain.value_objects import (
    PrimitiveType,
    SchemaField,
    TableSchema,
    parse_timestamp,
)
from delta_append.errors import SchemaMismatch


_INTEGER_TYPES = {
    PrimitiveType.BYTE,
    PrimitiveType.SHORT,
    PrimitiveType.INTEGER,
    PrimitiveType.LONG,
}
_FLOAT_TYPES = {PrimitiveType.FLOAT, PrimitiveType.DOUBLE}


def _castable(source: pa.DataType, target: PrimitiveType) -> bool:
    """Whether a column of ``source`` type may be cast into ``target``.

    Only casts within the same family are allowed (integers to wider or
    narrower integers, integers and floats to floats, any timestamp unit or
    zone to UTC microseconds). The cast itself still runs with overflow and
    truncation checks.
    """
    try:
        source_type = PrimitiveType.from_arrow(source)
    except ValueError:
        return False
    if source_type is target:
        return True
    if target in _INTEGER_TYPES:
        return source_type in _INTEGER_TYPES
    if target in _FLOAT_TYPES:
        return source_type in _INTEGER_TYPES or source_type in _FLOAT_TYPES
    return False


@dataclass(frozen=True)
class RowBatch:
    """An in-memory batch of rows matching ``schema``."""

    schema: TableSchema
    table: pa.Table

    @property
    def num_rows(self) -> int:
        return self.table.num_rows

    @classmethod
    def from_rows(cls, schema: TableSchema, rows: Iterable[Mapping[str, Any]]) -> RowBatch:
        """Build a batch from row mappings (column name -> value).

        Raises:
            SchemaMismatch: If a row's columns differ from the schema or a
                value cannot be converted to its column type.
        """
        rows = list(rows)
        expected = set(schema.names)
        for index, row in enumerate(rows):
            _check_columns(expected, set(row), where=f"row {index}")

        temporal = [f for f in schema if f.type in (PrimitiveType.TIMESTAMP, PrimitiveType.DATE)]
        if temporal:
            rows = [_parse_temporal(row, temporal) for row in rows]

        for schema_field in schema:
            if not schema_field.nullable and any(row[schema_field.name] is None for row in rows):
                raise SchemaMismatch(
                    f"Column {schema_field.name!r} is non-nullable but holds nulls",
                    column=schema_field.name,
                )

        try:
            table = pa.Table.from_pylist(rows, schema=schema.to_arrow())
        except (pa.ArrowInvalid, pa.ArrowTypeError, OverflowError, TypeError, ValueError) as e:
            raise SchemaMismatch(f"Rows do not match the table schema: {e}") from e

        return cls(schema=schema, table=table)

    @classmethod
    def from_arrow(cls, schema: TableSchema, data: pa.Table | pa.RecordBatch) -> RowBatch:
        """Build a batch from Arrow data, casting columns within their type family.

        Raises:
            SchemaMismatch: If columns are missing, unexpected, of an
                incompatible type, or hold nulls where the schema forbids them.
        """
        if isinstance(data, pa.RecordBatch):
            data = pa.Table.from_batches([data])

        _check_columns(set(schema.names), set(data.column_names), where="batch")

        columns = []
        for schema_field in schema:
            column = data.column(schema_field.name)
            target = schema_field.type.to_arrow()
            if column.type != target:
                if not _castable(column.type, schema_field.type):
                    raise SchemaMismatch(
                        f"Column {schema_field.name!r} has type {column.type}, "
                        f"expected {schema_field.type.value}",
                        column=schema_field.name,
                        expected=schema_field.type.value,
                        actual=str(column.type),
                    )
                try:
                    column = pc.cast(column, target, safe=True)
                except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as e:
                    raise SchemaMismatch(
                        f"Column {schema_field.name!r} cannot be converted to "
                        f"{schema_field.type.value}: {e}",
                        column=schema_field.name,
                        expected=schema_field.type.value,
                        actual=str(column.type),
                    ) from e
            if not schema_field.nullable and column.null_count > 0:
                raise SchemaMismatch(
                    f"Column {schema_field.name!r} is non-nullable but holds nulls",
                    column=schema_field.name,
                )
            columns.append(column)

        return cls(schema=schema, table=pa.Table.from_arrays(columns, schema=schema.to_arrow()))

    def revalidate(self, schema: TableSchema) -> RowBatch:
        """Check this batch against a (possibly newer) schema.

        Returns this batch when the schema is unchanged; otherwise a batch
        re-validated against ``schema``.
        """
        if schema == self.schema:
            return self
        return RowBatch.from_arrow(schema, self.table)

    def slices(self, max_rows: int) -> Iterator[pa.Table]:
        """Split into consecutive tables of at most ``max_rows`` rows."""
        if max_rows < 1:
            raise ValueError(f"max_rows must be positive, got {max_rows}")
        for offset in range(0, self.num_rows, max_rows):
            yield self.table.slice(offset, max_rows)


def _parse_temporal(row: Mapping[str, Any], fields: list[SchemaField]) -> Mapping[str, Any]:
    """Accept ISO-8601 strings for timestamp and date columns (e.g. rows read from JSON)."""
    parsed = None
    for schema_field in fields:
        value = row[schema_field.name]
        if not isinstance(value, str):
            continue
        try:
            if schema_field.type is PrimitiveType.DATE:
                converted: Any = date.fromisoformat(value)
            else:
                converted = parse_timestamp(value)
        except ValueError as e:
            raise SchemaMismatch(
                f"Column {schema_field.name!r} holds {value!r}, which is not a valid "
                f"{schema_field.type.value}",
                column=schema_field.name,
                expected=schema_field.type.value,
                actual="string",
            ) from e
        if parsed is None:
            parsed = dict(row)
        parsed[schema_field.name] = converted
    return parsed if parsed is not None else row


def _check_columns(expected: set[str], actual: set[str], *, where: str) -> None:
    missing = expected - actual
    unexpected = actual - expected
    if missing:
        column = sorted(missing)[0]
        raise SchemaMismatch(
            f"{where} is missing columns {sorted(missing)}",
            column=column,
        )
    if unexpected:
        column = sorted(unexpected)[0]
        raise SchemaMismatch(
            f"{where} has columns not in the schema: {sorted(unexpected)}",
            column=column,
        )
