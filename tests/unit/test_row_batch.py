"""Unit tests for RowBatch validation."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import pyarrow as pa
import pytest

from delta_append.domain.entities import RowBatch
from delta_append.domain.value_objects import TableSchema
from delta_append.errors import SchemaMismatch


@pytest.mark.unit
class TestFromRows:
    """Tests for RowBatch.from_rows."""

    def test_valid_rows(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        batch = RowBatch.from_rows(weather_schema, weather_rows)

        assert batch.num_rows == 2
        assert batch.table.schema == weather_schema.to_arrow()
        assert batch.table.column("temp").to_pylist() == [71, 70]

    def test_column_order_follows_schema(self, weather_schema: TableSchema) -> None:
        row = {"long": 1.0, "lat": 2.0, "temp": 3, "timestamp": datetime(2024, 1, 1, tzinfo=timezone.utc)}

        batch = RowBatch.from_rows(weather_schema, [row])

        assert batch.table.column_names == ["timestamp", "temp", "lat", "long"]

    def test_missing_column(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        del weather_rows[1]["lat"]

        with pytest.raises(SchemaMismatch) as exc_info:
            RowBatch.from_rows(weather_schema, weather_rows)

        assert exc_info.value.column == "lat"
        assert "row 1" in str(exc_info.value)

    def test_unexpected_column(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        weather_rows[0]["humidity"] = 0.4

        with pytest.raises(SchemaMismatch) as exc_info:
            RowBatch.from_rows(weather_schema, weather_rows)

        assert exc_info.value.column == "humidity"

    def test_wrong_value_type(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        weather_rows[0]["temp"] = "warm"

        with pytest.raises(SchemaMismatch):
            RowBatch.from_rows(weather_schema, weather_rows)

    def test_integer_overflow(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        weather_rows[0]["temp"] = 2**40

        with pytest.raises(SchemaMismatch):
            RowBatch.from_rows(weather_schema, weather_rows)

    def test_null_in_non_nullable_column(self) -> None:
        schema = TableSchema.of(("id", "long", False), ("name", "string"))

        with pytest.raises(SchemaMismatch) as exc_info:
            RowBatch.from_rows(schema, [{"id": 1, "name": None}, {"id": None, "name": "x"}])

        assert exc_info.value.column == "id"

    def test_nulls_allowed_in_nullable_column(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        weather_rows[0]["temp"] = None

        batch = RowBatch.from_rows(weather_schema, weather_rows)

        assert batch.table.column("temp").null_count == 1

    def test_iso_strings_for_temporal_columns(self) -> None:
        schema = TableSchema.of(("ts", "timestamp"), ("day", "date"))

        batch = RowBatch.from_rows(schema, [{"ts": "2024-01-01T12:00:00Z", "day": "2024-01-01"}])

        assert batch.table.column("ts")[0].cast(pa.int64()).as_py() == int(
            datetime(2024, 1, 1, 12, tzinfo=timezone.utc).timestamp() * 1_000_000
        )
        assert batch.table.column("day").to_pylist() == [date(2024, 1, 1)]

    def test_invalid_timestamp_string(self) -> None:
        schema = TableSchema.of(("ts", "timestamp"))

        with pytest.raises(SchemaMismatch) as exc_info:
            RowBatch.from_rows(schema, [{"ts": "noon"}])

        assert exc_info.value.column == "ts"


@pytest.mark.unit
class TestFromArrow:
    """Tests for RowBatch.from_arrow."""

    def test_matching_table(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        table = pa.Table.from_pylist(weather_rows, schema=weather_schema.to_arrow())

        batch = RowBatch.from_arrow(weather_schema, table)

        assert batch.table.equals(table)

    def test_record_batch(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        record_batch = pa.RecordBatch.from_pylist(weather_rows, schema=weather_schema.to_arrow())

        assert RowBatch.from_arrow(weather_schema, record_batch).num_rows == 2

    def test_lossless_int_cast(self) -> None:
        schema = TableSchema.of(("temp", "integer"))
        table = pa.table({"temp": pa.array([1, 2], type=pa.int64())})

        batch = RowBatch.from_arrow(schema, table)

        assert batch.table.column("temp").type == pa.int32()

    def test_lossy_int_cast_rejected(self) -> None:
        schema = TableSchema.of(("temp", "integer"))
        table = pa.table({"temp": pa.array([2**40], type=pa.int64())})

        with pytest.raises(SchemaMismatch) as exc_info:
            RowBatch.from_arrow(schema, table)

        assert exc_info.value.column == "temp"

    def test_cross_family_cast_rejected(self) -> None:
        schema = TableSchema.of(("temp", "integer"))
        table = pa.table({"temp": pa.array(["1"])})

        with pytest.raises(SchemaMismatch) as exc_info:
            RowBatch.from_arrow(schema, table)

        assert exc_info.value.expected == "integer"

    def test_timestamp_unit_cast(self) -> None:
        schema = TableSchema.of(("ts", "timestamp"))
        table = pa.table({"ts": pa.array([1_000], type=pa.timestamp("ms", tz="UTC"))})

        batch = RowBatch.from_arrow(schema, table)

        assert batch.table.column("ts").type == pa.timestamp("us", tz="UTC")
        assert batch.table.column("ts")[0].cast(pa.int64()).as_py() == 1_000_000

    def test_extra_column_rejected(self) -> None:
        schema = TableSchema.of(("a", "long"))
        table = pa.table({"a": [1], "b": [2]})

        with pytest.raises(SchemaMismatch):
            RowBatch.from_arrow(schema, table)


@pytest.mark.unit
class TestBatchOperations:
    """Tests for slicing and revalidation."""

    def test_slices(self) -> None:
        schema = TableSchema.of(("n", "long"))
        batch = RowBatch.from_arrow(schema, pa.table({"n": list(range(10))}))

        sizes = [chunk.num_rows for chunk in batch.slices(4)]

        assert sizes == [4, 4, 2]

    def test_slices_rejects_zero(self) -> None:
        schema = TableSchema.of(("n", "long"))
        batch = RowBatch.from_arrow(schema, pa.table({"n": [1]}))

        with pytest.raises(ValueError):
            list(batch.slices(0))

    def test_revalidate_same_schema_is_identity(self, weather_schema: TableSchema, weather_rows: list[dict[str, Any]]) -> None:
        batch = RowBatch.from_rows(weather_schema, weather_rows)
        assert batch.revalidate(weather_schema) is batch

    def test_revalidate_against_stricter_schema(self) -> None:
        loose = TableSchema.of(("n", "long"))
        strict = TableSchema.of(("n", "long", False))
        batch = RowBatch.from_rows(loose, [{"n": None}])

        with pytest.raises(SchemaMismatch):
            batch.revalidate(strict)
