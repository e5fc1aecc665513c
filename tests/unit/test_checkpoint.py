"""Unit tests for checkpoint encoding."""

from __future__ import annotations

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from delta_append.domain.entities import (
    AddFile,
    CommitRecord,
    FileStatistics,
    MetadataAction,
    ProtocolAction,
    RemoveFile,
    TableState,
)
from delta_append.domain.services import (
    CHECKPOINT_SCHEMA,
    decode_checkpoint,
    decode_last_checkpoint,
    encode_checkpoint,
    encode_last_checkpoint,
)
from delta_append.domain.value_objects import TableSchema, Version


@pytest.fixture
def state(weather_schema: TableSchema) -> TableState:
    metadata = MetadataAction(
        id="table-id",
        schema=weather_schema,
        name="weather",
        configuration={"delta.appendOnly": "true"},
        created_time=1700000000000,
    )
    state = TableState.empty().apply(CommitRecord(Version(0), (ProtocolAction(), metadata)))
    stats = FileStatistics(num_records=5, min_values={"temp": 67}, max_values={"temp": 71}, null_count={"temp": 0})
    state = state.apply(
        CommitRecord(
            Version(1),
            (
                AddFile("a.parquet", 100, 1, stats=stats),
                AddFile("b.parquet", 200, 2, partition_values={}),
            ),
        )
    )
    return state.apply(CommitRecord(Version(2), (RemoveFile("b.parquet", 3, size=200),)))


@pytest.mark.unit
class TestCheckpointEncoding:
    """Tests for encode_checkpoint/decode_checkpoint."""

    def test_round_trip(self, state: TableState) -> None:
        decoded = decode_checkpoint(Version(2), encode_checkpoint(state))

        assert decoded == state

    def test_one_action_per_row(self, state: TableState) -> None:
        table = pq.read_table(pa.BufferReader(encode_checkpoint(state)))

        assert table.schema.names == CHECKPOINT_SCHEMA.names
        assert table.num_rows == 4  # protocol, metaData, one add, one remove
        for row in table.to_pylist():
            assert sum(value is not None for value in row.values()) == 1

    def test_empty_state_rejected(self) -> None:
        with pytest.raises(ValueError):
            encode_checkpoint(TableState.empty())

    def test_garbage_rejected(self) -> None:
        with pytest.raises(ValueError):
            decode_checkpoint(Version(1), b"garbage")

    def test_row_with_two_actions_rejected(self) -> None:
        table = pa.Table.from_pylist(
            [
                {
                    "protocol": {"minReaderVersion": 1, "minWriterVersion": 2},
                    "remove": {"path": "a", "deletionTimestamp": 1, "dataChange": True, "size": None},
                }
            ],
            schema=CHECKPOINT_SCHEMA,
        )
        sink = pa.BufferOutputStream()
        pq.write_table(table, sink)

        with pytest.raises(ValueError, match="2 actions"):
            decode_checkpoint(Version(1), sink.getvalue().to_pybytes())


@pytest.mark.unit
class TestLastCheckpoint:
    """Tests for the _last_checkpoint hint."""

    def test_round_trip(self) -> None:
        assert decode_last_checkpoint(encode_last_checkpoint(Version(10), 42)) == (10, 42)

    def test_size_optional(self) -> None:
        assert decode_last_checkpoint(b'{"version": 3}') == (3, None)

    @pytest.mark.parametrize("data", [b"", b"[]", b'{"version": "3"}', b'{"version": -1}', b"\xff"])
    def test_invalid(self, data: bytes) -> None:
        with pytest.raises(ValueError):
            decode_last_checkpoint(data)
