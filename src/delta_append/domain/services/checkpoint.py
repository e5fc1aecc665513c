"""Checkpoint encoding.

A checkpoint stores a complete TableState as a single Parquet file so that
readers can skip replaying every commit before it. Each row carries exactly
one action in one of the struct columns below; the others are null.

    Column    | Content
    ----------|--------------------------------------------
    protocol  | Reader/writer versions
    metaData  | Table id and schema string
    add       | One live data file
    remove    | One tombstone

``_delta_log/_last_checkpoint`` points at the newest checkpoint:
``{"version": <v>, "size": <rows>}``. The hint is advisory; the checkpoint
file itself is authoritative.

References:
    - Delta Transaction Log Protocol, "Checkpoints"
"""

from __future__ import annotations

import json
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from delta_append.domain.entities import (
    Action,
    AddFile,
    MetadataAction,
    ProtocolAction,
    RemoveFile,
    TableState,
)
from delta_append.domain.value_objects import Version


_STRING_MAP = pa.map_(pa.string(), pa.string())

CHECKPOINT_SCHEMA = pa.schema(
    [
        pa.field(
            "protocol",
            pa.struct(
                [
                    pa.field("minReaderVersion", pa.int32()),
                    pa.field("minWriterVersion", pa.int32()),
                ]
            ),
        ),
        pa.field(
            "metaData",
            pa.struct(
                [
                    pa.field("id", pa.string()),
                    pa.field("name", pa.string()),
                    pa.field("description", pa.string()),
                    pa.field(
                        "format",
                        pa.struct(
                            [
                                pa.field("provider", pa.string()),
                                pa.field("options", _STRING_MAP),
                            ]
                        ),
                    ),
                    pa.field("schemaString", pa.string()),
                    pa.field("partitionColumns", pa.list_(pa.string())),
                    pa.field("configuration", _STRING_MAP),
                    pa.field("createdTime", pa.int64()),
                ]
            ),
        ),
        pa.field(
            "add",
            pa.struct(
                [
                    pa.field("path", pa.string()),
                    pa.field("partitionValues", _STRING_MAP),
                    pa.field("size", pa.int64()),
                    pa.field("modificationTime", pa.int64()),
                    pa.field("dataChange", pa.bool_()),
                    pa.field("stats", pa.string()),
                ]
            ),
        ),
        pa.field(
            "remove",
            pa.struct(
                [
                    pa.field("path", pa.string()),
                    pa.field("deletionTimestamp", pa.int64()),
                    pa.field("dataChange", pa.bool_()),
                    pa.field("size", pa.int64()),
                ]
            ),
        ),
    ]
)

# Struct fields holding string maps; Arrow wants them as key/value pairs
_MAP_FIELDS = {
    "metaData": ("configuration",),
    "add": ("partitionValues",),
}


def _to_row(action: Action) -> dict[str, Any]:
    payload = action.to_dict()
    for name in _MAP_FIELDS.get(action.key, ()):
        payload[name] = list((payload.get(name) or {}).items())
    if isinstance(action, MetadataAction):
        payload["format"] = {
            "provider": action.format_provider,
            "options": list(action.format_options.items()),
        }
    return {action.key: payload}


def encode_checkpoint(state: TableState) -> bytes:
    """Encode ``state`` as checkpoint Parquet bytes.

    Raises:
        ValueError: If the state has no protocol or metadata.
    """
    if state.protocol is None or state.metadata is None:
        raise ValueError("Cannot checkpoint a table without protocol and metadata")

    actions: list[Action] = [state.protocol, state.metadata]
    actions.extend(state.files[path] for path in sorted(state.files))
    actions.extend(state.tombstones[path] for path in sorted(state.tombstones))

    table = pa.Table.from_pylist([_to_row(a) for a in actions], schema=CHECKPOINT_SCHEMA)
    sink = pa.BufferOutputStream()
    pq.write_table(table, sink)
    return sink.getvalue().to_pybytes()


def checkpoint_size(state: TableState) -> int:
    """Number of rows ``encode_checkpoint`` writes for ``state``."""
    return 2 + state.num_files + len(state.tombstones)


def decode_checkpoint(version: Version, data: bytes) -> TableState:
    """Decode checkpoint Parquet bytes into the state at ``version``.

    Raises:
        ValueError: If the file is not a readable checkpoint.
    """
    try:
        table = pq.read_table(pa.BufferReader(data))
    except (pa.ArrowInvalid, OSError) as e:
        raise ValueError(f"Checkpoint {version} is not valid Parquet: {e}") from e

    actions: list[ProtocolAction | MetadataAction | AddFile | RemoveFile] = []
    for row in table.to_pylist():
        present = [(key, value) for key, value in row.items() if value is not None]
        if len(present) != 1:
            raise ValueError(f"Checkpoint {version} row holds {len(present)} actions")
        key, payload = present[0]
        action = Action.from_payload(key, payload)
        if isinstance(action, (ProtocolAction, MetadataAction, AddFile, RemoveFile)):
            actions.append(action)

    return TableState.from_checkpoint(version, actions)


def encode_last_checkpoint(version: Version, size: int) -> bytes:
    return json.dumps({"version": version, "size": size}).encode("utf-8")


def decode_last_checkpoint(data: bytes) -> tuple[Version, int | None]:
    """Parse the ``_last_checkpoint`` hint.

    Raises:
        ValueError: If the hint is not a JSON object with an integer version.
    """
    try:
        parsed = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid _last_checkpoint: {e}") from e
    if not isinstance(parsed, dict) or not isinstance(parsed.get("version"), int):
        raise ValueError("_last_checkpoint must hold an integer version")
    if parsed["version"] < 0:
        raise ValueError(f"_last_checkpoint version is negative: {parsed['version']}")
    size = parsed.get("size")
    return Version(parsed["version"]), size if isinstance(size, int) else None
