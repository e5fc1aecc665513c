"""Delta log actions and commit records.

A commit file holds one JSON object per line, each wrapping exactly one
action. Replaying the actions of every commit in version order rebuilds the
table state:

    Action      | Key         | Replay effect
    ------------|-------------|---------------------------------------
    protocol    | protocol    | Replace reader/writer version marker
    metaData    | metaData    | Replace table id and schema
    add         | add         | File becomes live
    remove      | remove      | File leaves the live set (tombstone)
    commitInfo  | commitInfo  | None (provenance only)
    (other)     | any         | None (preserved, ignored)

References:
    - Delta Transaction Log Protocol, "Actions"
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping

from delta_append.domain.value_objects import TableSchema, Version


# Highest protocol versions this client understands
SUPPORTED_READER_VERSION = 1
SUPPORTED_WRITER_VERSION = 2


@dataclass(frozen=True)
class FileStatistics:
    """Summary statistics of one data file.

    Attributes:
        num_records: Row count
        min_values: Column name -> smallest non-null value (JSON form)
        max_values: Column name -> largest non-null value (JSON form)
        null_count: Column name -> number of nulls
    """

    num_records: int
    min_values: Mapping[str, Any] = field(default_factory=dict)
    max_values: Mapping[str, Any] = field(default_factory=dict)
    null_count: Mapping[str, int] = field(default_factory=dict)

    @property
    def columns(self) -> set[str]:
        """Every column these statistics mention."""
        return set(self.min_values) | set(self.max_values) | set(self.null_count)

    def to_json(self) -> str:
        return json.dumps(
            {
                "numRecords": self.num_records,
                "minValues": dict(self.min_values),
                "maxValues": dict(self.max_values),
                "nullCount": dict(self.null_count),
            },
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, data: str) -> FileStatistics:
        parsed = json.loads(data)
        if not isinstance(parsed, dict) or not isinstance(parsed.get("numRecords"), int):
            raise ValueError("File statistics must be an object with an integer numRecords")
        sections = {}
        for name in ("minValues", "maxValues", "nullCount"):
            section = parsed.get(name) or {}
            if not isinstance(section, dict):
                raise ValueError(f"File statistics {name} must be an object")
            # Nested struct statistics are not produced by this writer; keep top level only
            sections[name] = {k: v for k, v in section.items() if not isinstance(v, dict)}
        return cls(
            num_records=parsed["numRecords"],
            min_values=sections["minValues"],
            max_values=sections["maxValues"],
            null_count={k: v for k, v in sections["nullCount"].items() if isinstance(v, int)},
        )


@dataclass(frozen=True)
class Action(ABC):
    """Base class for all log actions."""

    @property
    @abstractmethod
    def key(self) -> str:
        """JSON key wrapping this action in a commit file."""
        ...

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Serialize the action payload."""
        ...

    def to_json_line(self) -> str:
        return json.dumps({self.key: self.to_dict()}, separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> Action:
        """Parse one line of a commit file.

        Raises:
            ValueError: If the line is not a single-key JSON object or a known
                action is missing required fields.
        """
        try:
            wrapper = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in log record: {e}") from e

        if not isinstance(wrapper, dict) or len(wrapper) != 1:
            raise ValueError("Log record line must be an object with exactly one action")

        (key, payload), = wrapper.items()
        return cls.from_payload(key, payload)

    @classmethod
    def from_payload(cls, key: str, payload: Any) -> Action:
        """Build an action from its key and payload object."""
        action_class = _ACTION_CLASSES.get(key)
        if action_class is None:
            return UnknownAction(kind=key, payload=payload)
        if not isinstance(payload, dict):
            raise ValueError(f"Payload of {key!r} must be an object")
        try:
            return action_class.from_dict(payload)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed {key!r} action: {e!r}") from e

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Action:
        """Build the action from its payload."""
        ...


@dataclass(frozen=True)
class ProtocolAction(Action):
    """Minimum reader/writer versions required to access the table."""

    min_reader_version: int = SUPPORTED_READER_VERSION
    min_writer_version: int = SUPPORTED_WRITER_VERSION

    @property
    def key(self) -> str:
        return "protocol"

    @property
    def readable(self) -> bool:
        return self.min_reader_version <= SUPPORTED_READER_VERSION

    @property
    def writable(self) -> bool:
        return self.readable and self.min_writer_version <= SUPPORTED_WRITER_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "minReaderVersion": self.min_reader_version,
            "minWriterVersion": self.min_writer_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProtocolAction:
        return cls(
            min_reader_version=int(data["minReaderVersion"]),
            min_writer_version=int(data["minWriterVersion"]),
        )


@dataclass(frozen=True)
class MetadataAction(Action):
    """Table identity and schema.

    Attributes:
        id: Unique table id (UUID string)
        schema: Column layout of the table
        name: Optional table name
        description: Optional table description
        partition_columns: Partition column names (always empty for this writer)
        configuration: Table properties
        created_time: Creation time in epoch milliseconds
    """

    id: str
    schema: TableSchema
    name: str | None = None
    description: str | None = None
    partition_columns: tuple[str, ...] = ()
    configuration: Mapping[str, str] = field(default_factory=dict)
    created_time: int | None = None
    format_provider: str = "parquet"
    format_options: Mapping[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return "metaData"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "format": {"provider": self.format_provider, "options": dict(self.format_options)},
            "schemaString": self.schema.to_json(),
            "partitionColumns": list(self.partition_columns),
            "configuration": dict(self.configuration),
            "createdTime": self.created_time,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MetadataAction:
        fmt = data.get("format") or {}
        return cls(
            id=str(data["id"]),
            schema=TableSchema.from_json(data["schemaString"]),
            name=data.get("name"),
            description=data.get("description"),
            partition_columns=tuple(data.get("partitionColumns") or ()),
            configuration=dict(data.get("configuration") or {}),
            created_time=data.get("createdTime"),
            format_provider=fmt.get("provider", "parquet"),
            format_options=dict(fmt.get("options") or {}),
        )


@dataclass(frozen=True)
class AddFile(Action):
    """A data file that becomes part of the table.

    Attributes:
        path: Path relative to the table root
        size: File size in bytes
        modification_time: Epoch milliseconds
        data_change: False for rearrangements that keep table content
        stats: Optional file statistics
        partition_values: Partition column -> value (empty when unpartitioned)
    """

    path: str
    size: int
    modification_time: int
    data_change: bool = True
    stats: FileStatistics | None = None
    partition_values: Mapping[str, str | None] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return "add"

    @property
    def num_records(self) -> int | None:
        return self.stats.num_records if self.stats is not None else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "partitionValues": dict(self.partition_values),
            "size": self.size,
            "modificationTime": self.modification_time,
            "dataChange": self.data_change,
        }
        if self.stats is not None:
            data["stats"] = self.stats.to_json()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AddFile:
        stats = data.get("stats")
        return cls(
            path=str(data["path"]),
            size=int(data["size"]),
            modification_time=int(data["modificationTime"]),
            data_change=bool(data.get("dataChange", True)),
            stats=FileStatistics.from_json(stats) if stats else None,
            partition_values=dict(data.get("partitionValues") or {}),
        )


@dataclass(frozen=True)
class RemoveFile(Action):
    """A data file that leaves the table.

    The physical file is not deleted; it becomes a tombstone.
    """

    path: str
    deletion_timestamp: int | None = None
    data_change: bool = True
    size: int | None = None

    @property
    def key(self) -> str:
        return "remove"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "deletionTimestamp": self.deletion_timestamp,
            "dataChange": self.data_change,
        }
        if self.size is not None:
            data["size"] = self.size
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RemoveFile:
        size = data.get("size")
        return cls(
            path=str(data["path"]),
            deletion_timestamp=data.get("deletionTimestamp"),
            data_change=bool(data.get("dataChange", True)),
            size=int(size) if size is not None else None,
        )


@dataclass(frozen=True)
class CommitInfo(Action):
    """Provenance of a commit. Has no effect on table state."""

    timestamp: int
    operation: str
    operation_parameters: Mapping[str, Any] = field(default_factory=dict)
    read_version: int | None = None
    is_blind_append: bool | None = None
    engine_info: str | None = None

    @property
    def key(self) -> str:
        return "commitInfo"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "operationParameters": dict(self.operation_parameters),
        }
        if self.read_version is not None:
            data["readVersion"] = self.read_version
        if self.is_blind_append is not None:
            data["isBlindAppend"] = self.is_blind_append
        if self.engine_info is not None:
            data["engineInfo"] = self.engine_info
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CommitInfo:
        return cls(
            timestamp=int(data.get("timestamp") or 0),
            operation=str(data.get("operation") or ""),
            operation_parameters=dict(data.get("operationParameters") or {}),
            read_version=data.get("readVersion"),
            is_blind_append=data.get("isBlindAppend"),
            engine_info=data.get("engineInfo"),
        )


@dataclass(frozen=True)
class UnknownAction(Action):
    """An action kind this client does not interpret (txn, cdc, ...)."""

    kind: str
    payload: Any = None

    @property
    def key(self) -> str:
        return self.kind

    def to_dict(self) -> dict[str, Any]:
        return self.payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UnknownAction:
        """Build from a single-entry ``{kind: payload}`` mapping."""
        (kind, payload), = data.items()
        return cls(kind=kind, payload=payload)


_ACTION_CLASSES: dict[str, type[Action]] = {
    "protocol": ProtocolAction,
    "metaData": MetadataAction,
    "add": AddFile,
    "remove": RemoveFile,
    "commitInfo": CommitInfo,
}


@dataclass(frozen=True)
class CommitRecord:
    """One atomic entry of the table log.

    A commit record at version N is only valid if its writer observed the
    table through N-1 and no other commit has claimed N. The conditional
    write in the storage layer enforces the second half.
    """

    version: Version
    actions: tuple[Action, ...]

    ENCODING: ClassVar[str] = "utf-8"

    @property
    def adds(self) -> list[AddFile]:
        return [a for a in self.actions if isinstance(a, AddFile)]

    @property
    def removes(self) -> list[RemoveFile]:
        return [a for a in self.actions if isinstance(a, RemoveFile)]

    @property
    def metadata(self) -> MetadataAction | None:
        found = [a for a in self.actions if isinstance(a, MetadataAction)]
        return found[-1] if found else None

    @property
    def protocol(self) -> ProtocolAction | None:
        found = [a for a in self.actions if isinstance(a, ProtocolAction)]
        return found[-1] if found else None

    @property
    def commit_info(self) -> CommitInfo | None:
        for action in self.actions:
            if isinstance(action, CommitInfo):
                return action
        return None

    def to_bytes(self) -> bytes:
        """Encode as newline-delimited JSON."""
        lines = [action.to_json_line() for action in self.actions]
        return ("\n".join(lines) + "\n").encode(self.ENCODING)

    @classmethod
    def from_bytes(cls, version: Version, data: bytes) -> CommitRecord:
        """Decode a commit file.

        Raises:
            ValueError: If any line is malformed.
        """
        try:
            text = data.decode(cls.ENCODING)
        except UnicodeDecodeError as e:
            raise ValueError(f"Commit {version} is not valid UTF-8") from e

        actions = tuple(
            Action.from_json_line(line) for line in text.splitlines() if line.strip()
        )
        return cls(version=version, actions=actions)
