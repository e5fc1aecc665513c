"""Table schema value objects.

A table schema is an ordered list of named, typed columns. It is stored in
the log as the Delta ``schemaString`` (a JSON struct type) and maps one to one
onto an Arrow schema, which is what data files are written with.

    Delta type | Arrow type
    -----------|-----------------------
    string     | string
    long       | int64
    integer    | int32
    short      | int16
    byte       | int8
    float      | float32
    double     | float64
    boolean    | bool
    binary     | binary
    date       | date32
    timestamp  | timestamp[us, tz=UTC]
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterator, Mapping

import pyarrow as pa


_INT_RANGES: dict[str, tuple[int, int]] = {
    "byte": (-(2**7), 2**7 - 1),
    "short": (-(2**15), 2**15 - 1),
    "integer": (-(2**31), 2**31 - 1),
    "long": (-(2**63), 2**63 - 1),
}


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as written in file statistics."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class PrimitiveType(str, Enum):
    """Primitive column types supported by this writer."""

    STRING = "string"
    LONG = "long"
    INTEGER = "integer"
    SHORT = "short"
    BYTE = "byte"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    BINARY = "binary"
    DATE = "date"
    TIMESTAMP = "timestamp"

    def to_arrow(self) -> pa.DataType:
        """Return the Arrow type data files use for this column type."""
        return _TO_ARROW[self]

    @classmethod
    def from_arrow(cls, data_type: pa.DataType) -> PrimitiveType:
        """Map an Arrow type onto a column type.

        Raises:
            ValueError: If the Arrow type has no Delta counterpart here.
        """
        if pa.types.is_large_string(data_type):
            return cls.STRING
        if pa.types.is_large_binary(data_type):
            return cls.BINARY
        if pa.types.is_timestamp(data_type):
            return cls.TIMESTAMP
        if pa.types.is_date(data_type):
            return cls.DATE
        for primitive, arrow_type in _TO_ARROW.items():
            if data_type == arrow_type:
                return primitive
        raise ValueError(f"Unsupported Arrow type: {data_type}")

    @property
    def has_min_max(self) -> bool:
        """Whether file statistics carry min/max values for this type."""
        return self not in (PrimitiveType.BOOLEAN, PrimitiveType.BINARY)

    def accepts_stat(self, value: Any) -> bool:
        """Check that a min/max statistic is representable in this type.

        Statistics are JSON values, so timestamps and dates arrive as strings
        and all numbers as int or float.
        """
        if value is None:
            return True
        if self.value in _INT_RANGES:
            if isinstance(value, bool) or not isinstance(value, int):
                return False
            low, high = _INT_RANGES[self.value]
            return low <= value <= high
        if self in (PrimitiveType.FLOAT, PrimitiveType.DOUBLE):
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self is PrimitiveType.BOOLEAN:
            return isinstance(value, bool)
        if self in (PrimitiveType.STRING, PrimitiveType.BINARY):
            return isinstance(value, str)
        if not isinstance(value, str):
            return False
        try:
            if self is PrimitiveType.DATE:
                date.fromisoformat(value)
            else:
                parse_timestamp(value)
        except ValueError:
            return False
        return True


_TO_ARROW: dict[PrimitiveType, pa.DataType] = {
    PrimitiveType.STRING: pa.string(),
    PrimitiveType.LONG: pa.int64(),
    PrimitiveType.INTEGER: pa.int32(),
    PrimitiveType.SHORT: pa.int16(),
    PrimitiveType.BYTE: pa.int8(),
    PrimitiveType.FLOAT: pa.float32(),
    PrimitiveType.DOUBLE: pa.float64(),
    PrimitiveType.BOOLEAN: pa.bool_(),
    PrimitiveType.BINARY: pa.binary(),
    PrimitiveType.DATE: pa.date32(),
    PrimitiveType.TIMESTAMP: pa.timestamp("us", tz="UTC"),
}


@dataclass(frozen=True)
class SchemaField:
    """A named, typed column.

    Attributes:
        name: Column name
        type: Column type
        nullable: Whether the column may hold nulls
        metadata: Free-form column metadata carried in the log
    """

    name: str
    type: PrimitiveType
    nullable: bool = True
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Column name must not be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "nullable": self.nullable,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaField:
        """Build a field from its Delta JSON form.

        Raises:
            ValueError: If the field is malformed or of a nested type.
        """
        type_name = data.get("type")
        if not isinstance(type_name, str):
            raise ValueError(f"Unsupported column type for {data.get('name')!r}: {type_name!r}")
        try:
            primitive = PrimitiveType(type_name)
        except ValueError:
            raise ValueError(f"Unsupported column type for {data.get('name')!r}: {type_name!r}")
        name = data.get("name")
        if not isinstance(name, str):
            raise ValueError(f"Column name must be a string, got {name!r}")
        return cls(
            name=name,
            type=primitive,
            nullable=bool(data.get("nullable", True)),
            metadata=dict(data.get("metadata") or {}),
        )

    def to_arrow(self) -> pa.Field:
        return pa.field(self.name, self.type.to_arrow(), nullable=self.nullable)


@dataclass(frozen=True)
class TableSchema:
    """Ordered collection of table columns."""

    fields: tuple[SchemaField, ...]

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate column names: {sorted(duplicates)}")

    def __iter__(self) -> Iterator[SchemaField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> SchemaField | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_json(self) -> str:
        """Serialize to a Delta ``schemaString``."""
        return json.dumps(
            {"type": "struct", "fields": [f.to_dict() for f in self.fields]},
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, schema_string: str) -> TableSchema:
        """Parse a Delta ``schemaString``.

        Raises:
            ValueError: If the string is not a struct of supported columns.
        """
        data = json.loads(schema_string)
        if not isinstance(data, dict) or data.get("type") != "struct":
            raise ValueError("Schema must be a JSON struct type")
        fields = data.get("fields")
        if not isinstance(fields, list):
            raise ValueError("Schema struct must list its fields")
        return cls(tuple(SchemaField.from_dict(f) for f in fields))

    def to_arrow(self) -> pa.Schema:
        return pa.schema([f.to_arrow() for f in self.fields])

    @classmethod
    def from_arrow(cls, schema: pa.Schema) -> TableSchema:
        return cls(
            tuple(
                SchemaField(
                    name=f.name,
                    type=PrimitiveType.from_arrow(f.type),
                    nullable=f.nullable,
                )
                for f in schema
            )
        )

    @classmethod
    def of(cls, *columns: tuple[str, str] | tuple[str, str, bool]) -> TableSchema:
        """Shorthand constructor.

        Example:
            >>> TableSchema.of(("ts", "timestamp"), ("temp", "double", False)).names
            ['ts', 'temp']
        """
        fields = []
        for column in columns:
            name, type_name, *rest = column
            fields.append(
                SchemaField(name, PrimitiveType(type_name), nullable=rest[0] if rest else True)
            )
        return cls(tuple(fields))


def is_finite_number(value: Any) -> bool:
    """True for ints and finite floats (NaN/inf cannot be stored as JSON stats)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)
