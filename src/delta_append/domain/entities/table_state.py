"""Immutable table state reconstructed from the log.

A TableState is the view of a table at one version: protocol, metadata
(schema) and the set of live data files. New states are only ever derived by
applying the next commit record; nothing mutates a state in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from delta_append.domain.entities.actions import (
    AddFile,
    CommitRecord,
    MetadataAction,
    ProtocolAction,
    RemoveFile,
)
from delta_append.domain.value_objects import NO_VERSION, TableSchema, Version


@dataclass(frozen=True)
class TableState:
    """Snapshot of a table at a specific version.

    Attributes:
        version: Last commit applied (NO_VERSION for the empty state)
        protocol: Current protocol action
        metadata: Current metadata action
        files: Live data files keyed by path
        tombstones: Removed data files keyed by path
    """

    version: Version = NO_VERSION
    protocol: ProtocolAction | None = None
    metadata: MetadataAction | None = None
    files: Mapping[str, AddFile] = field(default_factory=dict)
    tombstones: Mapping[str, RemoveFile] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> TableState:
        return cls()

    @classmethod
    def from_checkpoint(
        cls,
        version: Version,
        actions: Iterable[ProtocolAction | MetadataAction | AddFile | RemoveFile],
    ) -> TableState:
        """Build the state stored in a checkpoint.

        Raises:
            ValueError: If the checkpoint lacks protocol or metadata.
        """
        protocol: ProtocolAction | None = None
        metadata: MetadataAction | None = None
        files: dict[str, AddFile] = {}
        tombstones: dict[str, RemoveFile] = {}

        for action in actions:
            if isinstance(action, ProtocolAction):
                protocol = action
            elif isinstance(action, MetadataAction):
                metadata = action
            elif isinstance(action, AddFile):
                files[action.path] = action
            elif isinstance(action, RemoveFile):
                tombstones[action.path] = action

        if protocol is None or metadata is None:
            raise ValueError(f"Checkpoint {version} has no protocol or metadata")

        return cls(
            version=version,
            protocol=protocol,
            metadata=metadata,
            files=files,
            tombstones=tombstones,
        )

    @property
    def is_empty(self) -> bool:
        return self.version == NO_VERSION

    @property
    def schema(self) -> TableSchema:
        if self.metadata is None:
            raise ValueError("Table state has no metadata")
        return self.metadata.schema

    @property
    def num_files(self) -> int:
        return len(self.files)

    @property
    def num_records(self) -> int:
        """Rows across live files (files without statistics count as 0)."""
        return sum(f.num_records or 0 for f in self.files.values())

    @property
    def size_bytes(self) -> int:
        return sum(f.size for f in self.files.values())

    def apply(self, commit: CommitRecord) -> TableState:
        """Derive the state after ``commit``.

        Raises:
            ValueError: If the commit is not the next version.
        """
        if commit.version != self.version + 1:
            raise ValueError(
                f"Cannot apply commit {commit.version} to state at version {self.version}"
            )

        protocol = self.protocol
        metadata = self.metadata
        files = dict(self.files)
        tombstones = dict(self.tombstones)

        for action in commit.actions:
            if isinstance(action, ProtocolAction):
                protocol = action
            elif isinstance(action, MetadataAction):
                metadata = action
            elif isinstance(action, AddFile):
                files[action.path] = action
                tombstones.pop(action.path, None)
            elif isinstance(action, RemoveFile):
                files.pop(action.path, None)
                tombstones[action.path] = action

        return TableState(
            version=commit.version,
            protocol=protocol,
            metadata=metadata,
            files=files,
            tombstones=tombstones,
        )


def find_schema_conflicts(schema: TableSchema, files: Iterable[AddFile]) -> list[str]:
    """List the ways ``schema`` contradicts the statistics of ``files``.

    A file conflicts when its statistics mention a column the schema lacks,
    carry a min/max value the declared type cannot hold, or count nulls in a
    non-nullable column.
    """
    conflicts: list[str] = []
    for add in files:
        stats = add.stats
        if stats is None:
            continue
        for column in sorted(stats.columns):
            schema_field = schema.field(column)
            if schema_field is None:
                conflicts.append(f"{add.path}: column {column!r} is not in the schema")
                continue
            for bound in (stats.min_values.get(column), stats.max_values.get(column)):
                if not schema_field.type.accepts_stat(bound):
                    conflicts.append(
                        f"{add.path}: value {bound!r} of column {column!r} "
                        f"is not a valid {schema_field.type.value}"
                    )
                    break
            if not schema_field.nullable and stats.null_count.get(column, 0) > 0:
                conflicts.append(
                    f"{add.path}: column {column!r} holds nulls but is declared non-nullable"
                )
    return conflicts
