"""Domain entities for delta-append.

Entities are objects with identity that have a lifecycle. Unlike value objects,
two entities with the same attributes may not be equal if they have different
identities (for example two commit records holding identical actions at
different versions).

Exports:
    Actions:
        - Action: Base class for all log actions
        - ProtocolAction, MetadataAction: Table protocol and schema
        - AddFile, RemoveFile: Data file lifecycle
        - CommitInfo: Commit provenance
        - UnknownAction: Preserved, uninterpreted actions
        - FileStatistics: Per-file row count, min/max and null counts
        - CommitRecord: One atomic entry of the log

    Table state:
        - TableState: Table view at one version
        - find_schema_conflicts: Schema vs. file statistics check

    Row batches:
        - RowBatch: Rows validated against a table schema
"""

from delta_append.domain.entities.actions import (
    SUPPORTED_READER_VERSION,
    SUPPORTED_WRITER_VERSION,
    Action,
    AddFile,
    CommitInfo,
    CommitRecord,
    FileStatistics,
    MetadataAction,
    ProtocolAction,
    RemoveFile,
    UnknownAction,
)
from delta_append.domain.entities.row_batch import RowBatch
from delta_append.domain.entities.table_state import TableState, find_schema_conflicts

__all__ = [
    # Actions
    "SUPPORTED_READER_VERSION",
    "SUPPORTED_WRITER_VERSION",
    "Action",
    "ProtocolAction",
    "MetadataAction",
    "AddFile",
    "RemoveFile",
    "CommitInfo",
    "UnknownAction",
    "FileStatistics",
    "CommitRecord",
    # Table state
    "TableState",
    "find_schema_conflicts",
    # Row batches
    "RowBatch",
]
