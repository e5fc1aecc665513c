"""Value objects for the delta-append domain.

Value objects are immutable types that represent domain concepts.
They have no identity - two value objects with the same attributes are equal.

Exports:
    Identifiers:
        - Version: Position of a commit in the table log
        - INITIAL_VERSION, NO_VERSION: Sentinel versions
        - commit_path, checkpoint_path: Log file naming
        - parse_commit_version, parse_checkpoint_version: Log file name parsing
        - new_data_file_path: Unique data file names

    Schema:
        - PrimitiveType: Supported column types and their Arrow mapping
        - SchemaField: A named, typed column
        - TableSchema: Ordered list of columns
"""

from delta_append.domain.value_objects.identifiers import (
    INITIAL_VERSION,
    LAST_CHECKPOINT_PATH,
    LOG_DIR,
    NO_VERSION,
    Version,
    checkpoint_path,
    commit_path,
    new_data_file_path,
    parse_checkpoint_version,
    parse_commit_version,
)
from delta_append.domain.value_objects.schema import (
    PrimitiveType,
    SchemaField,
    TableSchema,
    is_finite_number,
    parse_timestamp,
)

__all__ = [
    # Identifiers
    "Version",
    "INITIAL_VERSION",
    "NO_VERSION",
    "LOG_DIR",
    "LAST_CHECKPOINT_PATH",
    "commit_path",
    "checkpoint_path",
    "parse_commit_version",
    "parse_checkpoint_version",
    "new_data_file_path",
    # Schema
    "PrimitiveType",
    "SchemaField",
    "TableSchema",
    "is_finite_number",
    "parse_timestamp",
]
