"""Domain services for business logic.

Services implement the table protocol logic that doesn't naturally
fit within a single entity. They coordinate storage, entities and
value objects to read the log and commit new versions.
"""

from delta_append.domain.services.checkpoint import (
    CHECKPOINT_SCHEMA,
    decode_checkpoint,
    decode_last_checkpoint,
    encode_checkpoint,
    encode_last_checkpoint,
)
from delta_append.domain.services.commit_writer import ConflictCheckingWriter
from delta_append.domain.services.data_file_writer import DataFileWriter, compute_statistics
from delta_append.domain.services.log_reader import DeltaLogReader

__all__ = [
    "CHECKPOINT_SCHEMA",
    "ConflictCheckingWriter",
    "DataFileWriter",
    "DeltaLogReader",
    "compute_statistics",
    "decode_checkpoint",
    "decode_last_checkpoint",
    "encode_checkpoint",
    "encode_last_checkpoint",
]
