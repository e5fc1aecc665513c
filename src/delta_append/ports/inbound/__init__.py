"""Inbound ports - API contracts for the table client.

Inbound ports define the interfaces that clients and upper layers
use to read table state and append data.
"""

from delta_append.ports.inbound.log_reader import LogReader
from delta_append.ports.inbound.table_writer import CommitResult, TableWriter

__all__ = [
    # Log Reader
    "LogReader",
    # Table Writer
    "CommitResult",
    "TableWriter",
]
