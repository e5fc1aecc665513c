"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to clients (LogReader, TableWriter)
- Outbound ports: Dependencies on external systems (StorageBackend)

Adapters implement these ports with concrete functionality.
"""

from delta_append.ports.inbound import CommitResult, LogReader, TableWriter
from delta_append.ports.outbound import StorageBackend, SyncMode

__all__ = [
    # Inbound ports
    "CommitResult",
    "LogReader",
    "TableWriter",
    # Outbound ports
    "StorageBackend",
    "SyncMode",
]
