"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for external systems that the
table client depends on, such as the storage holding the table.
"""

from delta_append.ports.outbound.storage_backend import StorageBackend, SyncMode

__all__ = [
    "StorageBackend",
    "SyncMode",
]
