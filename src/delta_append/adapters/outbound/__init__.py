"""Outbound adapters - implementations of outbound ports.

This package contains concrete implementations of the StorageBackend port:
- LocalStorageBackend: POSIX filesystem with link-based create-if-absent
- InMemoryStorageBackend: Dictionary-backed storage for tests and scratch use
- open_storage: Backend selection from a table URI
"""

from delta_append.adapters.outbound.local_storage import LocalStorageBackend
from delta_append.adapters.outbound.memory_storage import InMemoryStorageBackend
from delta_append.adapters.outbound.storage_factory import open_storage

__all__ = [
    "LocalStorageBackend",
    "InMemoryStorageBackend",
    "open_storage",
]
