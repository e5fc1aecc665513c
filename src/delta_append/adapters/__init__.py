"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Inbound adapters: Handle incoming requests (CLI)
- Outbound adapters: Implement external dependencies (filesystem, memory)
"""

from delta_append.adapters.outbound import (
    InMemoryStorageBackend,
    LocalStorageBackend,
    open_storage,
)

__all__ = [
    # Outbound adapters
    "InMemoryStorageBackend",
    "LocalStorageBackend",
    "open_storage",
]
