"""Storage backend selection from a table URI."""

from __future__ import annotations

from urllib.parse import urlparse

from delta_append.adapters.outbound.local_storage import LocalStorageBackend
from delta_append.adapters.outbound.memory_storage import InMemoryStorageBackend
from delta_append.ports.outbound.storage_backend import StorageBackend, SyncMode


def open_storage(uri: str, sync_mode: SyncMode = SyncMode.FSYNC) -> StorageBackend:
    """Open the storage backend for a table location.

    Supported locations:
        - plain paths and ``file://`` URIs: LocalStorageBackend
        - ``memory://<name>``: shared InMemoryStorageBackend

    Raises:
        ValueError: If the URI is empty or uses an unsupported scheme.
    """
    if not uri:
        raise ValueError("Table URI must not be empty")

    parsed = urlparse(uri)
    scheme = parsed.scheme.lower()

    # Single-letter schemes are Windows drive letters
    if scheme in ("", "file") or len(scheme) == 1:
        path = parsed.path if scheme == "file" else uri
        return LocalStorageBackend(path, sync_mode=sync_mode)
    if scheme == "memory":
        return InMemoryStorageBackend.named(parsed.netloc or parsed.path.lstrip("/") or "default")

    raise ValueError(f"Unsupported table URI scheme: {parsed.scheme!r}")
