"""In-memory storage backend.

A simple in-memory implementation of the StorageBackend protocol for testing
and development purposes. Data is not persisted across restarts.

Backends opened through ``memory://<name>`` URIs are shared per name within
the process, so separate clients pointed at the same URI see the same table.

Usage:
    storage = InMemoryStorageBackend()
    storage.write_if_absent("_delta_log/00000000000000000000.json", b"...")
    storage.list("_delta_log")
"""

from __future__ import annotations

import threading
from typing import ClassVar


class InMemoryStorageBackend:
    """In-memory implementation of the StorageBackend protocol.

    Files live in a dictionary guarded by a lock, which makes
    ``write_if_absent`` atomic across threads.

    Attributes:
        name: Identifier used in the ``memory://`` URI.
    """

    _named: ClassVar[dict[str, InMemoryStorageBackend]] = {}
    _named_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, name: str = "default") -> None:
        self._name = name
        self._files: dict[str, bytes] = {}
        self._lock = threading.Lock()

    @classmethod
    def named(cls, name: str) -> InMemoryStorageBackend:
        """Return the process-wide backend registered under ``name``."""
        with cls._named_lock:
            backend = cls._named.get(name)
            if backend is None:
                backend = cls(name)
                cls._named[name] = backend
            return backend

    @classmethod
    def reset_named(cls) -> None:
        """Forget every named backend (useful for testing)."""
        with cls._named_lock:
            cls._named.clear()

    @property
    def uri(self) -> str:
        return f"memory://{self._name}"

    def read(self, path: str) -> bytes:
        with self._lock:
            try:
                return self._files[path]
            except KeyError:
                raise FileNotFoundError(path) from None

    def write(self, path: str, data: bytes) -> None:
        with self._lock:
            self._files[path] = bytes(data)

    def write_if_absent(self, path: str, data: bytes) -> bool:
        with self._lock:
            if path in self._files:
                return False
            self._files[path] = bytes(data)
            return True

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._files

    def list(self, prefix: str) -> list[str]:
        directory = prefix.rstrip("/")
        directory = f"{directory}/" if directory else ""
        with self._lock:
            names = [
                path[len(directory):]
                for path in self._files
                if path.startswith(directory) and "/" not in path[len(directory):]
            ]
        return sorted(names)

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __repr__(self) -> str:
        return f"InMemoryStorageBackend(name={self._name!r}, files={len(self)})"
