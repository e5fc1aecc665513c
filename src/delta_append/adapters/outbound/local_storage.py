"""Local filesystem storage backend.

This adapter implements the StorageBackend protocol on a POSIX filesystem.

Atomic create-if-absent:
    The file is written in full to a hidden temporary file in the target
    directory, synced, and then hard-linked to its final name. ``link(2)``
    fails with EEXIST when the name is taken, so exactly one of any number
    of concurrent writers wins, and the final name only ever refers to a
    complete file. The temporary file is always unlinked afterwards.

Directory layout:
    table_root/
        part-00000-<uuid>-c000.snappy.parquet
        _delta_log/
            00000000000000000000.json
            00000000000000000001.json
            00000000000000000010.checkpoint.parquet
            _last_checkpoint

Thread Safety:
    Safe for concurrent use from threads and processes sharing the
    filesystem. No in-process locking is needed.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path, PurePosixPath

from delta_append.errors import IOFailure
from delta_append.ports.outbound.storage_backend import SyncMode


class LocalStorageBackend:
    """Filesystem implementation of the StorageBackend protocol.

    Attributes:
        root: Table root directory. Created lazily on first write.
        sync_mode: Whether writes are fsynced before returning.
    """

    def __init__(self, root: str | Path, sync_mode: SyncMode = SyncMode.FSYNC) -> None:
        self._root = Path(root).expanduser().absolute()
        self._sync_mode = sync_mode

    @property
    def root(self) -> Path:
        return self._root

    @property
    def uri(self) -> str:
        return str(self._root)

    @property
    def sync_mode(self) -> SyncMode:
        return self._sync_mode

    def _resolve(self, path: str) -> Path:
        """Map a relative table path onto the filesystem, refusing escapes."""
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise ValueError(f"Invalid table path: {path!r}")
        return self._root.joinpath(*relative.parts)

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise IOFailure(f"Failed to read {path}: {e}", path=path) from e

    def write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        tmp = self._temp_path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self._write_file(tmp, data)
            os.replace(tmp, target)
            self._sync_dir(target.parent)
        except OSError as e:
            raise IOFailure(f"Failed to write {path}: {e}", path=path) from e
        finally:
            self._discard(tmp)

    def write_if_absent(self, path: str, data: bytes) -> bool:
        target = self._resolve(path)
        tmp = self._temp_path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self._write_file(tmp, data)
            try:
                os.link(tmp, target)
            except FileExistsError:
                return False
            self._sync_dir(target.parent)
            return True
        except OSError as e:
            raise IOFailure(f"Failed to create {path}: {e}", path=path) from e
        finally:
            self._discard(tmp)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def list(self, prefix: str) -> list[str]:
        directory = self._resolve(prefix)
        try:
            with os.scandir(directory) as entries:
                names = [
                    entry.name
                    for entry in entries
                    if entry.is_file() and not entry.name.startswith(".")
                ]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise IOFailure(f"Failed to list {prefix}: {e}", path=prefix) from e
        return sorted(names)

    def _temp_path(self, target: Path) -> Path:
        return target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")

    def _write_file(self, path: Path, data: bytes) -> None:
        with open(path, "xb") as f:
            f.write(data)
            if self._sync_mode == SyncMode.FSYNC:
                f.flush()
                os.fsync(f.fileno())

    def _sync_dir(self, directory: Path) -> None:
        if self._sync_mode != SyncMode.FSYNC:
            return
        fd = os.open(directory, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def __repr__(self) -> str:
        return f"LocalStorageBackend(root={str(self._root)!r})"
