"""Unit tests for InMemoryStorageBackend and open_storage."""

from __future__ import annotations

from pathlib import Path

import pytest

from delta_append.adapters.outbound import (
    InMemoryStorageBackend,
    LocalStorageBackend,
    open_storage,
)


@pytest.mark.unit
class TestInMemoryStorageBackend:
    """Tests for InMemoryStorageBackend."""

    def test_write_and_read(self, memory_storage: InMemoryStorageBackend) -> None:
        memory_storage.write("a.parquet", b"data")

        assert memory_storage.read("a.parquet") == b"data"
        assert memory_storage.exists("a.parquet")
        assert len(memory_storage) == 1

    def test_read_missing(self, memory_storage: InMemoryStorageBackend) -> None:
        with pytest.raises(FileNotFoundError):
            memory_storage.read("missing")

    def test_write_if_absent(self, memory_storage: InMemoryStorageBackend) -> None:
        assert memory_storage.write_if_absent("_delta_log/0.json", b"a") is True
        assert memory_storage.write_if_absent("_delta_log/0.json", b"b") is False
        assert memory_storage.read("_delta_log/0.json") == b"a"

    def test_list_direct_children_only(self, memory_storage: InMemoryStorageBackend) -> None:
        memory_storage.write("_delta_log/b.json", b"")
        memory_storage.write("_delta_log/a.json", b"")
        memory_storage.write("_delta_log/nested/c.json", b"")
        memory_storage.write("part-0.parquet", b"")

        assert memory_storage.list("_delta_log") == ["a.json", "b.json"]
        assert memory_storage.list("_delta_log/") == ["a.json", "b.json"]
        assert memory_storage.list("missing") == []

    def test_no_fault_hooks(self) -> None:
        backend = InMemoryStorageBackend("plain")

        assert not hasattr(backend, "fail_writes")
        assert not hasattr(backend, "delete")

    def test_named_instances_shared(self) -> None:
        first = InMemoryStorageBackend.named("weather")
        second = InMemoryStorageBackend.named("weather")

        assert first is second
        assert first.uri == "memory://weather"
        assert InMemoryStorageBackend.named("other") is not first


@pytest.mark.unit
class TestOpenStorage:
    """Tests for open_storage."""

    def test_plain_path(self, temp_dir: Path) -> None:
        storage = open_storage(str(temp_dir / "t"))

        assert isinstance(storage, LocalStorageBackend)
        assert storage.root == temp_dir / "t"

    def test_file_uri(self, temp_dir: Path) -> None:
        storage = open_storage(f"file://{temp_dir}/t")

        assert isinstance(storage, LocalStorageBackend)
        assert storage.root == temp_dir / "t"

    def test_memory_uri(self) -> None:
        storage = open_storage("memory://shared")

        assert storage is InMemoryStorageBackend.named("shared")

    def test_unsupported_scheme(self) -> None:
        with pytest.raises(ValueError, match="s3"):
            open_storage("s3://bucket/table")

    def test_empty_uri(self) -> None:
        with pytest.raises(ValueError):
            open_storage("")
