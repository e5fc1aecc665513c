"""Pytest configuration and fixtures for delta_append tests."""

from __future__ import annotations

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import pytest
from prometheus_client import CollectorRegistry

from delta_append.adapters.outbound import InMemoryStorageBackend, LocalStorageBackend
from delta_append.application.weather import WEATHER_SCHEMA
from delta_append.domain.services import ConflictCheckingWriter, DeltaLogReader
from delta_append.errors import IOFailure
from delta_append.infrastructure.config import (
    CommitConfig,
    Config,
    TableConfig,
    get_config,
)
from delta_append.infrastructure.container import Container
from delta_append.infrastructure.metrics import MetricsRegistry
from delta_append.ports.outbound import SyncMode


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep tests independent of the caller's environment and of each other."""
    monkeypatch.delenv("TABLE_URI", raising=False)
    monkeypatch.delenv("DELTA_APPEND_TABLE__URI", raising=False)
    get_config.cache_clear()
    Container.reset()
    InMemoryStorageBackend.reset_named()
    yield
    get_config.cache_clear()
    Container.reset()
    InMemoryStorageBackend.reset_named()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration rooted in a temporary directory."""
    return Config(
        table=TableConfig(
            uri=str(temp_dir / "table"),
            checkpoint_interval=0,  # Checkpoint tests enable it explicitly
        ),
        commit=CommitConfig(
            max_retries=3,
            sync_mode="none",  # Faster for tests
        ),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


class FaultInjectingStorage(InMemoryStorageBackend):
    """In-memory backend whose writes can be made to fail and whose files can be removed."""

    def __init__(self, name: str = "test") -> None:
        super().__init__(name)
        self._fail_writes = False

    def fail_writes(self, enabled: bool = True) -> None:
        """Make every subsequent write raise IOFailure."""
        self._fail_writes = enabled

    def write(self, path: str, data: bytes) -> None:
        self._check_writable(path)
        super().write(path, data)

    def write_if_absent(self, path: str, data: bytes) -> bool:
        self._check_writable(path)
        return super().write_if_absent(path, data)

    def delete(self, path: str) -> None:
        """Remove a file to simulate a damaged log."""
        with self._lock:
            self._files.pop(path, None)

    def _check_writable(self, path: str) -> None:
        if self._fail_writes:
            raise IOFailure(f"Injected write failure for {path}", path=path)


@pytest.fixture
def memory_storage() -> FaultInjectingStorage:
    """Provide an empty in-memory backend with fault injection."""
    return FaultInjectingStorage("test")


@pytest.fixture
def local_storage(temp_dir: Path) -> LocalStorageBackend:
    """Provide a filesystem backend rooted in a temporary directory."""
    return LocalStorageBackend(temp_dir / "table", sync_mode=SyncMode.NONE)


@pytest.fixture
def reader(memory_storage: InMemoryStorageBackend, metrics_registry: MetricsRegistry) -> DeltaLogReader:
    return DeltaLogReader(memory_storage, metrics_registry)


@pytest.fixture
def writer(
    memory_storage: InMemoryStorageBackend,
    reader: DeltaLogReader,
    test_config: Config,
    metrics_registry: MetricsRegistry,
) -> ConflictCheckingWriter:
    return ConflictCheckingWriter(
        memory_storage, reader, config=test_config, metrics=metrics_registry
    )


@pytest.fixture
def weather_rows() -> list[dict[str, Any]]:
    """Two weather rows with fixed timestamps."""
    return [
        {
            "timestamp": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
            "temp": 71,
            "lat": 39.61940984546992,
            "long": -119.22916208856955,
        },
        {
            "timestamp": datetime(2024, 1, 1, 12, 5, tzinfo=timezone.utc),
            "temp": 70,
            "lat": 39.61940984546992,
            "long": -119.22916208856955,
        },
    ]


@pytest.fixture
def weather_schema():
    return WEATHER_SCHEMA


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "chaos: Chaos/fault injection tests")
    config.addinivalue_line("markers", "slow: Slow tests")
