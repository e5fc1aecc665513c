"""Integration tests for appending to tables on the local filesystem."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from delta_append.application import WEATHER_SCHEMA, AppendClient
from delta_append.domain.entities import CommitRecord, RowBatch
from delta_append.domain.value_objects import LOG_DIR, Version, commit_path
from delta_append.infrastructure.config import CommitConfig, Config, TableConfig
from delta_append.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def table_path(temp_dir: Path) -> Path:
    return temp_dir / "weather"


def _client(table_path: Path, config: Config, metrics: MetricsRegistry) -> AppendClient:
    return AppendClient(str(table_path), config=config, metrics=metrics)


def _read_rows(table_path: Path, client: AppendClient) -> pa.Table:
    state = client.state()
    return pa.concat_tables(pq.read_table(table_path / path) for path in sorted(state.files))


@pytest.mark.integration
class TestAppendScenarios:
    """End-to-end append scenarios."""

    def test_empty_table_then_two_appends(
        self,
        table_path: Path,
        test_config: Config,
        metrics_registry: MetricsRegistry,
        weather_rows: list[dict[str, Any]],
    ) -> None:
        client = _client(table_path, test_config, metrics_registry)
        client.ensure_table(WEATHER_SCHEMA)

        first = client.append_rows(weather_rows)
        assert first.version == 1
        assert client.state().num_files == 1
        assert client.state().num_records == 2

        second = client.append_rows(weather_rows[:1])
        assert second.version == 2
        assert client.state().num_files == 2
        assert client.state().num_records == 3

        assert (table_path / LOG_DIR / "00000000000000000002.json").exists()
        data = _read_rows(table_path, client)
        assert data.num_rows == 3
        assert sorted(data.column("temp").to_pylist()) == [70, 71, 71]

    def test_two_writers_from_same_snapshot(
        self,
        table_path: Path,
        test_config: Config,
        metrics_registry: MetricsRegistry,
        weather_rows: list[dict[str, Any]],
    ) -> None:
        setup = _client(table_path, test_config, metrics_registry)
        setup.ensure_table(WEATHER_SCHEMA)
        for _ in range(5):
            setup.append_rows(weather_rows[:1])

        first = _client(table_path, test_config, metrics_registry)
        second = _client(table_path, test_config, metrics_registry)
        snapshot_a = first.state()
        snapshot_b = second.state()
        assert snapshot_a.version == snapshot_b.version == 5

        result_a = first.writer.append(snapshot_a, RowBatch.from_rows(WEATHER_SCHEMA, weather_rows[:1]))
        result_b = second.writer.append(snapshot_b, RowBatch.from_rows(WEATHER_SCHEMA, weather_rows[1:]))

        assert (result_a.version, result_a.attempts) == (6, 1)
        assert (result_b.version, result_b.attempts) == (7, 2)
        final = setup.state()
        assert final.version == 7
        assert final.num_records == 7
        assert {f.path for f in result_a.files + result_b.files} <= set(final.files)

    @pytest.mark.slow
    @pytest.mark.parametrize("checkpoint_interval", [0, 1])
    def test_concurrent_appenders(
        self,
        checkpoint_interval: int,
        table_path: Path,
        metrics_registry: MetricsRegistry,
        weather_rows: list[dict[str, Any]],
    ) -> None:
        config = Config(
            table=TableConfig(uri=str(table_path), checkpoint_interval=checkpoint_interval),
            commit=CommitConfig(max_retries=50, sync_mode="none"),
        )
        _client(table_path, config, metrics_registry).ensure_table(WEATHER_SCHEMA)
        writers, appends_each = 6, 4
        start = threading.Barrier(writers)

        def run(writer_id: int) -> list[int]:
            client = _client(table_path, config, metrics_registry)
            start.wait()
            versions = []
            for i in range(appends_each):
                row = {**weather_rows[0], "temp": writer_id * 100 + i}
                versions.append(client.append_rows([row]).version)
            return versions

        with ThreadPoolExecutor(max_workers=writers) as pool:
            results = list(pool.map(run, range(writers)))

        committed = sorted(v for versions in results for v in versions)
        assert committed == list(range(1, writers * appends_each + 1))

        client = _client(table_path, config, metrics_registry)
        state = client.state()
        assert state.version == writers * appends_each
        assert state.num_records == writers * appends_each
        temps = sorted(_read_rows(table_path, client).column("temp").to_pylist())
        assert temps == sorted(w * 100 + i for w in range(writers) for i in range(appends_each))

        # Each commit is attributed to exactly one append
        for version in committed:
            raw = (table_path / commit_path(Version(version))).read_bytes()
            record = CommitRecord.from_bytes(Version(version), raw)
            assert len(record.adds) == 1
            assert record.commit_info.read_version < version

    def test_checkpoint_cycle(
        self,
        table_path: Path,
        test_config: Config,
        metrics_registry: MetricsRegistry,
        weather_rows: list[dict[str, Any]],
    ) -> None:
        config = test_config.model_copy(
            update={"table": test_config.table.model_copy(update={"checkpoint_interval": 3})}
        )
        client = _client(table_path, config, metrics_registry)
        client.ensure_table(WEATHER_SCHEMA)
        for _ in range(7):
            client.append_rows(weather_rows)
        expected = client.state()

        log_dir = table_path / LOG_DIR
        assert (log_dir / "00000000000000000006.checkpoint.parquet").exists()
        assert (log_dir / "_last_checkpoint").read_text() == '{"version": 6, "size": 8}'

        # Commits covered by the checkpoint are no longer needed
        for version in range(7):
            (table_path / commit_path(Version(version))).unlink()

        fresh = _client(table_path, config, metrics_registry)
        assert fresh.state() == expected
        assert fresh.state().num_records == 14

    def test_leftover_temp_files_ignored(
        self,
        table_path: Path,
        test_config: Config,
        metrics_registry: MetricsRegistry,
        weather_rows: list[dict[str, Any]],
    ) -> None:
        client = _client(table_path, test_config, metrics_registry)
        client.ensure_table(WEATHER_SCHEMA)
        # A writer that crashed before publishing its commit
        (table_path / LOG_DIR / ".00000000000000000001.json.dead.tmp").write_bytes(b"{partial")

        result = client.append_rows(weather_rows)

        assert result.version == 1
        assert client.state().num_records == 2
