"""Unit tests for configuration module."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from delta_append.infrastructure.config import (
    CommitConfig,
    Config,
    TableConfig,
    get_config,
)


@pytest.mark.unit
class TestConfig:
    """Tests for Config class."""

    def test_default_config(self) -> None:
        """Test default configuration values."""
        config = Config()

        assert config.table.uri is None
        assert config.table.max_rows_per_file == 1_000_000
        assert config.table.max_write_workers == 4
        assert config.table.compression == "snappy"
        assert config.table.checkpoint_interval == 10
        assert config.commit.max_retries == 10
        assert config.commit.sync_mode == "fsync"
        assert config.observability.log_format == "console"
        assert config.observability.metrics_port is None

    def test_custom_table_config(self) -> None:
        """Test custom table configuration."""
        table = TableConfig(uri="/data/weather", max_rows_per_file=10, compression="zstd")

        assert table.uri == "/data/weather"
        assert table.max_rows_per_file == 10
        assert table.compression == "zstd"

    def test_invalid_values_rejected(self) -> None:
        """Out-of-range values fail validation."""
        with pytest.raises(ValidationError):
            TableConfig(max_rows_per_file=0)
        with pytest.raises(ValidationError):
            TableConfig(compression="lz4")
        with pytest.raises(ValidationError):
            CommitConfig(max_retries=-1)

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested settings are read from prefixed environment variables."""
        monkeypatch.setenv("DELTA_APPEND_TABLE__URI", "/env/table")
        monkeypatch.setenv("DELTA_APPEND_COMMIT__MAX_RETRIES", "2")
        monkeypatch.setenv("DELTA_APPEND_OBSERVABILITY__LOG_LEVEL", "DEBUG")

        config = Config()

        assert config.table.uri == "/env/table"
        assert config.commit.max_retries == 2
        assert config.observability.log_level == "DEBUG"


@pytest.mark.unit
class TestResolveTableUri:
    """Tests for table location resolution."""

    def test_prefixed_variable_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DELTA_APPEND_TABLE__URI", "/preferred")
        monkeypatch.setenv("TABLE_URI", "/fallback")

        assert Config().resolve_table_uri() == "/preferred"

    def test_falls_back_to_table_uri(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TABLE_URI", "/fallback")

        assert Config().resolve_table_uri() == "/fallback"

    def test_unset(self) -> None:
        assert Config().resolve_table_uri() is None


@pytest.mark.unit
def test_get_config_is_cached() -> None:
    """get_config returns the same instance until the cache is cleared."""
    assert get_config() is get_config()
