"""Configuration management for delta-append."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Unprefixed table location variable accepted as a fallback
LEGACY_TABLE_URI_ENV = "TABLE_URI"


class TableConfig(BaseModel):
    """Table location and data file layout."""

    uri: str | None = Field(default=None, description="Table location (path or URI)")
    max_rows_per_file: int = Field(
        default=1_000_000, ge=1, description="Maximum rows written to one data file"
    )
    max_write_workers: int = Field(
        default=4, ge=1, le=64, description="Threads used to write data files of one batch"
    )
    compression: Literal["snappy", "zstd", "gzip", "none"] = Field(
        default="snappy", description="Parquet compression codec"
    )
    checkpoint_interval: int = Field(
        default=10, ge=0, description="Write a checkpoint every N versions (0 disables)"
    )


class CommitConfig(BaseModel):
    """Commit protocol configuration."""

    max_retries: int = Field(
        default=10, ge=0, le=1000, description="Conflict retries before giving up"
    )
    sync_mode: Literal["fsync", "none"] = Field(
        default="fsync", description="Sync mode for files written to local storage"
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="console", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="delta_append", description="Service name for tracing")
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Prometheus metrics port (disabled if unset)"
    )


class Config(BaseSettings):
    """Main configuration for delta-append."""

    model_config = SettingsConfigDict(
        env_prefix="DELTA_APPEND_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    table: TableConfig = Field(default_factory=TableConfig)
    commit: CommitConfig = Field(default_factory=CommitConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def resolve_table_uri(self) -> str | None:
        """Return the configured table location.

        ``DELTA_APPEND_TABLE__URI`` wins; ``TABLE_URI`` is honoured as a fallback.
        """
        return self.table.uri or os.environ.get(LEGACY_TABLE_URI_ENV) or None


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
