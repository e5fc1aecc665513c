"""Prometheus metrics for delta-append."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all delta-append metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Commit metrics
        self.commits_total = Counter(
            "delta_commits_total",
            "Total number of commit outcomes",
            ["operation", "status"],  # status: success, conflict_exhausted, error
            registry=self._registry,
        )

        self.commit_conflicts_total = Counter(
            "delta_commit_conflicts_total",
            "Commit attempts that found their version already taken",
            registry=self._registry,
        )

        self.commit_attempts = Histogram(
            "delta_commit_attempts",
            "Attempts needed per successful commit",
            buckets=(1, 2, 3, 5, 8, 13, 21),
            registry=self._registry,
        )

        self.commit_latency_seconds = Histogram(
            "delta_commit_latency_seconds",
            "End-to-end append latency in seconds",
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

        # Data file metrics
        self.rows_written_total = Counter(
            "delta_rows_written_total",
            "Total rows written to data files",
            registry=self._registry,
        )

        self.data_files_written_total = Counter(
            "delta_data_files_written_total",
            "Total data files written",
            registry=self._registry,
        )

        self.bytes_written_total = Counter(
            "delta_bytes_written_total",
            "Total data file bytes written",
            registry=self._registry,
        )

        # Log replay metrics
        self.log_replay_seconds = Histogram(
            "delta_log_replay_seconds",
            "Time spent reconstructing table state",
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        self.log_records_replayed_total = Counter(
            "delta_log_records_replayed_total",
            "Total commit records replayed",
            registry=self._registry,
        )

        self.table_version = Gauge(
            "delta_table_version",
            "Latest table version observed",
            registry=self._registry,
        )

        # Checkpoint metrics
        self.checkpoints_total = Counter(
            "delta_checkpoints_total",
            "Total number of checkpoints",
            ["status"],  # success, error
            registry=self._registry,
        )

        self.info = Info(
            "delta_append",
            "delta-append information",
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from delta_append import __version__
    from delta_append.domain.entities import SUPPORTED_READER_VERSION, SUPPORTED_WRITER_VERSION

    _metrics.info.info({
        "version": __version__,
        "reader_version": str(SUPPORTED_READER_VERSION),
        "writer_version": str(SUPPORTED_WRITER_VERSION),
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
