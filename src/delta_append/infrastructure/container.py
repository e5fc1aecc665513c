"""Dependency injection container for delta-append."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import structlog
from opentelemetry import trace

from delta_append.infrastructure.config import Config, get_config
from delta_append.infrastructure.logging import setup_logging
from delta_append.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from delta_append.infrastructure.tracing import setup_tracing


@dataclass
class Container:
    """Dependency injection container for delta-append components."""

    config: Config
    logger: structlog.BoundLogger
    tracer: trace.Tracer
    metrics: MetricsRegistry

    _instance: ClassVar[Container | None] = None

    @classmethod
    def create(cls, config: Config | None = None) -> Container:
        """Create and initialize the container with all dependencies.

        The existing container is returned when ``config`` is None or equal to
        its configuration; a different ``config`` rebuilds it.
        """
        if cls._instance is not None and config in (None, cls._instance.config):
            return cls._instance

        config = config or get_config()
        observability = config.observability

        logger = setup_logging(observability.log_level, observability.log_format)
        tracer = setup_tracing(
            service_name=observability.otel_service_name,
            otlp_endpoint=observability.otel_endpoint,
        )
        if observability.metrics_port is not None:
            metrics = setup_metrics(port=observability.metrics_port)
        else:
            metrics = get_metrics()

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
        )

        logger.debug(
            "delta_append_container_initialized",
            table_uri=config.resolve_table_uri(),
            max_retries=config.commit.max_retries,
        )

        return cls._instance

    @classmethod
    def get(cls) -> Container:
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
