"""Infrastructure layer - cross-cutting concerns."""

from delta_append.infrastructure.config import Config, get_config
from delta_append.infrastructure.logging import command_context, get_logger, setup_logging
from delta_append.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from delta_append.infrastructure.tracing import setup_tracing, get_tracer, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "command_context",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
