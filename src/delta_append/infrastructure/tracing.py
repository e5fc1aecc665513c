"""OpenTelemetry tracing for table operations.

Spans wrap the expensive steps of an append (log replay, data file staging,
the commit attempt loop and checkpoints). Attribute keys shared by several
spans are defined here so traces from the reader and the writer line up.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator, Mapping

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode


TRACER_NAME = "delta_append"

# Span attribute keys
ATTR_TABLE_URI = "delta.table.uri"
ATTR_VERSION = "delta.version"
ATTR_READ_VERSION = "delta.read_version"
ATTR_ATTEMPTS = "delta.commit.attempts"
ATTR_ROWS = "delta.rows"
ATTR_ERROR = "delta.error"

_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = TRACER_NAME,
    otlp_endpoint: str | None = None,
) -> trace.Tracer:
    """Install a tracer provider, exporting over OTLP when an endpoint is set.

    Without an endpoint spans are still created (so attributes and errors
    show up in tests and in-process exporters) but nothing leaves the process.
    """
    global _tracer

    from delta_append import __version__

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": __version__})
    )
    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def get_tracer() -> trace.Tracer:
    """Return the tracer, falling back to the global provider's."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: Mapping[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run the block inside a span named ``name``.

    Attributes whose value is None are skipped. An exception leaving the
    block marks the span as failed and names the exception class in
    ``delta.error``; the exception itself propagates unchanged.
    """
    with get_tracer().start_as_current_span(
        name, record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_attribute(ATTR_ERROR, type(e).__name__)
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
