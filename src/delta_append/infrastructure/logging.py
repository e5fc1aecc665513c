"""Structured logging configuration.

Events are snake_case names with key/value context, e.g.::

    logger.info("append_committed", table=uri, version=6, attempts=2)

``setup_logging`` sends output to stderr so that command output on stdout
stays parseable. The CLI calls it through the Container; library callers call
it themselves, otherwise structlog's unconfigured defaults apply (every level,
printed to stdout).
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, TextIO

import structlog
from structlog.types import Processor


def _renderer(log_format: str, stream: TextIO) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def setup_logging(
    level: str = "INFO",
    log_format: str = "console",
    stream: TextIO | None = None,
) -> structlog.BoundLogger:
    """
    Set up structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
        stream: Output stream (default: stderr)

    Returns:
        The package logger
    """
    stream = stream or sys.stderr
    numeric_level = getattr(logging, level.upper())

    # Library loggers (pyarrow, opentelemetry exporters) share the stream
    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(log_format, stream),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    return get_logger("delta_append")


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance.

    Args:
        name: Logger name (module name typically)
        **initial_context: Initial context to bind to the logger

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


@contextmanager
def command_context(command: str, **context: Any) -> Iterator[None]:
    """Tag every event logged inside the block with ``command`` and ``context``.

    Example:
        >>> with command_context("append", rows_source="stdin"):
        ...     client.append_rows(rows)
    """
    with structlog.contextvars.bound_contextvars(command=command, **context):
        yield
