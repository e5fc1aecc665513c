"""Inbound adapters - entry points that drive the application.

- cli: click command-line interface (``delta-append``)
"""

from delta_append.adapters.inbound.cli import cli

__all__ = [
    "cli",
]
