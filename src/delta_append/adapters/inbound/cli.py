"""Command-line interface for delta-append.

Commands:
    append      Append JSON rows (or generated weather readings) to a table
    inspect     Show version, file count, row count and schema of a table
    checkpoint  Write a checkpoint at the latest version

The table location comes from ``--table-uri``, else ``DELTA_APPEND_TABLE__URI``,
else ``TABLE_URI``.

Exit codes:
    0  success
    1  table, schema or log error (or invalid input)
    2  storage failure
    3  commit conflict retries exhausted
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator

import click

from delta_append import __version__
from delta_append.application import (
    WEATHER_SCHEMA,
    AppendClient,
    fetch_readings,
    readings_to_table,
)
from delta_append.errors import CommitConflict, DeltaTableError, IOFailure
from delta_append.infrastructure.config import get_config
from delta_append.infrastructure.container import Container
from delta_append.infrastructure.logging import command_context


EXIT_SUCCESS = 0
EXIT_TABLE_ERROR = 1  # Missing/corrupt log, schema errors, bad input
EXIT_IO_ERROR = 2  # Storage failure
EXIT_CONFLICT = 3  # Commit retries exhausted


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_TABLE_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: Any = None) -> None:
        click.echo(f"Error: {self.format_message()}", err=True)


def exit_code_for(err: Exception) -> int:
    """Map a table error onto the CLI exit code."""
    if isinstance(err, CommitConflict):
        return EXIT_CONFLICT
    if isinstance(err, IOFailure):
        return EXIT_IO_ERROR
    return EXIT_TABLE_ERROR


@contextmanager
def table_errors() -> Iterator[None]:
    """Turn table errors raised inside the block into CLIError."""
    try:
        yield
    except (DeltaTableError, ValueError) as e:
        raise CLIError(str(e), exit_code=exit_code_for(e)) from e


def parse_rows(text: str) -> list[dict[str, Any]]:
    """Parse rows given as a JSON array of objects or as JSON lines.

    Raises:
        ValueError: If the text is not valid JSON rows.
    """
    stripped = text.strip()
    if not stripped:
        return []
    try:
        if stripped.startswith("["):
            rows = json.loads(stripped)
        else:
            rows = [json.loads(line) for line in stripped.splitlines() if line.strip()]
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON rows: {e}") from e
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValueError("Rows must be JSON objects")
    return rows


def _client(container: Container, table_uri: str | None) -> AppendClient:
    return AppendClient(table_uri, config=container.config, metrics=container.metrics)


table_uri_option = click.option(
    "--table-uri",
    default=None,
    help="Table location (path, file:// or memory:// URI).",
)


@click.group()
@click.version_option(version=__version__, prog_name="delta-append")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Append rows to Delta Lake tables.

    Examples:

        delta-append --help

        TABLE_URI=/tmp/weather delta-append append

        delta-append inspect --table-uri /tmp/weather
    """
    config = None
    if log_level:
        config = get_config()
        observability = config.observability.model_copy(update={"log_level": log_level.upper()})
        config = config.model_copy(update={"observability": observability})
    ctx.obj = Container.create(config)


@cli.command()
@table_uri_option
@click.option(
    "--rows",
    "rows_file",
    type=click.File("r"),
    default=None,
    help="JSON array or JSON-lines file of rows ('-' for stdin).",
)
@click.option(
    "--count",
    type=click.IntRange(min=1),
    default=5,
    show_default=True,
    help="Number of generated weather readings when --rows is not given.",
)
@click.option(
    "--create/--no-create",
    default=True,
    show_default=True,
    help="Create the table with the weather schema if it has no log.",
)
@click.pass_obj
def append(
    container: Container,
    table_uri: str | None,
    rows_file: Any,
    count: int,
    create: bool,
) -> None:
    """Append rows and print the committed version."""
    with command_context("append"), table_errors():
        client = _client(container, table_uri)
        if create:
            client.ensure_table(WEATHER_SCHEMA)
        if rows_file is None:
            result = client.append_batch(readings_to_table(fetch_readings(count)))
        else:
            result = client.append_rows(parse_rows(rows_file.read()))

    click.echo(
        f"Committed version {result.version}: {len(result.files)} file(s), "
        f"{result.num_records} row(s), {result.attempts} attempt(s)"
    )


@cli.command()
@table_uri_option
@click.option(
    "--version",
    "version",
    type=click.IntRange(min=0),
    default=None,
    help="Table version to show (latest when omitted).",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON.")
@click.pass_obj
def inspect(container: Container, table_uri: str | None, version: int | None, as_json: bool) -> None:
    """Show version, file count, row count and schema of a table."""
    with command_context("inspect"), table_errors():
        client = _client(container, table_uri)
        state = client.state(version)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "uri": client.uri,
                    "version": state.version,
                    "num_files": state.num_files,
                    "num_records": state.num_records,
                    "size_bytes": state.size_bytes,
                    "schema": [f.to_dict() for f in state.schema],
                },
                indent=2,
            )
        )
        return

    click.echo(f"Table:   {client.uri}")
    click.echo(f"Version: {state.version}")
    click.echo(f"Files:   {state.num_files}")
    click.echo(f"Rows:    {state.num_records}")
    click.echo(f"Bytes:   {state.size_bytes}")
    click.echo("Schema:")
    for schema_field in state.schema:
        nullable = "" if schema_field.nullable else " not null"
        click.echo(f"  {schema_field.name}: {schema_field.type.value}{nullable}")


@cli.command()
@table_uri_option
@click.pass_obj
def checkpoint(container: Container, table_uri: str | None) -> None:
    """Write a checkpoint at the latest version."""
    with command_context("checkpoint"), table_errors():
        state = _client(container, table_uri).checkpoint()
    click.echo(f"Checkpoint written at version {state.version}")


if __name__ == "__main__":
    cli()
