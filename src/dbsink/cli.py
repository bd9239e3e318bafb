"""Command-line interface for dbsink."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator, Sequence
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Any

import click

from dbsink import __version__
from dbsink.sql.types import SQLTypeTag, TypeTag

_BINARY_TAGS = {SQLTypeTag.BINARY, SQLTypeTag.VARBINARY, SQLTypeTag.LONGVARBINARY}


@click.group()
@click.version_option(version=__version__, prog_name="dbsink")
def main() -> None:
    """
    dbsink - batched relational-database output sink.

    Use 'dbsink load' to insert a JSON Lines file through a configured sink.
    """
    pass


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Path to YAML configuration file",
)
def validate(config: str) -> None:
    """
    Validate a sink configuration file.

    Example:
        dbsink validate -c sink.yaml
    """
    from dbsink.obs.logging import setup_logging
    from dbsink.runtime.config import load_config

    setup_logging("WARNING")

    try:
        sink_config = load_config(config)
    except Exception as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"))
        sys.exit(1)

    column_types = sink_config.column_types
    click.echo(click.style("Configuration is valid!", fg="green"))
    click.echo(f"  Driver: {sink_config.driver}")
    click.echo(f"  URL: {sink_config.url}")
    click.echo(f"  Username: {sink_config.username or '-'}")
    click.echo(f"  Password: {'***' if sink_config.password else '-'}")
    click.echo(f"  Query: {sink_config.query}")
    click.echo(f"  Batch size: {sink_config.batch_size}")
    if column_types is None:
        click.echo("  Column types: none (best-effort binding)")
    else:
        names = [t.name if isinstance(t, SQLTypeTag) else str(t) for t in column_types]
        click.echo(f"  Column types: {', '.join(names)}")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Path to YAML configuration file",
)
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--instance-index", type=int, default=0, help="Index of this instance (default: 0)")
@click.option("--total-instances", type=int, default=1, help="Number of instances (default: 1)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Logging level (default: INFO)",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Log output format (default: text)",
)
def load(
    config: str,
    input_path: str,
    instance_index: int,
    total_instances: int,
    log_level: str,
    log_format: str,
) -> None:
    """
    Insert records from a JSON Lines file.

    Each line of INPUT_PATH must be a JSON array holding one record's
    field values in placeholder order. With column types configured,
    ISO-8601 strings are converted for DATE, TIME and TIMESTAMP columns,
    decimal text for DECIMAL/NUMERIC and hex text for binary columns.

    Example:
        dbsink load -c sink.yaml events.jsonl
    """
    from dbsink.obs.logging import setup_logging
    from dbsink.runtime.config import load_config
    from dbsink.runtime.errors import DBSinkError
    from dbsink.sinks.batch_writer import BatchWriter

    setup_logging(log_level, json_format=log_format.lower() == "json")
    logger = logging.getLogger(__name__)

    try:
        sink_config = load_config(config)
    except DBSinkError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"))
        sys.exit(1)

    writer = BatchWriter(sink_config)
    written = 0
    failed = False

    try:
        writer.open(instance_index, total_instances)
        for line_no, record in read_records(input_path, sink_config.column_types):
            try:
                writer.write(record)
            except DBSinkError as e:
                raise click.ClickException(f"Line {line_no}: {e}") from e
            written += 1
    except DBSinkError as e:
        click.echo(click.style(f"Error: {e}", fg="red"))
        failed = True
    finally:
        suppressed = writer.close()

    for err in suppressed:
        click.echo(click.style(f"Warning during close: {err}", fg="yellow"))

    logger.debug(f"Writer stats: {writer.metrics.to_dict()}")
    if failed or suppressed:
        sys.exit(1)

    click.echo(f"Wrote {written} records")


@main.command()
def info() -> None:
    """
    Show information about the dbsink installation.

    Displays version information, installed dependencies, and
    registered drivers.
    """
    click.echo(f"dbsink v{__version__}")
    click.echo()

    import platform

    click.echo(f"Python: {platform.python_version()}")
    click.echo(f"Platform: {platform.platform()}")
    click.echo()

    click.echo("Dependencies:")
    from importlib.metadata import PackageNotFoundError, entry_points, version

    for name in ("pydantic", "PyYAML", "click"):
        try:
            click.echo(f"  {name}: {version(name)}")
        except PackageNotFoundError:
            click.echo(click.style(f"  {name}: not installed", fg="red"))

    click.echo()

    click.echo("Registered drivers:")
    from dbsink.drivers.loader import DRIVER_ENTRY_POINT_GROUP

    eps = list(entry_points(group=DRIVER_ENTRY_POINT_GROUP))
    for ep in eps:
        click.echo(f"  {ep.name}: {ep.value}")
    if not eps:
        click.echo("  (none; DB-API module names such as 'sqlite3' are always accepted)")


def read_records(
    path: str,
    column_types: Sequence[TypeTag] | None = None,
) -> Iterator[tuple[int, list[Any]]]:
    """
    Yield (line number, record) pairs from a JSON Lines file.

    Blank lines are skipped.

    Raises:
        click.ClickException: If a line is not a JSON array or a value
            cannot be converted for its column type
    """
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                values = json.loads(line)
            except json.JSONDecodeError as e:
                raise click.ClickException(f"Line {line_no}: invalid JSON: {e}") from e
            if not isinstance(values, list):
                raise click.ClickException(f"Line {line_no}: expected a JSON array")

            if column_types is not None:
                try:
                    values = [
                        (
                            convert_json_value(value, column_types[i])
                            if i < len(column_types)
                            else value
                        )
                        for i, value in enumerate(values)
                    ]
                except (ValueError, InvalidOperation) as e:
                    raise click.ClickException(f"Line {line_no}: {e}") from e

            yield line_no, values


def convert_json_value(value: Any, tag: TypeTag) -> Any:
    """
    Convert a decoded JSON value into the Python type a tag binds.

    Values JSON can already express (numbers, strings, booleans, null)
    are returned unchanged except where the tag needs a richer type.
    """
    if value is None:
        return None

    if tag in (SQLTypeTag.DECIMAL, SQLTypeTag.NUMERIC) and isinstance(value, (str, int, float)):
        if isinstance(value, bool):
            return value
        return Decimal(str(value))

    if not isinstance(value, str):
        return value

    if tag == SQLTypeTag.DATE:
        return date.fromisoformat(value)
    if tag == SQLTypeTag.TIME:
        return time.fromisoformat(value)
    if tag == SQLTypeTag.TIMESTAMP:
        from dbsink.utils.time import parse_iso8601

        return parse_iso8601(value)
    if tag in _BINARY_TAGS:
        return bytes.fromhex(value)
    return value


if __name__ == "__main__":
    main()
