"""Command-line interface for CosmoDB.

Inspects collections stored by the JSON file adapter.
"""

import asyncio
import json
import sys
from typing import Any

import click

from cosmodb.core.config import Settings, get_settings
from cosmodb.core.exceptions import CosmoDBError
from cosmodb.core.logging import configure_logging
from cosmodb.infrastructure.adapters import JsonFileAdapter
from cosmodb.infrastructure.persistence import Database


def parse_where(conditions: tuple[str, ...]) -> dict[str, Any]:
    """Parse ``field=value`` pairs into an equality query.

    Values are decoded as JSON when possible (``5``, ``true``, ``null``,
    ``"quoted"``) and kept as plain strings otherwise.
    """
    query: dict[str, Any] = {}
    for condition in conditions:
        field, sep, raw = condition.partition("=")
        if not sep or not field:
            raise click.BadParameter(f"Expected field=value, got {condition!r}", param_hint="--where")
        try:
            query[field] = json.loads(raw)
        except json.JSONDecodeError:
            query[field] = raw
    return query


def parse_sort(specs: tuple[str, ...]) -> dict[str, int]:
    """Parse ``field`` or ``field:asc|desc`` sort specs."""
    sort: dict[str, int] = {}
    for spec in specs:
        field, _, direction = spec.partition(":")
        direction = direction.lower() or "asc"
        if direction not in ("asc", "desc"):
            raise click.BadParameter(f"Sort direction must be asc or desc, got {direction!r}", param_hint="--sort")
        sort[field] = 1 if direction == "asc" else -1
    return sort


def _file_settings(directory: str | None) -> Settings:
    settings = get_settings()
    update: dict[str, Any] = {"default_adapter": "file", "query_analytics_enabled": False}
    if directory:
        update["storage_directory"] = directory
    return settings.model_copy(update=update)


async def _open_collection(settings: Settings, name: str) -> Any:
    db = Database(settings)
    collection = db.create_collection(name, schema=None)
    await collection.wait_until_loaded()
    return collection


@click.group()
@click.version_option(version="0.1.0", prog_name="CosmoDB")
@click.option(
    "--directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Storage directory of the JSON file adapter (overrides config)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default="WARNING",
    help="Set log level",
)
@click.pass_context
def cli(ctx: click.Context, directory: str | None, log_level: str) -> None:
    """CosmoDB - embedded document store tools."""
    settings = _file_settings(directory).model_copy(update={"log_level": log_level, "log_format": "console"})
    configure_logging(settings)
    ctx.obj = settings


@cli.command("collections")
@click.pass_obj
def list_collections(settings: Settings) -> None:
    """List stored collections and their document counts."""
    adapter = JsonFileAdapter(settings.storage_directory, settings.file_extension)

    async def run() -> list[tuple[str, int]]:
        return [(name, len(await adapter.load(name))) for name in adapter.collections()]

    try:
        counts = asyncio.run(run())
    except CosmoDBError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    for name, count in counts:
        click.echo(f"{name}\t{count}")


@cli.command()
@click.argument("name")
@click.option("--where", "-w", multiple=True, help="Equality condition field=value (repeatable)")
@click.pass_obj
def count(settings: Settings, name: str, where: tuple[str, ...]) -> None:
    """Count documents in a collection."""
    query = parse_where(where)

    async def run() -> int:
        collection = await _open_collection(settings, name)
        return collection.count(query)

    click.echo(asyncio.run(run()))


@cli.command()
@click.argument("name")
@click.option("--where", "-w", multiple=True, help="Equality condition field=value (repeatable)")
@click.option("--sort", "-s", multiple=True, help="Sort key field[:asc|desc] (repeatable)")
@click.option("--skip", type=click.IntRange(min=0), default=0, help="Number of results to skip")
@click.option("--limit", type=click.IntRange(min=0), default=0, help="Maximum results (0 = all)")
@click.pass_obj
def find(
    settings: Settings,
    name: str,
    where: tuple[str, ...],
    sort: tuple[str, ...],
    skip: int,
    limit: int,
) -> None:
    """Print matching documents as JSON."""
    query = parse_where(where)
    options = {"sort": parse_sort(sort), "skip": skip, "limit": limit}

    async def run() -> list[dict[str, Any]]:
        collection = await _open_collection(settings, name)
        return collection.find(query, options)

    try:
        documents = asyncio.run(run())
    except CosmoDBError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(documents, indent=2, ensure_ascii=False))


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
