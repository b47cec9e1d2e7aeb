"""Command-line interface for EntityStore.

This module provides the CLI commands for managing the EntityStore
database and inspecting entities.
"""

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, NoReturn

import click

from entitystore import __version__
from entitystore.core.config import get_settings
from entitystore.core.exceptions import EntityStoreError
from entitystore.core.logging import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="EntityStore")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides ENTITYSTORE_LOG_LEVEL)",
)
def cli(log_level: str | None) -> None:
    """EntityStore - schema-driven entities and records."""
    settings = get_settings()
    if log_level:
        settings.log_level = log_level
    configure_logging(settings)


@cli.command("init-db")
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Create all database tables.

    Use this only in development. In production, use migrations instead.
    """
    from entitystore.infrastructure.persistence.database import get_db_manager

    settings = get_settings()

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use 'entitystore upgrade' instead.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize() -> None:
        db = get_db_manager()
        try:
            if settings.is_sqlite and ":memory:" not in settings.database_url:
                Path(settings.database_url.split(":///")[-1]).parent.mkdir(
                    parents=True, exist_ok=True
                )
            if not await db.check_connection():
                click.echo("ERROR: Failed to connect to database.", err=True)
                raise SystemExit(1)
            await db.create_tables()
            click.echo("Database initialized successfully.")
        finally:
            await db.disconnect()

    asyncio.run(initialize())


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default="alembic.ini",
    show_default=True,
    help="Path to the alembic configuration file",
)
@click.option("--revision", default="head", show_default=True, help="Target revision")
def upgrade(config_path: str, revision: str) -> None:
    """Apply database migrations."""
    from alembic import command
    from alembic.config import Config

    config = Config(config_path)
    script_location = config.get_main_option("script_location")
    if script_location and not Path(script_location).is_absolute():
        config.set_main_option(
            "script_location", str(Path(config_path).resolve().parent / script_location)
        )
    config.set_main_option("sqlalchemy.url", get_settings().database_url)

    logger.info("Applying migrations", revision=revision)
    command.upgrade(config, revision)
    click.echo(f"Database upgraded to {revision}.")


@cli.command("list-entities")
def list_entities() -> None:
    """List entities with their field keys."""
    from entitystore.domain.services import EntityService
    from entitystore.infrastructure.persistence.database import get_db_manager

    async def run() -> None:
        db = get_db_manager()
        try:
            async with db.session() as session:
                entities = await EntityService(session).list_entities()
        finally:
            await db.disconnect()

        if not entities:
            click.echo("No entities.")
            return
        for entity in entities:
            click.echo(f"{entity.id}  {entity.name}  (v{entity.version})")
            for key in entity.field_keys:
                definition = entity.fields[key]
                flag = " *" if definition.required else ""
                click.echo(f"    {key}: {definition.type.value}{flag}")

    _run(run())


@cli.command("backfill-count")
@click.argument("entity_id")
@click.argument("field_keys", nargs=-1, required=True)
def backfill_count(entity_id: str, field_keys: tuple[str, ...]) -> None:
    """Count records a backfill of FIELD_KEYS would touch."""
    from entitystore.domain.services import RecordService
    from entitystore.infrastructure.persistence.database import get_db_manager

    async def run() -> None:
        db = get_db_manager()
        try:
            async with db.session() as session:
                count = await RecordService(session).get_backfill_affected_record_count(
                    entity_id, list(field_keys)
                )
        finally:
            await db.disconnect()
        click.echo(str(count))

    _run(run())


def _run(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except EntityStoreError as e:
        click.echo(f"ERROR: {e.message}", err=True)
        raise SystemExit(1) from e


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `entitystore` command is run
    or when using `python -m entitystore`.
    """
    cli()


if __name__ == "__main__":
    main()
