#!/usr/bin/env python3
"""
``library-migrate``: schema management for the catalog database.

Alembic owns the schema in deployment. ``create-schema`` builds it straight
from the ORM models for scratch databases, and ``check`` verifies the unique
constraints that author and user creation rely on to resolve races.
"""

import asyncio
import sys
from collections.abc import Callable
from pathlib import Path

import click
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from alembic import command
from alembic.config import Config
from library_backend import __version__
from library_backend.database.connection import (
    create_schema,
    dispose_database,
    get_async_engine,
    init_database,
)
from library_backend.logging import configure_logging, get_logger

logger = get_logger(__name__)

# table -> unique constraint name; find-or-create depends on these
REQUIRED_UNIQUE_CONSTRAINTS = {
    "authors": "authors_name_key",
    "users": "users_username_key",
}


def get_alembic_config() -> Config:
    """Load ``alembic.ini`` from the project root."""
    alembic_ini = Path(__file__).resolve().parents[3] / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")
    return Config(str(alembic_ini))


async def find_missing_constraints() -> list[str]:
    """Return ``table.constraint`` entries absent from the connected database."""

    def _inspect(sync_conn) -> list[str]:
        inspector = inspect(sync_conn)
        tables = set(inspector.get_table_names())
        missing = []
        for table, constraint in REQUIRED_UNIQUE_CONSTRAINTS.items():
            if table not in tables:
                missing.append(f"{table}.{constraint}")
                continue
            names = {uc["name"] for uc in inspector.get_unique_constraints(table)}
            # PostgreSQL reports unique constraints as unique indexes too
            names |= {ix["name"] for ix in inspector.get_indexes(table) if ix.get("unique")}
            if constraint not in names:
                missing.append(f"{table}.{constraint}")
        return missing

    async with get_async_engine().connect() as conn:
        return await conn.run_sync(_inspect)


def _run_alembic(action: str, fn: Callable[[Config], None]) -> None:
    try:
        fn(get_alembic_config())
        logger.info("Alembic command finished", action=action)
    except Exception as e:
        logger.error("Alembic command failed", action=action, error=str(e))
        sys.exit(1)


@click.group()
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
@click.version_option(version=__version__, prog_name="library-migrate")
def main(log_level: str) -> None:
    """Catalog database schema management."""
    configure_logging(debug=(log_level == "debug"), log_level=log_level)


@main.command()
@click.argument("revision", default="head")
def upgrade(revision: str) -> None:
    """Apply migrations up to REVISION (default: head)."""
    _run_alembic("upgrade", lambda cfg: command.upgrade(cfg, revision))


@main.command()
@click.argument("revision", default="-1")
def downgrade(revision: str) -> None:
    """Revert migrations down to REVISION (default: one step)."""
    _run_alembic("downgrade", lambda cfg: command.downgrade(cfg, revision))


@main.command()
@click.option("-m", "--message", required=True, help="Revision message")
@click.option("--autogenerate/--no-autogenerate", default=True, help="Diff against the ORM models")
def revision(message: str, autogenerate: bool) -> None:
    """Create a new migration revision."""
    _run_alembic(
        "revision",
        lambda cfg: command.revision(cfg, message=message, autogenerate=autogenerate),
    )


@main.command()
def current() -> None:
    """Show the database's current revision."""
    _run_alembic("current", command.current)


@main.command()
def history() -> None:
    """Show migration history."""
    _run_alembic("history", command.history)


@main.command("create-schema")
def create_schema_command() -> None:
    """Create all catalog tables from the ORM models, without Alembic."""

    async def do_create() -> None:
        init_database(force_reinit=True)
        try:
            await create_schema()
        finally:
            await dispose_database()

    try:
        asyncio.run(do_create())
    except SQLAlchemyError as e:
        logger.error("Schema creation failed", error=str(e))
        click.echo(f"✗ Schema creation failed: {e}", err=True)
        sys.exit(1)

    click.echo("✓ Catalog tables created")


@main.command()
def check() -> None:
    """Verify the unique constraints on author names and usernames exist."""

    async def do_check() -> list[str]:
        init_database(force_reinit=True)
        try:
            return await find_missing_constraints()
        finally:
            await dispose_database()

    try:
        missing = asyncio.run(do_check())
    except SQLAlchemyError as e:
        logger.error("Schema check failed", error=str(e))
        click.echo(f"✗ Schema check failed: {e}", err=True)
        sys.exit(1)

    if missing:
        logger.warning("Required unique constraints missing", missing=missing)
        click.echo(f"✗ Missing unique constraints: {', '.join(missing)}", err=True)
        sys.exit(1)

    click.echo("✓ Required unique constraints present")


if __name__ == "__main__":
    main()
