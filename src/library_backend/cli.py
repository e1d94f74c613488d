#!/usr/bin/env python3
"""
Main CLI entry point for the library backend server.
"""

import os
import sys

import click
import uvicorn

from library_backend import __version__
from library_backend.logging import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="library-backend")
def cli() -> None:
    """Library backend CLI - run the server and manage users."""
    pass


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
@click.option("--port", default=4000, type=int, help="Port to bind to (default: 4000)")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
def serve(host: str, port: int, reload: bool, log_level: str) -> None:
    """Start the library API server."""
    configure_logging(debug=(log_level == "debug"), log_level=log_level)

    logger.info("Starting library API server", host=host, port=port, reload=reload)

    # Settings are read at import time, so pass them through the environment
    if log_level == "debug":
        os.environ["LIBRARY_DEBUG"] = "true"
        os.environ["LIBRARY_LOG_LEVEL"] = "debug"
    else:
        os.environ.setdefault("LIBRARY_DEBUG", "false")
        os.environ.setdefault("LIBRARY_LOG_LEVEL", log_level)

    try:
        uvicorn.run(
            "library_backend.api.app:app",
            host=host,
            port=port,
            reload=reload,
            log_level=log_level,
            access_log=True,
        )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


@cli.group()
def user() -> None:
    """Manage user accounts."""
    pass


@user.command("create")
@click.option("--username", required=True, help="Unique username")
@click.option("--favorite-genre", required=True, help="The user's favorite genre")
def create_user(username: str, favorite_genre: str) -> None:
    """Register a user directly in the database."""
    import asyncio

    from sqlalchemy.exc import SQLAlchemyError

    from library_backend.database.connection import dispose_database, get_async_session
    from library_backend.users import repository as users_repo

    configure_logging()

    async def do_create():
        try:
            async with get_async_session() as db:
                created = await users_repo.create_user(
                    db, username=username, favorite_genre=favorite_genre
                )
            click.echo(f"✓ User created: {created.id}")
            click.echo(f"  Username: {username}")
            click.echo(f"  Favorite genre: {favorite_genre}")
        except SQLAlchemyError as e:
            logger.error("Failed to create user", username=username, error=str(e))
            click.echo(f"✗ Error creating user: {e}", err=True)
            sys.exit(1)
        finally:
            await dispose_database()

    asyncio.run(do_create())


@user.command("list")
def list_users() -> None:
    """List all users in the database."""
    import asyncio

    from sqlalchemy import select

    from library_backend.database.connection import dispose_database, get_async_session
    from library_backend.dbmodels import Users

    configure_logging()

    async def do_list():
        try:
            async with get_async_session() as db:
                result = await db.execute(select(Users).order_by(Users.created_at))
                users = result.scalars().all()
        finally:
            await dispose_database()

        if not users:
            click.echo("No users found.")
            return

        click.echo(f"Found {len(users)} user(s):\n")
        for u in users:
            click.echo(f"  {u.username}  ({u.favorite_genre})  {u.id}")

    asyncio.run(do_list())


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
