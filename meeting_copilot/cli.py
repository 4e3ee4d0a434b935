"""
Command line interface: server and database management
"""

import asyncio
import subprocess
import sys
from typing import Optional

import click
import uvicorn

from meeting_copilot import __version__
from meeting_copilot.config import settings
from meeting_copilot.core.logging import api_logger, setup_logging


@click.group()
@click.version_option(version=__version__)
def main():
    """Meeting Copilot - live meeting assistant"""


@main.command()
@click.option("--host", default=None, help="Bind address")
@click.option("--port", default=None, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error", "critical"]),
    help="Log level",
)
def serve(host: Optional[str], port: Optional[int], reload: bool, log_level: str):
    """Start the API server.

    Runs a single worker: live meetings are held in process memory.
    """
    host = host or settings.host
    port = port or settings.port

    setup_logging(level=log_level.upper())
    api_logger.info(f"Starting server on {host}:{port}")

    uvicorn.run(
        "meeting_copilot.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1,
        log_level=log_level,
        access_log=True,
    )


@main.command("init-db")
@click.option("--drop", is_flag=True, help="Drop all tables first")
def init_db_command(drop: bool):
    """Create the database tables."""
    from meeting_copilot.db.database import drop_db, init_db

    setup_logging()

    async def run():
        if drop:
            await drop_db()
            api_logger.warning("Dropped all tables")
        await init_db()

    asyncio.run(run())
    api_logger.info(f"Database ready at {settings.database_url}")


@main.command()
@click.option("--upgrade", is_flag=True, help="Upgrade to the latest revision")
@click.option("--revision", default=None, help="Target revision")
@click.option("--create", is_flag=True, help="Autogenerate a new revision")
@click.option("--message", default=None, help="Revision message")
def db(upgrade: bool, revision: Optional[str], create: bool, message: Optional[str]):
    """Run alembic migrations."""
    if create:
        if not message:
            message = click.prompt("Revision message")
        cmd = ["alembic", "revision", "--autogenerate", "-m", message]
    elif upgrade:
        cmd = ["alembic", "upgrade", revision or "head"]
    else:
        cmd = ["alembic", "current"]

    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.stdout:
        click.echo(result.stdout)
    if result.stderr:
        click.echo(result.stderr, err=True)
    if result.returncode != 0:
        sys.exit(result.returncode)


if __name__ == "__main__":
    main()
