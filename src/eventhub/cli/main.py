"""EventHub CLI — run the API server and maintain the change log.

Usage:
    eventhub serve                      # Run the API (host/port from EVENTHUB_*)
    eventhub serve --port 3001          # Second local instance on the same DB
    eventhub prune --older-than 3600    # One-off change log prune
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import click

from eventhub.config import settings
from eventhub.log import configure_logging


@click.group()
def cli():
    """EventHub — event registration API with live change push."""
    configure_logging(debug=settings.debug)


@cli.command()
@click.option("--host", default=None, help="Bind address (default: EVENTHUB_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: EVENTHUB_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "eventhub.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port if port is not None else settings.port,
        reload=reload,
    )


@cli.command()
@click.option(
    "--older-than",
    default=None,
    type=click.FloatRange(min=0),
    help="Retention in seconds (default: EVENTHUB_CHANGE_RETENTION_SECONDS)",
)
def prune(older_than: float | None):
    """Delete change log rows older than the retention window."""
    if older_than is None:
        older_than = settings.change_retention_seconds
    retention = timedelta(seconds=older_than)
    deleted = asyncio.run(_prune(retention))
    click.echo(f"Pruned {deleted} change record(s) older than {retention}.")


async def _prune(retention: timedelta) -> int:
    from eventhub.db.engine import create_engine, create_session_factory
    from eventhub.events.changelog import ChangeLog

    engine = create_engine(settings.database_url)
    try:
        return await ChangeLog(create_session_factory(engine)).prune(retention)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    cli()
