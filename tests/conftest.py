"""Test fixtures — a throwaway SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets a fresh app built by create_app() against a SQLite file
   under tmp_path, with tables created up front.
2. The HTTP client talks to the app in-process via httpx's ASGITransport.
   ASGITransport does not run the lifespan, so no poller task runs in API
   tests — poller behaviour is tested by calling run_cycle() directly.
3. The engine is disposed after the test; tmp_path cleans up the file.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from eventhub.config import Settings
from eventhub.db.engine import init_db
from eventhub.main import create_app


@pytest_asyncio.fixture()
async def app(tmp_path):
    """App wired to its own SQLite database, tables created."""
    cfg = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'eventhub.db'}",
        environment="development",
        heartbeat_seconds=0.05,
        poll_interval_seconds=0.01,
    )
    application = create_app(cfg)
    await init_db(application.state.engine)
    try:
        yield application
    finally:
        await application.state.engine.dispose()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def changelog(app):
    return app.state.changelog


@pytest_asyncio.fixture()
async def session_factory(app):
    return app.state.session_factory
