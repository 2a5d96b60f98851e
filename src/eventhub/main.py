"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. It builds exactly one of each per-process component up front
and parks them on app.state:

    engine / session_factory  — shared database
    changelog                 — the cross-instance change log
    cache                     — this instance's CacheCoordinator
    broadcaster               — this instance's SSE fan-out
    poller                    — tails changelog → cache + broadcaster

Lifespan only does the async parts: create tables, seed the poller's
watermark, run the poller task, then cancel it and dispose the engine on
shutdown.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventhub import __version__
from eventhub.api import api_router
from eventhub.cache import CacheCoordinator, CacheName
from eventhub.config import Settings, settings as default_settings
from eventhub.db.engine import create_engine, create_session_factory, init_db
from eventhub.errors import ChangeLogError
from eventhub.events.changelog import ChangeLog
from eventhub.middleware.request_id import RequestIdMiddleware
from eventhub.realtime.broadcaster import Broadcaster
from eventhub.services.change_poller import ChangePoller

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. Cancelling the poller mid-cycle is safe: the watermark is
    not persisted and the log lives in the database.
    """
    state = app.state
    logger.info(
        "eventhub.starting",
        version=__version__,
        environment=state.settings.environment,
        port=state.settings.port,
    )

    await init_db(state.engine)

    # Seed before serving so changes appended from here on are delivered.
    try:
        await state.poller.seed()
    except ChangeLogError:
        logger.warning("eventhub.seed_deferred", reason="change log unavailable")

    poller_task = asyncio.create_task(state.poller.run_loop())
    logger.info("eventhub.poller_started")

    yield

    logger.info("eventhub.shutdown")

    state.poller.stop()
    poller_task.cancel()
    try:
        await poller_task
    except asyncio.CancelledError:
        pass

    await state.engine.dispose()


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    cfg = app_settings or default_settings

    app = FastAPI(
        title="EventHub",
        description="Event registration API with live change notifications",
        version=__version__,
        lifespan=lifespan,
    )

    engine = create_engine(cfg.database_url, echo=cfg.debug)
    session_factory = create_session_factory(engine)
    changelog = ChangeLog(session_factory)
    cache = CacheCoordinator(
        ttl=cfg.cache_ttl_seconds,
        capacities={
            CacheName.EVENTS_LIST: cfg.events_list_capacity,
            CacheName.EVENT: cfg.event_capacity,
            CacheName.PARTICIPANTS: cfg.participants_capacity,
            CacheName.PARTICIPANT: cfg.participant_capacity,
        },
    )
    broadcaster = Broadcaster(queue_size=cfg.subscriber_queue_size)
    poller = ChangePoller(
        changelog,
        cache,
        broadcaster,
        poll_interval=cfg.poll_interval_seconds,
        retention=timedelta(seconds=cfg.change_retention_seconds),
        prune_interval=cfg.prune_interval_seconds,
    )

    app.state.settings = cfg
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.changelog = changelog
    app.state.cache = cache
    app.state.broadcaster = broadcaster
    app.state.poller = poller
    app.state.heartbeat_seconds = cfg.heartbeat_seconds

    # ── Middleware stack ──────────────────────────────────────
    # Request flow: RequestId → CORS → handler

    app.add_middleware(RequestIdMiddleware)
    if cfg.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cfg.cors_origins,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Content-Type"],
        )
    else:
        logger.warning("eventhub.cors_open", reason="no CORS origins configured")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router)

    return app
