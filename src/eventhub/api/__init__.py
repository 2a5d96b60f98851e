"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: The SSE router is included before the events router so that
/api/events/stream is matched before /api/events/{event_id}.
"""

from fastapi import APIRouter

from eventhub.api.events import router as events_router
from eventhub.api.health import router as health_router
from eventhub.api.participants import router as participants_router
from eventhub.realtime.sse import router as sse_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(sse_router, tags=["stream"])
api_router.include_router(events_router, tags=["events"])
api_router.include_router(participants_router, tags=["participants"])
