"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running, the
database is reachable, and reports how far this instance's poller has
read the change log.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from eventhub import __version__
from eventhub.api.deps import get_broadcaster
from eventhub.realtime.broadcaster import Broadcaster

router = APIRouter()


@router.get("/health")
async def health_check(
    request: Request,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Check server health and dependency connectivity."""
    state = request.app.state
    checks = {"server": "ok", "version": __version__}

    try:
        async with state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"

    return {
        "status": status,
        **checks,
        "subscribers": broadcaster.subscriber_count,
        "watermark": state.poller.watermark,
    }
