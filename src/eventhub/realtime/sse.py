"""SSE endpoint — live change notifications for browsers.

Learn: One long-lived response per browser tab. Starlette cancels the
response generator when the client disconnects; the session also polls
request.is_disconnected() between frames, so either path releases the
subscriber.
"""

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from eventhub.realtime.stream import StreamSession

router = APIRouter()


@router.get("/events/stream")
async def event_stream(request: Request):
    """Stream event_changes / participant_changes as text/event-stream."""
    session = StreamSession(
        request.app.state.broadcaster,
        heartbeat=request.app.state.heartbeat_seconds,
        is_disconnected=request.is_disconnected,
    )
    return StreamingResponse(
        session.frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
