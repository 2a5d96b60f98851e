"""SSE stream sessions — one per connected browser.

Learn: A session subscribes to the broadcaster and turns whatever arrives
into Server-Sent Events frames:

    event: event_changes
    data: {"operation": "UPDATE", "table": "events", ...}

When nothing arrives for `heartbeat` seconds it emits a comment frame
(": keep-alive") so proxies keep the connection open and the browser can
tell the server is alive. A lagged subscriber is logged and the stream
carries on from the next buffered event.

Lifecycle: OPEN → STREAMING → CLOSED. The only way out of STREAMING is
the client going away (disconnect, cancelled response, failed write);
the subscriber is released in every case.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import Optional

import structlog

from eventhub.errors import SubscriberLagged
from eventhub.realtime.broadcaster import Broadcaster, ChangeEvent

logger = structlog.get_logger()

DEFAULT_HEARTBEAT = 15.0
KEEP_ALIVE_FRAME = ": keep-alive\n\n"


class SessionState(str, Enum):
    OPEN = "open"
    STREAMING = "streaming"
    CLOSED = "closed"


def format_frame(event: ChangeEvent) -> str:
    """Render one change as an SSE frame. Multi-line payloads get one data: line each."""
    lines = event.payload.splitlines() or [""]
    data = "".join(f"data: {line}\n" for line in lines)
    return f"event: {event.channel}\n{data}\n"


class StreamSession:
    """Push stream for a single client connection. Not restartable."""

    def __init__(
        self,
        broadcaster: Broadcaster,
        heartbeat: float = DEFAULT_HEARTBEAT,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ):
        self.id = uuid.uuid4().hex[:12]
        self.heartbeat = heartbeat
        self.state = SessionState.OPEN
        self._broadcaster = broadcaster
        self._is_disconnected = is_disconnected

    async def frames(self) -> AsyncIterator[str]:
        """Yield SSE frames until the client goes away."""
        if self.state is not SessionState.OPEN:
            raise RuntimeError(f"stream session {self.id} already {self.state.value}")

        subscriber = self._broadcaster.subscribe()
        self.state = SessionState.STREAMING
        log = logger.bind(session_id=self.id, subscriber_id=subscriber.id)
        log.debug("stream.opened")

        try:
            while True:
                if self._is_disconnected is not None and await self._is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(
                        subscriber.receive(), timeout=self.heartbeat
                    )
                except SubscriberLagged as e:
                    log.info("stream.lagged", missed=e.missed)
                    continue
                except asyncio.TimeoutError:
                    yield KEEP_ALIVE_FRAME
                    continue
                yield format_frame(event)
        finally:
            subscriber.close()
            self.state = SessionState.CLOSED
            log.debug("stream.closed")
