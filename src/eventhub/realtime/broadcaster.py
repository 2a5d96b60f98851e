"""In-process pub/sub — fans change events out to live SSE subscribers.

Learn: This replaces a broker. The poller publishes each change exactly
once per instance; the broadcaster copies it onto every subscriber's
bounded queue. publish() never awaits, so one slow browser can't stall
the poller or its neighbours.

Overflow policy: a full queue drops its OLDEST event to admit the new one
and counts the loss. The subscriber learns about the gap on its next
receive() as SubscriberLagged; nobody else is affected.

Only subscribers registered at publish time see an event. Nothing is
replayed to late joiners — they re-fetch over the REST API.
"""

import asyncio
import itertools
import threading
from collections import deque
from dataclasses import dataclass

import structlog

from eventhub.errors import SubscriberLagged

logger = structlog.get_logger()

DEFAULT_QUEUE_SIZE = 100


@dataclass(frozen=True)
class ChangeEvent:
    """A change as seen by stream clients: channel name plus opaque payload."""

    channel: str
    payload: str


class Subscriber:
    """One live client's bounded event queue.

    Created by Broadcaster.subscribe(); closed when the client goes away.
    Usable as an async context manager.
    """

    def __init__(self, broadcaster: "Broadcaster", subscriber_id: int, capacity: int):
        self.id = subscriber_id
        self.capacity = capacity
        self._broadcaster = broadcaster
        self._queue: deque[ChangeEvent] = deque()
        self._missed = 0
        self._wakeup = asyncio.Event()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def closed(self) -> bool:
        return not self._broadcaster.is_subscribed(self)

    def push(self, event: ChangeEvent) -> bool:
        """Enqueue without blocking. Returns False if an old event was dropped."""
        with self._lock:
            overflowed = len(self._queue) >= self.capacity
            if overflowed:
                self._queue.popleft()
                self._missed += 1
            self._queue.append(event)
            first_loss = overflowed and self._missed == 1
        self._wakeup.set()
        if first_loss:
            logger.info("broadcaster.subscriber_overflow", subscriber_id=self.id)
        return not overflowed

    async def receive(self) -> ChangeEvent:
        """Wait for the next event, oldest first.

        Raises SubscriberLagged once if events were dropped since the
        last call; the following call continues with what is buffered.
        """
        while True:
            with self._lock:
                if self._missed:
                    missed, self._missed = self._missed, 0
                    raise SubscriberLagged(missed)
                if self._queue:
                    return self._queue.popleft()
                self._wakeup.clear()
            await self._wakeup.wait()

    def close(self) -> None:
        self._broadcaster.unsubscribe(self)

    async def __aenter__(self) -> "Subscriber":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()


class Broadcaster:
    """Registry of live subscribers for this process.

    Safe across tasks on one event loop: the registry is protected by a
    lock and publish() works on a snapshot, so subscribe/unsubscribe never
    disturb an in-flight publish. publish() wakes receivers through
    asyncio.Event, so call it from the loop's own thread. Per-process:
    each instance has its own Broadcaster.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscriber:
        with self._lock:
            sub = Subscriber(self, next(self._ids), self.queue_size)
            self._subscribers[sub.id] = sub
        logger.debug("broadcaster.subscribed", subscriber_id=sub.id)
        return sub

    def unsubscribe(self, sub: Subscriber) -> None:
        with self._lock:
            removed = self._subscribers.pop(sub.id, None)
        if removed is not None:
            logger.debug("broadcaster.unsubscribed", subscriber_id=sub.id)

    def is_subscribed(self, sub: Subscriber) -> bool:
        with self._lock:
            return self._subscribers.get(sub.id) is sub

    def publish(self, event: ChangeEvent) -> int:
        """Deliver to every current subscriber. Returns how many received it."""
        with self._lock:
            targets = list(self._subscribers.values())
        for sub in targets:
            sub.push(event)
        logger.debug(
            "broadcaster.published",
            channel=event.channel,
            receivers=len(targets),
        )
        return len(targets)
