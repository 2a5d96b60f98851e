"""In-process caches with TTL, LRU capacity bounds and channel invalidation.

Learn: Every instance caches reads in its own memory. Nothing here is
shared across processes — coherence comes from the change log poller
calling invalidate(channel) for each change any instance commits.

Routing is a static table, not per-cache logic:

    event_changes       → events_list, event
    participant_changes → participants, participant

Eviction discipline (deterministic): on insert into a full cache, expired
entries are dropped first; if the cache is still full, the least recently
used entry goes. Reads refresh recency but never the TTL, which always
counts from insertion.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Hashable, Optional

import structlog

from eventhub.events.types import EVENT_CHANGES, PARTICIPANT_CHANGES

logger = structlog.get_logger()


class CacheName(str, Enum):
    EVENTS_LIST = "events_list"
    EVENT = "event"
    PARTICIPANTS = "participants"
    PARTICIPANT = "participant"


CHANNEL_ROUTES: dict[str, tuple[CacheName, ...]] = {
    EVENT_CHANGES: (CacheName.EVENTS_LIST, CacheName.EVENT),
    PARTICIPANT_CHANGES: (CacheName.PARTICIPANTS, CacheName.PARTICIPANT),
}

EVENTS_LIST_KEY = "all"


@dataclass
class CacheStats:
    size: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0


class TTLCache:
    """Thread-safe LRU cache whose entries expire a fixed time after insert."""

    def __init__(
        self,
        capacity: int,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[Any, float]] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: Hashable) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            value, inserted_at = entry
            if now - inserted_at >= self.ttl:
                del self._entries[key]
                self._stats.misses += 1
                return None
            self._entries.move_to_end(key)
            self._stats.hits += 1
            return value

    def insert(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.capacity:
                self._evict(now)
            self._entries[key] = (value, now)

    def remove(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                hits=self._stats.hits,
                misses=self._stats.misses,
                evictions=self._stats.evictions,
            )

    def _evict(self, now: float) -> None:
        # Caller holds the lock.
        expired = [k for k, (_, t) in self._entries.items() if now - t >= self.ttl]
        for k in expired:
            del self._entries[k]
        self._stats.evictions += len(expired)
        while len(self._entries) >= self.capacity:
            self._entries.popitem(last=False)
            self._stats.evictions += 1


class CacheCoordinator:
    """The per-process set of named caches plus channel-based invalidation.

    Built once at startup and handed to request handlers and the poller.
    """

    def __init__(
        self,
        ttl: float = 60.0,
        capacities: Optional[dict[CacheName, int]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        capacities = {
            CacheName.EVENTS_LIST: 10,
            CacheName.EVENT: 1000,
            CacheName.PARTICIPANTS: 1000,
            CacheName.PARTICIPANT: 5000,
            **(capacities or {}),
        }
        self._caches = {
            name: TTLCache(capacities[name], ttl, clock) for name in CacheName
        }

    def cache(self, name: CacheName) -> TTLCache:
        return self._caches[CacheName(name)]

    def get(self, cache_name: CacheName, key: Hashable) -> Optional[Any]:
        return self.cache(cache_name).get(key)

    def insert(self, cache_name: CacheName, key: Hashable, value: Any) -> None:
        self.cache(cache_name).insert(key, value)

    def invalidate(self, channel: str) -> None:
        """Clear every cache the channel routes to. Unknown channels are a no-op."""
        targets = CHANNEL_ROUTES.get(channel)
        if targets is None:
            logger.debug("cache.unknown_channel", channel=channel)
            return
        for name in targets:
            self._caches[name].clear()
        logger.debug("cache.invalidated", channel=channel, caches=[n.value for n in targets])

    def invalidate_key(self, cache_name: CacheName, key: Hashable) -> None:
        self.cache(cache_name).remove(key)

    def stats(self) -> dict[str, CacheStats]:
        return {name.value: cache.stats() for name, cache in self._caches.items()}
