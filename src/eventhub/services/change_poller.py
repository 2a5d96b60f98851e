"""Change poller — tails the shared change log and applies it locally.

Learn: One poller per process. Each cycle:

  sleep → changes_since(watermark) → for each record, in id order:
      invalidate the caches its channel routes to
      publish it to local SSE subscribers
  → watermark = highest id in the batch

The watermark only moves after a whole batch is applied, and never on a
failed query, so delivery is at-least-once and never skips ahead. Both
effects are idempotent (clearing a cache twice is harmless; clients treat
pushes as "go re-fetch"), which is what makes re-delivery safe.

The watermark lives in memory only. On start it is seeded from the log's
current max id, so a restarted instance never replays old history. The
seed is taken before the instance serves anything (the app lifespan
awaits seed()), and run_loop() seeds before its first sleep if that
failed, so nothing appended after startup falls into the seed.

Usage:
    poller = ChangePoller(changelog, cache, broadcaster)
    asyncio.create_task(poller.run_loop())
"""

import asyncio
import time
from datetime import timedelta
from typing import Callable, Optional

import structlog

from eventhub.cache import CacheCoordinator
from eventhub.errors import ChangeLogError
from eventhub.events.changelog import DEFAULT_RETENTION, ChangeLog
from eventhub.realtime.broadcaster import Broadcaster, ChangeEvent

logger = structlog.get_logger()


class ChangePoller:
    """Background task that turns change log rows into local effects."""

    def __init__(
        self,
        changelog: ChangeLog,
        cache: CacheCoordinator,
        broadcaster: Broadcaster,
        poll_interval: float = 1.0,
        retention: timedelta = DEFAULT_RETENTION,
        prune_interval: float = 60.0,
        watermark: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.changelog = changelog
        self.cache = cache
        self.broadcaster = broadcaster
        self.poll_interval = poll_interval
        self.retention = retention
        self.prune_interval = prune_interval
        self.watermark = watermark  # None until seeded from the log head
        self._clock = clock
        self._last_prune: Optional[float] = None
        self._running = False
        self._wake = asyncio.Event()

    async def run_loop(self) -> None:
        """Main loop — runs until stop() or cancellation."""
        self._running = True
        logger.info("poller.started", poll_interval=self.poll_interval)

        while self._running and self.watermark is None:
            try:
                await self.seed()
            except ChangeLogError:
                logger.warning("poller.seed_failed", retry_in=self.poll_interval)
                await self._sleep()

        while self._running:
            await self._sleep()
            if not self._running:
                break
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("poller.cycle_failed", watermark=self.watermark)

        logger.info("poller.stopped", watermark=self.watermark)

    async def seed(self) -> int:
        """Set the watermark to the log head unless it is already set."""
        if self.watermark is None:
            self.watermark = await self.changelog.max_id()
            logger.info("poller.seeded", watermark=self.watermark)
        return self.watermark

    async def run_cycle(self) -> int:
        """One poll + prune pass. Returns the number of changes applied."""
        await self.seed()
        applied = await self.poll_once()
        await self.prune_if_due()
        return applied

    async def poll_once(self) -> int:
        """Fetch and apply everything after the watermark."""
        last_id = self.watermark or 0
        records = await self.changelog.changes_since(last_id)
        if not records:
            return 0

        for record in records:
            self.cache.invalidate(record.channel)
            self.broadcaster.publish(ChangeEvent(record.channel, record.payload))

        self.watermark = max(last_id, records[-1].id)
        logger.debug("poller.applied", count=len(records), watermark=self.watermark)
        return len(records)

    async def prune_if_due(self) -> int:
        """Drop log rows past retention, at most once per prune_interval."""
        now = self._clock()
        if self._last_prune is not None and now - self._last_prune < self.prune_interval:
            return 0
        self._last_prune = now
        try:
            deleted = await self.changelog.prune(self.retention)
        except Exception:
            logger.exception("poller.prune_failed")
            return 0
        if deleted:
            logger.info("poller.pruned", deleted=deleted)
        return deleted

    def stop(self) -> None:
        """Signal the loop to exit after the current cycle."""
        self._running = False
        self._wake.set()
        logger.info("poller.stopping")

    async def _sleep(self) -> None:
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass
        self._wake.clear()
