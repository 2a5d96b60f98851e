"""Announcing committed mutations to every instance.

Learn: After a mutation commits, the handler appends a change record and
clears its own caches straight away (the local poller would do it a tick
later anyway). The append is best-effort: the entity write already
committed, so a failed append is logged and the request still succeeds.
Other instances then converge only when their cache TTLs expire.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog

from eventhub.cache import CacheCoordinator
from eventhub.errors import ChangeLogError
from eventhub.events.changelog import ChangeLog

logger = structlog.get_logger()


def change_payload(
    operation: str,
    table: str,
    entity_id: uuid.UUID,
    event_id: Optional[uuid.UUID] = None,
) -> str:
    """Small JSON description of a change. Clients treat it as a hint to re-fetch."""
    payload = {"operation": operation, "table": table, "id": str(entity_id)}
    if event_id is not None:
        payload["event_id"] = str(event_id)
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    return json.dumps(payload)


async def announce_change(
    changelog: ChangeLog,
    cache: CacheCoordinator,
    channel: str,
    payload: str,
) -> Optional[int]:
    """Append to the change log, then invalidate local caches for the channel.

    Returns the change id, or None if the append failed.
    """
    change_id = None
    try:
        change_id = await changelog.append(channel, payload)
    except ChangeLogError:
        logger.warning("change.announce_failed", channel=channel)
    cache.invalidate(channel)
    return change_id
