"""Change log — durable, strictly ordered record of mutations.

Learn: This is how instances talk to each other without a broker.
A mutation handler commits its entity write, then appends a row here.
Every instance's poller tails the table by id and reacts locally.

    instance A: UPDATE events ... COMMIT → append("event_changes", ...)
    instance B: poller → changes_since(watermark) → invalidate + broadcast

Ids come from the database (AUTOINCREMENT / sequence), so ordering is the
database's, not any one process's. Rows are never updated; prune() drops
rows older than the retention window. A poller that lags longer than the
retention window silently misses whatever was pruned.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventhub.db.models import ChangeNotification
from eventhub.errors import ChangeLogError

logger = structlog.get_logger()

DEFAULT_RETENTION = timedelta(hours=1)


@dataclass(frozen=True)
class ChangeRecord:
    """One committed change, detached from any session."""

    id: int
    channel: str
    payload: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: ChangeNotification) -> "ChangeRecord":
        return cls(
            id=row.id,
            channel=row.channel,
            payload=row.payload,
            created_at=row.created_at,
        )


class ChangeLog:
    """Append-only change log backed by the change_notifications table.

    Each call opens its own short-lived session, so the log can be shared
    by request handlers and the poller without sharing a transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, channel: str, payload: str) -> int:
        """Durably store a change and return its id.

        Raises ChangeLogError on storage failure. The entity write that
        prompted the append has already committed and stays committed.
        """
        try:
            async with self._session_factory() as db:
                row = ChangeNotification(channel=channel, payload=payload)
                db.add(row)
                await db.commit()
                return row.id
        except SQLAlchemyError as e:
            logger.error("changelog.append_failed", channel=channel, error=str(e))
            raise ChangeLogError(f"append to {channel!r} failed") from e

    async def changes_since(
        self, last_id: int, limit: int | None = None
    ) -> list[ChangeRecord]:
        """All records with id > last_id, ascending."""
        query = (
            select(ChangeNotification)
            .where(ChangeNotification.id > last_id)
            .order_by(ChangeNotification.id)
        )
        if limit is not None:
            query = query.limit(limit)
        try:
            async with self._session_factory() as db:
                result = await db.execute(query)
                return [ChangeRecord.from_row(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            raise ChangeLogError(f"reading changes after {last_id} failed") from e

    async def max_id(self) -> int:
        """Highest id currently in the log, 0 when empty."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(func.max(ChangeNotification.id)))
                return result.scalar_one_or_none() or 0
        except SQLAlchemyError as e:
            raise ChangeLogError("reading max change id failed") from e

    async def prune(
        self, older_than: timedelta = DEFAULT_RETENTION, now: datetime | None = None
    ) -> int:
        """Delete records created before now - older_than. Returns rows deleted."""
        cutoff = (now or datetime.now(timezone.utc)) - older_than
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    delete(ChangeNotification).where(
                        ChangeNotification.created_at < cutoff
                    )
                )
                await db.commit()
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise ChangeLogError("pruning change log failed") from e
