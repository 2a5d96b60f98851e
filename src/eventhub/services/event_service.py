"""Event service — CRUD for events, with cached reads.

Learn: Service layer separates business logic from HTTP routing.
Reads check the per-process cache first and fill it on a miss; writes
commit, then announce the change so every instance drops its copies.
Cached values are frozen pydantic models, never ORM objects, so they
can't drag a closed session around.
"""

import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.cache import EVENTS_LIST_KEY, CacheCoordinator, CacheName
from eventhub.db.models import Event, Participant, utcnow
from eventhub.errors import NotFoundError, ValidationFailed
from eventhub.events.changelog import ChangeLog
from eventhub.events.types import (
    DELETE,
    EVENT_CHANGES,
    INSERT,
    PARTICIPANT_CHANGES,
    UPDATE,
)
from eventhub.schemas.event import EventCreate, EventRead
from eventhub.services.changes import announce_change, change_payload


def _validate(body: EventCreate) -> None:
    if body.end_time <= body.start_time:
        raise ValidationFailed("end_time must be after start_time")
    if body.max_participants is not None and body.max_participants <= 0:
        raise ValidationFailed("max_participants must be greater than 0")
    if not body.title.strip():
        raise ValidationFailed("title is required")


class EventService:
    """Business logic for events."""

    def __init__(self, db: AsyncSession, cache: CacheCoordinator, changelog: ChangeLog):
        self.db = db
        self.cache = cache
        self.changelog = changelog

    # ─── Reads ──────────────────────────────────────────

    async def list_events(self) -> list[EventRead]:
        cached = self.cache.get(CacheName.EVENTS_LIST, EVENTS_LIST_KEY)
        if cached is not None:
            return list(cached)

        result = await self.db.execute(select(Event).order_by(Event.start_time.desc()))
        events = tuple(EventRead.model_validate(e) for e in result.scalars().all())
        self.cache.insert(CacheName.EVENTS_LIST, EVENTS_LIST_KEY, events)
        return list(events)

    async def get_event(self, event_id: uuid.UUID) -> EventRead:
        key = str(event_id)
        cached = self.cache.get(CacheName.EVENT, key)
        if cached is not None:
            return cached

        event = await self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        read = EventRead.model_validate(event)
        self.cache.insert(CacheName.EVENT, key, read)
        return read

    # ─── Writes ─────────────────────────────────────────

    async def create_event(self, body: EventCreate) -> EventRead:
        _validate(body)
        event = Event(**body.model_dump())
        self.db.add(event)
        await self._commit()

        await self._announce(EVENT_CHANGES, "events", INSERT, event.id)
        return EventRead.model_validate(event)

    async def update_event(self, event_id: uuid.UUID, body: EventCreate) -> EventRead:
        _validate(body)
        event = await self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")

        for field, value in body.model_dump().items():
            setattr(event, field, value)
        event.updated_at = utcnow()
        await self._commit()

        await self._announce(EVENT_CHANGES, "events", UPDATE, event.id)
        return EventRead.model_validate(event)

    async def delete_event(self, event_id: uuid.UUID) -> None:
        """Delete an event. Its participants go with it (ON DELETE CASCADE)."""
        registered = await self.db.scalar(
            select(func.count()).select_from(Participant).where(
                Participant.event_id == event_id
            )
        )
        result = await self.db.execute(delete(Event).where(Event.id == event_id))
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundError("Event not found")
        await self.db.commit()

        await self._announce(EVENT_CHANGES, "events", DELETE, event_id)
        if registered:
            await self._announce(
                PARTICIPANT_CHANGES, "participants", DELETE, event_id, event_id=event_id
            )

    # ─── Helpers ────────────────────────────────────────

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationFailed("Invalid event values") from e

    async def _announce(self, channel, table, operation, entity_id, event_id=None) -> None:
        payload = change_payload(operation, table, entity_id, event_id=event_id)
        await announce_change(self.changelog, self.cache, channel, payload)
