"""Participant service — registration, status changes, cached reads.

Learn: Registration takes a row lock on the event (FOR UPDATE on
PostgreSQL; SQLite serializes writers anyway) before counting seats, so
two instances can't both admit the last participant. The unique
(event_id, email) constraint catches duplicate registrations.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.cache import CacheCoordinator, CacheName
from eventhub.db.models import Event, Participant, utcnow
from eventhub.errors import ConflictError, NotFoundError, ValidationFailed
from eventhub.events.changelog import ChangeLog
from eventhub.events.types import DELETE, INSERT, PARTICIPANT_CHANGES, UPDATE
from eventhub.schemas.participant import (
    ParticipantCreate,
    ParticipantRead,
    ParticipantStatusUpdate,
)
from eventhub.services.changes import announce_change, change_payload


class ParticipantService:
    """Business logic for participants."""

    def __init__(self, db: AsyncSession, cache: CacheCoordinator, changelog: ChangeLog):
        self.db = db
        self.cache = cache
        self.changelog = changelog

    # ─── Reads ──────────────────────────────────────────

    async def list_participants(self, event_id: uuid.UUID) -> list[ParticipantRead]:
        key = str(event_id)
        cached = self.cache.get(CacheName.PARTICIPANTS, key)
        if cached is not None:
            return list(cached)

        result = await self.db.execute(
            select(Participant)
            .where(Participant.event_id == event_id)
            .order_by(Participant.registered_at.asc())
        )
        participants = tuple(
            ParticipantRead.model_validate(p) for p in result.scalars().all()
        )
        self.cache.insert(CacheName.PARTICIPANTS, key, participants)
        return list(participants)

    async def get_participant(self, participant_id: uuid.UUID) -> ParticipantRead:
        key = str(participant_id)
        cached = self.cache.get(CacheName.PARTICIPANT, key)
        if cached is not None:
            return cached

        participant = await self.db.get(Participant, participant_id)
        if participant is None:
            raise NotFoundError("Participant not found")
        read = ParticipantRead.model_validate(participant)
        self.cache.insert(CacheName.PARTICIPANT, key, read)
        return read

    # ─── Writes ─────────────────────────────────────────

    async def register(self, body: ParticipantCreate) -> ParticipantRead:
        """Register someone for an event, respecting max_participants."""
        if not body.name.strip():
            raise ValidationFailed("name is required")
        if not body.email.strip():
            raise ValidationFailed("email is required")

        event = await self.db.get(Event, body.event_id, with_for_update=True)
        if event is None:
            await self.db.rollback()
            raise ValidationFailed("Event not found")

        if event.max_participants is not None:
            registered = await self.db.scalar(
                select(func.count()).select_from(Participant).where(
                    Participant.event_id == body.event_id
                )
            )
            if registered >= event.max_participants:
                await self.db.rollback()
                raise ConflictError("Event is full")

        participant = Participant(
            event_id=body.event_id,
            name=body.name,
            email=body.email,
            status="registered",
        )
        self.db.add(participant)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("Participant already registered") from e

        await self._announce(INSERT, participant)
        return ParticipantRead.model_validate(participant)

    async def update_status(
        self, participant_id: uuid.UUID, body: ParticipantStatusUpdate
    ) -> ParticipantRead:
        participant = await self.db.get(Participant, participant_id)
        if participant is None:
            raise NotFoundError("Participant not found")

        participant.status = body.status
        participant.updated_at = utcnow()
        await self.db.commit()

        await self._announce(UPDATE, participant)
        return ParticipantRead.model_validate(participant)

    async def delete_participant(self, participant_id: uuid.UUID) -> None:
        participant = await self.db.get(Participant, participant_id)
        if participant is None:
            raise NotFoundError("Participant not found")
        event_id = participant.event_id

        await self.db.delete(participant)
        await self.db.commit()

        payload = change_payload(DELETE, "participants", participant_id, event_id=event_id)
        await announce_change(self.changelog, self.cache, PARTICIPANT_CHANGES, payload)

    async def _announce(self, operation: str, participant: Participant) -> None:
        payload = change_payload(
            operation, "participants", participant.id, event_id=participant.event_id
        )
        await announce_change(self.changelog, self.cache, PARTICIPANT_CHANGES, payload)
