"""Participant API routes."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.deps import get_cache, get_changelog
from eventhub.cache import CacheCoordinator
from eventhub.db.engine import get_db
from eventhub.errors import ConflictError, NotFoundError, ValidationFailed
from eventhub.events.changelog import ChangeLog
from eventhub.schemas.participant import (
    ParticipantCreate,
    ParticipantRead,
    ParticipantStatusUpdate,
)
from eventhub.services.participant_service import ParticipantService

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache),
    changelog: ChangeLog = Depends(get_changelog),
) -> ParticipantService:
    return ParticipantService(db, cache, changelog)


@router.get("/events/{event_id}/participants", response_model=list[ParticipantRead])
async def list_participants(event_id: uuid.UUID, svc: ParticipantService = Depends(_svc)):
    return await svc.list_participants(event_id)


@router.post("/participants", response_model=ParticipantRead, status_code=201)
async def create_participant(
    body: ParticipantCreate, svc: ParticipantService = Depends(_svc)
):
    """Register for an event. 409 if the event is full or the email is taken."""
    try:
        return await svc.register(body)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/participants/{participant_id}", response_model=ParticipantRead)
async def get_participant(
    participant_id: uuid.UUID, svc: ParticipantService = Depends(_svc)
):
    try:
        return await svc.get_participant(participant_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/participants/{participant_id}", response_model=ParticipantRead)
async def update_participant_status(
    participant_id: uuid.UUID,
    body: ParticipantStatusUpdate,
    svc: ParticipantService = Depends(_svc),
):
    try:
        return await svc.update_status(participant_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/participants/{participant_id}", status_code=204)
async def delete_participant(
    participant_id: uuid.UUID, svc: ParticipantService = Depends(_svc)
):
    try:
        await svc.delete_participant(participant_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
