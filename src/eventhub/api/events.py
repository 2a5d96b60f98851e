"""Event API routes.

Learn: FastAPI routers define HTTP endpoints. Each route function
receives dependencies via Depends() and delegates to the service layer.
Routes handle HTTP concerns (status codes, error responses), services
handle business logic and change announcements.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.deps import get_cache, get_changelog
from eventhub.cache import CacheCoordinator
from eventhub.db.engine import get_db
from eventhub.errors import NotFoundError, ValidationFailed
from eventhub.events.changelog import ChangeLog
from eventhub.schemas.event import EventCreate, EventRead
from eventhub.services.event_service import EventService

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache),
    changelog: ChangeLog = Depends(get_changelog),
) -> EventService:
    return EventService(db, cache, changelog)


@router.get("/events", response_model=list[EventRead])
async def list_events(svc: EventService = Depends(_svc)):
    return await svc.list_events()


@router.post("/events", response_model=EventRead, status_code=201)
async def create_event(body: EventCreate, svc: EventService = Depends(_svc)):
    try:
        return await svc.create_event(body)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/events/{event_id}", response_model=EventRead)
async def get_event(event_id: uuid.UUID, svc: EventService = Depends(_svc)):
    try:
        return await svc.get_event(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/events/{event_id}", response_model=EventRead)
async def update_event(
    event_id: uuid.UUID,
    body: EventCreate,
    svc: EventService = Depends(_svc),
):
    try:
        return await svc.update_event(event_id, body)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/events/{event_id}", status_code=204)
async def delete_event(event_id: uuid.UUID, svc: EventService = Depends(_svc)):
    """Delete an event and, via cascade, its participants."""
    try:
        await svc.delete_event(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
