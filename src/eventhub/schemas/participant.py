"""Pydantic schemas for participants."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ParticipantStatus = Literal["registered", "confirmed", "cancelled", "waitlisted"]


class ParticipantCreate(BaseModel):
    event_id: uuid.UUID
    name: str = Field(..., max_length=255)
    email: str = Field(..., max_length=255)


class ParticipantStatusUpdate(BaseModel):
    status: ParticipantStatus


class ParticipantRead(BaseModel):
    id: uuid.UUID
    event_id: uuid.UUID
    name: str
    email: str
    status: ParticipantStatus
    registered_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True, "frozen": True}
