"""Pydantic schemas for events.

Learn: Pydantic v2 models validate request/response data. Separate
"Create" schemas (input) from "Read" schemas (output) for clean APIs.
Business rules (non-blank title, end after start) live in the service so
they come back as 400s, matching the rest of the API.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    location: Optional[str] = Field(default=None, max_length=255)
    max_participants: Optional[int] = None


class EventRead(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str]
    start_time: datetime
    end_time: datetime
    location: Optional[str]
    max_participants: Optional[int]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True, "frozen": True}
