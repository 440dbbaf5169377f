"""Pydantic schemas for project alerts."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class AlertRead(BaseModel):
    id: UUID
    project_id: UUID
    project_name: str | None = None
    message: str
    date: datetime
    read: bool

    model_config = {"from_attributes": True}


class AlertListResponse(BaseModel):
    items: list[AlertRead]
    count: int


class AlertGenerationResponse(BaseModel):
    created: int
    items: list[AlertRead]
