"""Pydantic schemas for clients."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    company: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    notes: str | None = None


class ClientRead(BaseModel):
    id: UUID
    name: str
    email: str | None
    company: str | None
    phone: str | None
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
