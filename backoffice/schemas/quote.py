"""Pydantic schemas for quotes."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backoffice.db.enums import QuoteStatus


class QuoteCreate(BaseModel):
    """Request to create a quote (always starts in DRAFT)."""
    client_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    price_estimated: float | None = Field(None, ge=0)
    minimum_price: float | None = Field(None, ge=0)
    requirements: list[str] = Field(default_factory=list)
    start_date_estimated: datetime | None = None
    end_date_estimated: datetime | None = None
    external_repository: str | None = Field(None, max_length=255)
    ai_message_rate: float | None = Field(None, ge=0)
    ai_messages_used_for_requirements: int = Field(0, ge=0)
    profit_margin_percentage: float | None = Field(None, ge=0, le=100)


class QuoteUpdate(BaseModel):
    """Request to update a quote (partial)."""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    price_estimated: float | None = Field(None, ge=0)
    minimum_price: float | None = Field(None, ge=0)
    requirements: list[str] | None = None
    start_date_estimated: datetime | None = None
    end_date_estimated: datetime | None = None
    ai_messages_used_for_requirements: int | None = Field(None, ge=0)
    profit_margin_percentage: float | None = Field(None, ge=0, le=100)

    @field_validator("name", "ai_messages_used_for_requirements", "profit_margin_percentage")
    @classmethod
    def reject_null(cls, v):
        """These columns always hold a value; omit the field to leave it unchanged."""
        if v is None:
            raise ValueError("cannot be null")
        return v


class QuoteRead(BaseModel):
    id: UUID
    client_id: UUID | None
    name: str
    description: str | None
    price_estimated: float | None
    minimum_price: float | None
    status: QuoteStatus
    requirements: list[str]
    start_date_estimated: datetime | None
    end_date_estimated: datetime | None
    external_repository: str | None
    ai_message_rate: float
    ai_messages_used_for_requirements: int
    profit_margin_percentage: float
    recommended_price: float
    created_at: datetime

    model_config = {"from_attributes": True}


class QuoteStatusChange(BaseModel):
    status: QuoteStatus


class ChecklistItemRead(BaseModel):
    id: str
    label: str
    completed: bool
    required: bool
    description: str

    model_config = {"from_attributes": True}


class QuoteChecklistRead(BaseModel):
    quote_id: UUID
    status: QuoteStatus
    quotable: bool
    progress_percentage: float
    items: list[ChecklistItemRead]


class PriceSuggestion(BaseModel):
    """Minimum and recommended prices derived from the included milestones."""
    base_milestone_price: float
    requirements_ai_cost: float
    minimum_price: float
    profit_margin_percentage: float
    recommended_price: float
