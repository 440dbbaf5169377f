"""Pydantic schemas for projects and their ledgers."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.db.enums import IssueStatus, IssueType, PaymentMethod, ProjectStatus


class ProjectCreate(BaseModel):
    """Provision a project from an ACCEPTED quote. Omitted values come from the quote."""
    quote_id: UUID
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    start_date: datetime
    end_date: datetime | None = None
    agreed_price: float | None = Field(None, ge=0)
    minimum_cost: float | None = Field(None, ge=0)
    ai_message_rate: float | None = Field(None, ge=0)


class ProjectStatusChange(BaseModel):
    status: ProjectStatus


class ProjectRead(BaseModel):
    id: UUID
    quote_id: UUID
    name: str
    description: str | None
    start_date: datetime
    end_date: datetime | None
    agreed_price: float
    minimum_cost: float
    ai_message_rate: float
    status: ProjectStatus
    total_income: float | None
    total_costs: float | None
    net_profit: float | None
    profit_margin: float | None
    completed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class IssueRead(BaseModel):
    id: UUID
    milestone_id: UUID | None
    external_issue_id: int | None
    number: int | None
    title: str
    issue_type: IssueType
    status: IssueStatus
    ai_message_estimate: int
    ai_message_real: int
    cost_estimated: float
    cost_real: float
    is_extra: bool

    model_config = {"from_attributes": True}


class ExtraIssueCreate(BaseModel):
    """Work added after the quote was accepted."""
    title: str = Field(..., min_length=1, max_length=500)
    issue_type: IssueType = IssueType.AUGMENT
    ai_message_estimate: int = Field(0, ge=0)
    cost_estimated: float = Field(0, ge=0)
    milestone_id: UUID | None = None


class PaymentCreate(BaseModel):
    amount: float = Field(..., gt=0)
    method: PaymentMethod
    description: str | None = Field(None, max_length=2000)
    date: datetime


class PaymentRead(BaseModel):
    id: UUID
    project_id: UUID
    amount: float
    method: PaymentMethod
    description: str | None
    date: datetime

    model_config = {"from_attributes": True}


class AiMessageCreate(BaseModel):
    issue_id: UUID
    amount: int = Field(..., ge=1)
    cost: float | None = Field(None, ge=0)
    date: datetime | None = None


class AiMessageRead(BaseModel):
    id: UUID
    issue_id: UUID
    amount: int
    cost: float
    date: datetime

    model_config = {"from_attributes": True}


class ManualTaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    hours: float | None = Field(None, ge=0)
    cost: float = Field(..., ge=0)
    date: datetime | None = None


class ManualTaskRead(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    hours: float | None
    cost: float
    date: datetime

    model_config = {"from_attributes": True}


class ExtraExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    amount: float = Field(..., ge=0)
    date: datetime | None = None


class ExtraExpenseRead(BaseModel):
    id: UUID
    project_id: UUID
    description: str
    amount: float
    date: datetime

    model_config = {"from_attributes": True}


class CostBreakdown(BaseModel):
    ai_messages_cost: float
    manual_tasks_cost: float
    extra_expenses_cost: float

    model_config = {"from_attributes": True}


class ProfitabilityRead(BaseModel):
    total_income: float
    total_costs: float
    net_profit: float
    profit_margin: float
    breakdown: CostBreakdown

    model_config = {"from_attributes": True}


class ProjectProgressRead(BaseModel):
    payment_progress: float
    ai_message_progress: float
    total_paid: float
    total_ai_messages: int
    estimated_ai_messages: int

    model_config = {"from_attributes": True}


class UsageFigures(BaseModel):
    messages: int
    cost: float


class IssueUsageRead(BaseModel):
    issue_id: UUID
    issue_title: str
    issue_number: int | None
    issue_type: IssueType
    milestone_title: str | None
    estimated: UsageFigures
    actual: UsageFigures
    variance_messages: int
    variance_cost: float
    variance_percentage: float


class AiUsageRead(BaseModel):
    project_id: UUID
    project_name: str
    ai_message_rate: float
    issues: list[IssueUsageRead]
    estimated: UsageFigures
    actual: UsageFigures
