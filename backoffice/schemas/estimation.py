"""Pydantic schemas for estimation trees."""

from pydantic import BaseModel, Field

from backoffice.db.enums import IssueType


class IssueEstimationRead(BaseModel):
    external_id: int
    number: int
    title: str
    issue_type: IssueType
    estimated_messages: int | None
    fixed_price: float | None
    calculated_price: float

    model_config = {"from_attributes": True}


class MilestoneEstimationRead(BaseModel):
    external_id: int
    number: int | None
    title: str
    include_in_quote: bool
    calculated_price: float
    can_include: bool = False
    fully_estimated: bool = False
    issues: list[IssueEstimationRead]

    model_config = {"from_attributes": True}


class EstimationTreeRead(BaseModel):
    quote_id: str | None = None
    ai_message_rate: float
    included_total: float
    milestones: list[MilestoneEstimationRead]


class IssueEstimationUpdate(BaseModel):
    """Partial update of an issue's pricing inputs. None clears a field."""
    issue_type: IssueType | None = None
    estimated_messages: int | None = Field(None, gt=0)
    fixed_price: float | None = Field(None, ge=0)


class MilestoneInclusionUpdate(BaseModel):
    include_in_quote: bool


class RateUpdate(BaseModel):
    ai_message_rate: float = Field(..., ge=0)


class RepositoryUpdate(BaseModel):
    external_repository: str | None = Field(None, max_length=255)


# Stateless pricing of a client-held tree

class IssueDraftIn(BaseModel):
    external_id: int
    number: int
    title: str
    issue_type: IssueType = IssueType.UNCATEGORIZED
    estimated_messages: int | None = Field(None, gt=0)
    fixed_price: float | None = Field(None, ge=0)


class MilestoneDraftIn(BaseModel):
    external_id: int
    number: int | None = None
    title: str
    include_in_quote: bool = False
    issues: list[IssueDraftIn] = Field(default_factory=list)


class PriceTreeRequest(BaseModel):
    ai_message_rate: float = Field(..., ge=0)
    milestones: list[MilestoneDraftIn] = Field(default_factory=list)
