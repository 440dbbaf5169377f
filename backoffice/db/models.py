"""SQLAlchemy ORM models for clients, quotes, estimations and project ledgers."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.config import settings
from backoffice.db.base import Base
from backoffice.db.enums import IssueStatus, IssueType, ProjectStatus, QuoteStatus


# =============================================================================
# Clients & Quotes
# =============================================================================

class Client(Base):
    """A customer of the freelance business."""

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    quotes: Mapped[list["Quote"]] = relationship(back_populates="client")


class Quote(Base):
    """
    A priced proposal for a client.

    Owns the persisted estimation tree (milestone + issue estimations).
    At most one project may be created per quote, and only once ACCEPTED.
    """

    __tablename__ = "quotes"
    __table_args__ = (
        Index("idx_quotes_client", "client_id"),
        Index("idx_quotes_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_estimated: Mapped[float | None] = mapped_column(Float, nullable=True)
    minimum_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=QuoteStatus.DRAFT.value, nullable=False
    )
    requirements: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    start_date_estimated: Mapped[datetime | None] = mapped_column(nullable=True)
    end_date_estimated: Mapped[datetime | None] = mapped_column(nullable=True)

    # GitHub repository ("owner/repo") backing the estimation tree
    external_repository: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ai_message_rate: Mapped[float] = mapped_column(
        Float, default=lambda: settings.DEFAULT_AI_MESSAGE_RATE, nullable=False
    )
    ai_messages_used_for_requirements: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    profit_margin_percentage: Mapped[float] = mapped_column(
        Float, default=lambda: settings.DEFAULT_PROFIT_MARGIN, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    client: Mapped["Client | None"] = relationship(back_populates="quotes")
    milestone_estimations: Mapped[list["MilestoneEstimation"]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="MilestoneEstimation.position",
    )
    project: Mapped["Project | None"] = relationship(back_populates="quote", uselist=False)

    @property
    def recommended_price(self) -> float:
        """Minimum price plus the configured profit margin."""
        from backoffice.services.pricing_service import recommended_price

        return recommended_price(self.minimum_price or 0, self.profit_margin_percentage)


class MilestoneEstimation(Base):
    """Persisted pricing record for a tracker milestone."""

    __tablename__ = "milestone_estimations"
    __table_args__ = (
        UniqueConstraint(
            "quote_id", "external_milestone_id", name="uq_milestone_estimation_quote_ext"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False
    )
    external_milestone_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    milestone_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    calculated_price: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    include_in_quote: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    quote: Mapped["Quote"] = relationship(back_populates="milestone_estimations")
    issues: Mapped[list["IssueEstimation"]] = relationship(
        back_populates="milestone",
        cascade="all, delete-orphan",
        order_by="IssueEstimation.position",
    )


class IssueEstimation(Base):
    """Persisted pricing record for a tracker issue inside a milestone."""

    __tablename__ = "issue_estimations"
    __table_args__ = (
        Index("idx_issue_estimations_milestone", "milestone_estimation_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    milestone_estimation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("milestone_estimations.id", ondelete="CASCADE"), nullable=False
    )
    external_issue_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    issue_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    issue_type: Mapped[str] = mapped_column(
        String(20), default=IssueType.UNCATEGORIZED.value, nullable=False
    )
    estimated_messages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fixed_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    calculated_price: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    milestone: Mapped["MilestoneEstimation"] = relationship(back_populates="issues")


# =============================================================================
# Projects & Ledgers
# =============================================================================

class Project(Base):
    """
    Work provisioned from an ACCEPTED quote.

    The ``total_*`` / ``net_profit`` / ``profit_margin`` columns are only
    written when the project is completed. Live figures always come from
    profitability_service.
    """

    __tablename__ = "projects"
    __table_args__ = (
        Index("idx_projects_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quotes.id", ondelete="RESTRICT"), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(nullable=True)
    agreed_price: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    minimum_cost: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    ai_message_rate: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ProjectStatus.ACTIVE.value, nullable=False
    )

    # Profitability snapshot (frozen on completion)
    total_income: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_costs: Mapped[float | None] = mapped_column(Float, nullable=True)
    net_profit: Mapped[float | None] = mapped_column(Float, nullable=True)
    profit_margin: Mapped[float | None] = mapped_column(Float, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    quote: Mapped["Quote"] = relationship(back_populates="project")
    milestones: Mapped[list["ProjectMilestone"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    issues: Mapped[list["Issue"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    payments: Mapped[list["Payment"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    manual_tasks: Mapped[list["ManualTask"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    extra_expenses: Mapped[list["ExtraExpense"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    alerts: Mapped[list["Alert"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )


class ProjectMilestone(Base):
    """Milestone carried over from the quote (or added later as extra work)."""

    __tablename__ = "project_milestones"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    external_milestone_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_extra: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    project: Mapped["Project"] = relationship(back_populates="milestones")
    issues: Mapped[list["Issue"]] = relationship(back_populates="milestone")


class Issue(Base):
    """Execution-time work item. Shares tracker ids with IssueEstimation."""

    __tablename__ = "issues"
    __table_args__ = (
        Index("idx_issues_project", "project_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    milestone_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("project_milestones.id", ondelete="SET NULL"), nullable=True
    )
    external_issue_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    issue_type: Mapped[str] = mapped_column(
        String(20), default=IssueType.UNCATEGORIZED.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=IssueStatus.OPEN.value, nullable=False
    )
    ai_message_estimate: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ai_message_real: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_estimated: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    cost_real: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    is_extra: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    project: Mapped["Project"] = relationship(back_populates="issues")
    milestone: Mapped["ProjectMilestone | None"] = relationship(back_populates="issues")
    ai_messages: Mapped[list["AiMessage"]] = relationship(
        back_populates="issue", cascade="all, delete-orphan"
    )


class AiMessage(Base):
    """Append-only AI usage log entry."""

    __tablename__ = "ai_messages"
    __table_args__ = (
        Index("idx_ai_messages_issue", "issue_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    issue_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    cost: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    issue: Mapped["Issue"] = relationship(back_populates="ai_messages")


class Payment(Base):
    """Income line item."""

    __tablename__ = "payments"
    __table_args__ = (
        Index("idx_payments_project", "project_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(nullable=False)

    project: Mapped["Project"] = relationship(back_populates="payments")


class ManualTask(Base):
    """Cost line item for work done by hand."""

    __tablename__ = "manual_tasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    cost: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    project: Mapped["Project"] = relationship(back_populates="manual_tasks")


class ExtraExpense(Base):
    """Cost line item outside AI usage and manual work (hosting, licences...)."""

    __tablename__ = "extra_expenses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    project: Mapped["Project"] = relationship(back_populates="extra_expenses")


class Alert(Base):
    """
    Project alert produced by the alert generator.

    Deduplicated on (project_id, message) among unread rows.
    """

    __tablename__ = "alerts"
    __table_args__ = (
        Index("idx_alerts_project_unread", "project_id", "read"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    project: Mapped["Project"] = relationship(back_populates="alerts")
