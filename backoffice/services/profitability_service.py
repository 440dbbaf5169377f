"""
Profitability service - live income/cost figures for a project.

All figures are computed from the ledgers on every call. The only stored
copy is the snapshot written on completion.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from backoffice.db.enums import IssueType
from backoffice.db.models import (
    AiMessage,
    ExtraExpense,
    Issue,
    ManualTask,
    Payment,
    Project,
)
from backoffice.services.errors import NotFoundError
from backoffice.utils.dates import utcnow


@dataclass(frozen=True)
class CostBreakdown:
    ai_messages_cost: float
    manual_tasks_cost: float
    extra_expenses_cost: float

    @property
    def total(self) -> float:
        return self.ai_messages_cost + self.manual_tasks_cost + self.extra_expenses_cost


@dataclass(frozen=True)
class Profitability:
    total_income: float
    total_costs: float
    net_profit: float
    profit_margin: float
    breakdown: CostBreakdown


def summarize(
    total_income: float,
    ai_messages_cost: float,
    manual_tasks_cost: float,
    extra_expenses_cost: float,
) -> Profitability:
    """Profit arithmetic. Margin is a percentage of income, 0 when there is no income."""
    breakdown = CostBreakdown(
        ai_messages_cost=ai_messages_cost,
        manual_tasks_cost=manual_tasks_cost,
        extra_expenses_cost=extra_expenses_cost,
    )
    total_costs = breakdown.total
    net_profit = total_income - total_costs
    profit_margin = (net_profit / total_income) * 100 if total_income > 0 else 0.0
    return Profitability(
        total_income=total_income,
        total_costs=total_costs,
        net_profit=net_profit,
        profit_margin=profit_margin,
        breakdown=breakdown,
    )


def get_project(db: Session, project_id: UUID) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    return project


def _sum(db: Session, column, *criteria) -> float:
    return float(db.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar() or 0)


def total_paid(db: Session, project_id: UUID) -> float:
    return _sum(db, Payment.amount, Payment.project_id == project_id)


def compute_profitability(db: Session, project_id: UUID) -> Profitability:
    """Current income, costs and margin of a project, from the ledgers."""
    get_project(db, project_id)

    ai_cost = float(
        db.query(func.coalesce(func.sum(AiMessage.cost), 0))
        .join(Issue, AiMessage.issue_id == Issue.id)
        .filter(Issue.project_id == project_id)
        .scalar()
        or 0
    )
    return summarize(
        total_income=total_paid(db, project_id),
        ai_messages_cost=ai_cost,
        manual_tasks_cost=_sum(db, ManualTask.cost, ManualTask.project_id == project_id),
        extra_expenses_cost=_sum(
            db, ExtraExpense.amount, ExtraExpense.project_id == project_id
        ),
    )


def snapshot_profitability(db: Session, project: Project) -> Profitability:
    """
    Copy the live figures onto the project row.

    Does not commit; the caller commits together with the status change.
    """
    figures = compute_profitability(db, project.id)
    project.total_income = figures.total_income
    project.total_costs = figures.total_costs
    project.net_profit = figures.net_profit
    project.profit_margin = figures.profit_margin
    project.completed_at = utcnow()
    return figures


# =============================================================================
# Progress & AI usage
# =============================================================================

@dataclass(frozen=True)
class ProjectProgress:
    payment_progress: float
    ai_message_progress: float
    total_paid: float
    total_ai_messages: int
    estimated_ai_messages: int


def project_progress(db: Session, project_id: UUID) -> ProjectProgress:
    """Share of the agreed price paid (capped at 100) and of the AI estimate used."""
    project = get_project(db, project_id)
    paid = total_paid(db, project_id)

    estimated, real = (
        db.query(
            func.coalesce(func.sum(Issue.ai_message_estimate), 0),
            func.coalesce(func.sum(Issue.ai_message_real), 0),
        )
        .filter(Issue.project_id == project_id)
        .one()
    )
    estimated, real = int(estimated or 0), int(real or 0)

    payment_progress = (
        min(100.0, paid / project.agreed_price * 100) if project.agreed_price > 0 else 0.0
    )
    ai_progress = real / estimated * 100 if estimated > 0 else 0.0
    return ProjectProgress(
        payment_progress=payment_progress,
        ai_message_progress=ai_progress,
        total_paid=paid,
        total_ai_messages=real,
        estimated_ai_messages=estimated,
    )


def ai_usage_statistics(db: Session, project_id: UUID) -> dict:
    """Per-issue estimated vs actual AI usage with variance, plus project totals."""
    project = get_project(db, project_id)
    rate = project.ai_message_rate

    issues = (
        db.query(Issue)
        .filter(Issue.project_id == project_id)
        .order_by(Issue.number.is_(None), Issue.number, Issue.created_at)
        .all()
    )

    rows = []
    total_est_messages = total_real_messages = 0
    total_est_cost = total_real_cost = 0.0
    for issue in issues:
        estimated_cost = issue.ai_message_estimate * rate
        variance_messages = issue.ai_message_real - issue.ai_message_estimate
        variance_percentage = (
            variance_messages / issue.ai_message_estimate * 100
            if issue.ai_message_estimate > 0
            else 0.0
        )
        rows.append(
            {
                "issue_id": issue.id,
                "issue_title": issue.title,
                "issue_number": issue.number,
                "issue_type": IssueType(issue.issue_type),
                "milestone_title": issue.milestone.title if issue.milestone else None,
                "estimated": {"messages": issue.ai_message_estimate, "cost": estimated_cost},
                "actual": {"messages": issue.ai_message_real, "cost": issue.cost_real},
                "variance_messages": variance_messages,
                "variance_cost": issue.cost_real - estimated_cost,
                "variance_percentage": variance_percentage,
            }
        )
        total_est_messages += issue.ai_message_estimate
        total_real_messages += issue.ai_message_real
        total_est_cost += estimated_cost
        total_real_cost += issue.cost_real

    return {
        "project_id": project.id,
        "project_name": project.name,
        "ai_message_rate": rate,
        "issues": rows,
        "estimated": {"messages": total_est_messages, "cost": total_est_cost},
        "actual": {"messages": total_real_messages, "cost": total_real_cost},
    }
