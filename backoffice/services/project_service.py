"""
Project service - provisioning from quotes, lifecycle and ledger writes.

Ledger rows (payments, AI messages, manual tasks, extra expenses) are
append-only; profitability is never cached on the project except for the
snapshot taken on completion.
"""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from backoffice.core.structured_logging import build_log_context
from backoffice.db.enums import IssueStatus, IssueType, ProjectStatus, QuoteStatus
from backoffice.db.models import (
    AiMessage,
    ExtraExpense,
    Issue,
    ManualTask,
    Payment,
    Project,
    ProjectMilestone,
)
from backoffice.schemas.project import (
    AiMessageCreate,
    ExtraExpenseCreate,
    ExtraIssueCreate,
    ManualTaskCreate,
    PaymentCreate,
    ProjectCreate,
)
from backoffice.services import alert_service, profitability_service, quote_service
from backoffice.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


def get_project(db: Session, project_id: UUID) -> Project:
    return profitability_service.get_project(db, project_id)


def list_projects(db: Session, status: ProjectStatus | None = None) -> list[Project]:
    query = db.query(Project)
    if status:
        query = query.filter(Project.status == status.value)
    return query.order_by(Project.created_at.desc()).all()


def create_project_from_quote(db: Session, data: ProjectCreate) -> Project:
    """
    Provision a project from an ACCEPTED quote.

    Included milestones become project milestones and their issues become
    project issues carrying the estimate (messages and price). Omitted
    project fields default to the quote's values.
    """
    quote = quote_service.get_quote(db, data.quote_id)
    if quote.status != QuoteStatus.ACCEPTED.value:
        raise InvalidTransitionError("Only accepted quotes can be converted to projects")
    if quote_service.has_project(db, quote.id):
        raise InvalidTransitionError("A project already exists for this quote")

    project = Project(
        quote_id=quote.id,
        name=data.name or quote.name,
        description=data.description if data.description is not None else quote.description,
        start_date=data.start_date,
        end_date=data.end_date or quote.end_date_estimated,
        agreed_price=(
            data.agreed_price if data.agreed_price is not None else quote.price_estimated or 0
        ),
        minimum_cost=(
            data.minimum_cost if data.minimum_cost is not None else quote.minimum_price or 0
        ),
        ai_message_rate=(
            data.ai_message_rate if data.ai_message_rate is not None else quote.ai_message_rate
        ),
        status=ProjectStatus.ACTIVE.value,
    )
    db.add(project)

    for estimation in quote.milestone_estimations:
        if not estimation.include_in_quote:
            continue
        milestone = ProjectMilestone(
            title=estimation.title,
            external_milestone_id=estimation.external_milestone_id,
            is_extra=False,
        )
        project.milestones.append(milestone)
        for issue_est in estimation.issues:
            issue = Issue(
                external_issue_id=issue_est.external_issue_id,
                number=issue_est.issue_number,
                title=issue_est.title,
                issue_type=issue_est.issue_type,
                status=IssueStatus.OPEN.value,
                ai_message_estimate=issue_est.estimated_messages or 0,
                cost_estimated=issue_est.calculated_price,
                is_extra=False,
            )
            milestone.issues.append(issue)
            project.issues.append(issue)

    db.commit()
    db.refresh(project)

    logger.info(
        "Project created from quote with %d milestones, %d issues",
        len(project.milestones),
        len(project.issues),
        extra=build_log_context(quote_id=quote.id, project_id=project.id),
    )
    return project


def change_status(db: Session, project_id: UUID, new_status: ProjectStatus) -> Project:
    """
    Complete or cancel an ACTIVE project.

    Completion freezes the profitability snapshot on the project. Completed
    and canceled projects are final.
    """
    project = get_project(db, project_id)
    current = ProjectStatus(project.status)
    if current == new_status:
        return project
    if current != ProjectStatus.ACTIVE:
        raise InvalidTransitionError(
            f"Project is {current.value} and can no longer change status"
        )

    if new_status == ProjectStatus.COMPLETED:
        profitability_service.snapshot_profitability(db, project)
    project.status = new_status.value
    db.commit()
    db.refresh(project)

    logger.info(
        "Project status changed %s -> %s",
        current.value,
        new_status.value,
        extra=build_log_context(project_id=project_id),
    )
    return project


def _require_active(project: Project, action: str) -> None:
    if project.status != ProjectStatus.ACTIVE.value:
        raise InvalidTransitionError(f"Cannot {action} on a {project.status} project")


# =============================================================================
# Ledger writes
# =============================================================================

def add_payment(db: Session, project_id: UUID, data: PaymentCreate) -> Payment:
    """Record income. The total paid may never exceed the agreed price."""
    project = get_project(db, project_id)
    _require_active(project, "add payments")
    if data.amount <= 0:
        raise ValidationFailure("Payment amount must be greater than 0")

    paid = profitability_service.total_paid(db, project_id)
    remaining = project.agreed_price - paid
    if data.amount > remaining + 1e-9:
        raise ValidationFailure(
            f"Payment exceeds the agreed price. Remaining amount: {max(remaining, 0):.2f}"
        )

    payment = Payment(
        project_id=project_id,
        amount=data.amount,
        method=data.method.value,
        description=data.description,
        date=data.date,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def add_ai_message(db: Session, project_id: UUID, data: AiMessageCreate) -> AiMessage:
    """
    Log AI usage on an issue and refresh the issue's real message count and cost.

    Without an explicit cost the project's AI message rate prices the batch.
    """
    project = get_project(db, project_id)
    _require_active(project, "log AI messages")
    issue = (
        db.query(Issue)
        .filter(Issue.id == data.issue_id, Issue.project_id == project_id)
        .first()
    )
    if not issue:
        raise NotFoundError("Issue not found in this project")

    cost = data.cost if data.cost is not None else data.amount * project.ai_message_rate
    message = AiMessage(issue_id=issue.id, amount=data.amount, cost=cost)
    if data.date is not None:
        message.date = data.date
    db.add(message)
    db.flush()

    amount_sum, cost_sum = (
        db.query(
            func.coalesce(func.sum(AiMessage.amount), 0),
            func.coalesce(func.sum(AiMessage.cost), 0),
        )
        .filter(AiMessage.issue_id == issue.id)
        .one()
    )
    issue.ai_message_real = int(amount_sum or 0)
    issue.cost_real = float(cost_sum or 0)

    usage_message = alert_service.issue_usage_message(
        issue.title, issue.ai_message_estimate, issue.ai_message_real
    )
    if usage_message:
        alert_service.create_alert_if_new(db, project_id, usage_message)

    db.commit()
    db.refresh(message)
    return message


def add_manual_task(db: Session, project_id: UUID, data: ManualTaskCreate) -> ManualTask:
    project = get_project(db, project_id)
    _require_active(project, "add manual tasks")
    task = ManualTask(project_id=project_id, title=data.title, hours=data.hours, cost=data.cost)
    if data.date is not None:
        task.date = data.date
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def add_extra_expense(db: Session, project_id: UUID, data: ExtraExpenseCreate) -> ExtraExpense:
    project = get_project(db, project_id)
    _require_active(project, "add expenses")
    expense = ExtraExpense(
        project_id=project_id, description=data.description, amount=data.amount
    )
    if data.date is not None:
        expense.date = data.date
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def add_extra_issue(db: Session, project_id: UUID, data: ExtraIssueCreate) -> Issue:
    """Work added after acceptance. Flagged ``is_extra`` so it stays apart from quoted scope."""
    project = get_project(db, project_id)
    _require_active(project, "add issues")

    if data.milestone_id is not None:
        milestone = (
            db.query(ProjectMilestone)
            .filter(
                ProjectMilestone.id == data.milestone_id,
                ProjectMilestone.project_id == project_id,
            )
            .first()
        )
        if not milestone:
            raise NotFoundError("Milestone not found in this project")

    cost_estimated = data.cost_estimated
    if data.issue_type == IssueType.AUGMENT and not cost_estimated:
        cost_estimated = data.ai_message_estimate * project.ai_message_rate

    issue = Issue(
        project_id=project_id,
        milestone_id=data.milestone_id,
        title=data.title,
        issue_type=data.issue_type.value,
        status=IssueStatus.OPEN.value,
        ai_message_estimate=data.ai_message_estimate,
        cost_estimated=cost_estimated,
        is_extra=True,
    )
    db.add(issue)
    db.commit()
    db.refresh(issue)
    return issue


def list_issues(db: Session, project_id: UUID) -> list[Issue]:
    get_project(db, project_id)
    return (
        db.query(Issue)
        .filter(Issue.project_id == project_id)
        .order_by(Issue.number.is_(None), Issue.number, Issue.created_at)
        .all()
    )


def list_payments(db: Session, project_id: UUID) -> list[Payment]:
    get_project(db, project_id)
    return (
        db.query(Payment)
        .filter(Payment.project_id == project_id)
        .order_by(Payment.date.desc())
        .all()
    )
