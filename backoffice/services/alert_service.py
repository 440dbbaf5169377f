"""
Project alerts service.

Rules are evaluated on every ACTIVE project; each rule renders a message
string and the message itself is the dedupe key: a message is only
inserted when no unread alert with the same text exists for the project.
Reading an alert frees the slot for the next occurrence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from backoffice.core.config import settings
from backoffice.core.structured_logging import build_log_context
from backoffice.db.enums import ProjectStatus
from backoffice.db.models import AiMessage, Alert, Issue, Payment, Project
from backoffice.services.errors import NotFoundError
from backoffice.utils.dates import as_utc, utcnow, whole_days_between

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectFacts:
    """Ledger-derived inputs of the alert rules for one project."""

    name: str
    created_at: datetime
    end_date: datetime | None
    payment_count: int
    ai_messages_estimated: int
    ai_messages_real: int


def evaluate_project(
    facts: ProjectFacts,
    now: datetime,
    no_payment_days: int | None = None,
    high_usage_percent: float | None = None,
) -> list[str]:
    """Messages of every rule that currently fires for the project."""
    if no_payment_days is None:
        no_payment_days = settings.ALERT_NO_PAYMENT_DAYS
    if high_usage_percent is None:
        high_usage_percent = settings.ALERT_HIGH_USAGE_PERCENT

    messages: list[str] = []

    days_since_creation = whole_days_between(facts.created_at, now)
    if days_since_creation >= no_payment_days and facts.payment_count == 0:
        messages.append(
            f'No payment received for project "{facts.name}" after {days_since_creation} days'
        )

    estimated = facts.ai_messages_estimated
    real = facts.ai_messages_real
    if estimated > 0 and real > estimated:
        messages.append(
            f"AI messages exceeded estimate by {real - estimated} messages "
            f'for project "{facts.name}" ({real}/{estimated})'
        )

    if facts.end_date is not None and as_utc(now) > as_utc(facts.end_date):
        days_overdue = whole_days_between(facts.end_date, now)
        messages.append(f'Project "{facts.name}" is {days_overdue} days overdue')

    if estimated > 0:
        usage = real / estimated * 100
        if high_usage_percent <= usage < 100:
            messages.append(f'AI message usage at {usage:.1f}% for project "{facts.name}"')

    return messages


def issue_usage_message(
    title: str,
    estimate: int,
    total: int,
    high_usage_percent: float | None = None,
) -> str | None:
    """Alert text after AI usage is logged on one issue, or None below the threshold."""
    if estimate <= 0:
        return None
    if high_usage_percent is None:
        high_usage_percent = settings.ALERT_HIGH_USAGE_PERCENT

    if total > estimate:
        return f'AI message usage exceeded estimate for issue "{title}" ({total}/{estimate})'
    usage = total / estimate * 100
    if usage >= high_usage_percent:
        return f'AI message usage at {usage:.0f}% for issue "{title}"'
    return None


def _project_facts(db: Session, project: Project) -> ProjectFacts:
    payment_count = (
        db.query(func.count(Payment.id)).filter(Payment.project_id == project.id).scalar()
    )
    estimated = (
        db.query(func.coalesce(func.sum(Issue.ai_message_estimate), 0))
        .filter(Issue.project_id == project.id)
        .scalar()
    )
    real = (
        db.query(func.coalesce(func.sum(AiMessage.amount), 0))
        .join(Issue, AiMessage.issue_id == Issue.id)
        .filter(Issue.project_id == project.id)
        .scalar()
    )
    return ProjectFacts(
        name=project.name,
        created_at=project.created_at,
        end_date=project.end_date,
        payment_count=int(payment_count or 0),
        ai_messages_estimated=int(estimated or 0),
        ai_messages_real=int(real or 0),
    )


def _has_unread(db: Session, project_id: UUID, message: str) -> bool:
    return (
        db.query(Alert.id)
        .filter(
            Alert.project_id == project_id,
            Alert.message == message,
            Alert.read.is_(False),
        )
        .first()
        is not None
    )


def create_alert_if_new(db: Session, project_id: UUID, message: str) -> Alert | None:
    """Add an unread alert unless an identical unread one exists. Does not commit."""
    if _has_unread(db, project_id, message):
        return None
    alert = Alert(project_id=project_id, message=message, read=False)
    db.add(alert)
    db.flush()
    return alert


def generate_alerts(db: Session, now: datetime | None = None) -> list[Alert]:
    """
    Evaluate every ACTIVE project and insert the new alerts.

    Returns the alerts created by this pass; a repeated pass with no
    ledger change returns an empty list.
    """
    now = now or utcnow()
    created: list[Alert] = []

    projects = (
        db.query(Project).filter(Project.status == ProjectStatus.ACTIVE.value).all()
    )
    for project in projects:
        for message in evaluate_project(_project_facts(db, project), now):
            alert = create_alert_if_new(db, project.id, message)
            if alert is not None:
                created.append(alert)
                logger.info(
                    "Alert created: %s",
                    message,
                    extra=build_log_context(project_id=project.id),
                )

    db.commit()
    for alert in created:
        db.refresh(alert)

    logger.info("Alert pass done: %d projects, %d new alerts", len(projects), len(created))
    return created


def list_unread_alerts(db: Session) -> list[Alert]:
    """Unread alerts, newest first, with their project loaded."""
    return (
        db.query(Alert)
        .options(joinedload(Alert.project))
        .filter(Alert.read.is_(False))
        .order_by(Alert.date.desc())
        .all()
    )


def mark_alert_read(db: Session, alert_id: UUID) -> Alert:
    alert = db.query(Alert).filter(Alert.id == alert_id).first()
    if not alert:
        raise NotFoundError("Alert not found")
    alert.read = True
    db.commit()
    db.refresh(alert)
    return alert


def mark_all_alerts_read(db: Session) -> int:
    """Mark every unread alert as read. Returns how many were updated."""
    count = (
        db.query(Alert)
        .filter(Alert.read.is_(False))
        .update({Alert.read: True}, synchronize_session=False)
    )
    db.commit()
    return count
