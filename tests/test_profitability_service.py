"""Tests for live profitability, progress and AI usage statistics."""

import pytest

from backoffice.db.enums import PaymentMethod
from backoffice.schemas.project import (
    AiMessageCreate,
    ExtraExpenseCreate,
    ManualTaskCreate,
    PaymentCreate,
)
from backoffice.services import profitability_service, project_service
from backoffice.services.profitability_service import summarize

from factories import NOW, make_project


def test_summarize_margin_is_share_of_income():
    figures = summarize(
        total_income=1000, ai_messages_cost=120, manual_tasks_cost=300, extra_expenses_cost=80
    )

    assert figures.total_costs == pytest.approx(500)
    assert figures.net_profit == pytest.approx(500)
    assert figures.profit_margin == pytest.approx(50)


def test_summarize_without_income_has_zero_margin():
    figures = summarize(
        total_income=0, ai_messages_cost=10, manual_tasks_cost=0, extra_expenses_cost=0
    )

    assert figures.net_profit == pytest.approx(-10)
    assert figures.profit_margin == 0.0


def test_summarize_costs_add_up_across_ledgers():
    figures = summarize(
        total_income=5000, ai_messages_cost=400, manual_tasks_cost=800, extra_expenses_cost=150
    )

    assert figures.total_costs == pytest.approx(1350)
    assert figures.net_profit == pytest.approx(3650)
    assert figures.profit_margin == pytest.approx(73.0)


def test_profitability_is_computed_from_ledgers(db, quote):
    project = make_project(db, quote, agreed_price=2000, issue_estimates=(500, 200))
    first, second = project.issues
    project_service.add_payment(
        db,
        project.id,
        PaymentCreate(amount=1500, method=PaymentMethod.WISE, date=NOW),
    )
    project_service.add_ai_message(
        db, project.id, AiMessageCreate(issue_id=first.id, amount=300, cost=30)
    )
    project_service.add_ai_message(
        db, project.id, AiMessageCreate(issue_id=second.id, amount=100, cost=15)
    )
    project_service.add_manual_task(db, project.id, ManualTaskCreate(title="QA", cost=255))
    project_service.add_extra_expense(
        db, project.id, ExtraExpenseCreate(description="Domain", amount=0)
    )

    figures = profitability_service.compute_profitability(db, project.id)

    assert figures.total_income == pytest.approx(1500)
    assert figures.breakdown.ai_messages_cost == pytest.approx(45)
    assert figures.breakdown.manual_tasks_cost == pytest.approx(255)
    assert figures.breakdown.extra_expenses_cost == pytest.approx(0)
    assert figures.total_costs == pytest.approx(300)
    assert figures.net_profit == pytest.approx(1200)
    assert figures.profit_margin == pytest.approx(80)


def test_profitability_of_empty_project(db, quote):
    project = make_project(db, quote)

    figures = profitability_service.compute_profitability(db, project.id)

    assert figures.total_income == 0
    assert figures.total_costs == 0
    assert figures.profit_margin == 0


def test_progress_reports_payments_and_ai_usage(db, quote):
    project = make_project(db, quote, agreed_price=1000, issue_estimates=(100, 100))
    project_service.add_payment(
        db,
        project.id,
        PaymentCreate(amount=250, method=PaymentMethod.CASH, date=NOW),
    )
    project_service.add_ai_message(
        db, project.id, AiMessageCreate(issue_id=project.issues[0].id, amount=50, cost=5)
    )

    progress = profitability_service.project_progress(db, project.id)

    assert progress.payment_progress == pytest.approx(25)
    assert progress.total_paid == pytest.approx(250)
    assert progress.estimated_ai_messages == 200
    assert progress.total_ai_messages == 50
    assert progress.ai_message_progress == pytest.approx(25)


def test_progress_with_zero_agreed_price(db, quote):
    project = make_project(db, quote, agreed_price=0)

    progress = profitability_service.project_progress(db, project.id)

    assert progress.payment_progress == 0.0
    assert progress.ai_message_progress == 0.0


def test_ai_usage_statistics_report_variance(db, quote):
    project = make_project(db, quote, issue_estimates=(100,))
    issue = project.issues[0]
    project_service.add_ai_message(
        db, project.id, AiMessageCreate(issue_id=issue.id, amount=120, cost=12)
    )

    stats = profitability_service.ai_usage_statistics(db, project.id)

    row = stats["issues"][0]
    assert row["estimated"] == {"messages": 100, "cost": pytest.approx(10)}
    assert row["actual"] == {"messages": 120, "cost": pytest.approx(12)}
    assert row["variance_messages"] == 20
    assert row["variance_percentage"] == pytest.approx(20)
    assert row["milestone_title"] == "Milestone 1"
    assert stats["actual"]["messages"] == 120
