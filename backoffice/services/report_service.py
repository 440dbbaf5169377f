"""
Reports service - revenue summary, per-project profitability and AI usage.

Figures are aggregated with one grouped query per ledger, never read from
cached project columns.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Any, Iterable, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from backoffice.core.config import settings
from backoffice.db.enums import ProjectStatus, ReportRange
from backoffice.db.models import (
    AiMessage,
    Client,
    ExtraExpense,
    Issue,
    ManualTask,
    Payment,
    Project,
    Quote,
)
from backoffice.services.profitability_service import summarize
from backoffice.utils.dates import as_utc, month_start, utcnow

TOP_CLIENTS_LIMIT = 5
RECENT_PROJECTS_LIMIT = 10

MONTHS_SHOWN = {
    ReportRange.YEAR: 12,
    ReportRange.QUARTER: 3,
    ReportRange.MONTH: 1,
    ReportRange.ALL: 1,
}


def range_start(time_range: ReportRange, now: datetime) -> datetime | None:
    """First instant covered by ``time_range`` (None for all time)."""
    now = as_utc(now)
    if time_range == ReportRange.MONTH:
        return month_start(now)
    if time_range == ReportRange.QUARTER:
        quarter_month = (now.month - 1) // 3 * 3 + 1
        return now.replace(month=quarter_month, day=1, hour=0, minute=0, second=0, microsecond=0)
    if time_range == ReportRange.YEAR:
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return None


def convert_display(amount: float) -> float | None:
    """Amount in the secondary display currency, or None when not configured."""
    if not settings.secondary_currency_enabled:
        return None
    return round(amount * settings.SECONDARY_CURRENCY_RATE, 2)


# =============================================================================
# Aggregation
# =============================================================================

def _sums_by_project(db: Session, column, project_column, *joins) -> dict:
    query = db.query(project_column, func.coalesce(func.sum(column), 0))
    for target, onclause in joins:
        query = query.join(target, onclause)
    return {project_id: float(total or 0) for project_id, total in query.group_by(project_column)}


def _ledger_totals(db: Session) -> dict[str, dict]:
    return {
        "income": _sums_by_project(db, Payment.amount, Payment.project_id),
        "ai": _sums_by_project(
            db,
            AiMessage.cost,
            Issue.project_id,
            (Issue, AiMessage.issue_id == Issue.id),
        ),
        "manual": _sums_by_project(db, ManualTask.cost, ManualTask.project_id),
        "extra": _sums_by_project(db, ExtraExpense.amount, ExtraExpense.project_id),
    }


def _projects(db: Session, start: datetime | None = None) -> list[Project]:
    query = db.query(Project).options(joinedload(Project.quote).joinedload(Quote.client))
    if start is not None:
        query = query.filter(Project.created_at >= start)
    return query.all()


def _project_figures(project: Project, totals: dict[str, dict]):
    return summarize(
        total_income=totals["income"].get(project.id, 0.0),
        ai_messages_cost=totals["ai"].get(project.id, 0.0),
        manual_tasks_cost=totals["manual"].get(project.id, 0.0),
        extra_expenses_cost=totals["extra"].get(project.id, 0.0),
    )


def _client_of(project: Project) -> Client | None:
    return project.quote.client if project.quote else None


# =============================================================================
# Reports
# =============================================================================

def build_summary_report(
    db: Session,
    time_range: ReportRange = ReportRange.ALL,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Dashboard report: summary, monthly revenue, top clients and recent projects."""
    now = as_utc(now or utcnow())
    start = range_start(time_range, now)
    projects = _projects(db, start)
    totals = _ledger_totals(db)
    figures = {project.id: _project_figures(project, totals) for project in projects}

    total_revenue = sum(f.total_income for f in figures.values())
    total_costs = sum(f.total_costs for f in figures.values())
    total_projects = len(projects)
    net_profit = total_revenue - total_costs

    summary = {
        "total_revenue": total_revenue,
        "total_projects": total_projects,
        "active_projects": sum(1 for p in projects if p.status == ProjectStatus.ACTIVE.value),
        "total_clients": len({p.quote.client_id for p in projects if p.quote}),
        "average_project_value": total_revenue / total_projects if total_projects else 0.0,
        "profit_margin": net_profit / total_revenue * 100 if total_revenue > 0 else 0.0,
        "currency": settings.DISPLAY_CURRENCY,
    }
    secondary = convert_display(total_revenue)
    if secondary is not None:
        summary["secondary_currency"] = settings.SECONDARY_CURRENCY
        summary["total_revenue_secondary"] = secondary

    monthly_revenue = []
    for months_back in range(MONTHS_SHOWN[time_range] - 1, -1, -1):
        month_begin = month_start(now, months_back)
        month_end = month_start(now, months_back - 1) if months_back > 0 else None
        in_month = [
            p
            for p in projects
            if as_utc(p.created_at) >= month_begin
            and (month_end is None or as_utc(p.created_at) < month_end)
        ]
        monthly_revenue.append(
            {
                "month": month_begin.strftime("%b %Y"),
                "revenue": sum(figures[p.id].total_income for p in in_month),
                "projects": len(in_month),
            }
        )

    clients: dict[Any, dict[str, Any]] = {}
    for project in projects:
        client = _client_of(project)
        if client is None:
            continue
        entry = clients.setdefault(
            client.id,
            {"id": client.id, "name": client.name, "total_revenue": 0.0, "project_count": 0},
        )
        entry["total_revenue"] += figures[project.id].total_income
        entry["project_count"] += 1
    top_clients = sorted(clients.values(), key=lambda c: c["total_revenue"], reverse=True)[
        :TOP_CLIENTS_LIMIT
    ]

    recent = sorted(projects, key=lambda p: as_utc(p.created_at), reverse=True)[
        :RECENT_PROJECTS_LIMIT
    ]
    recent_projects = [
        {
            "id": project.id,
            "name": project.name,
            "client": _client_of(project).name if _client_of(project) else None,
            "status": project.status,
            "revenue": figures[project.id].total_income,
            "profit": figures[project.id].net_profit,
            "start_date": project.start_date,
        }
        for project in recent
    ]

    return {
        "time_range": time_range.value,
        "summary": summary,
        "monthly_revenue": monthly_revenue,
        "top_clients": top_clients,
        "recent_projects": recent_projects,
    }


def profitability_report(db: Session) -> list[dict[str, Any]]:
    """One row per project with live profitability and its cost breakdown."""
    totals = _ledger_totals(db)
    rows = []
    for project in sorted(_projects(db), key=lambda p: as_utc(p.created_at)):
        figures = _project_figures(project, totals)
        client = _client_of(project)
        rows.append(
            {
                "project_id": project.id,
                "project_name": project.name,
                "client_name": client.name if client else None,
                "agreed_price": project.agreed_price,
                "total_income": figures.total_income,
                "total_costs": figures.total_costs,
                "net_profit": figures.net_profit,
                "profit_margin": figures.profit_margin,
                "ai_messages_cost": figures.breakdown.ai_messages_cost,
                "manual_tasks_cost": figures.breakdown.manual_tasks_cost,
                "extra_expenses_cost": figures.breakdown.extra_expenses_cost,
                "status": project.status,
                "start_date": project.start_date.date().isoformat(),
                "end_date": project.end_date.date().isoformat() if project.end_date else None,
            }
        )
    return rows


def ai_work_ratio_report(db: Session) -> list[dict[str, Any]]:
    """Share of AI versus manual spend per project."""
    totals = _ledger_totals(db)
    message_counts = _sums_by_project(
        db, AiMessage.amount, Issue.project_id, (Issue, AiMessage.issue_id == Issue.id)
    )
    task_counts = dict(
        db.query(ManualTask.project_id, func.count(ManualTask.id))
        .group_by(ManualTask.project_id)
        .all()
    )

    rows = []
    for project in sorted(_projects(db), key=lambda p: as_utc(p.created_at)):
        ai_cost = totals["ai"].get(project.id, 0.0)
        manual_cost = totals["manual"].get(project.id, 0.0)
        work_cost = ai_cost + manual_cost
        rows.append(
            {
                "project_id": project.id,
                "project_name": project.name,
                "total_ai_messages": int(message_counts.get(project.id, 0)),
                "ai_messages_cost": ai_cost,
                "manual_tasks_count": int(task_counts.get(project.id, 0)),
                "manual_tasks_cost": manual_cost,
                "ai_work_percentage": ai_cost / work_cost * 100 if work_cost > 0 else 0.0,
                "manual_work_percentage": manual_cost / work_cost * 100 if work_cost > 0 else 0.0,
            }
        )
    return rows


def monthly_ai_usage_report(db: Session) -> list[dict[str, Any]]:
    """AI messages and cost per calendar month, oldest first."""
    messages = (
        db.query(AiMessage.date, AiMessage.amount, AiMessage.cost, Issue.project_id)
        .join(Issue, AiMessage.issue_id == Issue.id)
        .order_by(AiMessage.date)
        .all()
    )

    months: dict[tuple[int, int], dict[str, Any]] = {}
    projects_per_month: dict[tuple[int, int], set] = {}
    for date, amount, cost, project_id in messages:
        date = as_utc(date)
        key = (date.year, date.month)
        entry = months.setdefault(
            key,
            {
                "month": date.strftime("%B"),
                "year": date.year,
                "total_messages": 0,
                "total_cost": 0.0,
                "projects_count": 0,
            },
        )
        entry["total_messages"] += amount
        entry["total_cost"] += cost
        projects_per_month.setdefault(key, set()).add(project_id)

    for key, entry in months.items():
        entry["projects_count"] = len(projects_per_month[key])
    return [months[key] for key in sorted(months)]


# =============================================================================
# CSV
# =============================================================================

CSV_DANGEROUS_PREFIXES = ("=", "+", "-", "@")


def _csv_safe(value: Any) -> Any:
    if isinstance(value, str) and value.startswith(CSV_DANGEROUS_PREFIXES):
        return f"'{value}"
    return value


def _serialize_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(_csv_safe(value))


def write_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_serialize_csv_value(value) for value in row])
    return output.getvalue()


def rows_to_csv(rows: list[dict[str, Any]]) -> str:
    """CSV with a header row taken from the first row's keys (empty string for no rows)."""
    if not rows:
        return ""
    headers = list(rows[0].keys())
    return write_csv(headers, ([row[h] for h in headers] for row in rows))
