"""Business reports: revenue summary, profitability and AI usage."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db
from backoffice.db.enums import ReportRange
from backoffice.services import report_service

router = APIRouter()


@router.get("/summary")
def get_summary(time_range: ReportRange = ReportRange.ALL, db: Session = Depends(get_db)):
    return report_service.build_summary_report(db, time_range)


@router.get("/profitability")
def get_profitability_report(db: Session = Depends(get_db)):
    return report_service.profitability_report(db)


@router.get("/profitability.csv")
def export_profitability_csv(db: Session = Depends(get_db)) -> Response:
    """Export per-project profitability (CSV)."""
    filename = (
        f"profitability_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}.csv"
    )
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    content = report_service.rows_to_csv(report_service.profitability_report(db))
    return Response(content=content, media_type="text/csv", headers=headers)


@router.get("/ai-work-ratio")
def get_ai_work_ratio(db: Session = Depends(get_db)):
    return report_service.ai_work_ratio_report(db)


@router.get("/ai-usage/monthly")
def get_monthly_ai_usage(db: Session = Depends(get_db)):
    return report_service.monthly_ai_usage_report(db)
