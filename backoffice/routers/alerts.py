"""Project alert endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db
from backoffice.db.models import Alert
from backoffice.schemas.alert import AlertGenerationResponse, AlertListResponse, AlertRead
from backoffice.services import alert_service
from backoffice.services.errors import NotFoundError

router = APIRouter()


def _alert_to_read(alert: Alert) -> AlertRead:
    return AlertRead(
        id=alert.id,
        project_id=alert.project_id,
        project_name=alert.project.name if alert.project else None,
        message=alert.message,
        date=alert.date,
        read=alert.read,
    )


@router.get("", response_model=AlertListResponse)
def list_unread_alerts(db: Session = Depends(get_db)):
    alerts = alert_service.list_unread_alerts(db)
    return AlertListResponse(items=[_alert_to_read(a) for a in alerts], count=len(alerts))


@router.post("/generate", response_model=AlertGenerationResponse)
def generate_alerts(db: Session = Depends(get_db)):
    """Run the alert rules over every active project."""
    created = alert_service.generate_alerts(db)
    return AlertGenerationResponse(
        created=len(created), items=[_alert_to_read(a) for a in created]
    )


@router.post("/read-all")
def mark_all_alerts_read(db: Session = Depends(get_db)):
    count = alert_service.mark_all_alerts_read(db)
    return {"updated": count}


@router.post("/{alert_id}/read", response_model=AlertRead)
def mark_alert_read(alert_id: UUID, db: Session = Depends(get_db)):
    try:
        alert = alert_service.mark_alert_read(db, alert_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found")
    return _alert_to_read(alert)
