"""Project endpoints: provisioning, lifecycle, ledgers and profitability."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db
from backoffice.db.enums import ProjectStatus
from backoffice.schemas.project import (
    AiMessageCreate,
    AiMessageRead,
    AiUsageRead,
    ExtraExpenseCreate,
    ExtraExpenseRead,
    ExtraIssueCreate,
    IssueRead,
    ManualTaskCreate,
    ManualTaskRead,
    PaymentCreate,
    PaymentRead,
    ProfitabilityRead,
    ProjectCreate,
    ProjectProgressRead,
    ProjectRead,
    ProjectStatusChange,
)
from backoffice.services import profitability_service, project_service
from backoffice.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationFailure,
)

router = APIRouter()


@router.get("", response_model=list[ProjectRead])
def list_projects(status: ProjectStatus | None = None, db: Session = Depends(get_db)):
    return project_service.list_projects(db, status)


@router.post("", response_model=ProjectRead, status_code=201)
def create_project(data: ProjectCreate, db: Session = Depends(get_db)):
    """Provision a project from an ACCEPTED quote, carrying over included milestones."""
    try:
        return project_service.create_project_from_quote(db, data)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(project_id: UUID, db: Session = Depends(get_db)):
    try:
        return project_service.get_project(db, project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


@router.post("/{project_id}/status", response_model=ProjectRead)
def change_status(project_id: UUID, data: ProjectStatusChange, db: Session = Depends(get_db)):
    try:
        return project_service.change_status(db, project_id, data.status)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{project_id}/profitability", response_model=ProfitabilityRead)
def get_profitability(project_id: UUID, db: Session = Depends(get_db)):
    try:
        figures = profitability_service.compute_profitability(db, project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProfitabilityRead.model_validate(figures)


@router.get("/{project_id}/progress", response_model=ProjectProgressRead)
def get_progress(project_id: UUID, db: Session = Depends(get_db)):
    try:
        progress = profitability_service.project_progress(db, project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectProgressRead.model_validate(progress)


@router.get("/{project_id}/ai-usage", response_model=AiUsageRead)
def get_ai_usage(project_id: UUID, db: Session = Depends(get_db)):
    try:
        return profitability_service.ai_usage_statistics(db, project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


# =============================================================================
# Issues
# =============================================================================


@router.get("/{project_id}/issues", response_model=list[IssueRead])
def list_issues(project_id: UUID, db: Session = Depends(get_db)):
    try:
        return project_service.list_issues(db, project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


@router.post("/{project_id}/issues", response_model=IssueRead, status_code=201)
def add_extra_issue(project_id: UUID, data: ExtraIssueCreate, db: Session = Depends(get_db)):
    try:
        return project_service.add_extra_issue(db, project_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


# =============================================================================
# Ledgers
# =============================================================================


@router.get("/{project_id}/payments", response_model=list[PaymentRead])
def list_payments(project_id: UUID, db: Session = Depends(get_db)):
    try:
        return project_service.list_payments(db, project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


@router.post("/{project_id}/payments", response_model=PaymentRead, status_code=201)
def add_payment(project_id: UUID, data: PaymentCreate, db: Session = Depends(get_db)):
    try:
        return project_service.add_payment(db, project_id, data)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/{project_id}/ai-messages", response_model=AiMessageRead, status_code=201)
def add_ai_message(project_id: UUID, data: AiMessageCreate, db: Session = Depends(get_db)):
    try:
        return project_service.add_ai_message(db, project_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{project_id}/manual-tasks", response_model=ManualTaskRead, status_code=201)
def add_manual_task(project_id: UUID, data: ManualTaskCreate, db: Session = Depends(get_db)):
    try:
        return project_service.add_manual_task(db, project_id, data)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post(
    "/{project_id}/extra-expenses", response_model=ExtraExpenseRead, status_code=201
)
def add_extra_expense(
    project_id: UUID, data: ExtraExpenseCreate, db: Session = Depends(get_db)
):
    try:
        return project_service.add_extra_expense(db, project_id, data)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
