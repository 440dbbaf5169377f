"""Quote endpoints: creation, status transitions, checklist and price suggestion."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db
from backoffice.db.enums import QuoteStatus
from backoffice.schemas.estimation import RepositoryUpdate
from backoffice.schemas.quote import (
    ChecklistItemRead,
    PriceSuggestion,
    QuoteChecklistRead,
    QuoteCreate,
    QuoteRead,
    QuoteStatusChange,
    QuoteUpdate,
)
from backoffice.services import estimation_service, quote_service
from backoffice.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationFailure,
)

router = APIRouter()


@router.post("", response_model=QuoteRead, status_code=201)
def create_quote(data: QuoteCreate, db: Session = Depends(get_db)):
    try:
        return quote_service.create_quote(db, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{quote_id}", response_model=QuoteRead)
def get_quote(quote_id: UUID, db: Session = Depends(get_db)):
    try:
        return quote_service.get_quote(db, quote_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")


@router.patch("/{quote_id}", response_model=QuoteRead)
def update_quote(quote_id: UUID, data: QuoteUpdate, db: Session = Depends(get_db)):
    try:
        return quote_service.update_quote(db, quote_id, data)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")


@router.put("/{quote_id}/repository", response_model=QuoteRead)
def set_repository(quote_id: UUID, data: RepositoryUpdate, db: Session = Depends(get_db)):
    """Point the quote at a repository. Changing or clearing it drops saved estimations."""
    try:
        return estimation_service.set_repository(db, quote_id, data.external_repository)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/{quote_id}/status", response_model=QuoteRead)
def change_status(quote_id: UUID, data: QuoteStatusChange, db: Session = Depends(get_db)):
    try:
        return quote_service.change_status(db, quote_id, data.status)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{quote_id}/checklist", response_model=QuoteChecklistRead)
def get_checklist(quote_id: UUID, db: Session = Depends(get_db)):
    """Readiness of the quote for the QUOTED status, clause by clause."""
    try:
        quote = quote_service.get_quote(db, quote_id)
        checklist = quote_service.get_checklist(db, quote_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")

    return QuoteChecklistRead(
        quote_id=quote.id,
        status=QuoteStatus(quote.status),
        quotable=checklist.quotable,
        progress_percentage=checklist.progress_percentage,
        items=[ChecklistItemRead.model_validate(item) for item in checklist.items],
    )


@router.get("/{quote_id}/price-suggestion", response_model=PriceSuggestion)
def get_price_suggestion(quote_id: UUID, db: Session = Depends(get_db)):
    try:
        return quote_service.suggest_prices(db, quote_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")
