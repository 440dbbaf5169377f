"""Estimation tree endpoints: reconcile, refresh from GitHub, and pricing edits."""

from uuid import UUID

import httpx
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db, get_tracker_client
from backoffice.schemas.estimation import (
    EstimationTreeRead,
    IssueEstimationRead,
    IssueEstimationUpdate,
    MilestoneEstimationRead,
    MilestoneInclusionUpdate,
    RateUpdate,
)
from backoffice.schemas.tracker import TrackerSnapshot
from backoffice.services import estimation_service, github_service
from backoffice.services.errors import (
    ExternalFetchFailure,
    InclusionNotAllowedError,
    NotFoundError,
    ValidationFailure,
)
from backoffice.services.estimation_tree import EstimationTree
from backoffice.services.inclusion_service import can_include, milestone_is_fully_estimated
from backoffice.services.pricing_service import included_total

router = APIRouter()


def tree_to_response(
    tree: EstimationTree,
    rate: float,
    quote_id: UUID | None = None,
) -> EstimationTreeRead:
    return EstimationTreeRead(
        quote_id=str(quote_id) if quote_id else None,
        ai_message_rate=rate,
        included_total=included_total(tree),
        milestones=[
            MilestoneEstimationRead(
                external_id=m.external_id,
                number=m.number,
                title=m.title,
                include_in_quote=m.include_in_quote,
                calculated_price=m.calculated_price,
                can_include=can_include(m),
                fully_estimated=milestone_is_fully_estimated(m),
                issues=[IssueEstimationRead.model_validate(issue) for issue in m.issues],
            )
            for m in tree.milestones
        ],
    )


def _response(db: Session, quote_id: UUID, tree: EstimationTree) -> EstimationTreeRead:
    quote = estimation_service.get_quote(db, quote_id)
    return tree_to_response(tree, quote.ai_message_rate, quote.id)


def tracker_http_error(e: ExternalFetchFailure) -> HTTPException:
    if isinstance(e, github_service.TrackerRateLimitedError):
        return HTTPException(status_code=429, detail=str(e))
    if isinstance(e, github_service.TrackerNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=502, detail=str(e))


@router.get("/{quote_id}/estimations", response_model=EstimationTreeRead)
def get_estimations(quote_id: UUID, db: Session = Depends(get_db)):
    try:
        tree = estimation_service.load_tree(db, quote_id)
        return _response(db, quote_id, tree)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")


@router.post("/{quote_id}/estimations/reconcile", response_model=EstimationTreeRead)
def reconcile_estimations(
    quote_id: UUID,
    snapshot: TrackerSnapshot,
    db: Session = Depends(get_db),
):
    """Merge a caller-supplied tracker snapshot into the saved estimations."""
    try:
        tree = estimation_service.reconcile_quote(db, quote_id, snapshot)
        return _response(db, quote_id, tree)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")


@router.post("/{quote_id}/estimations/refresh", response_model=EstimationTreeRead)
async def refresh_estimations(
    quote_id: UUID,
    state: str = "open",
    db: Session = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_tracker_client),
):
    """Fetch the quote's repository from GitHub and reconcile. Nothing is written on failure."""
    try:
        tree = await estimation_service.refresh_from_tracker(db, quote_id, client, state=state)
        return _response(db, quote_id, tree)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExternalFetchFailure as e:
        raise tracker_http_error(e)


@router.patch(
    "/{quote_id}/estimations/issues/{external_issue_id}",
    response_model=EstimationTreeRead,
)
def update_issue_estimation(
    quote_id: UUID,
    external_issue_id: int,
    data: IssueEstimationUpdate,
    db: Session = Depends(get_db),
):
    try:
        tree = estimation_service.update_issue_estimation(db, quote_id, external_issue_id, data)
        return _response(db, quote_id, tree)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.patch(
    "/{quote_id}/estimations/milestones/{external_milestone_id}",
    response_model=EstimationTreeRead,
)
def update_milestone_inclusion(
    quote_id: UUID,
    external_milestone_id: int,
    data: MilestoneInclusionUpdate,
    db: Session = Depends(get_db),
):
    try:
        tree = estimation_service.set_milestone_inclusion(
            db, quote_id, external_milestone_id, data.include_in_quote
        )
        return _response(db, quote_id, tree)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InclusionNotAllowedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/{quote_id}/estimations/rate", response_model=EstimationTreeRead)
def update_rate(quote_id: UUID, data: RateUpdate, db: Session = Depends(get_db)):
    try:
        tree = estimation_service.update_rate(db, quote_id, data.ai_message_rate)
        return _response(db, quote_id, tree)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Quote not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
