"""GitHub passthrough: milestones and issues of a repository."""

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from backoffice.core.deps import get_tracker_client
from backoffice.routers.estimations import tracker_http_error
from backoffice.schemas.tracker import TrackerIssueRead, TrackerMilestone
from backoffice.services import github_service
from backoffice.services.errors import ExternalFetchFailure, ValidationFailure

router = APIRouter()


@router.get("/milestones", response_model=list[TrackerMilestone])
async def list_milestones(
    repository: str = Query(..., description="owner/repo or a github.com URL"),
    state: str = Query("open", pattern="^(open|closed|all)$"),
    client: httpx.AsyncClient = Depends(get_tracker_client),
):
    try:
        return await github_service.list_milestones(client, repository, state=state)
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExternalFetchFailure as e:
        raise tracker_http_error(e)


@router.get("/issues", response_model=list[TrackerIssueRead])
async def list_issues(
    repository: str = Query(..., description="owner/repo or a github.com URL"),
    milestone: int | None = Query(None, description="Milestone number"),
    state: str = Query("all", pattern="^(open|closed|all)$"),
    client: httpx.AsyncClient = Depends(get_tracker_client),
):
    try:
        issues = await github_service.list_issues(
            client, repository, milestone_number=milestone, state=state
        )
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExternalFetchFailure as e:
        raise tracker_http_error(e)

    return [
        TrackerIssueRead(
            **issue.model_dump(), issue_type=github_service.categorize_labels(issue.labels)
        )
        for issue in issues
    ]
