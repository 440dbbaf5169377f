"""GitHub REST client for repository milestones and issues.

Handles:
- Repository parsing ("owner/repo" or a github.com URL)
- Label-based issue categorization
- Link-header pagination
- Mapping of HTTP failures to tracker errors (rate limit / not found / unavailable)

Nothing is retried here; the caller decides whether to try again.
"""

import logging
import re
from typing import Any

import httpx

from backoffice.core.config import settings
from backoffice.core.structured_logging import build_log_context
from backoffice.db.enums import IssueType
from backoffice.schemas.tracker import TrackerIssue, TrackerMilestone, TrackerSnapshot
from backoffice.services.errors import ExternalFetchFailure, ValidationFailure

logger = logging.getLogger(__name__)

# HTTP client settings
HTTPX_TIMEOUT = httpx.Timeout(10.0, connect=5.0)
PER_PAGE = 100
MAX_PAGES = 20

_REPO_SLUG_RE = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$")
_REPO_URL_RE = re.compile(r"github\.com[/:]([^/\s]+)/([^/\s]+)")


class TrackerRateLimitedError(ExternalFetchFailure):
    """GitHub API rate limit exceeded."""

    pass


class TrackerNotFoundError(ExternalFetchFailure):
    """Repository or milestone not found (or not accessible with the token)."""

    retryable = False


class TrackerUnavailableError(ExternalFetchFailure):
    """GitHub unreachable, timed out, or answered with an unexpected status."""

    pass


def parse_repository(value: str | None) -> tuple[str, str]:
    """
    Split a repository reference into (owner, repo).

    Accepts "owner/repo" or any github.com URL (https or ssh, with or
    without a trailing ".git").
    """
    if not value or not value.strip():
        raise ValidationFailure("Repository is required (format: owner/repo)")
    value = value.strip()

    match = _REPO_SLUG_RE.match(value)
    if match:
        owner, repo = match.group(1), match.group(2)
    else:
        match = _REPO_URL_RE.search(value)
        if not match:
            raise ValidationFailure("Invalid repository format. Use: owner/repo")
        owner, repo = match.group(1), match.group(2)

    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        raise ValidationFailure("Invalid repository format. Use: owner/repo")
    return owner, repo


def normalize_repository(value: str) -> str:
    owner, repo = parse_repository(value)
    return f"{owner}/{repo}"


def build_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Create an AsyncClient configured for the GitHub API."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if settings.GITHUB_TOKEN:
        headers["Authorization"] = f"Bearer {settings.GITHUB_TOKEN}"
    return httpx.AsyncClient(
        base_url=settings.GITHUB_API_URL,
        headers=headers,
        timeout=HTTPX_TIMEOUT,
        transport=transport,
    )


def _label_names(raw_labels: list[Any] | None) -> list[str]:
    names: list[str] = []
    for label in raw_labels or []:
        name = label if isinstance(label, str) else (label or {}).get("name")
        if name:
            names.append(name)
    return names


def categorize_labels(labels: list[str]) -> IssueType:
    """Issue category from its labels. The message-metered label wins over the fixed one."""
    if settings.TRACKER_TYPE_A_LABEL in labels:
        return IssueType.AUGMENT
    if settings.TRACKER_TYPE_B_LABEL in labels:
        return IssueType.MANUAL
    return IssueType.UNCATEGORIZED


def _raise_for_status(response: httpx.Response, repository: str) -> None:
    if response.is_success:
        return

    status = response.status_code
    remaining = response.headers.get("x-ratelimit-remaining")
    if status == 429 or (status == 403 and remaining == "0"):
        raise TrackerRateLimitedError(
            "GitHub API rate limit exceeded. Please try again later."
        )
    if status == 404:
        raise TrackerNotFoundError(f"Repository {repository} not found or not accessible")
    raise TrackerUnavailableError(f"GitHub API {status}: {response.text[:200]}")


async def _get_paginated(
    client: httpx.AsyncClient,
    path: str,
    params: dict[str, Any],
    repository: str,
) -> list[dict]:
    """GET every page of a list endpoint by following ``Link: rel="next"``."""
    items: list[dict] = []
    url: str | None = path
    query: dict[str, Any] | None = {**params, "per_page": PER_PAGE}

    for _ in range(MAX_PAGES):
        if url is None:
            break
        try:
            response = await client.get(url, params=query)
        except httpx.TimeoutException as exc:
            logger.warning(
                "GitHub API timeout",
                extra=build_log_context(repository=repository),
            )
            raise TrackerUnavailableError("GitHub API timeout") from exc
        except httpx.RequestError as exc:
            logger.warning(
                "GitHub API connection failed",
                extra=build_log_context(repository=repository),
            )
            raise TrackerUnavailableError("GitHub API connection failed") from exc

        _raise_for_status(response, repository)
        items.extend(response.json())

        url = response.links.get("next", {}).get("url")
        # The next link already carries the query string
        query = None

    if url is not None:
        logger.warning(
            "GitHub pagination limit of %d pages exceeded",
            MAX_PAGES,
            extra=build_log_context(repository=repository),
        )
        raise TrackerUnavailableError("GitHub pagination limit exceeded")

    return items


async def list_milestones(
    client: httpx.AsyncClient,
    repository: str,
    state: str = "open",
) -> list[TrackerMilestone]:
    """List repository milestones (state: open, closed or all)."""
    owner, repo = parse_repository(repository)
    data = await _get_paginated(
        client,
        f"/repos/{owner}/{repo}/milestones",
        {"state": state},
        f"{owner}/{repo}",
    )
    return [
        TrackerMilestone(
            id=item["id"],
            number=item.get("number"),
            title=item.get("title") or "",
            state=item.get("state"),
            open_count=item.get("open_issues") or 0,
            closed_count=item.get("closed_issues") or 0,
        )
        for item in data
    ]


async def list_issues(
    client: httpx.AsyncClient,
    repository: str,
    milestone_number: int | None = None,
    state: str = "all",
) -> list[TrackerIssue]:
    """List repository issues, optionally for one milestone. Pull requests are dropped."""
    owner, repo = parse_repository(repository)
    params: dict[str, Any] = {"state": state}
    if milestone_number is not None:
        params["milestone"] = milestone_number

    data = await _get_paginated(
        client,
        f"/repos/{owner}/{repo}/issues",
        params,
        f"{owner}/{repo}",
    )
    return [
        TrackerIssue(
            id=item["id"],
            number=item["number"],
            title=item.get("title") or "",
            labels=_label_names(item.get("labels")),
            state=item.get("state"),
        )
        for item in data
        if not item.get("pull_request")
    ]


async def fetch_snapshot(
    client: httpx.AsyncClient,
    repository: str,
    state: str = "open",
) -> TrackerSnapshot:
    """
    Fetch milestones (filtered by ``state``) with all of their issues.

    Raises an ExternalFetchFailure subclass on any failure; a partial
    snapshot is never returned.
    """
    slug = normalize_repository(repository)
    milestones = await list_milestones(client, slug, state=state)
    for milestone in milestones:
        if milestone.number is None:
            continue
        milestone.issues = await list_issues(
            client, slug, milestone_number=milestone.number, state="all"
        )

    logger.info(
        "Fetched tracker snapshot: %d milestones",
        len(milestones),
        extra=build_log_context(repository=slug),
    )
    return TrackerSnapshot(repository=slug, milestones=milestones)
