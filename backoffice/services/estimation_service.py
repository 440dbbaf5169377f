"""
Estimation service - reconciles tracker snapshots with a quote's saved estimations.

The tracker is the source of truth for which milestones and issues exist
and for their titles/numbers. The saved tree is the source of truth for
pricing decisions (issue type, message estimate, fixed price, inclusion).

Merging and editing are pure functions over ``EstimationTree``; the result
is written back with ``save_tree``, which replaces all of the quote's
estimation rows in one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.structured_logging import build_log_context
from backoffice.db.enums import IssueType
from backoffice.db.models import IssueEstimation, MilestoneEstimation, Quote
from backoffice.schemas.estimation import IssueEstimationUpdate
from backoffice.schemas.tracker import TrackerIssue, TrackerSnapshot
from backoffice.services import github_service
from backoffice.services.errors import (
    ExternalFetchFailure,
    InclusionNotAllowedError,
    NotFoundError,
    ValidationFailure,
)
from backoffice.services.estimation_tree import EstimationTree, IssueDraft, MilestoneDraft
from backoffice.services.inclusion_service import can_include, enforce_inclusion
from backoffice.services.pricing_service import price_tree

logger = logging.getLogger(__name__)


# =============================================================================
# Pure merge
# =============================================================================

def _merge_issue(
    previous: IssueDraft | None,
    fresh: TrackerIssue,
    labels_override_category: bool,
) -> IssueDraft:
    label_type = github_service.categorize_labels(fresh.labels)
    if previous is None:
        return IssueDraft(
            external_id=fresh.id,
            number=fresh.number,
            title=fresh.title,
            issue_type=label_type,
        )

    issue_type = previous.issue_type
    if labels_override_category and label_type.is_categorized:
        issue_type = label_type
    return replace(previous, number=fresh.number, title=fresh.title, issue_type=issue_type)


def reconcile(
    persisted: EstimationTree,
    snapshot: TrackerSnapshot,
    rate: float,
    *,
    labels_override_category: bool | None = None,
) -> EstimationTree:
    """
    Merge a fresh tracker snapshot into a saved estimation tree.

    - Milestones and issues are matched by tracker id
    - Known issues keep type, message estimate and fixed price; title and
      number come from the snapshot
    - Known milestones keep ``include_in_quote``; new ones are included
      when they qualify
    - Anything missing from the snapshot is dropped
    - Prices are recomputed and inclusion re-validated afterwards

    Idempotent: merging the result again with the same snapshot returns an
    equal tree.
    """
    if labels_override_category is None:
        labels_override_category = settings.TRACKER_LABELS_OVERRIDE_CATEGORY

    known_milestones = {m.external_id: m for m in persisted.milestones}
    known_issues = {
        issue.external_id: issue
        for milestone in persisted.milestones
        for issue in milestone.issues
    }

    seen_milestones: set[int] = set()
    seen_issues: set[int] = set()
    milestones: list[MilestoneDraft] = []

    for fresh in snapshot.milestones:
        if fresh.id in seen_milestones:
            continue
        seen_milestones.add(fresh.id)

        issues: list[IssueDraft] = []
        for fresh_issue in fresh.issues:
            if fresh_issue.id in seen_issues:
                continue
            seen_issues.add(fresh_issue.id)
            issues.append(
                _merge_issue(
                    known_issues.get(fresh_issue.id), fresh_issue, labels_override_category
                )
            )

        draft = MilestoneDraft(
            external_id=fresh.id,
            number=fresh.number,
            title=fresh.title,
            issues=tuple(issues),
        )
        previous = known_milestones.get(fresh.id)
        if previous is not None:
            draft = replace(draft, include_in_quote=previous.include_in_quote)
        else:
            draft = replace(draft, include_in_quote=can_include(draft))
        milestones.append(draft)

    merged = EstimationTree(milestones=tuple(milestones))
    return enforce_inclusion(price_tree(merged, rate))


# =============================================================================
# Pure edits
# =============================================================================

def update_issue(
    tree: EstimationTree,
    external_issue_id: int,
    data: IssueEstimationUpdate,
    rate: float,
) -> EstimationTree:
    """
    Apply a pricing edit to one issue and return the re-priced tree.

    Only explicitly provided fields change; None clears a value. If the
    edit leaves an included milestone without categorized issues, the
    milestone is excluded in the same step.
    """
    found = tree.find_issue(external_issue_id)
    if found is None:
        raise NotFoundError(f"Issue {external_issue_id} is not part of this estimation")
    milestone, issue = found

    changes = data.model_dump(exclude_unset=True)
    messages = changes.get("estimated_messages")
    if messages is not None and messages <= 0:
        raise ValidationFailure("estimated_messages must be greater than 0")
    fixed_price = changes.get("fixed_price")
    if fixed_price is not None and fixed_price < 0:
        raise ValidationFailure("fixed_price cannot be negative")
    if "issue_type" in changes:
        if changes["issue_type"] is None:
            changes["issue_type"] = IssueType.UNCATEGORIZED
        else:
            changes["issue_type"] = IssueType(changes["issue_type"])

    updated_issue = replace(issue, **changes)
    updated_milestone = milestone.with_issues(
        tuple(updated_issue if i.external_id == external_issue_id else i for i in milestone.issues)
    )
    return enforce_inclusion(price_tree(tree.replace_milestone(updated_milestone), rate))


def set_inclusion(
    tree: EstimationTree,
    external_milestone_id: int,
    include: bool,
) -> EstimationTree:
    """Include or exclude a milestone. Including a milestone that fails ``can_include`` is rejected."""
    milestone = tree.milestone(external_milestone_id)
    if milestone is None:
        raise NotFoundError(
            f"Milestone {external_milestone_id} is not part of this estimation"
        )
    if include and not can_include(milestone):
        raise InclusionNotAllowedError(
            "Milestone needs at least one categorized issue to be included in the quote"
        )
    return tree.replace_milestone(replace(milestone, include_in_quote=include))


# =============================================================================
# Persistence
# =============================================================================

def get_quote(db: Session, quote_id: UUID) -> Quote:
    quote = db.query(Quote).filter(Quote.id == quote_id).first()
    if not quote:
        raise NotFoundError("Quote not found")
    return quote


def tree_from_rows(rows: list[MilestoneEstimation]) -> EstimationTree:
    """Build an EstimationTree from saved rows (already ordered by position)."""
    return EstimationTree(
        milestones=tuple(
            MilestoneDraft(
                external_id=row.external_milestone_id,
                number=row.milestone_number,
                title=row.title,
                include_in_quote=row.include_in_quote,
                calculated_price=row.calculated_price,
                issues=tuple(
                    IssueDraft(
                        external_id=issue.external_issue_id,
                        number=issue.issue_number,
                        title=issue.title,
                        issue_type=IssueType(issue.issue_type),
                        estimated_messages=issue.estimated_messages,
                        fixed_price=issue.fixed_price,
                        calculated_price=issue.calculated_price,
                    )
                    for issue in sorted(row.issues, key=lambda i: i.position)
                ),
            )
            for row in sorted(rows, key=lambda r: r.position)
        )
    )


def load_tree(db: Session, quote_id: UUID) -> EstimationTree:
    """Saved estimation tree of a quote (empty when never reconciled)."""
    quote = get_quote(db, quote_id)
    return tree_from_rows(list(quote.milestone_estimations))


def save_tree(db: Session, quote: Quote, tree: EstimationTree) -> EstimationTree:
    """
    Replace all estimation rows of ``quote`` with ``tree`` in one transaction.

    Old rows are deleted and flushed before the new ones are inserted so
    the (quote_id, external_milestone_id) constraint holds; nothing is
    visible to other sessions until the commit. On error the transaction
    is rolled back and the previous tree stays in place.
    """
    try:
        quote.milestone_estimations.clear()
        db.flush()

        for m_pos, milestone in enumerate(tree.milestones):
            row = MilestoneEstimation(
                quote_id=quote.id,
                external_milestone_id=milestone.external_id,
                milestone_number=milestone.number,
                title=milestone.title,
                calculated_price=milestone.calculated_price,
                include_in_quote=milestone.include_in_quote,
                position=m_pos,
            )
            row.issues = [
                IssueEstimation(
                    external_issue_id=issue.external_id,
                    issue_number=issue.number,
                    title=issue.title,
                    issue_type=issue.issue_type.value,
                    estimated_messages=issue.estimated_messages,
                    fixed_price=issue.fixed_price,
                    calculated_price=issue.calculated_price,
                    position=i_pos,
                )
                for i_pos, issue in enumerate(milestone.issues)
            ]
            quote.milestone_estimations.append(row)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(quote)
    return tree


# =============================================================================
# Orchestration
# =============================================================================

def reconcile_quote(db: Session, quote_id: UUID, snapshot: TrackerSnapshot) -> EstimationTree:
    """Merge ``snapshot`` into the quote's saved tree and persist the result."""
    quote = get_quote(db, quote_id)
    persisted = tree_from_rows(list(quote.milestone_estimations))
    merged = reconcile(persisted, snapshot, quote.ai_message_rate)
    save_tree(db, quote, merged)

    logger.info(
        "Reconciled estimations: %d milestones, %d issues",
        len(merged.milestones),
        merged.issue_count,
        extra=build_log_context(quote_id=quote_id, repository=snapshot.repository),
    )
    return merged


async def refresh_from_tracker(
    db: Session,
    quote_id: UUID,
    client: httpx.AsyncClient,
    state: str = "open",
) -> EstimationTree:
    """
    Pull the quote's repository from the tracker and reconcile.

    The fetch happens before any write: if it fails the saved tree is left
    untouched and the tracker error propagates.
    """
    quote = get_quote(db, quote_id)
    if not quote.external_repository:
        raise ValidationFailure("Quote has no repository configured")

    try:
        snapshot = await github_service.fetch_snapshot(
            client, quote.external_repository, state=state
        )
    except ExternalFetchFailure:
        logger.warning(
            "Tracker fetch failed, estimations left unchanged",
            extra=build_log_context(quote_id=quote_id, repository=quote.external_repository),
        )
        raise

    return reconcile_quote(db, quote_id, snapshot)


def update_issue_estimation(
    db: Session,
    quote_id: UUID,
    external_issue_id: int,
    data: IssueEstimationUpdate,
) -> EstimationTree:
    quote = get_quote(db, quote_id)
    tree = tree_from_rows(list(quote.milestone_estimations))
    updated = update_issue(tree, external_issue_id, data, quote.ai_message_rate)
    return save_tree(db, quote, updated)


def set_milestone_inclusion(
    db: Session,
    quote_id: UUID,
    external_milestone_id: int,
    include: bool,
) -> EstimationTree:
    quote = get_quote(db, quote_id)
    tree = tree_from_rows(list(quote.milestone_estimations))
    updated = set_inclusion(tree, external_milestone_id, include)
    return save_tree(db, quote, updated)


def update_rate(db: Session, quote_id: UUID, rate: float) -> EstimationTree:
    """Change the quote's AI message rate and re-price every issue."""
    if rate is None or rate < 0:
        raise ValidationFailure("ai_message_rate cannot be negative")
    quote = get_quote(db, quote_id)
    tree = tree_from_rows(list(quote.milestone_estimations))
    quote.ai_message_rate = rate
    return save_tree(db, quote, price_tree(tree, rate))


def set_repository(db: Session, quote_id: UUID, repository: str | None) -> Quote:
    """
    Point the quote at a repository.

    Switching to another repository, or removing it, drops every saved
    estimation since none of the old tracker ids can match.
    """
    quote = get_quote(db, quote_id)
    normalized = github_service.normalize_repository(repository) if repository else None

    if normalized != quote.external_repository:
        quote.external_repository = normalized
        save_tree(db, quote, EstimationTree())
        logger.info(
            "Quote repository changed, estimations cleared",
            extra=build_log_context(quote_id=quote_id, repository=normalized),
        )
    return quote
