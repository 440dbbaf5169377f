"""Inclusion rules for milestones and the quote readiness checklist."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from backoffice.services.estimation_tree import EstimationTree, MilestoneDraft


def can_include(milestone: MilestoneDraft) -> bool:
    """A milestone may be included only if it has at least one categorized issue."""
    if not milestone.issues:
        return False
    return any(issue.is_categorized for issue in milestone.issues)


def enforce_inclusion(tree: EstimationTree) -> EstimationTree:
    """Force ``include_in_quote`` off on every milestone that no longer qualifies."""
    return EstimationTree(
        milestones=tuple(
            replace(m, include_in_quote=False)
            if m.include_in_quote and not can_include(m)
            else m
            for m in tree.milestones
        )
    )


def milestone_is_fully_estimated(milestone: MilestoneDraft) -> bool:
    """Every issue is categorized and individually priced."""
    if not milestone.issues:
        return False
    return all(issue.is_priced for issue in milestone.issues)


# =============================================================================
# Quote checklist
# =============================================================================

@dataclass(frozen=True)
class ChecklistItem:
    id: str
    label: str
    completed: bool
    required: bool
    description: str


@dataclass(frozen=True)
class QuoteChecklist:
    items: tuple[ChecklistItem, ...]

    @property
    def progress_percentage(self) -> float:
        required = [item for item in self.items if item.required]
        if not required:
            return 0.0
        done = sum(1 for item in required if item.completed)
        return done / len(required) * 100

    @property
    def quotable(self) -> bool:
        return all(item.completed for item in self.items if item.required)


def _positive(value: Any) -> bool:
    return value is not None and value > 0


def quote_checklist(quote: Any, tree: EstimationTree) -> QuoteChecklist:
    """
    Per-clause readiness of a quote for the QUOTED status.

    ``quote`` only needs the Quote attributes read below, so both ORM rows
    and plain objects work.
    """
    items = (
        ChecklistItem(
            id="basic-info",
            label="Basic Information",
            completed=bool(quote.name and quote.name.strip() and quote.client_id),
            required=True,
            description="Quote name and client (description is optional)",
        ),
        ChecklistItem(
            id="pricing",
            label="Pricing Information",
            completed=_positive(quote.minimum_price) and _positive(quote.price_estimated),
            required=True,
            description="Both minimum price and estimated price must be set",
        ),
        ChecklistItem(
            id="requirements",
            label="Requirements",
            completed=bool(quote.requirements),
            required=True,
            description="Project requirements documented",
        ),
        ChecklistItem(
            id="timeline",
            label="Timeline",
            completed=bool(quote.start_date_estimated and quote.end_date_estimated),
            required=True,
            description="Estimated start and end dates",
        ),
        ChecklistItem(
            id="milestones",
            label="Milestone Estimations",
            completed=any(
                milestone_is_fully_estimated(m) for m in tree.included_milestones
            ),
            required=True,
            description="All issues within an included milestone must be properly estimated",
        ),
    )
    return QuoteChecklist(items=items)


def quote_is_quotable(quote: Any, tree: EstimationTree) -> bool:
    return quote_checklist(quote, tree).quotable
