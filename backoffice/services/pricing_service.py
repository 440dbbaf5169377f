"""Pricing model for issue and milestone estimations.

Pure functions only. Every edit of an issue type, message estimate, fixed
price or the quote rate goes back through ``price_tree`` so prices are
never stale.
"""

from __future__ import annotations

from dataclasses import replace

from backoffice.db.enums import IssueType
from backoffice.services.estimation_tree import EstimationTree, IssueDraft, MilestoneDraft


def price_of(
    issue_type: IssueType | str,
    estimated_messages: int | None,
    fixed_price: float | None,
    rate: float,
) -> float:
    """
    Price of a single issue.

    - AUGMENT: estimated_messages × rate (0 when unset or not positive)
    - MANUAL: fixed_price (0 when unset or not positive)
    - UNCATEGORIZED: always 0
    """
    issue_type = IssueType(issue_type)
    if issue_type is IssueType.AUGMENT:
        if estimated_messages is not None and estimated_messages > 0:
            return estimated_messages * rate
        return 0.0
    if issue_type is IssueType.MANUAL:
        if fixed_price is not None and fixed_price > 0:
            return float(fixed_price)
        return 0.0
    return 0.0


def price_issue(issue: IssueDraft, rate: float) -> IssueDraft:
    return replace(
        issue,
        calculated_price=price_of(
            issue.issue_type, issue.estimated_messages, issue.fixed_price, rate
        ),
    )


def milestone_price(issues: tuple[IssueDraft, ...] | list[IssueDraft]) -> float:
    """Sum of categorized issue prices. Uncategorized issues are left out entirely."""
    return sum(
        (issue.calculated_price for issue in issues if issue.is_categorized),
        0.0,
    )


def price_milestone(milestone: MilestoneDraft, rate: float) -> MilestoneDraft:
    issues = tuple(price_issue(issue, rate) for issue in milestone.issues)
    return replace(milestone, issues=issues, calculated_price=milestone_price(issues))


def price_tree(tree: EstimationTree, rate: float) -> EstimationTree:
    """Return a copy of ``tree`` with every issue and milestone price recomputed."""
    return EstimationTree(
        milestones=tuple(price_milestone(m, rate) for m in tree.milestones)
    )


def included_total(tree: EstimationTree) -> float:
    """Base milestone price of a quote: sum over included milestones."""
    return sum((m.calculated_price for m in tree.included_milestones), 0.0)


# =============================================================================
# Quote-level helpers
# =============================================================================

def ai_messages_cost(messages_used: int | None, rate: float) -> float:
    """Cost of the AI messages spent on requirements analysis."""
    return (messages_used or 0) * rate


def minimum_price(
    base_milestone_price: float,
    messages_used_for_requirements: int | None,
    rate: float,
) -> float:
    """Milestone price plus the requirements-analysis AI cost."""
    return base_milestone_price + ai_messages_cost(messages_used_for_requirements, rate)


def base_milestone_price(
    total_minimum_price: float,
    messages_used_for_requirements: int | None,
    rate: float,
) -> float:
    """Inverse of ``minimum_price``, floored at 0."""
    return max(
        0.0,
        total_minimum_price - ai_messages_cost(messages_used_for_requirements, rate),
    )


def recommended_price(minimum: float, profit_margin_percentage: float | None) -> float:
    """Minimum price plus ``profit_margin_percentage`` percent."""
    margin = profit_margin_percentage or 0
    return minimum + minimum * (margin / 100)
