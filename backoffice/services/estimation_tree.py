"""Immutable in-memory estimation tree.

The reconciler, the pricing model and the inclusion rules all work on these
frozen dataclasses and return new trees; only estimation_service touches
the database.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from backoffice.db.enums import IssueType


@dataclass(frozen=True)
class IssueDraft:
    """Pricing inputs and derived price for one tracker issue."""

    external_id: int
    number: int
    title: str
    issue_type: IssueType = IssueType.UNCATEGORIZED
    estimated_messages: int | None = None
    fixed_price: float | None = None
    calculated_price: float = 0.0

    @property
    def is_categorized(self) -> bool:
        return self.issue_type.is_categorized

    @property
    def is_priced(self) -> bool:
        """Categorized and carrying a positive pricing input for its type."""
        if self.issue_type is IssueType.AUGMENT:
            return bool(self.estimated_messages and self.estimated_messages > 0)
        if self.issue_type is IssueType.MANUAL:
            return bool(self.fixed_price and self.fixed_price > 0)
        return False


@dataclass(frozen=True)
class MilestoneDraft:
    """A tracker milestone with its ordered issues."""

    external_id: int
    title: str
    number: int | None = None
    include_in_quote: bool = False
    calculated_price: float = 0.0
    issues: tuple[IssueDraft, ...] = ()

    def with_issues(self, issues: tuple[IssueDraft, ...]) -> "MilestoneDraft":
        return replace(self, issues=issues)


@dataclass(frozen=True)
class EstimationTree:
    """Ordered milestones of a quote."""

    milestones: tuple[MilestoneDraft, ...] = ()

    def milestone(self, external_id: int) -> MilestoneDraft | None:
        for milestone in self.milestones:
            if milestone.external_id == external_id:
                return milestone
        return None

    def find_issue(self, external_issue_id: int) -> tuple[MilestoneDraft, IssueDraft] | None:
        for milestone in self.milestones:
            for issue in milestone.issues:
                if issue.external_id == external_issue_id:
                    return milestone, issue
        return None

    def replace_milestone(self, updated: MilestoneDraft) -> "EstimationTree":
        return EstimationTree(
            milestones=tuple(
                updated if m.external_id == updated.external_id else m
                for m in self.milestones
            )
        )

    @property
    def included_milestones(self) -> tuple[MilestoneDraft, ...]:
        return tuple(m for m in self.milestones if m.include_in_quote)

    @property
    def issue_count(self) -> int:
        return sum(len(m.issues) for m in self.milestones)
