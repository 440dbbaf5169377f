"""Tests for merging tracker snapshots into saved estimation trees."""

import pytest

from backoffice.db.enums import IssueType
from backoffice.services.estimation_service import reconcile
from backoffice.services.estimation_tree import EstimationTree

from factories import (
    issue_draft,
    milestone_draft,
    snapshot,
    tracker_issue,
    tracker_milestone,
    tree,
)

RATE = 0.1


def test_first_reconcile_categorizes_issues_from_labels():
    fresh = snapshot(
        tracker_milestone(
            10,
            [
                tracker_issue(1, labels=["AUGMENT"]),
                tracker_issue(2, labels=["MANUAL", "bug"]),
                tracker_issue(3, labels=["docs"]),
                tracker_issue(4, labels=["MANUAL", "AUGMENT"]),
            ],
        )
    )

    merged = reconcile(EstimationTree(), fresh, RATE)

    types = [issue.issue_type for issue in merged.milestones[0].issues]
    assert types == [
        IssueType.AUGMENT,
        IssueType.MANUAL,
        IssueType.UNCATEGORIZED,
        IssueType.AUGMENT,
    ]


def test_new_milestone_is_included_only_when_it_qualifies():
    fresh = snapshot(
        tracker_milestone(10, [tracker_issue(1, labels=["AUGMENT"])]),
        tracker_milestone(20, [tracker_issue(2)]),
        tracker_milestone(30, []),
    )

    merged = reconcile(EstimationTree(), fresh, RATE)

    assert [m.include_in_quote for m in merged.milestones] == [True, False, False]


def test_saved_pricing_inputs_survive_a_refresh():
    saved = tree(
        milestone_draft(
            10,
            [
                issue_draft(1, IssueType.AUGMENT, estimated_messages=50),
                issue_draft(2, IssueType.MANUAL, fixed_price=20.0),
            ],
            include_in_quote=True,
        )
    )
    fresh = snapshot(
        tracker_milestone(
            10,
            [
                tracker_issue(1, title="Renamed on GitHub"),
                tracker_issue(2),
            ],
            title="Milestone renamed",
        )
    )

    merged = reconcile(saved, fresh, RATE)
    milestone = merged.milestones[0]

    assert milestone.title == "Milestone renamed"
    assert milestone.include_in_quote is True
    assert milestone.issues[0].title == "Renamed on GitHub"
    assert milestone.issues[0].issue_type == IssueType.AUGMENT
    assert milestone.issues[0].estimated_messages == 50
    assert milestone.issues[1].fixed_price == 20.0
    assert milestone.calculated_price == pytest.approx(25.0)


def test_items_missing_from_the_snapshot_are_dropped():
    saved = tree(
        milestone_draft(10, [issue_draft(1, IssueType.AUGMENT, 5), issue_draft(2, IssueType.AUGMENT, 5)]),
        milestone_draft(20, [issue_draft(3, IssueType.MANUAL, fixed_price=10.0)]),
    )
    fresh = snapshot(tracker_milestone(10, [tracker_issue(2)]))

    merged = reconcile(saved, fresh, RATE)

    assert [m.external_id for m in merged.milestones] == [10]
    assert [i.external_id for i in merged.milestones[0].issues] == [2]


def test_included_milestone_losing_its_categorized_issues_is_excluded():
    saved = tree(
        milestone_draft(10, [issue_draft(1, IssueType.AUGMENT, 5), issue_draft(2)], include_in_quote=True)
    )
    fresh = snapshot(tracker_milestone(10, [tracker_issue(2)]))

    merged = reconcile(saved, fresh, RATE)

    assert merged.milestones[0].include_in_quote is False


def test_excluded_milestone_stays_excluded():
    saved = tree(
        milestone_draft(10, [issue_draft(1, IssueType.AUGMENT, 5)], include_in_quote=False)
    )
    fresh = snapshot(tracker_milestone(10, [tracker_issue(1, labels=["AUGMENT"])]))

    merged = reconcile(saved, fresh, RATE)

    assert merged.milestones[0].include_in_quote is False


def test_issue_moved_between_milestones_keeps_its_inputs():
    saved = tree(
        milestone_draft(10, [issue_draft(1, IssueType.MANUAL, fixed_price=75.0)]),
        milestone_draft(20, []),
    )
    fresh = snapshot(tracker_milestone(10, []), tracker_milestone(20, [tracker_issue(1)]))

    merged = reconcile(saved, fresh, RATE)

    moved = merged.milestones[1].issues[0]
    assert moved.fixed_price == 75.0
    assert moved.issue_type == IssueType.MANUAL
    assert merged.milestones[1].calculated_price == pytest.approx(75.0)


def test_snapshot_order_wins():
    saved = tree(milestone_draft(10, []), milestone_draft(20, []))
    fresh = snapshot(tracker_milestone(20), tracker_milestone(10))

    merged = reconcile(saved, fresh, RATE)

    assert [m.external_id for m in merged.milestones] == [20, 10]


def test_duplicate_ids_in_snapshot_keep_first_occurrence():
    fresh = snapshot(
        tracker_milestone(10, [tracker_issue(1, labels=["AUGMENT"]), tracker_issue(1)]),
        tracker_milestone(10, [tracker_issue(2)]),
    )

    merged = reconcile(EstimationTree(), fresh, RATE)

    assert len(merged.milestones) == 1
    assert [i.external_id for i in merged.milestones[0].issues] == [1]


def test_label_overrides_saved_category_by_default():
    saved = tree(milestone_draft(10, [issue_draft(1, IssueType.MANUAL, fixed_price=10.0)]))
    fresh = snapshot(tracker_milestone(10, [tracker_issue(1, labels=["AUGMENT"])]))

    merged = reconcile(saved, fresh, RATE, labels_override_category=True)

    issue = merged.milestones[0].issues[0]
    assert issue.issue_type == IssueType.AUGMENT
    # The fixed price is kept even though AUGMENT pricing ignores it
    assert issue.fixed_price == 10.0


def test_unlabeled_issue_keeps_saved_category():
    saved = tree(milestone_draft(10, [issue_draft(1, IssueType.MANUAL, fixed_price=10.0)]))
    fresh = snapshot(tracker_milestone(10, [tracker_issue(1, labels=[])]))

    merged = reconcile(saved, fresh, RATE, labels_override_category=True)

    assert merged.milestones[0].issues[0].issue_type == IssueType.MANUAL


def test_saved_category_wins_when_label_override_is_off():
    saved = tree(milestone_draft(10, [issue_draft(1, IssueType.MANUAL, fixed_price=10.0)]))
    fresh = snapshot(tracker_milestone(10, [tracker_issue(1, labels=["AUGMENT"])]))

    merged = reconcile(saved, fresh, RATE, labels_override_category=False)

    assert merged.milestones[0].issues[0].issue_type == IssueType.MANUAL


@pytest.mark.parametrize("override", [True, False])
def test_reconcile_is_idempotent(override):
    saved = tree(
        milestone_draft(10, [issue_draft(1, IssueType.MANUAL, fixed_price=10.0), issue_draft(2)], True),
        milestone_draft(30, [issue_draft(9, IssueType.AUGMENT, estimated_messages=3)]),
    )
    fresh = snapshot(
        tracker_milestone(10, [tracker_issue(1, labels=["AUGMENT"]), tracker_issue(2), tracker_issue(3, labels=["MANUAL"])]),
        tracker_milestone(20, [tracker_issue(4, labels=["AUGMENT"])]),
    )

    once = reconcile(saved, fresh, RATE, labels_override_category=override)
    twice = reconcile(once, fresh, RATE, labels_override_category=override)

    assert twice == once


def test_reconcile_reprices_with_the_given_rate():
    saved = tree(milestone_draft(10, [issue_draft(1, IssueType.AUGMENT, estimated_messages=100)], True))
    fresh = snapshot(tracker_milestone(10, [tracker_issue(1)]))

    merged = reconcile(saved, fresh, 0.5)

    assert merged.milestones[0].issues[0].calculated_price == pytest.approx(50.0)
    assert merged.milestones[0].calculated_price == pytest.approx(50.0)
