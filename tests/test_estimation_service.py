"""Tests for persisting and editing a quote's estimation tree."""

import httpx
import pytest

from backoffice.db.enums import IssueType
from backoffice.db.models import IssueEstimation, MilestoneEstimation
from backoffice.schemas.estimation import IssueEstimationUpdate
from backoffice.services import estimation_service, github_service
from backoffice.services.errors import (
    InclusionNotAllowedError,
    NotFoundError,
    ValidationFailure,
)

from factories import snapshot, tracker_issue, tracker_milestone
from github_fakes import FakeGitHub, github_issue, github_milestone


def _fresh():
    return snapshot(
        tracker_milestone(
            10,
            [tracker_issue(1, labels=["AUGMENT"]), tracker_issue(2, labels=["MANUAL"]), tracker_issue(3)],
            title="MVP",
        ),
        tracker_milestone(20, [tracker_issue(4)], title="Nice to have"),
    )


def test_reconcile_quote_persists_tree_in_snapshot_order(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())

    loaded = estimation_service.load_tree(db, quote.id)

    assert [m.title for m in loaded.milestones] == ["MVP", "Nice to have"]
    assert [i.external_id for i in loaded.milestones[0].issues] == [1, 2, 3]
    assert loaded.milestones[0].issues[0].issue_type == IssueType.AUGMENT
    assert loaded.milestones[0].include_in_quote is True
    assert loaded.milestones[1].include_in_quote is False


def test_repeated_reconcile_does_not_duplicate_rows(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())
    first = estimation_service.load_tree(db, quote.id)
    estimation_service.reconcile_quote(db, quote.id, _fresh())
    second = estimation_service.load_tree(db, quote.id)

    assert second == first
    assert db.query(MilestoneEstimation).filter_by(quote_id=quote.id).count() == 2
    assert db.query(IssueEstimation).count() == 4


def test_pricing_edits_survive_reconcile(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())
    estimation_service.update_issue_estimation(
        db, quote.id, 1, IssueEstimationUpdate(estimated_messages=200)
    )
    estimation_service.update_issue_estimation(
        db, quote.id, 2, IssueEstimationUpdate(fixed_price=50.0)
    )

    estimation_service.reconcile_quote(db, quote.id, _fresh())
    loaded = estimation_service.load_tree(db, quote.id)

    milestone = loaded.milestones[0]
    assert milestone.issues[0].estimated_messages == 200
    assert milestone.issues[0].calculated_price == pytest.approx(20.0)
    assert milestone.issues[1].fixed_price == 50.0
    assert milestone.calculated_price == pytest.approx(70.0)


def test_uncategorizing_last_issue_excludes_milestone(db, quote):
    fresh = snapshot(tracker_milestone(10, [tracker_issue(1, labels=["MANUAL"]), tracker_issue(2)]))
    estimation_service.reconcile_quote(db, quote.id, fresh)

    updated = estimation_service.update_issue_estimation(
        db, quote.id, 1, IssueEstimationUpdate(issue_type=None)
    )

    assert updated.milestones[0].include_in_quote is False
    assert updated.milestones[0].issues[0].issue_type == IssueType.UNCATEGORIZED


def test_update_unknown_issue_raises_not_found(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())

    with pytest.raises(NotFoundError):
        estimation_service.update_issue_estimation(
            db, quote.id, 999, IssueEstimationUpdate(fixed_price=1.0)
        )


def test_including_unqualified_milestone_is_rejected(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())

    with pytest.raises(InclusionNotAllowedError):
        estimation_service.set_milestone_inclusion(db, quote.id, 20, True)

    assert estimation_service.load_tree(db, quote.id).milestones[1].include_in_quote is False


def test_milestone_can_be_excluded_and_included_again(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())

    excluded = estimation_service.set_milestone_inclusion(db, quote.id, 10, False)
    included = estimation_service.set_milestone_inclusion(db, quote.id, 10, True)

    assert excluded.milestones[0].include_in_quote is False
    assert included.milestones[0].include_in_quote is True


def test_rate_change_reprices_saved_tree(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())
    estimation_service.update_issue_estimation(
        db, quote.id, 1, IssueEstimationUpdate(estimated_messages=100)
    )

    repriced = estimation_service.update_rate(db, quote.id, 0.25)

    assert repriced.milestones[0].issues[0].calculated_price == pytest.approx(25.0)
    db.refresh(quote)
    assert quote.ai_message_rate == 0.25


def test_negative_rate_is_rejected(db, quote):
    with pytest.raises(ValidationFailure):
        estimation_service.update_rate(db, quote.id, -1)


def test_changing_repository_clears_estimations(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())

    same = estimation_service.set_repository(db, quote.id, "https://github.com/acme/website")
    assert same.external_repository == "acme/website"
    assert estimation_service.load_tree(db, quote.id).issue_count == 4

    estimation_service.set_repository(db, quote.id, None)
    assert estimation_service.load_tree(db, quote.id).milestones == ()


def test_unknown_quote_raises_not_found(db):
    import uuid

    with pytest.raises(NotFoundError):
        estimation_service.load_tree(db, uuid.uuid4())


@pytest.mark.asyncio
async def test_refresh_from_tracker_fetches_and_reconciles(db, quote):
    fake = FakeGitHub(
        milestones=[github_milestone(100, 1, "MVP")],
        issues={1: [github_issue(11, 1, "Login", labels=["AUGMENT"])]},
    )

    async with fake.client() as client:
        refreshed = await estimation_service.refresh_from_tracker(db, quote.id, client)

    assert [m.external_id for m in refreshed.milestones] == [100]
    assert estimation_service.load_tree(db, quote.id) == refreshed


@pytest.mark.asyncio
async def test_failed_refresh_leaves_saved_tree_untouched(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())
    before = estimation_service.load_tree(db, quote.id)

    fake = FakeGitHub(status=503)
    async with fake.client() as client:
        with pytest.raises(github_service.TrackerUnavailableError):
            await estimation_service.refresh_from_tracker(db, quote.id, client)

    assert estimation_service.load_tree(db, quote.id) == before


@pytest.mark.asyncio
async def test_truncated_tracker_listing_leaves_saved_tree_untouched(db, quote):
    estimation_service.reconcile_quote(db, quote.id, _fresh())
    before = estimation_service.load_tree(db, quote.id)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/milestones"):
            return httpx.Response(200, json=[github_milestone(10, 1, "MVP")])
        page = int(request.url.params.get("page", "1"))
        return httpx.Response(
            200,
            json=[github_issue(page, page, f"Issue {page}", labels=["AUGMENT"])],
            headers={
                "Link": f'<https://api.github.com/repos/acme/website/issues?milestone=1&state=all&page={page + 1}>; rel="next"'
            },
        )

    async with github_service.build_client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(github_service.TrackerUnavailableError):
            await estimation_service.refresh_from_tracker(db, quote.id, client)

    assert estimation_service.load_tree(db, quote.id) == before


@pytest.mark.asyncio
async def test_refresh_without_repository_is_rejected(db, quote):
    quote.external_repository = None
    db.commit()

    fake = FakeGitHub()
    async with fake.client() as client:
        with pytest.raises(ValidationFailure):
            await estimation_service.refresh_from_tracker(db, quote.id, client)

    assert fake.requests == []
