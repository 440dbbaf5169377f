"""End-to-end tests through the HTTP API: quote to project to profitability."""

import pytest

from backoffice.core.deps import get_tracker_client
from backoffice.main import app

from github_fakes import FakeGitHub, github_issue, github_milestone

SNAPSHOT = {
    "repository": "acme/website",
    "milestones": [
        {
            "id": 10,
            "number": 1,
            "title": "MVP",
            "issues": [
                {"id": 1, "number": 1, "title": "Login", "labels": ["AUGMENT"]},
                {"id": 2, "number": 2, "title": "Logo", "labels": ["MANUAL"]},
            ],
        },
        {
            "id": 20,
            "number": 2,
            "title": "Ideas",
            "issues": [{"id": 3, "number": 3, "title": "Chat", "labels": []}],
        },
    ],
}


def _use_tracker(fake: FakeGitHub):
    async def override():
        async with fake.client() as c:
            yield c

    app.dependency_overrides[get_tracker_client] = override


async def _create_quote(client, **extra) -> dict:
    response = await client.post("/clients", json={"name": "Acme Corp"})
    assert response.status_code == 201
    payload = {
        "client_id": response.json()["id"],
        "name": "Website rebuild",
        "external_repository": "acme/website",
        "ai_message_rate": 0.1,
        "profit_margin_percentage": 20,
    }
    payload.update(extra)
    response = await client.post("/quotes", json=payload)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_quote_to_project_flow(client):
    quote = await _create_quote(
        client,
        price_estimated=1000,
        minimum_price=800,
        requirements=["Login", "Branding"],
        start_date_estimated="2026-04-01T00:00:00Z",
        end_date_estimated="2026-05-01T00:00:00Z",
    )
    quote_id = quote["id"]
    assert quote["status"] == "DRAFT"

    # Estimate
    response = await client.post(f"/quotes/{quote_id}/estimations/reconcile", json=SNAPSHOT)
    assert response.status_code == 200
    tree = response.json()
    assert [m["include_in_quote"] for m in tree["milestones"]] == [True, False]
    assert [m["can_include"] for m in tree["milestones"]] == [True, False]

    response = await client.get(f"/quotes/{quote_id}/checklist")
    checklist = response.json()
    assert checklist["quotable"] is False
    assert [i["id"] for i in checklist["items"] if not i["completed"]] == ["milestones"]

    response = await client.post(
        f"/quotes/{quote_id}/status", json={"status": "QUOTED"}
    )
    assert response.status_code == 409
    assert "Milestone Estimations" in response.json()["detail"]

    await client.patch(
        f"/quotes/{quote_id}/estimations/issues/1", json={"estimated_messages": 500}
    )
    response = await client.patch(
        f"/quotes/{quote_id}/estimations/issues/2", json={"fixed_price": 300}
    )
    tree = response.json()
    assert tree["milestones"][0]["calculated_price"] == pytest.approx(350)
    assert tree["included_total"] == pytest.approx(350)

    response = await client.get(f"/quotes/{quote_id}/price-suggestion")
    assert response.json()["recommended_price"] == pytest.approx(420)

    # Quote, accept and provision
    for status in ("QUOTED", "ACCEPTED"):
        response = await client.post(f"/quotes/{quote_id}/status", json={"status": status})
        assert response.status_code == 200
        assert response.json()["status"] == status

    response = await client.post(
        "/projects", json={"quote_id": quote_id, "start_date": "2026-04-01T00:00:00Z"}
    )
    assert response.status_code == 201
    project = response.json()
    assert project["agreed_price"] == 1000
    project_id = project["id"]

    response = await client.post(
        "/projects", json={"quote_id": quote_id, "start_date": "2026-04-01T00:00:00Z"}
    )
    assert response.status_code == 409

    response = await client.post(f"/quotes/{quote_id}/status", json={"status": "REJECTED"})
    assert response.status_code == 409

    response = await client.get(f"/projects/{project_id}/issues")
    issues = response.json()
    assert [i["title"] for i in issues] == ["Login", "Logo"]

    # Ledgers
    payment = {"amount": 600, "method": "BANK_TRANSFER", "date": "2026-04-02T00:00:00Z"}
    response = await client.post(f"/projects/{project_id}/payments", json=payment)
    assert response.status_code == 201

    payment["amount"] = 500
    response = await client.post(f"/projects/{project_id}/payments", json=payment)
    assert response.status_code == 422
    assert "Remaining amount: 400.00" in response.json()["detail"]

    response = await client.post(
        f"/projects/{project_id}/ai-messages",
        json={"issue_id": issues[0]["id"], "amount": 450, "cost": 45},
    )
    assert response.status_code == 201
    await client.post(
        f"/projects/{project_id}/manual-tasks", json={"title": "Logo design", "cost": 255}
    )

    response = await client.get(f"/projects/{project_id}/profitability")
    figures = response.json()
    assert figures["total_income"] == pytest.approx(600)
    assert figures["total_costs"] == pytest.approx(300)
    assert figures["net_profit"] == pytest.approx(300)
    assert figures["profit_margin"] == pytest.approx(50)
    assert figures["breakdown"]["ai_messages_cost"] == pytest.approx(45)

    response = await client.get(f"/projects/{project_id}/progress")
    assert response.json()["payment_progress"] == pytest.approx(60)
    assert response.json()["total_ai_messages"] == 450

    # 450/500 on "Login" crosses the usage threshold
    response = await client.get("/alerts")
    alerts = response.json()
    assert alerts["count"] == 1
    assert alerts["items"][0]["message"] == 'AI message usage at 90% for issue "Login"'

    response = await client.post(f"/alerts/{alerts['items'][0]['id']}/read")
    assert response.status_code == 200
    assert response.json()["read"] is True

    response = await client.post(f"/projects/{project_id}/status", json={"status": "COMPLETED"})
    assert response.status_code == 200
    assert response.json()["net_profit"] == pytest.approx(300)

    response = await client.post(f"/projects/{project_id}/payments", json=payment)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_milestone_without_categorized_issue_cannot_be_included(client):
    quote = await _create_quote(client)
    await client.post(f"/quotes/{quote['id']}/estimations/reconcile", json=SNAPSHOT)

    response = await client.patch(
        f"/quotes/{quote['id']}/estimations/milestones/20", json={"include_in_quote": True}
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_rate_change_reprices_tree(client):
    quote = await _create_quote(client)
    await client.post(f"/quotes/{quote['id']}/estimations/reconcile", json=SNAPSHOT)
    await client.patch(
        f"/quotes/{quote['id']}/estimations/issues/1", json={"estimated_messages": 100}
    )

    response = await client.put(
        f"/quotes/{quote['id']}/estimations/rate", json={"ai_message_rate": 0.5}
    )

    assert response.status_code == 200
    assert response.json()["milestones"][0]["issues"][0]["calculated_price"] == pytest.approx(50)


@pytest.mark.asyncio
async def test_refresh_from_github(client):
    quote = await _create_quote(client)
    _use_tracker(
        FakeGitHub(
            milestones=[github_milestone(10, 1, "MVP")],
            issues={1: [github_issue(1, 1, "Login", labels=["AUGMENT"])]},
        )
    )

    response = await client.post(f"/quotes/{quote['id']}/estimations/refresh")

    assert response.status_code == 200
    tree = response.json()
    assert tree["milestones"][0]["title"] == "MVP"
    assert tree["milestones"][0]["issues"][0]["issue_type"] == "AUGMENT"


@pytest.mark.asyncio
@pytest.mark.parametrize("status,expected", [(429, 429), (404, 404), (500, 502)])
async def test_refresh_maps_tracker_failures(client, status, expected):
    quote = await _create_quote(client)
    await client.post(f"/quotes/{quote['id']}/estimations/reconcile", json=SNAPSHOT)
    _use_tracker(FakeGitHub(status=status))

    response = await client.post(f"/quotes/{quote['id']}/estimations/refresh")

    assert response.status_code == expected
    response = await client.get(f"/quotes/{quote['id']}/estimations")
    assert [m["external_id"] for m in response.json()["milestones"]] == [10, 20]


@pytest.mark.asyncio
async def test_tracker_issues_passthrough(client):
    _use_tracker(
        FakeGitHub(
            milestones=[github_milestone(10, 1, "MVP")],
            issues={1: [github_issue(1, 1, "Logo", labels=["MANUAL"])]},
        )
    )

    response = await client.get(
        "/tracker/issues", params={"repository": "acme/website", "milestone": 1}
    )

    assert response.status_code == 200
    assert response.json()[0]["issue_type"] == "MANUAL"


@pytest.mark.asyncio
async def test_price_tree_without_persistence(client):
    response = await client.post(
        "/pricing/tree",
        json={
            "ai_message_rate": 0.2,
            "milestones": [
                {
                    "external_id": 1,
                    "title": "MVP",
                    "include_in_quote": True,
                    "issues": [
                        {"external_id": 1, "number": 1, "title": "A", "issue_type": "AUGMENT", "estimated_messages": 10},
                        {"external_id": 2, "number": 2, "title": "B"},
                    ],
                },
                {
                    "external_id": 2,
                    "title": "Later",
                    "include_in_quote": True,
                    "issues": [{"external_id": 3, "number": 3, "title": "C"}],
                },
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["milestones"][0]["calculated_price"] == pytest.approx(2)
    assert body["milestones"][1]["include_in_quote"] is False
    assert body["included_total"] == pytest.approx(2)


@pytest.mark.asyncio
async def test_reports_endpoints(client):
    response = await client.get("/reports/summary", params={"time_range": "year"})
    assert response.status_code == 200
    assert response.json()["summary"]["total_projects"] == 0

    response = await client.get("/reports/profitability.csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_unknown_quote_is_404(client):
    response = await client.get("/quotes/00000000-0000-0000-0000-000000000000/estimations")

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field", ["name", "ai_messages_used_for_requirements", "profit_margin_percentage"]
)
async def test_patch_quote_rejects_null_for_required_fields(client, field):
    quote = await _create_quote(client)

    response = await client.patch(f"/quotes/{quote['id']}", json={field: None})

    assert response.status_code == 422
    current = (await client.get(f"/quotes/{quote['id']}")).json()
    assert current[field] == quote[field]


@pytest.mark.asyncio
async def test_patch_quote_allows_clearing_optional_fields(client):
    quote = await _create_quote(client, description="First draft", minimum_price=100)

    response = await client.patch(
        f"/quotes/{quote['id']}", json={"description": None, "minimum_price": None, "name": "Shop"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["description"] is None
    assert body["minimum_price"] is None
    assert body["name"] == "Shop"
