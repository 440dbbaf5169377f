"""In-memory GitHub API for httpx.MockTransport."""
import httpx

from backoffice.services import github_service


def github_milestone(milestone_id: int, number: int, title: str) -> dict:
    return {
        "id": milestone_id,
        "number": number,
        "title": title,
        "state": "open",
        "open_issues": 1,
        "closed_issues": 0,
    }


def github_issue(issue_id: int, number: int, title: str, labels=(), pull_request: bool = False) -> dict:
    item = {
        "id": issue_id,
        "number": number,
        "title": title,
        "state": "open",
        "labels": [{"name": name} for name in labels],
    }
    if pull_request:
        item["pull_request"] = {"url": "https://api.github.com/pulls/1"}
    return item


class FakeGitHub:
    """Serves milestones and per-milestone issues for one repository and records requests."""

    def __init__(self, repository: str = "acme/website", milestones=None, issues=None, status: int = 200, headers=None):
        self.repository = repository
        self.milestones = milestones or []
        self.issues = issues or {}
        self.status = status
        self.headers = headers or {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, headers=self.headers, json={"message": "error"})

        base = f"/repos/{self.repository}"
        if request.url.path == f"{base}/milestones":
            return httpx.Response(200, json=self.milestones)
        if request.url.path == f"{base}/issues":
            milestone = request.url.params.get("milestone")
            return httpx.Response(200, json=self.issues.get(int(milestone), []) if milestone else [])
        return httpx.Response(404, json={"message": "Not Found"})

    def client(self) -> httpx.AsyncClient:
        return github_service.build_client(transport=httpx.MockTransport(self.handler))
