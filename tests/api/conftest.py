"""API test fixtures: a branch service wired to an in-memory Bitbucket.

The FastAPI app is exercised through httpx's ASGITransport. The process-wide
branch service is swapped for one whose HTTP client talks to FakeBitbucket,
so every endpoint runs the real loader, cache and retry code.
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from branchboard.services.bitbucket import CachedRepositoryLoader, TTLCache
from branchboard.services.branch_data import BranchDataService
from tests.helpers.fakes import WORKSPACE, make_bitbucket_client
from tests.helpers.payloads import branch_json, page, repo_json


def days_ago(days: int) -> str:
    return (datetime.now(UTC) - timedelta(days=days)).isoformat()


class FakeBitbucket:
    """
    Workspace "acme" with three repositories:

    - api: master and a 90-day-old feature branch by Grace, two recent
      feature branches and two version branches by Ada
    - web: master only
    - docs: no branches
    """

    def __init__(self):
        self.branches: dict[str, list[dict]] = {
            "api": [
                branch_json("v1.10.0", days_ago(200), author="Ada Lovelace"),
                branch_json("feature/search", days_ago(2), author="Ada Lovelace"),
                branch_json("master", days_ago(1), author="Grace Hopper"),
                branch_json("feature/login", days_ago(5), author="Ada Lovelace"),
                branch_json("feature/abandoned", days_ago(90), author="Grace Hopper"),
                branch_json("v1.2.0", days_ago(300), author="Ada Lovelace"),
            ],
            "web": [branch_json("master", days_ago(3), author="Linus", repository="web")],
            "docs": [],
        }
        self.fail_status: int | None = None
        self.fail_headers: dict[str, str] = {}
        self.network_down = False
        self.calls: Counter[str] = Counter()

    def fail_with(self, status: int, headers: dict[str, str] | None = None) -> None:
        """Answer every request with this status from now on."""
        self.fail_status = status
        self.fail_headers = headers or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls[path] += 1
        if self.network_down:
            raise httpx.ConnectError("connection refused")
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, headers=self.fail_headers)
        if path == f"/2.0/repositories/{WORKSPACE}":
            return httpx.Response(200, json=page([repo_json(name) for name in self.branches]))
        for slug, branches in self.branches.items():
            if path == f"/2.0/repositories/{WORKSPACE}/{slug}/refs/branches":
                return httpx.Response(200, json=page(branches))
        return httpx.Response(404)


@pytest.fixture
def bitbucket() -> FakeBitbucket:
    return FakeBitbucket()


@pytest.fixture
def branch_service(bitbucket, rate_limiter, sleeper, store, clock) -> BranchDataService:
    client = make_bitbucket_client(bitbucket, rate_limiter, sleeper)
    loader = CachedRepositoryLoader(client, TTLCache(store, ttl_seconds=300, timer=clock))
    return BranchDataService(loader, stale_threshold_days=30)


@pytest.fixture
async def api_client(branch_service):
    """HTTP client for the app with the branch service overridden."""
    from branchboard.api.deps import get_branch_service
    from branchboard.main import app

    app.dependency_overrides[get_branch_service] = lambda: branch_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
