"""Unit tests for BitbucketClient and the Bitbucket data types.

Tests request shape (URL, auth headers, pagination), configuration checks,
payload parsing, and per-repository failure isolation.
"""

from __future__ import annotations

import httpx
import pytest

from branchboard.config.settings import Settings
from branchboard.services.bitbucket import (
    BitbucketAPIError,
    BitbucketConfig,
    Branch,
    ConfigurationError,
    HttpError,
    Repository,
)
from tests.helpers.fakes import BASE_URL, TOKEN, WORKSPACE, make_bitbucket_client
from tests.helpers.payloads import branch_json, page, repo_json


class RecordingHandler:
    """Routes requests by path and remembers every request it served."""

    def __init__(self, routes: dict[str, httpx.Response]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes.get(request.url.path, httpx.Response(404))


REPOS_PATH = f"/2.0/repositories/{WORKSPACE}"


def branches_path(slug: str) -> str:
    return f"/2.0/repositories/{WORKSPACE}/{slug}/refs/branches"


# ═══════════════════════════════════════════════════════════════════════════
# BitbucketConfig
# ═══════════════════════════════════════════════════════════════════════════


class TestBitbucketConfig:
    def test_configured_requires_both_values(self):
        assert BitbucketConfig("acme", "token").is_configured
        assert not BitbucketConfig("acme", "").is_configured
        assert not BitbucketConfig("", "token").is_configured

    def test_from_settings_with_values(self):
        settings = Settings(bitbucket_workspace="acme", bitbucket_access_token="t")

        config = BitbucketConfig.from_settings(settings)

        assert config.workspace == "acme"
        assert config.source == "environment"

    def test_from_settings_without_values(self):
        settings = Settings(bitbucket_workspace="", bitbucket_access_token="")

        assert BitbucketConfig.from_settings(settings).source == "none"

    def test_manual_strips_whitespace(self):
        config = BitbucketConfig.manual("  acme ", " token\n")

        assert config == BitbucketConfig("acme", "token", source="manual")

    def test_manual_rejects_blank_values(self):
        with pytest.raises(ConfigurationError):
            BitbucketConfig.manual("acme", "   ")


# ═══════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════


class TestRequests:
    @pytest.mark.anyio
    async def test_get_repositories_url_and_headers(self, rate_limiter, sleeper):
        handler = RecordingHandler(
            {REPOS_PATH: httpx.Response(200, json=page([repo_json("api")]))}
        )
        client = make_bitbucket_client(handler, rate_limiter, sleeper)

        repos = await client.get_repositories()

        request = handler.requests[0]
        assert str(request.url) == f"{BASE_URL}/repositories/{WORKSPACE}?pagelen=100"
        assert request.headers["Authorization"] == f"Bearer {TOKEN}"
        assert request.headers["Accept"] == "application/json"
        assert [repo.name for repo in repos] == ["api"]

    @pytest.mark.anyio
    async def test_get_branches_uses_slug(self, rate_limiter, sleeper):
        handler = RecordingHandler(
            {branches_path("web-app"): httpx.Response(200, json=page([branch_json("master")]))}
        )
        client = make_bitbucket_client(handler, rate_limiter, sleeper)

        branches = await client.get_branches("web-app")

        assert handler.requests[0].url.params["pagelen"] == "100"
        assert [branch.name for branch in branches] == ["master"]

    @pytest.mark.anyio
    async def test_missing_values_yields_empty_list(self, rate_limiter, sleeper):
        handler = RecordingHandler({REPOS_PATH: httpx.Response(200, json={"size": 0})})
        client = make_bitbucket_client(handler, rate_limiter, sleeper)

        assert await client.get_repositories() == []

    @pytest.mark.anyio
    async def test_invalid_json_raises(self, rate_limiter, sleeper):
        handler = RecordingHandler({REPOS_PATH: httpx.Response(200, text="<html>")})
        client = make_bitbucket_client(handler, rate_limiter, sleeper)

        with pytest.raises(BitbucketAPIError):
            await client.get_repositories()

    @pytest.mark.anyio
    async def test_http_errors_propagate(self, rate_limiter, sleeper):
        handler = RecordingHandler({REPOS_PATH: httpx.Response(403)})
        client = make_bitbucket_client(handler, rate_limiter, sleeper)

        with pytest.raises(HttpError) as exc_info:
            await client.get_repositories()

        assert exc_info.value.status_code == 403

    @pytest.mark.anyio
    async def test_unconfigured_client_sends_nothing(self, rate_limiter, sleeper):
        handler = RecordingHandler({})
        client = make_bitbucket_client(handler, rate_limiter, sleeper, token="")

        assert not client.is_configured()
        with pytest.raises(ConfigurationError):
            await client.get_repositories()
        with pytest.raises(ConfigurationError):
            await client.get_branches("api")
        assert handler.requests == []


# ═══════════════════════════════════════════════════════════════════════════
# get_all_branches
# ═══════════════════════════════════════════════════════════════════════════


class TestGetAllBranches:
    @pytest.mark.anyio
    async def test_failed_repository_maps_to_empty_list(self, rate_limiter, sleeper):
        handler = RecordingHandler(
            {
                branches_path("a"): httpx.Response(200, json=page([branch_json("master")])),
                branches_path("b"): httpx.Response(500),
                branches_path("c"): httpx.Response(200, json=page([branch_json("develop")])),
            }
        )
        client = make_bitbucket_client(handler, rate_limiter, sleeper)
        repos = [Repository.from_api(repo_json(name)) for name in ("a", "b", "c")]

        result = await client.get_all_branches(repos)

        assert list(result) == ["a", "b", "c"]
        assert [b.name for b in result["a"]] == ["master"]
        assert result["b"] == []
        assert [b.name for b in result["c"]] == ["develop"]

    @pytest.mark.anyio
    async def test_keyed_by_name_not_slug(self, rate_limiter, sleeper):
        handler = RecordingHandler(
            {branches_path("web-app"): httpx.Response(200, json=page([branch_json("master")]))}
        )
        client = make_bitbucket_client(handler, rate_limiter, sleeper)
        repo = Repository.from_api(repo_json("Web App", slug="web-app"))

        result = await client.get_all_branches([repo])

        assert list(result) == ["Web App"]

    @pytest.mark.anyio
    async def test_no_repositories(self, rate_limiter, sleeper):
        client = make_bitbucket_client(RecordingHandler({}), rate_limiter, sleeper)

        assert await client.get_all_branches([]) == {}


# ═══════════════════════════════════════════════════════════════════════════
# Types
# ═══════════════════════════════════════════════════════════════════════════


class TestTypes:
    def test_repository_from_api(self):
        repo = Repository.from_api(repo_json("api"))

        assert repo.slug == "api"
        assert repo.full_name == "acme/api"
        assert repo.url == "https://bitbucket.org/acme/api"
        assert repo.project is not None and repo.project.key == "CORE"
        assert repo.main_branch == "master"
        assert repo.raw["name"] == "api"

    def test_repository_slug_falls_back_to_name(self):
        data = repo_json("api")
        del data["slug"]

        assert Repository.from_api(data).slug == "api"

    def test_branch_from_api(self):
        branch = Branch.from_api(branch_json("feature/x", date="2026-10-01T10:00:00+00:00"))

        assert branch.name == "feature/x"
        assert branch.target.date == "2026-10-01T10:00:00+00:00"
        assert branch.repository_name == "api"
        assert branch.author_name == "Ada Lovelace"
        assert branch.target.author.avatar_url == "https://avatars.example.com/Ada Lovelace.png"

    def test_author_name_falls_back_to_raw(self):
        branch = Branch.from_api(branch_json(author=None, raw_author="ci-bot <ci@example.com>"))

        assert branch.author_name == "ci-bot <ci@example.com>"

    def test_author_name_unknown(self):
        branch = Branch.from_api(branch_json(author=None, raw_author=""))

        assert branch.author_name == "Unknown"

    def test_raw_is_ignored_by_equality(self):
        data = branch_json("master")
        extra = {**data, "type": "branch"}

        assert Branch.from_api(data) == Branch.from_api(extra)
