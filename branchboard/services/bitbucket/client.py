"""
Bitbucket API read operations.

Two listings are needed to build the branch overview:
- GET /repositories/{workspace}?pagelen=100
- GET /repositories/{workspace}/{slug}/refs/branches?pagelen=100

Both are fetched as a single bounded page. No caching happens here; see loader.py.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Literal

from branchboard.config.settings import Settings
from branchboard.services.bitbucket.constants import BITBUCKET_API_URL, PAGE_LEN
from branchboard.services.bitbucket.exceptions import BitbucketAPIError, ConfigurationError
from branchboard.services.bitbucket.http_client import RetryingHttpClient
from branchboard.services.bitbucket.types import Branch, Repository

logger = logging.getLogger(__name__)

ConfigSource = Literal["environment", "manual", "none"]


@dataclass(frozen=True)
class BitbucketConfig:
    """Workspace + bearer token, and where they came from."""

    workspace: str
    access_token: str
    source: ConfigSource = "none"

    @property
    def is_configured(self) -> bool:
        return bool(self.workspace and self.access_token)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BitbucketConfig":
        source: ConfigSource = "environment" if settings.bitbucket_configured else "none"
        return cls(
            workspace=settings.bitbucket_workspace,
            access_token=settings.bitbucket_access_token,
            source=source,
        )

    @classmethod
    def manual(cls, workspace: str, access_token: str) -> "BitbucketConfig":
        """Configuration entered by hand rather than read from the environment."""
        config = cls(workspace=workspace.strip(), access_token=access_token.strip())
        if not config.is_configured:
            raise ConfigurationError("Workspace and access token must both be non-empty")
        return cls(config.workspace, config.access_token, source="manual")


class BitbucketClient:
    """
    Fetches repositories and branches for one workspace.

    Failures from RetryingHttpClient (HttpError, RateLimitExceeded,
    NetworkError) propagate unchanged, except in get_all_branches where each
    repository's failure is isolated.
    """

    def __init__(
        self,
        config: BitbucketConfig,
        http: RetryingHttpClient,
        base_url: str = BITBUCKET_API_URL,
    ):
        self.config = config
        self.http = http
        self.base_url = base_url.rstrip("/")

    @property
    def workspace(self) -> str:
        return self.config.workspace

    def is_configured(self) -> bool:
        return self.config.is_configured

    def _auth_headers(self) -> dict[str, str]:
        if not self.is_configured():
            raise ConfigurationError()
        return {
            "Authorization": f"Bearer {self.config.access_token}",
            "Accept": "application/json",
        }

    async def _get_values(self, path: str) -> list[dict[str, Any]]:
        """GET one page of a Bitbucket listing and return its `values` array."""
        headers = self._auth_headers()
        response = await self.http.request(
            f"{self.base_url}{path}",
            headers=headers,
            params={"pagelen": PAGE_LEN},
        )
        try:
            data = response.json()
        except ValueError as e:
            raise BitbucketAPIError(f"Invalid JSON from Bitbucket for {path}") from e
        values = data.get("values") if isinstance(data, dict) else None
        return [v for v in values or [] if isinstance(v, dict)]

    async def get_repositories(self) -> list[Repository]:
        """Fetch repositories in the workspace (first page only)."""
        try:
            values = await self._get_values(f"/repositories/{self.workspace}")
        except BitbucketAPIError as e:
            logger.error(f"Error fetching repositories for {self.workspace}: {e}")
            raise
        return [Repository.from_api(v) for v in values]

    async def get_branches(self, repo_slug: str) -> list[Branch]:
        """Fetch branches of one repository (first page only)."""
        try:
            values = await self._get_values(
                f"/repositories/{self.workspace}/{repo_slug}/refs/branches"
            )
        except BitbucketAPIError as e:
            logger.error(f"Error fetching branches for {repo_slug}: {e}")
            raise
        return [Branch.from_api(v) for v in values]

    async def get_all_branches(
        self, repositories: list[Repository]
    ) -> dict[str, list[Branch]]:
        """
        Fetch branches for every repository concurrently, keyed by repository name.

        A repository whose fetch fails maps to an empty list; the call itself
        never fails because of one repository.
        """

        async def fetch_one(repo: Repository) -> tuple[str, list[Branch]]:
            try:
                return repo.name, await self.get_branches(repo.slug)
            except Exception as e:
                logger.warning(f"Failed to fetch branches for {repo.name}: {e}")
                return repo.name, []

        results = await asyncio.gather(*(fetch_one(repo) for repo in repositories))
        return dict(results)
