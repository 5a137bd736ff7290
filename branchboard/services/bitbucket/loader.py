"""
Cache-backed loading of repositories and branches.

Composes BitbucketClient with TTLCache. Cache keys for a workspace are:
- bitbucket_cache:<workspace>:repositories
- bitbucket_cache:<workspace>:branches:<repo slug>

Entries hold the raw API payloads and are rehydrated into dataclasses on read.
refresh() is the only way to bypass entries before their TTL runs out.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

from branchboard.services.bitbucket.cache import TTLCache
from branchboard.services.bitbucket.client import BitbucketClient
from branchboard.services.bitbucket.constants import (
    BRANCHES_RESOURCE,
    CACHE_NAMESPACE,
    REPOSITORIES_RESOURCE,
)
from branchboard.services.bitbucket.types import Branch, GroupedBranches, Repository
from branchboard.services.branches.queries import flatten_branches, group_branches_by_author

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BranchSnapshot:
    """Everything one fetch cycle produced. Rebuilt wholesale, never patched."""

    repositories: list[Repository]
    branches: dict[str, list[Branch]]  # repository name -> branches
    grouped: GroupedBranches
    flat: list[Branch]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC), compare=False)

    @classmethod
    def build(
        cls, repositories: list[Repository], branches: dict[str, list[Branch]]
    ) -> "BranchSnapshot":
        return cls(
            repositories=repositories,
            branches=branches,
            grouped=group_branches_by_author(branches),
            flat=flatten_branches(branches),
        )


class CachedRepositoryLoader:
    """Fetch-with-cache for one workspace's repositories and branches."""

    def __init__(self, client: BitbucketClient, cache: TTLCache):
        self.client = client
        self.cache = cache

    @property
    def namespace(self) -> str:
        """Key prefix shared by every entry of this workspace."""
        return f"{CACHE_NAMESPACE}:{self.client.workspace}:"

    def cache_key(self, resource: str) -> str:
        return f"{self.namespace}{resource}"

    def _rehydrate(
        self, key: str, payload: Any, parse: Callable[[dict[str, Any]], T]
    ) -> list[T] | None:
        """Rebuild records from a cached payload, dropping the entry if it no longer parses."""
        if payload is None:
            return None
        try:
            return [parse(item) for item in payload]
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding unusable cache entry {key}: {e}")
            self.cache.invalidate(key)
            return None

    async def load_repositories(self) -> list[Repository]:
        key = self.cache_key(REPOSITORIES_RESOURCE)
        cached = self._rehydrate(key, self.cache.get(key), Repository.from_api)
        if cached is not None:
            return cached

        repositories = await self.client.get_repositories()
        self.cache.set(key, [repo.raw for repo in repositories])
        return repositories

    async def load_branches(self, repo_slug: str) -> list[Branch]:
        key = self.cache_key(f"{BRANCHES_RESOURCE}:{repo_slug}")
        cached = self._rehydrate(key, self.cache.get(key), Branch.from_api)
        if cached is not None:
            return cached

        branches = await self.client.get_branches(repo_slug)
        self.cache.set(key, [branch.raw for branch in branches])
        return branches

    async def load_all(self, repositories: list[Repository]) -> dict[str, list[Branch]]:
        """
        Load branches for every repository concurrently, keyed by repository name.

        Expired entries are swept first. A repository whose load fails maps to
        an empty list instead of failing the whole call.
        """
        removed = self.cache.clear_expired(self.namespace)
        if removed:
            logger.debug(f"Swept {removed} expired cache entries for {self.client.workspace}")

        async def load_one(repo: Repository) -> tuple[str, list[Branch]]:
            try:
                return repo.name, await self.load_branches(repo.slug)
            except Exception as e:
                logger.warning(f"Failed to load branches for {repo.name}: {e}")
                return repo.name, []

        results = await asyncio.gather(*(load_one(repo) for repo in repositories))
        return dict(results)

    async def load(self) -> BranchSnapshot:
        """Load repositories then all of their branches, using cached entries where valid."""
        repositories = await self.load_repositories()
        branches = await self.load_all(repositories)
        return BranchSnapshot.build(repositories, branches)

    async def refresh(self) -> BranchSnapshot:
        """Drop every cached entry for the workspace and reload from Bitbucket."""
        cleared = self.cache.clear_all(self.namespace)
        logger.info(f"Refreshing {self.client.workspace}: cleared {cleared} cache entries")
        return await self.load()
