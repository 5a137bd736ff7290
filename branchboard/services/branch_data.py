"""
Process-wide branch data service.

Wires the Bitbucket client, rate limiter and TTL cache together once per
process (see build_branch_data_service) and tracks the loading/error status
of the latest fetch for status reporting.
"""

import asyncio
import logging

from branchboard.config.settings import Settings
from branchboard.services.bitbucket import (
    BitbucketClient,
    BitbucketConfig,
    BranchSnapshot,
    CachedRepositoryLoader,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    RateLimitTracker,
    RetryingHttpClient,
    TTLCache,
)

logger = logging.getLogger(__name__)


class BranchDataService:
    """
    Latest snapshot plus the loading/error pair shown to users.

    At most one load is current at a time. Concurrent fetch() calls join it
    instead of starting their own, so a cold cache costs one remote load no
    matter how many requests arrive together. A refresh joins a refresh
    already running and otherwise supersedes the current load; a superseded
    load still answers its own callers but never touches snapshot or error.
    """

    def __init__(self, loader: CachedRepositoryLoader, stale_threshold_days: int = 30):
        self.loader = loader
        self.stale_threshold_days = stale_threshold_days
        self.snapshot: BranchSnapshot | None = None
        self.error: str | None = None
        self._inflight: asyncio.Task[BranchSnapshot] | None = None
        self._inflight_is_refresh = False

    @property
    def config(self) -> BitbucketConfig:
        return self.loader.client.config

    @property
    def rate_limiter(self) -> RateLimitTracker:
        return self.loader.client.http.rate_limiter

    @property
    def loading(self) -> bool:
        """True while the current load is running."""
        return self._inflight is not None and not self._inflight.done()

    def is_configured(self) -> bool:
        return self.config.is_configured

    def configure(self, config: BitbucketConfig) -> None:
        """Switch to another workspace/token, keeping the HTTP client and cache."""
        client = BitbucketClient(config, self.loader.client.http, self.loader.client.base_url)
        self.loader = CachedRepositoryLoader(client, self.loader.cache)
        self.snapshot = None
        self.error = None
        # A load for the old workspace may still finish; it is no longer current
        self._inflight = None
        logger.info(f"Bitbucket configuration set for workspace {config.workspace}")

    async def fetch(self, *, force_refresh: bool = False) -> BranchSnapshot:
        """
        Load repositories and branches, through the cache unless force_refresh.

        Joins the current load when there is one (a plain fetch joins any load,
        a refresh only joins another refresh). On failure of the current load
        the error message is recorded and the exception re-raised.
        """
        task = self._inflight
        joinable = (
            task is not None
            and not task.done()
            and (self._inflight_is_refresh or not force_refresh)
        )
        if not joinable:
            self.error = None
            task = asyncio.create_task(self._load(self.loader, force_refresh))
            self._inflight = task
            self._inflight_is_refresh = force_refresh

        # Shielded so one caller going away does not cancel the shared load
        return await asyncio.shield(task)

    def _is_current(self, loader: CachedRepositoryLoader) -> bool:
        return asyncio.current_task() is self._inflight and loader is self.loader

    async def _load(
        self, loader: CachedRepositoryLoader, force_refresh: bool
    ) -> BranchSnapshot:
        try:
            if force_refresh:
                snapshot = await loader.refresh()
            else:
                snapshot = await loader.load()
        except Exception as e:
            if self._is_current(loader):
                self.error = str(e) or "An unexpected error occurred"
                logger.error(f"Branch data fetch failed: {self.error}")
            raise

        if not self._is_current(loader):
            logger.debug(f"Discarding superseded load for {loader.client.workspace}")
            return snapshot

        self.snapshot = snapshot
        logger.info(
            f"Fetched {len(snapshot.repositories)} repositories and "
            f"{len(snapshot.flat)} branches"
        )
        return snapshot

    async def refresh(self) -> BranchSnapshot:
        return await self.fetch(force_refresh=True)

    async def retry(self) -> BranchSnapshot:
        return await self.fetch()


def build_store(settings: Settings) -> KeyValueStore:
    if settings.cache_backend == "file":
        return JsonFileStore(settings.cache_path)
    return MemoryStore(maxsize=settings.cache_max_entries)


def build_branch_data_service(settings: Settings) -> BranchDataService:
    """Construct the single service instance for this process."""
    http = RetryingHttpClient(RateLimitTracker())
    client = BitbucketClient(
        BitbucketConfig.from_settings(settings), http, settings.bitbucket_api_url
    )
    cache = TTLCache(build_store(settings), ttl_seconds=settings.cache_ttl_seconds)
    if not client.is_configured():
        logger.warning(
            "Bitbucket workspace or access token not set "
            "(BITBUCKET_WORKSPACE / BITBUCKET_ACCESS_TOKEN)"
        )
    return BranchDataService(
        CachedRepositoryLoader(client, cache),
        stale_threshold_days=settings.stale_threshold_days,
    )
