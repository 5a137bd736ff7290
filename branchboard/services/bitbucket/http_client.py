"""
Shared HTTP client and retry policy for Bitbucket API operations.

Provides a singleton AsyncClient with connection pooling for all Bitbucket API
calls, and RetryingHttpClient which wraps each logical request with rate limit
bookkeeping and bounded, exponentially backed-off retries.

Only 429 responses and transport failures are retried. Every other non-2xx
status surfaces immediately as HttpError.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

from branchboard.services.bitbucket.constants import BASE_RETRY_DELAY_SECONDS, MAX_RETRIES
from branchboard.services.bitbucket.exceptions import HttpError, NetworkError, RateLimitExceeded
from branchboard.services.bitbucket.rate_limit import RateLimitTracker

logger = logging.getLogger(__name__)

# Module-level singleton client
_client: httpx.AsyncClient | None = None


def get_bitbucket_client() -> httpx.AsyncClient:
    """
    Get or create the shared HTTP client for Bitbucket API calls.

    Auth headers are passed per-request, not stored on the client.
    """
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(30.0, connect=5.0),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            http2=True,
        )
        logger.debug("Created new Bitbucket HTTP client with connection pooling")
    return _client


async def close_bitbucket_client() -> None:
    """
    Close the shared HTTP client.

    Call on app shutdown for graceful termination.
    """
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
        _client = None
        logger.debug("Closed Bitbucket HTTP client")


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given in whole seconds. HTTP-date values are ignored."""
    if not value:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return float(max(seconds, 0))


def backoff_delay(retry_count: int, base: float = BASE_RETRY_DELAY_SECONDS) -> float:
    """Exponential backoff: base * 2^retry_count seconds."""
    return base * (2**retry_count)


class RetryingHttpClient:
    """
    Executes one logical request with at most max_retries + 1 attempts.

    All attempts of a call share one backoff schedule: the n-th retry waits
    base * 2^(n-1) seconds unless a 429 carries Retry-After.
    """

    def __init__(
        self,
        rate_limiter: RateLimitTracker,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        base_delay: float = BASE_RETRY_DELAY_SECONDS,
    ) -> None:
        self.rate_limiter = rate_limiter
        self._client = client
        self._sleep = sleep
        self._base_delay = base_delay

    def _http(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else get_bitbucket_client()

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        retry_count: int = 0,
        max_retries: int = MAX_RETRIES,
    ) -> httpx.Response:
        """
        Perform the request, retrying 429s and transport failures.

        Raises:
            RateLimitExceeded: Still 429 after max_retries retries
            NetworkError: Transport failure after max_retries retries
            HttpError: Any other non-success status (not retried)
        """
        while True:
            await self.rate_limiter.check_and_wait()

            try:
                response = await self._http().request(
                    method, url, headers=headers, params=params
                )
            except httpx.TransportError as e:
                if retry_count >= max_retries:
                    raise NetworkError(f"Network error requesting {url}: {e}") from e
                delay = backoff_delay(retry_count, self._base_delay)
                logger.warning(
                    f"Network error. Retrying in {delay:.1f}s... "
                    f"(Attempt {retry_count + 1}/{max_retries})"
                )
                await self._sleep(delay)
                retry_count += 1
                continue

            self.rate_limiter.update(response.headers)

            if response.status_code == 429:
                retry_after = parse_retry_after(response.headers.get("Retry-After"))
                if retry_count >= max_retries:
                    raise RateLimitExceeded(retry_after)
                delay = (
                    retry_after
                    if retry_after is not None
                    else backoff_delay(retry_count, self._base_delay)
                )
                logger.warning(
                    f"Rate limited. Retrying in {delay:.1f}s... "
                    f"(Attempt {retry_count + 1}/{max_retries})"
                )
                await self._sleep(delay)
                retry_count += 1
                continue

            if not response.is_success:
                raise HttpError(response.status_code, response.reason_phrase)

            return response
