"""
Rate limit tracking for Bitbucket API calls.

Bitbucket reports only the hourly ceiling (X-RateLimit-Limit), the resource
bucket (X-RateLimit-Resource) and a near-limit flag (X-RateLimit-NearLimit).
The remaining count is therefore an estimate derived from the flag, and the
reset time is a rolling one-hour window restarted on every response.

Throttling here is advisory: it reduces 429s but does not prevent them.
"""

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace

import httpx

from branchboard.services.bitbucket.constants import (
    DEFAULT_RATE_LIMIT,
    DEFAULT_RATE_LIMIT_RESOURCE,
    LOW_REMAINING_WARNING_THRESHOLD,
    NEAR_LIMIT_COOLDOWN_SECONDS,
    NEAR_LIMIT_COOLDOWN_THRESHOLD,
    NEAR_LIMIT_REMAINING_RATIO,
    NORMAL_REMAINING_RATIO,
    RATE_LIMIT_WINDOW_SECONDS,
)

logger = logging.getLogger(__name__)


@dataclass
class RateLimitInfo:
    """Current rate limit estimate. `remaining` is best-effort, not authoritative."""

    limit: int
    remaining: int
    reset_time: float  # Unix timestamp (seconds) when the window rolls over
    resource: str
    near_limit: bool


class RateLimitTracker:
    """
    Tracks rate limit state from response headers and pauses callers near the limit.

    One instance is shared by every request made for a workspace. State is only
    touched from the event loop, so no locking is needed.
    """

    def __init__(
        self,
        limit: int = DEFAULT_RATE_LIMIT,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self.info = RateLimitInfo(
            limit=limit,
            remaining=limit,
            reset_time=clock() + RATE_LIMIT_WINDOW_SECONDS,
            resource=DEFAULT_RATE_LIMIT_RESOURCE,
            near_limit=False,
        )

    def update(self, headers: Mapping[str, str]) -> None:
        """Refresh the estimate from a response's headers."""
        headers = httpx.Headers(headers)
        limit = headers.get("X-RateLimit-Limit")
        resource = headers.get("X-RateLimit-Resource")
        near_limit = headers.get("X-RateLimit-NearLimit")

        if limit:
            try:
                self.info.limit = int(limit)
            except ValueError:
                logger.debug(f"Ignoring unparseable X-RateLimit-Limit: {limit!r}")
        if resource:
            self.info.resource = resource.replace('"', "")
        if near_limit:
            self.info.near_limit = near_limit.strip().lower() == "true"

        ratio = NEAR_LIMIT_REMAINING_RATIO if self.info.near_limit else NORMAL_REMAINING_RATIO
        self.info.remaining = math.floor(self.info.limit * ratio)
        self.info.reset_time = self._clock() + RATE_LIMIT_WINDOW_SECONDS

    async def check_and_wait(self) -> None:
        """Roll the window over if it has passed, then cool down if near the limit."""
        now = self._clock()
        if now >= self.info.reset_time:
            self.info.remaining = self.info.limit
            self.info.near_limit = False
            self.info.reset_time = now + RATE_LIMIT_WINDOW_SECONDS

        if self.info.near_limit and self.info.remaining < NEAR_LIMIT_COOLDOWN_THRESHOLD:
            logger.warning(
                f"Approaching Bitbucket rate limit ({self.info.resource}), "
                f"pausing {NEAR_LIMIT_COOLDOWN_SECONDS}s"
            )
            await self._sleep(NEAR_LIMIT_COOLDOWN_SECONDS)

    def status(self) -> RateLimitInfo:
        """Snapshot of the current estimate."""
        return replace(self.info)

    def is_near_limit(self) -> bool:
        return self.info.near_limit or self.info.remaining < LOW_REMAINING_WARNING_THRESHOLD

    def time_until_reset(self) -> float:
        """Seconds until the window rolls over, never negative."""
        return max(0.0, self.info.reset_time - self._clock())
