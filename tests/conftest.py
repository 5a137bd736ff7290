"""Root conftest: shared test infrastructure.

Provides:
- anyio backend pinned to asyncio
- Isolated cache store / TTL cache with a controllable clock
- Rate limiter and retrying HTTP client with recorded (instant) sleeps
"""

from __future__ import annotations

import pytest

from branchboard.services.bitbucket import MemoryStore, RateLimitTracker, TTLCache
from tests.helpers.fakes import FakeClock, RecordingSleep


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper(clock: FakeClock) -> RecordingSleep:
    """Async sleep that records delays and advances the fake clock."""
    return RecordingSleep(clock)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(maxsize=100)


@pytest.fixture
def ttl_cache(store: MemoryStore, clock: FakeClock) -> TTLCache:
    return TTLCache(store, ttl_seconds=300, timer=clock)


@pytest.fixture
def rate_limiter(clock: FakeClock, sleeper: RecordingSleep) -> RateLimitTracker:
    return RateLimitTracker(clock=clock, sleep=sleeper)
