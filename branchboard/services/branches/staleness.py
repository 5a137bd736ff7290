"""
Stale branch detection.

A branch is stale when its head commit is older than a threshold (30 days by
default). Primary, develop and version branches are never stale. Evaluation
errors never mark a branch stale.
"""

import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from branchboard.services.bitbucket.types import Branch

logger = logging.getLogger(__name__)

DEFAULT_STALE_THRESHOLD_DAYS = 30
EXEMPT_BRANCH_NAMES = frozenset({"master", "main"})
DEVELOP_PREFIX = "develop"

# Broader than the ordering pattern: also accepts "versions/<name>/v1.0"
STALE_EXEMPT_VERSION_PATTERN = re.compile(
    r"^(v\d+(\.\d+)*|versions(/[\w-]+)*/v?\d+(\.\d+)*|release/\d+(\.\d+)*)(-[\w\d]+)?$"
)


def is_exempt_from_staleness(name: str) -> bool:
    return (
        name in EXEMPT_BRANCH_NAMES
        or name.startswith(DEVELOP_PREFIX)
        or STALE_EXEMPT_VERSION_PATTERN.fullmatch(name) is not None
    )


def parse_commit_date(value: str) -> datetime:
    """Parse a Bitbucket ISO 8601 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def is_stale(
    branch: Branch,
    threshold_days: int = DEFAULT_STALE_THRESHOLD_DAYS,
    now: datetime | None = None,
) -> bool:
    """True iff the branch is not exempt and its head commit predates now - threshold_days."""
    if is_exempt_from_staleness(branch.name):
        return False

    try:
        last_commit = parse_commit_date(branch.target.date)
        cutoff = (now or datetime.now(UTC)) - timedelta(days=threshold_days)
        return last_commit < cutoff
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug(f"Staleness check failed for {branch.name}: {e}")
        return False


def stale_flags(
    branches: Iterable[Branch],
    threshold_days: int = DEFAULT_STALE_THRESHOLD_DAYS,
    now: datetime | None = None,
) -> dict[str, bool]:
    """Map branch name -> stale flag."""
    now = now or datetime.now(UTC)
    return {branch.name: is_stale(branch, threshold_days, now) for branch in branches}
