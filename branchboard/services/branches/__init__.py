"""
Pure branch ranking, staleness and query helpers.

Nothing in this package performs I/O.
"""

from branchboard.services.branches.ordering import (
    branch_class,
    extract_version,
    is_version_branch,
    sort_branches,
    sort_by_recent,
)
from branchboard.services.branches.queries import (
    RepositorySort,
    count_branches,
    filter_branches,
    filter_repositories,
    flatten_branches,
    group_branches_by_author,
    sort_contributors,
    sort_repositories,
)
from branchboard.services.branches.staleness import (
    DEFAULT_STALE_THRESHOLD_DAYS,
    is_exempt_from_staleness,
    is_stale,
    stale_flags,
)

__all__ = [
    # Ordering
    "branch_class",
    "extract_version",
    "is_version_branch",
    "sort_branches",
    "sort_by_recent",
    # Staleness
    "DEFAULT_STALE_THRESHOLD_DAYS",
    "is_exempt_from_staleness",
    "is_stale",
    "stale_flags",
    # Queries
    "RepositorySort",
    "count_branches",
    "filter_branches",
    "filter_repositories",
    "flatten_branches",
    "group_branches_by_author",
    "sort_contributors",
    "sort_repositories",
]
