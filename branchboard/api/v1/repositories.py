"""
Repository endpoints: sidebar listing and per-repository branch groups.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from branchboard.api.deps import get_branch_service, get_snapshot
from branchboard.schemas import (
    BranchOut,
    ContributorBranches,
    RepositoryBranchesResponse,
    RepositoryListResponse,
    RepositoryOut,
)
from branchboard.services.bitbucket import BranchSnapshot
from branchboard.services.branch_data import BranchDataService
from branchboard.services.branches import (
    RepositorySort,
    count_branches,
    filter_branches,
    filter_repositories,
    sort_branches,
    sort_contributors,
    sort_repositories,
    stale_flags,
)

router = APIRouter(prefix="/repositories", tags=["repositories"])


@router.get("", response_model=RepositoryListResponse)
async def list_repositories(
    search: str = Query("", description="Case-insensitive repository name filter"),
    sort: RepositorySort = Query("name", description="Sort by: name, branches"),
    snapshot: BranchSnapshot = Depends(get_snapshot),
) -> RepositoryListResponse:
    """List workspace repositories with their branch counts."""
    counts = count_branches(snapshot.branches)
    repos = sort_repositories(
        filter_repositories(snapshot.repositories, search),
        by=sort,
        branch_counts=counts,
    )
    return RepositoryListResponse(
        repositories=[RepositoryOut.from_repository(r, counts.get(r.name, 0)) for r in repos],
        total=len(snapshot.repositories),
        total_branches=sum(counts.values()),
    )


@router.get("/{name}/branches", response_model=RepositoryBranchesResponse)
async def list_repository_branches(
    name: str,
    search: str = Query("", description="Filter by branch, repository or author name"),
    snapshot: BranchSnapshot = Depends(get_snapshot),
    service: BranchDataService = Depends(get_branch_service),
) -> RepositoryBranchesResponse:
    """
    Branches of one repository grouped by contributor.

    Contributors with the most branches come first; each contributor's branches
    are in display order (master, then others by recency, then versions).
    """
    by_author = snapshot.grouped.get(name)
    if by_author is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Repository not found: {name}",
        )

    stale = stale_flags(snapshot.branches.get(name, []), service.stale_threshold_days)
    contributors: list[ContributorBranches] = []
    filtered = 0
    for author, branches in sort_contributors(by_author):
        matching = sort_branches(filter_branches(branches, search, include_repository=True))
        if not matching:
            continue
        filtered += len(matching)
        contributors.append(
            ContributorBranches(
                author=author,
                avatar_url=matching[0].target.author.avatar_url,
                branches=[BranchOut.from_branch(b, stale.get(b.name, False)) for b in matching],
            )
        )

    return RepositoryBranchesResponse(
        repository=name,
        contributors=contributors,
        total=sum(len(branches) for branches in by_author.values()),
        filtered=filtered,
    )
