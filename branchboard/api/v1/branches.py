"""
Branch endpoints across the whole workspace.
"""

from fastapi import APIRouter, Depends, Query

from branchboard.api.deps import get_branch_service, get_snapshot
from branchboard.schemas import BranchListResponse, BranchOut, GroupedBranchesResponse
from branchboard.services.bitbucket import BranchSnapshot
from branchboard.services.branch_data import BranchDataService
from branchboard.services.branches import (
    filter_branches,
    is_stale,
    sort_branches,
    sort_by_recent,
)

router = APIRouter(prefix="/branches", tags=["branches"])


@router.get("", response_model=BranchListResponse)
async def list_branches(
    search: str = Query("", description="Filter by branch, repository or author name"),
    snapshot: BranchSnapshot = Depends(get_snapshot),
    service: BranchDataService = Depends(get_branch_service),
) -> BranchListResponse:
    """All branches in the workspace, most recent commit first."""
    matching = sort_by_recent(filter_branches(snapshot.flat, search, include_repository=True))
    threshold = service.stale_threshold_days
    return BranchListResponse(
        branches=[BranchOut.from_branch(b, is_stale(b, threshold)) for b in matching],
        total=len(snapshot.flat),
        filtered=len(matching),
    )


@router.get("/grouped", response_model=GroupedBranchesResponse)
async def grouped_branches(
    snapshot: BranchSnapshot = Depends(get_snapshot),
    service: BranchDataService = Depends(get_branch_service),
) -> GroupedBranchesResponse:
    """Branches grouped by repository, then by contributor, in display order."""
    threshold = service.stale_threshold_days
    return GroupedBranchesResponse(
        repositories={
            repo_name: {
                author: [
                    BranchOut.from_branch(b, is_stale(b, threshold))
                    for b in sort_branches(branches)
                ]
                for author, branches in by_author.items()
            }
            for repo_name, by_author in snapshot.grouped.items()
        }
    )
