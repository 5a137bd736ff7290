"""Pydantic schemas for API request/response validation."""

from branchboard.schemas.branches import (
    BranchListResponse,
    BranchOut,
    ConfigRequest,
    ContributorBranches,
    GroupedBranchesResponse,
    ProjectOut,
    RateLimitStatus,
    RepositoryBranchesResponse,
    RepositoryListResponse,
    RepositoryOut,
    StatusResponse,
)

__all__ = [
    "BranchListResponse",
    "BranchOut",
    "ConfigRequest",
    "ContributorBranches",
    "GroupedBranchesResponse",
    "ProjectOut",
    "RateLimitStatus",
    "RepositoryBranchesResponse",
    "RepositoryListResponse",
    "RepositoryOut",
    "StatusResponse",
]
