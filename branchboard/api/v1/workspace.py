"""
Workspace endpoints: status, manual configuration and cache refresh.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from branchboard.api.deps import get_branch_service, raise_for_bitbucket_error
from branchboard.schemas import (
    ConfigRequest,
    RateLimitStatus,
    RepositoryListResponse,
    RepositoryOut,
    StatusResponse,
)
from branchboard.services.bitbucket import (
    BitbucketAPIError,
    BitbucketConfig,
    BranchSnapshot,
    ConfigurationError,
)
from branchboard.services.branch_data import BranchDataService
from branchboard.services.branches import count_branches

router = APIRouter(tags=["workspace"])
logger = logging.getLogger(__name__)


def _status(service: BranchDataService) -> StatusResponse:
    info = service.rate_limiter.status()
    config = service.config
    return StatusResponse(
        configured=config.is_configured,
        config_source=config.source,
        workspace=config.workspace or None,
        loading=service.loading,
        error=service.error,
        last_fetched_at=service.snapshot.fetched_at.isoformat() if service.snapshot else None,
        rate_limit=RateLimitStatus(
            limit=info.limit,
            remaining=info.remaining,
            resource=info.resource,
            near_limit=service.rate_limiter.is_near_limit(),
            reset_in_seconds=service.rate_limiter.time_until_reset(),
        ),
    )


def _repository_list(snapshot: BranchSnapshot) -> RepositoryListResponse:
    counts = count_branches(snapshot.branches)
    return RepositoryListResponse(
        repositories=[
            RepositoryOut.from_repository(r, counts.get(r.name, 0)) for r in snapshot.repositories
        ],
        total=len(snapshot.repositories),
        total_branches=sum(counts.values()),
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(
    service: BranchDataService = Depends(get_branch_service),
) -> StatusResponse:
    """Configuration source, last fetch outcome and rate limit estimate."""
    return _status(service)


@router.put("/config", response_model=StatusResponse)
async def set_config(
    data: ConfigRequest,
    service: BranchDataService = Depends(get_branch_service),
) -> StatusResponse:
    """Use a manually entered workspace and token instead of the environment."""
    try:
        config = BitbucketConfig.manual(data.workspace, data.access_token)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from None
    service.configure(config)
    return _status(service)


@router.post("/refresh", response_model=RepositoryListResponse)
async def refresh(
    service: BranchDataService = Depends(get_branch_service),
) -> RepositoryListResponse:
    """Drop cached entries for the workspace and fetch everything again."""
    try:
        snapshot = await service.refresh()
    except BitbucketAPIError as e:
        raise_for_bitbucket_error(e)
    logger.info(f"Refresh complete: {len(snapshot.repositories)} repositories")
    return _repository_list(snapshot)
