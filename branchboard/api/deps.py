from typing import NoReturn

from fastapi import Depends, HTTPException, Request, status

from branchboard.services.bitbucket import (
    BitbucketAPIError,
    BranchSnapshot,
    ConfigurationError,
    NetworkError,
    RateLimitExceeded,
)
from branchboard.services.branch_data import BranchDataService


def get_branch_service(request: Request) -> BranchDataService:
    """The process-wide service created at startup."""
    return request.app.state.branch_service


def error_status_code(error: BitbucketAPIError) -> int:
    """HTTP status returned to our callers for a Bitbucket failure (HttpError and the rest: 502)."""
    if isinstance(error, ConfigurationError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(error, RateLimitExceeded):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(error, NetworkError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY


def raise_for_bitbucket_error(error: BitbucketAPIError) -> NoReturn:
    headers = None
    if isinstance(error, RateLimitExceeded) and error.retry_after is not None:
        headers = {"Retry-After": str(int(error.retry_after))}
    raise HTTPException(
        status_code=error_status_code(error),
        detail=error.message,
        headers=headers,
    ) from None


async def get_snapshot(
    service: BranchDataService = Depends(get_branch_service),
) -> BranchSnapshot:
    """Current repositories and branches, served from cache while valid."""
    try:
        return await service.fetch()
    except BitbucketAPIError as e:
        raise_for_bitbucket_error(e)
