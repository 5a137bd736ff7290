# Services package

from branchboard.services.branch_data import (
    BranchDataService,
    build_branch_data_service,
)

__all__ = [
    "BranchDataService",
    "build_branch_data_service",
]
