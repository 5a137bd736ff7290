from branchboard.api.v1 import branches, repositories, workspace

__all__ = [
    "branches",
    "repositories",
    "workspace",
]
