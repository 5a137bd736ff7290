from fastapi import APIRouter

from branchboard.api.v1 import branches, repositories, workspace

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(repositories.router)
api_router.include_router(branches.router)
api_router.include_router(workspace.router)
