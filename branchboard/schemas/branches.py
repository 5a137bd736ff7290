"""Pydantic response schemas for the branch overview API."""

from typing import Literal

from pydantic import BaseModel, Field

from branchboard.services.bitbucket.types import Branch, Repository


class ProjectOut(BaseModel):
    key: str
    name: str
    url: str | None = None


class RepositoryOut(BaseModel):
    """Repository as listed in the sidebar."""

    uuid: str
    name: str
    slug: str
    full_name: str
    is_private: bool
    description: str | None
    created_on: str | None
    updated_on: str | None
    url: str | None
    project: ProjectOut | None
    main_branch: str | None
    branch_count: int = 0

    @classmethod
    def from_repository(cls, repo: Repository, branch_count: int = 0) -> "RepositoryOut":
        project = None
        if repo.project:
            project = ProjectOut(key=repo.project.key, name=repo.project.name, url=repo.project.url)
        return cls(
            uuid=repo.uuid,
            name=repo.name,
            slug=repo.slug,
            full_name=repo.full_name,
            is_private=repo.is_private,
            description=repo.description,
            created_on=repo.created_on,
            updated_on=repo.updated_on,
            url=repo.url,
            project=project,
            main_branch=repo.main_branch,
            branch_count=branch_count,
        )


class BranchOut(BaseModel):
    """Branch with its head commit and stale flag."""

    name: str
    repository: str
    author: str
    author_avatar_url: str | None
    commit_hash: str
    commit_date: str = Field(description="ISO 8601 date of the head commit")
    commit_url: str | None
    url: str | None
    stale: bool = False

    @classmethod
    def from_branch(cls, branch: Branch, stale: bool = False) -> "BranchOut":
        return cls(
            name=branch.name,
            repository=branch.repository_name,
            author=branch.author_name,
            author_avatar_url=branch.target.author.avatar_url,
            commit_hash=branch.target.hash,
            commit_date=branch.target.date,
            commit_url=branch.target.url,
            url=branch.url,
            stale=stale,
        )


class RepositoryListResponse(BaseModel):
    repositories: list[RepositoryOut]
    total: int
    total_branches: int


class BranchListResponse(BaseModel):
    """Flat branch list with the counts shown next to the search box."""

    branches: list[BranchOut]
    total: int
    filtered: int


class ContributorBranches(BaseModel):
    author: str
    avatar_url: str | None
    branches: list[BranchOut]


class RepositoryBranchesResponse(BaseModel):
    repository: str
    contributors: list[ContributorBranches]
    total: int
    filtered: int


class GroupedBranchesResponse(BaseModel):
    """repository name -> contributor -> branches in display order."""

    repositories: dict[str, dict[str, list[BranchOut]]]


class RateLimitStatus(BaseModel):
    limit: int
    remaining: int
    resource: str
    near_limit: bool
    reset_in_seconds: float


class StatusResponse(BaseModel):
    """Configuration, loading/error pair and rate limit estimate."""

    configured: bool
    config_source: Literal["environment", "manual", "none"]
    workspace: str | None
    loading: bool
    error: str | None
    last_fetched_at: str | None
    rate_limit: RateLimitStatus


class ConfigRequest(BaseModel):
    """Manually entered workspace and token."""

    workspace: str = Field(min_length=1)
    access_token: str = Field(min_length=1)
