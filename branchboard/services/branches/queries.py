"""Search and grouping helpers over fetched repositories and branches."""

from collections.abc import Iterable, Mapping
from typing import Literal

from branchboard.services.bitbucket.types import Branch, GroupedBranches, Repository

RepositorySort = Literal["name", "branches"]


def group_branches_by_author(branches_by_repo: Mapping[str, list[Branch]]) -> GroupedBranches:
    """Build repository -> contributor -> branches, keeping fetch order within each group."""
    grouped: GroupedBranches = {}
    for repo_name, branches in branches_by_repo.items():
        by_author: dict[str, list[Branch]] = {}
        for branch in branches:
            by_author.setdefault(branch.author_name, []).append(branch)
        grouped[repo_name] = by_author
    return grouped


def flatten_branches(branches_by_repo: Mapping[str, list[Branch]]) -> list[Branch]:
    return [branch for branches in branches_by_repo.values() for branch in branches]


def count_branches(branches_by_repo: Mapping[str, list[Branch]]) -> dict[str, int]:
    return {name: len(branches) for name, branches in branches_by_repo.items()}


def branch_matches(branch: Branch, term: str, include_repository: bool = False) -> bool:
    """
    Case-insensitive substring match on branch name or author display name.

    The repository name is also searched when include_repository is set.
    An empty term matches everything.
    """
    needle = term.strip().lower()
    if not needle:
        return True
    if needle in branch.name.lower():
        return True
    if include_repository and needle in branch.repository_name.lower():
        return True
    display_name = branch.target.author.display_name
    return bool(display_name) and needle in display_name.lower()


def filter_branches(
    branches: Iterable[Branch], term: str, include_repository: bool = False
) -> list[Branch]:
    return [b for b in branches if branch_matches(b, term, include_repository)]


def filter_repositories(repositories: Iterable[Repository], term: str) -> list[Repository]:
    needle = term.strip().lower()
    return [repo for repo in repositories if needle in repo.name.lower()]


def sort_repositories(
    repositories: Iterable[Repository],
    by: RepositorySort = "name",
    branch_counts: Mapping[str, int] | None = None,
) -> list[Repository]:
    """Sort by name (A-Z) or by branch count (most branches first)."""
    if by == "branches":
        counts = branch_counts or {}
        return sorted(repositories, key=lambda repo: counts.get(repo.name, 0), reverse=True)
    return sorted(repositories, key=lambda repo: repo.name.lower())


def sort_contributors(by_author: Mapping[str, list[Branch]]) -> list[tuple[str, list[Branch]]]:
    """Contributors with the most branches first."""
    return sorted(by_author.items(), key=lambda item: len(item[1]), reverse=True)
