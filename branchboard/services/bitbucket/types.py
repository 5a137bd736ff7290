"""Data types for Bitbucket API responses."""

from dataclasses import dataclass, field
from typing import Any


def _href(links: dict[str, Any] | None, name: str) -> str | None:
    """Read links.<name>.href from a Bitbucket payload."""
    link = (links or {}).get(name) or {}
    return link.get("href")


@dataclass(frozen=True)
class Project:
    """Project that owns a repository."""

    key: str
    name: str
    url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Project":
        return cls(
            key=data.get("key", ""),
            name=data.get("name", ""),
            url=_href(data.get("links"), "html"),
        )


@dataclass(frozen=True)
class Repository:
    """Normalized Bitbucket repository data."""

    uuid: str
    name: str
    slug: str
    full_name: str
    is_private: bool
    description: str | None
    created_on: str | None
    updated_on: str | None
    url: str | None  # Web page
    api_url: str | None  # links.self
    project: Project | None = None
    main_branch: str | None = None
    # Source payload, kept so cached entries can be rehydrated
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Repository":
        """Convert Bitbucket API response to Repository dataclass."""
        project = data.get("project")
        mainbranch = data.get("mainbranch") or {}
        return cls(
            uuid=data.get("uuid", ""),
            name=data["name"],
            slug=data.get("slug") or data["name"],
            full_name=data.get("full_name", ""),
            is_private=data.get("is_private", False),
            description=data.get("description") or None,
            created_on=data.get("created_on"),
            updated_on=data.get("updated_on"),
            url=_href(data.get("links"), "html"),
            api_url=_href(data.get("links"), "self"),
            project=Project.from_api(project) if project else None,
            main_branch=mainbranch.get("name"),
            raw=data,
        )


@dataclass(frozen=True)
class CommitAuthor:
    """Commit author: raw "Name <email>" string plus an optional linked user."""

    raw: str
    display_name: str | None = None
    user_uuid: str | None = None
    account_id: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> "CommitAuthor":
        data = data or {}
        user = data.get("user") or {}
        return cls(
            raw=data.get("raw", ""),
            display_name=user.get("display_name"),
            user_uuid=user.get("uuid"),
            account_id=user.get("account_id"),
            avatar_url=_href(user.get("links"), "avatar"),
        )


@dataclass(frozen=True)
class CommitTarget:
    """Head commit of a branch."""

    hash: str
    date: str  # ISO 8601
    author: CommitAuthor
    repository_name: str
    url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> "CommitTarget":
        data = data or {}
        repository = data.get("repository") or {}
        return cls(
            hash=data.get("hash", ""),
            date=data.get("date", ""),
            author=CommitAuthor.from_api(data.get("author")),
            repository_name=repository.get("name", ""),
            url=_href(data.get("links"), "html"),
        )


@dataclass(frozen=True)
class Branch:
    """Branch snapshot. Name is unique within its repository."""

    name: str
    target: CommitTarget
    url: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Branch":
        """Convert Bitbucket API response to Branch dataclass."""
        return cls(
            name=data["name"],
            target=CommitTarget.from_api(data.get("target")),
            url=_href(data.get("links"), "html"),
            raw=data,
        )

    @property
    def author_name(self) -> str:
        """Display name of the head commit author, falling back to the raw string."""
        return self.target.author.display_name or self.target.author.raw or "Unknown"

    @property
    def repository_name(self) -> str:
        return self.target.repository_name


# repository name -> contributor display name -> branches
GroupedBranches = dict[str, dict[str, list[Branch]]]
