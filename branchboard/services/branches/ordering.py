"""
Display ordering for branch lists.

Branches fall into three classes:
    0  primary ("master")
    1  integration and everything else ("develop*", feature branches, ...)
    2  version/release branches ("v1.2", "versions/1.0", "release/2.0-rc1")

Classes sort ascending. Inside class 2 branches sort by their numeric version,
lowest first, then by name. Inside the other classes branches sort by head
commit date, most recent first. Ties keep their input order.
"""

import re
from collections.abc import Iterable
from functools import cmp_to_key

from branchboard.services.bitbucket.types import Branch

PRIMARY_BRANCH = "master"

# Stricter than the staleness exemption pattern: "versions/<name>/v1.0" is not
# a version branch for ordering purposes
VERSION_BRANCH_PATTERN = re.compile(r"^(v|versions/|release/)?\d+(\.\d+)*(-[\w\d]+)?$")
VERSION_NUMBER_PATTERN = re.compile(r"(\d+(\.\d+)*)(-[\w\d]+)?")

PRIMARY_CLASS = 0
DEFAULT_CLASS = 1
VERSION_CLASS = 2


def is_version_branch(name: str) -> bool:
    return VERSION_BRANCH_PATTERN.fullmatch(name) is not None


def branch_class(name: str) -> int:
    """Ordering class of a branch name (0 primary, 1 other, 2 version/release)."""
    if is_version_branch(name):
        return VERSION_CLASS
    if name == PRIMARY_BRANCH:
        return PRIMARY_CLASS
    return DEFAULT_CLASS


def extract_version(name: str) -> tuple[int, ...]:
    """First dotted number sequence in the name, e.g. "release/2.10-rc1" -> (2, 10)."""
    match = VERSION_NUMBER_PATTERN.search(name)
    if not match:
        return ()
    return tuple(int(part) for part in match.group(1).split("."))


def compare_versions(a: tuple[int, ...], b: tuple[int, ...]) -> int:
    """Component-wise comparison with missing trailing components read as 0."""
    width = max(len(a), len(b))
    padded_a = a + (0,) * (width - len(a))
    padded_b = b + (0,) * (width - len(b))
    return (padded_a > padded_b) - (padded_a < padded_b)


def _compare(a: Branch, b: Branch) -> int:
    class_a = branch_class(a.name)
    class_b = branch_class(b.name)
    if class_a != class_b:
        return class_a - class_b

    if class_a == VERSION_CLASS:
        version_a = extract_version(a.name)
        version_b = extract_version(b.name)
        if version_a and version_b:
            result = compare_versions(version_a, version_b)
            if result:
                return result
        return (a.name > b.name) - (a.name < b.name)

    # ISO 8601 strings order correctly as text; newest first
    return (a.target.date < b.target.date) - (a.target.date > b.target.date)


def sort_branches(branches: Iterable[Branch]) -> list[Branch]:
    """Return branches in display order. The input is not modified."""
    return sorted(branches, key=cmp_to_key(_compare))


def sort_by_recent(branches: Iterable[Branch]) -> list[Branch]:
    """Newest head commit first, ignoring branch classes."""
    return sorted(branches, key=lambda branch: branch.target.date, reverse=True)
