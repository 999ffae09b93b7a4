"""Version ordering, tag resolution and version bumps."""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import TYPE_CHECKING, Callable, Iterable, Sequence, TypeVar

import semver

if TYPE_CHECKING:
    from changelog_lint.sections import Release

T = TypeVar("T")

UNRELEASED = "unreleased"
BUMP_KEYWORDS = ("major", "minor", "patch", "premajor", "preminor", "prepatch", "prerelease")

_RC_SUFFIX_RE = re.compile(r"-rc(\d+)$")


def is_valid_version(version: str | None) -> bool:
    """Return True if ``version`` is a strict semantic version string."""
    return bool(version) and semver.Version.is_valid(version)


def compare_versions(a: str, b: str) -> int:
    """Compare two version strings, latest-first.

    Returns a negative number when ``a`` sorts before (is newer than) ``b``.
    The "unreleased" sentinel is newer than everything, valid semantic
    versions are newer than invalid ones, and invalid versions fall back to
    ascending string order.
    """
    if a == b:
        return 0
    if a == UNRELEASED:
        return -1
    if b == UNRELEASED:
        return 1

    a_valid = is_valid_version(a)
    b_valid = is_valid_version(b)

    if a_valid and b_valid:
        return _compare_semver(b, a)
    if a_valid:
        return -1
    if b_valid:
        return 1
    return -1 if a < b else 1


def compare_releases(a: Release, b: Release) -> int:
    """Compare releases latest-first, keeping unversioned releases in place."""
    if not a.version or not b.version:
        return a.index - b.index
    return compare_versions(a.version, b.version)


def is_sorted(items: Sequence[T], comparator: Callable[[T, T], int]) -> bool:
    return all(comparator(left, right) <= 0 for left, right in zip(items, items[1:]))


def sort_releases(releases: Iterable[Release]) -> list[Release]:
    return sorted(releases, key=cmp_to_key(compare_releases))


def sort_definitions(definitions: dict[str, T]) -> dict[str, T]:
    """Return a copy of an identifier mapping ordered latest-first."""
    keys = sorted(definitions, key=cmp_to_key(compare_versions))
    return {key: definitions[key] for key in keys}


def forgiving_tag(version: str, tags: Sequence[str]) -> str:
    """Resolve a version to a tag name, preferring the "v" prefix.

    An unprefixed tag is only used if it exists and the prefixed one does not,
    which supports projects with historical unprefixed tags.
    """
    tag = version if version.startswith("v") else f"v{version}"
    if tag in tags:
        return tag
    unprefixed = tag[1:]
    if unprefixed in tags:
        return unprefixed
    return tag


def last_tag_version(tags: Iterable[str]) -> str | None:
    """Return the version of the latest "v"-prefixed semver tag."""
    versions = [tag[1:] for tag in tags if tag.startswith("v") and is_valid_version(tag[1:])]
    if not versions:
        return None
    return sorted(versions, key=cmp_to_key(compare_versions))[0]


def is_newer(version: str, current: str) -> bool:
    """Return True if ``version`` is a valid semver strictly newer than ``current``."""
    if not is_valid_version(version) or not is_valid_version(current):
        return False
    return _compare_semver(version, current) > 0


def bump_version(version: str, keyword: str) -> str:
    """Apply a bump keyword to a semantic version.

    Pre-release bumps of a final version first bump the patch (or the given
    part), so the result is always newer than ``version``.

    Raises:
        ValueError: If ``version`` is not valid or ``keyword`` is unknown.
    """
    parsed = semver.Version.parse(version)

    if keyword == "major":
        bumped = parsed.bump_major()
    elif keyword == "minor":
        bumped = parsed.bump_minor()
    elif keyword == "patch":
        bumped = parsed.bump_patch()
    elif keyword == "premajor":
        bumped = parsed.bump_major().bump_prerelease()
    elif keyword == "preminor":
        bumped = parsed.bump_minor().bump_prerelease()
    elif keyword == "prepatch":
        bumped = parsed.bump_patch().bump_prerelease()
    elif keyword == "prerelease":
        if parsed.prerelease is None:
            parsed = parsed.bump_patch()
        bumped = parsed.bump_prerelease()
    else:
        raise ValueError(f"Unknown bump keyword: {keyword}")

    return str(bumped)


def _compare_semver(a: str, b: str) -> int:
    return semver.Version.parse(_normalize_rc(a)).compare(_normalize_rc(b))


def _normalize_rc(version: str) -> str:
    # "rc9" and "rc10" only order numerically as separate identifiers.
    normalized = _RC_SUFFIX_RE.sub(lambda match: f"-rc.{int(match.group(1))}", version)
    return normalized if semver.Version.is_valid(normalized) else version
