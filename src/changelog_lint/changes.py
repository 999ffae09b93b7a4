"""Turn commits into changelog entries."""

from __future__ import annotations

import re
from typing import Iterable

from changelog_lint.schemas import Change, Commit, Signature

GROUP_NAMES = ("Changed", "Added", "Deprecated", "Removed", "Fixed", "Security", "Uncategorized")
UNCATEGORIZED = "Uncategorized"

_BOT_NAMES = frozenset({"Greenkeeper", "greenkeeper[bot]"})
_BOT_EMAIL_DOMAIN = "@greenkeeper.io"

_BREAKING_RE = re.compile(r"^breaking:", re.IGNORECASE)
_REFERENCES_RE = re.compile(
    r"^(?:ref|see) ((?:[a-z]{2,4}-\d+(?: and |, )?)+)(?:\.\s*|$)",
    re.IGNORECASE,
)
_REFERENCE_SEPARATOR_RE = re.compile(r" and |, ")
_SQUASHED_LINE_RE = re.compile(r"^[*-] ")


def classify_commits(commits: Iterable[Commit]) -> dict[str, list[Change]]:
    """Group commits (latest-first) into changelog entries.

    Merge commits only serve to attribute the commits they brought in and do
    not produce entries. Every entry currently lands in "Uncategorized".
    """
    grouped: dict[str, list[Change]] = {name: [] for name in GROUP_NAMES}

    for commit in commits:
        if commit.is_merge_commit:
            continue

        author = _merger(commit) if _is_bot(commit.author) else commit.author
        title = _title_with_reference(commit)

        references: list[str] = []
        description = find_references(commit.description, references)
        for reference in references:
            title += f" ({reference})"
        title += f" ({author.name})"

        grouped[UNCATEGORIZED].append(Change(title=title, description=description))

    return grouped


def find_references(description: str | None, references: list[str]) -> str:
    """Strip "Ref ABC-123" style lines from a description.

    Found references are appended to ``references`` in order; the remaining
    description is returned stripped.
    """
    if not description:
        return ""

    def collect(match: re.Match[str]) -> str:
        references.extend(ref for ref in _REFERENCE_SEPARATOR_RE.split(match.group(1)) if ref)
        return ""

    lines = [_REFERENCES_RE.sub(collect, line, count=1) for line in re.split(r"\r?\n", description)]
    return "\n".join(lines).strip()


def is_squashed_list(description: str) -> bool:
    """Return True if a description is only "* " or "- " items.

    Squashed merges typically list the original commit titles this way; such
    descriptions render as a nested list instead of prose.
    """
    lines = [line for line in description.splitlines() if line.strip()]
    return bool(lines) and all(_SQUASHED_LINE_RE.match(line.strip()) for line in lines)


def prefix_title(title: str, subsystem: str | None = None) -> str:
    """Prefix a title with a bold subsystem label, marking breaking changes."""
    if _BREAKING_RE.match(title):
        title = title[len("breaking:") :].strip()
        subsystem = f"{subsystem} (breaking)" if subsystem else "Breaking"
    return f"**{subsystem}:** {title}" if subsystem else title


def _title_with_reference(commit: Commit) -> str:
    # References are left as plain text; linking them is up to the renderer.
    if commit.submodule:
        title = prefix_title(commit.title, commit.submodule)
        if commit.pr:
            return f"{title} ({commit.submodule}#{commit.pr})"
        return f"{title} ({commit.submodule}@{commit.short_oid})"

    title = prefix_title(commit.title)
    if commit.pr:
        return f"{title} (#{commit.pr})"
    return f"{title} ({commit.short_oid})"


def _merger(commit: Commit) -> Signature:
    return commit.merge_commit.author if commit.merge_commit is not None else commit.committer


def _is_bot(author: Signature) -> bool:
    return author.name in _BOT_NAMES or author.email.endswith(_BOT_EMAIL_DOMAIN)
