"""Commit records and the change entries derived from them."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Signature:
    """Author or committer identity."""

    name: str
    email: str


@dataclass
class Commit:
    """A commit read from source control.

    Attributes:
        oid: Full object id.
        title: First line of the message.
        description: Remainder of the message, stripped.
        author: Commit author.
        committer: Commit committer.
        parents: Parent object ids.
        pr: Pull request number, from the merge commit that brought it in.
        submodule: Name of the submodule the commit was read from.
        is_merge_commit: True when the commit has more than one parent.
        merge_commit: The merge commit this commit was attributed to.
        commits: For merge commits, the commits attributed to it (latest-first).
    """

    oid: str
    title: str
    description: str
    author: Signature
    committer: Signature
    parents: list[str] = field(default_factory=list)
    pr: int | None = None
    submodule: str | None = None
    is_merge_commit: bool = False
    merge_commit: Commit | None = field(default=None, repr=False, compare=False)
    commits: list[Commit] = field(default_factory=list, repr=False, compare=False)

    @property
    def short_oid(self) -> str:
        return self.oid[:7]


@dataclass
class Change:
    """A single changelog entry."""

    title: str
    description: str = ""
