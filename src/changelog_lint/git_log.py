"""Read tags and commit ranges from git."""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
from pathlib import Path

from changelog_lint.config import CHANGELOG_LINT_GIT_BINARY, CHANGELOG_LINT_GIT_TIMEOUT_S
from changelog_lint.exceptions import GitError
from changelog_lint.schemas import Commit, Signature

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 1000

# Fields are separated by US (0x1f) and records by RS (0x1e), which do not
# appear in commit metadata.
_LOG_FORMAT = "%H%x1f%P%x1f%an%x1f%ae%x1f%cn%x1f%ce%x1f%B%x1e"
_MERGE_PR_RE = re.compile(r"^Merge pull request #(\d+)", re.IGNORECASE)
_GITLINK_MODE = "160000"


def run_git(cwd: Path | str, *args: str) -> str:
    """Run a git command and return its standard output.

    Raises:
        GitError: If git cannot be started, times out or exits non-zero.
    """
    command = [CHANGELOG_LINT_GIT_BINARY, *args]
    logger.debug("Running %s in %s", " ".join(command), cwd)
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
            timeout=CHANGELOG_LINT_GIT_TIMEOUT_S,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise GitError(f"Failed to run git {args[0]}: {exc}") from exc

    if result.returncode != 0:
        message = result.stderr.strip() or f"git {args[0]} exited with status {result.returncode}"
        raise GitError(message)
    return result.stdout


def list_tags_sync(cwd: Path | str) -> list[str]:
    return [line.strip() for line in run_git(cwd, "tag").splitlines() if line.strip()]


async def list_tags(cwd: Path | str) -> list[str]:
    """List all tag names of the repository at ``cwd``."""
    return await asyncio.to_thread(list_tags_sync, cwd)


def resolve_commitish(cwd: Path | str, ref: str) -> str:
    """Resolve a branch, tag (lightweight or annotated) or oid to a commit oid."""
    if ref.lower() == "head":
        ref = "HEAD"
    try:
        output = run_git(cwd, "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
    except GitError as exc:
        raise GitError(f"Could not find {ref}.") from exc
    oid = output.strip()
    if not oid:
        raise GitError(f"Could not find {ref}.")
    return oid


def get_commits_sync(
    cwd: Path | str,
    *,
    gt: str | None = None,
    gte: str | None = None,
    lt: str | None = None,
    lte: str | None = None,
    limit: int = DEFAULT_LIMIT,
    submodules: bool = False,
) -> list[Commit]:
    """Return commits between two refs, latest-first.

    The lower bound is inclusive unless ``gt`` is given and the upper bound is
    inclusive unless ``lt`` is given; the upper bound defaults to HEAD and
    the range is unbounded below without ``gt``/``gte``.

    Commits brought in by a two-parent pull request merge are attributed to
    that merge (``merge_commit`` and ``pr``). The attribution walks child
    links from the mainline parent until it reaches the merged branch tip,
    which is a heuristic: it only finds branches forked from that parent.

    Raises:
        GitError: If a bound cannot be resolved or git fails.
    """
    lower_inclusive = gt is None
    upper_inclusive = lt is None
    lower_ref = gte if lower_inclusive else gt
    upper_ref = (lte if upper_inclusive else lt) or "HEAD"

    lower_oid = resolve_commitish(cwd, lower_ref) if lower_ref else None
    upper_oid = resolve_commitish(cwd, upper_ref)

    max_count = limit if upper_inclusive else limit + 1
    args = ["log", f"--format={_LOG_FORMAT}", f"--max-count={max_count}", upper_oid]
    if lower_oid is not None:
        args.append(f"^{lower_oid}")
    commits = _parse_log(run_git(cwd, *args))

    if not upper_inclusive:
        commits = [commit for commit in commits if commit.oid != upper_oid]
    if lower_oid is not None and lower_inclusive and len(commits) < limit:
        commits.extend(_parse_log(run_git(cwd, "log", f"--format={_LOG_FORMAT}", "--max-count=1", lower_oid)))
    commits = commits[:limit]

    _attribute_merges(commits, limit)
    logger.debug("Read %d commits in range %s..%s", len(commits), lower_ref, upper_ref)

    if submodules and lower_oid is not None:
        commits.extend(_submodule_commits(cwd, lower_oid, upper_oid, limit))

    return commits


async def get_commits(
    cwd: Path | str,
    *,
    gt: str | None = None,
    gte: str | None = None,
    lt: str | None = None,
    lte: str | None = None,
    limit: int = DEFAULT_LIMIT,
    submodules: bool = False,
) -> list[Commit]:
    """Async wrapper around :func:`get_commits_sync`, run in a worker thread."""
    return await asyncio.to_thread(
        get_commits_sync,
        cwd,
        gt=gt,
        gte=gte,
        lt=lt,
        lte=lte,
        limit=limit,
        submodules=submodules,
    )


def pr_number(message: str) -> int | None:
    """Extract the pull request number from a GitHub merge commit message."""
    match = _MERGE_PR_RE.match(message)
    return int(match.group(1)) if match else None


def _parse_log(output: str) -> list[Commit]:
    commits: list[Commit] = []
    for record in output.split("\x1e"):
        record = record.strip("\n")
        if not record:
            continue
        oid, parents, author_name, author_email, committer_name, committer_email, message = record.split("\x1f", 6)

        lines = message.strip().split("\n")
        title = lines[0].strip()
        description = "\n".join(lines[1:]).strip()
        parent_oids = parents.split()

        commit = Commit(
            oid=oid,
            title=title,
            description=description,
            author=Signature(name=author_name, email=author_email),
            committer=Signature(name=committer_name, email=committer_email),
            parents=parent_oids,
        )
        if len(parent_oids) > 1:
            commit.is_merge_commit = True
            commit.pr = pr_number(title)
        commits.append(commit)
    return commits


def _attribute_merges(commits: list[Commit], limit: int) -> None:
    children: dict[str, Commit] = {}
    merges: list[Commit] = []

    for commit in commits:
        if len(commit.parents) == 1:
            children[commit.parents[0]] = commit
        elif len(commit.parents) == 2:
            # Only simple merges; octopus merges are left alone.
            merges.append(commit)

    for merge in merges:
        if merge.pr is None:
            continue

        position, branch_tip = merge.parents
        while position != branch_tip and position in children and len(merge.commits) < limit:
            child = children[position]
            child.merge_commit = merge
            child.pr = merge.pr
            merge.commits.append(child)
            position = child.oid

        merge.commits.reverse()


def _submodule_commits(cwd: Path | str, lower_oid: str, upper_oid: str, limit: int) -> list[Commit]:
    """Read commits of submodules whose gitlink changed in the range."""
    output = run_git(cwd, "diff", "--raw", "--no-abbrev", lower_oid, upper_oid)
    commits: list[Commit] = []

    for line in output.splitlines():
        meta, _, path = line.partition("\t")
        fields = meta.lstrip(":").split()
        if len(fields) < 4 or fields[0] != _GITLINK_MODE or fields[1] != _GITLINK_MODE:
            continue

        old_oid, new_oid = fields[2], fields[3]
        name = Path(path).name
        try:
            sub_commits = get_commits_sync(Path(cwd) / path, gt=old_oid, lte=new_oid, limit=limit)
        except GitError as exc:
            logger.warning("Skipping submodule %s: %s", path, exc)
            continue

        for commit in sub_commits:
            commit.submodule = name
        commits.extend(sub_commits)

    return commits
