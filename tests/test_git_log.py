"""Tests for reading tags and commits from git."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from changelog_lint.exceptions import GitError
from changelog_lint.git_log import (
    _parse_log,
    _submodule_commits,
    get_commits,
    get_commits_sync,
    list_tags,
    pr_number,
    resolve_commitish,
    run_git,
)
from changelog_lint.schemas import Commit, Signature

OID_V1 = "1" * 40
OID_FIX = "2" * 40
OID_FEATURE = "3" * 40
OID_MERGE = "4" * 40
OID_V11 = "5" * 40


def _record(oid: str, parents: str, message: str, author: str = "Alice") -> str:
    email = f"{author.lower()}@example.com"
    return f"{oid}\x1f{parents}\x1f{author}\x1f{email}\x1f{author}\x1f{email}\x1f{message}\n\x1e\n"


LOG_OUTPUT = (
    _record(OID_V11, OID_MERGE, "1.1.0")
    + _record(OID_MERGE, f"{OID_FIX} {OID_FEATURE}", "Merge pull request #5 from owner/feature\n\nAdd feature", "Bob")
    + _record(OID_FEATURE, OID_FIX, "Add feature\n\nWith a body\nover two lines")
    + _record(OID_FIX, OID_V1, "Fix beep boop")
)

REFS = {"v1.0.0": OID_V1, "v1.1.0": OID_V11, "HEAD": OID_V11}


def fake_git(cwd: Path | str, *args: str) -> str:
    """Answer the git commands used by get_commits_sync from fixed data."""
    if args[0] == "rev-parse":
        ref = args[-1].removesuffix("^{commit}")
        if ref not in REFS:
            raise GitError(f"fatal: bad revision {ref}")
        return REFS[ref] + "\n"
    if args[0] == "log" and "--max-count=1" in args:
        return _record(OID_V1, "", "Initial commit")
    if args[0] == "log":
        return LOG_OUTPUT
    raise AssertionError(f"unexpected git command: {args}")


class TestRunGit:
    """Tests for run_git."""

    def test_returns_stdout(self) -> None:
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="v1.0.0\n", stderr="")
        with patch("changelog_lint.git_log.subprocess.run", return_value=completed) as mock_run:
            assert run_git("/repo", "tag") == "v1.0.0\n"

        assert mock_run.call_args.args[0][1:] == ["tag"]
        assert mock_run.call_args.kwargs["cwd"] == "/repo"

    def test_non_zero_exit_raises(self) -> None:
        completed = subprocess.CompletedProcess(args=[], returncode=128, stdout="", stderr="fatal: not a git repository")
        with patch("changelog_lint.git_log.subprocess.run", return_value=completed):
            with pytest.raises(GitError, match="not a git repository"):
                run_git("/repo", "tag")

    def test_missing_binary_raises(self) -> None:
        with patch("changelog_lint.git_log.subprocess.run", side_effect=FileNotFoundError("git")):
            with pytest.raises(GitError, match="Failed to run git tag"):
                run_git("/repo", "tag")


class TestParseLog:
    """Tests for parsing git log output."""

    def test_fields(self) -> None:
        commits = _parse_log(LOG_OUTPUT)

        assert [commit.oid for commit in commits] == [OID_V11, OID_MERGE, OID_FEATURE, OID_FIX]
        feature = commits[2]
        assert feature.title == "Add feature"
        assert feature.description == "With a body\nover two lines"
        assert feature.author == Signature(name="Alice", email="alice@example.com")
        assert feature.parents == [OID_FIX]

    def test_merge_commits(self) -> None:
        merge = _parse_log(LOG_OUTPUT)[1]

        assert merge.is_merge_commit
        assert merge.pr == 5
        assert merge.parents == [OID_FIX, OID_FEATURE]

    def test_empty_output(self) -> None:
        assert _parse_log("") == []


class TestPrNumber:
    """Tests for pr_number."""

    def test_github_merge_message(self) -> None:
        assert pr_number("Merge pull request #42 from owner/branch") == 42

    def test_other_message(self) -> None:
        assert pr_number("Merge branch 'main'") is None


class TestGetCommits:
    """Tests for get_commits_sync with a faked git."""

    def test_exclusive_lower_bound(self) -> None:
        with patch("changelog_lint.git_log.run_git", side_effect=fake_git):
            commits = get_commits_sync("/repo", gt="v1.0.0")

        assert [commit.title for commit in commits] == [
            "1.1.0",
            "Merge pull request #5 from owner/feature",
            "Add feature",
            "Fix beep boop",
        ]

    def test_exclusive_upper_bound(self) -> None:
        with patch("changelog_lint.git_log.run_git", side_effect=fake_git):
            commits = get_commits_sync("/repo", gt="v1.0.0", lt="v1.1.0")

        assert OID_V11 not in [commit.oid for commit in commits]
        assert len(commits) == 3

    def test_inclusive_lower_bound(self) -> None:
        with patch("changelog_lint.git_log.run_git", side_effect=fake_git):
            commits = get_commits_sync("/repo", gte="v1.0.0")

        assert commits[-1].oid == OID_V1

    def test_limit(self) -> None:
        with patch("changelog_lint.git_log.run_git", side_effect=fake_git):
            commits = get_commits_sync("/repo", gt="v1.0.0", limit=2)

        assert [commit.oid for commit in commits] == [OID_V11, OID_MERGE]

    def test_merge_attribution(self) -> None:
        with patch("changelog_lint.git_log.run_git", side_effect=fake_git):
            commits = get_commits_sync("/repo", gt="v1.0.0")

        merge, feature = commits[1], commits[2]
        assert feature.pr == 5
        assert feature.merge_commit is merge
        assert merge.commits == [feature]
        assert commits[3].merge_commit is None

    def test_unknown_ref_raises(self) -> None:
        with patch("changelog_lint.git_log.run_git", side_effect=fake_git):
            with pytest.raises(GitError, match=r"Could not find v9\.9\.9\."):
                get_commits_sync("/repo", gt="v9.9.9")

    def test_head_is_case_insensitive(self) -> None:
        with patch("changelog_lint.git_log.run_git", side_effect=fake_git):
            assert resolve_commitish("/repo", "head") == OID_V11

    @pytest.mark.asyncio
    async def test_async_wrapper(self) -> None:
        with patch("changelog_lint.git_log.run_git", side_effect=fake_git):
            commits = await get_commits("/repo", gt="v1.0.0", lt="v1.1.0")

        assert [commit.title for commit in commits][-1] == "Fix beep boop"

    @pytest.mark.asyncio
    async def test_list_tags(self) -> None:
        with patch("changelog_lint.git_log.run_git", return_value="v1.0.0\nv1.1.0\n\n"):
            assert await list_tags("/repo") == ["v1.0.0", "v1.1.0"]


class TestSubmoduleCommits:
    """Tests for reading commits of changed submodules."""

    def test_reads_changed_gitlinks(self) -> None:
        old, new = "a" * 40, "b" * 40
        diff = (
            f":160000 160000 {old} {new} M\tlibs/core\n"
            f":100644 100644 {'c' * 40} {'d' * 40} M\tREADME.md\n"
        )
        sub_commit = Commit(
            oid="e" * 40,
            title="Fix parser",
            description="",
            author=Signature(name="Alice", email="alice@example.com"),
            committer=Signature(name="Alice", email="alice@example.com"),
        )

        with patch("changelog_lint.git_log.run_git", return_value=diff):
            with patch("changelog_lint.git_log.get_commits_sync", return_value=[sub_commit]) as mock_get:
                commits = _submodule_commits("/repo", "1" * 40, "2" * 40, 10)

        assert commits == [sub_commit]
        assert sub_commit.submodule == "core"
        assert mock_get.call_args.args == (Path("/repo") / "libs/core",)
        assert mock_get.call_args.kwargs == {"gt": old, "lte": new, "limit": 10}

    def test_unreadable_submodule_is_skipped(self) -> None:
        diff = f":160000 160000 {'a' * 40} {'b' * 40} M\tvendor/lib\n"

        with patch("changelog_lint.git_log.run_git", return_value=diff):
            with patch("changelog_lint.git_log.get_commits_sync", side_effect=GitError("Could not find x.")):
                assert _submodule_commits("/repo", "1" * 40, "2" * 40, 10) == []


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        [
            "git",
            "-c",
            "user.name=Test User",
            "-c",
            "user.email=test@example.com",
            "-c",
            "commit.gpgsign=false",
            "-c",
            "tag.gpgsign=false",
            *args,
        ],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


@pytest.mark.integration
class TestRealRepository:
    """Tests against a throwaway git repository."""

    @pytest.fixture
    def repo(self, tmp_path: Path, git_binary: str) -> Path:
        _git(tmp_path, "init", "-q")
        _git(tmp_path, "commit", "-q", "--allow-empty", "-m", "Initial commit")
        _git(tmp_path, "tag", "v1.0.0")
        _git(tmp_path, "commit", "-q", "--allow-empty", "-m", "Fix beep boop")
        _git(tmp_path, "checkout", "-q", "-b", "feature")
        _git(tmp_path, "commit", "-q", "--allow-empty", "-m", "Add feature")
        _git(tmp_path, "checkout", "-q", "-")
        _git(tmp_path, "merge", "-q", "--no-ff", "feature", "-m", "Merge pull request #5 from owner/feature")
        _git(tmp_path, "tag", "-a", "v1.1.0", "-m", "1.1.0")
        return tmp_path

    @pytest.mark.asyncio
    async def test_list_tags(self, repo: Path) -> None:
        assert sorted(await list_tags(repo)) == ["v1.0.0", "v1.1.0"]

    def test_annotated_tag_resolves_to_commit(self, repo: Path) -> None:
        assert resolve_commitish(repo, "v1.1.0") == _git(repo, "rev-parse", "HEAD").strip()

    @pytest.mark.asyncio
    async def test_commits_between_tags(self, repo: Path) -> None:
        commits = await get_commits(repo, gt="v1.0.0", lte="v1.1.0")

        titles = {commit.title for commit in commits}
        assert titles == {"Merge pull request #5 from owner/feature", "Fix beep boop", "Add feature"}

        feature = next(commit for commit in commits if commit.title == "Add feature")
        assert feature.pr == 5
        assert feature.merge_commit is not None

    @pytest.mark.asyncio
    async def test_missing_tag(self, repo: Path) -> None:
        with pytest.raises(GitError, match=r"Could not find v2\.0\.1\."):
            await get_commits(repo, gt="v2.0.1")
