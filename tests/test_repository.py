"""Tests for manifest discovery and repository URL normalization."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from changelog_lint.exceptions import ConfigurationError, GitError
from changelog_lint.repository import (
    find_manifest,
    git_remote_url,
    hosting_url,
    load_manifest,
    read_manifest,
)


class TestHostingUrl:
    """Tests for hosting_url."""

    @pytest.mark.parametrize(
        ("repository", "expected"),
        [
            ("owner/repo", "https://github.com/owner/repo"),
            ("github:owner/repo", "https://github.com/owner/repo"),
            ("https://github.com/owner/repo", "https://github.com/owner/repo"),
            ("https://github.com/owner/repo.git", "https://github.com/owner/repo"),
            ("https://github.com/owner/repo/", "https://github.com/owner/repo"),
            ("git+https://github.com/owner/repo.git", "https://github.com/owner/repo"),
            ("git://github.com/owner/repo.git", "https://github.com/owner/repo"),
            ("ssh://git@github.com:22/owner/repo.git", "https://github.com/owner/repo"),
            ("git@github.com:owner/repo.git", "https://github.com/owner/repo"),
            ("git@gitlab.com:group/sub/repo.git", "https://gitlab.com/group/sub/repo"),
        ],
    )
    def test_normalizes(self, repository: str, expected: str) -> None:
        assert hosting_url(repository) == expected

    @pytest.mark.parametrize("repository", ["", "not a url", "ftp://example.com/repo"])
    def test_unrecognized(self, repository: str) -> None:
        assert hosting_url(repository) is None


class TestManifest:
    """Tests for reading project manifests."""

    def test_pyproject(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "demo"\nversion = "1.2.3"\n\n'
            '[project.urls]\nHomepage = "https://example.com"\nRepository = "https://github.com/owner/demo"\n',
            encoding="utf-8",
        )

        manifest = load_manifest(tmp_path)

        assert manifest is not None
        assert (manifest.name, manifest.version) == ("demo", "1.2.3")
        assert manifest.repository == "https://github.com/owner/demo"

    def test_package_json_repository_object(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text(
            json.dumps({"name": "demo", "version": "0.1.0", "repository": {"type": "git", "url": "owner/demo"}}),
            encoding="utf-8",
        )

        manifest = read_manifest(path)

        assert manifest.version == "0.1.0"
        assert manifest.repository == "owner/demo"

    def test_package_json_repository_string(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text(json.dumps({"version": "0.1.0", "repository": "owner/demo"}), encoding="utf-8")

        assert read_manifest(path).repository == "owner/demo"

    def test_found_in_parent_directory(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "demo"\n', encoding="utf-8")
        nested = tmp_path / "docs" / "api"
        nested.mkdir(parents=True)

        assert find_manifest(nested) == tmp_path / "pyproject.toml"

    def test_pyproject_without_project_table(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[tool.black]\nline-length = 100\n", encoding="utf-8")

        manifest = load_manifest(tmp_path)

        assert manifest is not None
        assert manifest.version is None
        assert manifest.repository is None

    def test_invalid_manifest_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Failed to read"):
            read_manifest(path)


class TestGitRemoteUrl:
    """Tests for the origin remote fallback."""

    def test_returns_remote(self, tmp_path: Path) -> None:
        with patch("changelog_lint.repository.run_git", return_value="git@github.com:owner/repo.git\n"):
            assert git_remote_url(tmp_path) == "git@github.com:owner/repo.git"

    def test_missing_remote(self, tmp_path: Path) -> None:
        with patch("changelog_lint.repository.run_git", side_effect=GitError("No such remote 'origin'")):
            assert git_remote_url(tmp_path) is None
