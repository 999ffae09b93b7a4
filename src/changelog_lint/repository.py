"""Discover the project manifest, repository URL and declared version."""

from __future__ import annotations

import json
import logging
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path

from changelog_lint.exceptions import ConfigurationError, GitError
from changelog_lint.git_log import run_git

logger = logging.getLogger(__name__)

MANIFEST_NAMES = ("pyproject.toml", "package.json")

_URL_KEYS = ("repository", "source", "source code", "code", "homepage")
_SHORTHAND_RE = re.compile(r"^(?:github:)?([\w.-]+)/([\w.-]+)$", re.IGNORECASE)
_SCP_RE = re.compile(r"^(?:[\w.-]+@)?([\w.-]+):(?!//)([\w./-]+?)(?:\.git)?/?$")
_URL_RE = re.compile(r"^(?:git\+)?(?:https?|git|ssh)://(?:[^@/]+@)?([^/:]+)(?::\d+)?/([\w./-]+?)(?:\.git)?/?$")


@dataclass
class Manifest:
    """The parts of a project manifest changelog-lint cares about."""

    path: Path
    name: str | None = None
    version: str | None = None
    repository: str | None = None


def find_manifest(cwd: Path) -> Path | None:
    """Return the closest manifest in ``cwd`` or one of its parents."""
    for directory in (cwd, *cwd.parents):
        for name in MANIFEST_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def read_manifest(path: Path) -> Manifest:
    """Read name, version and repository from pyproject.toml or package.json.

    Raises:
        ConfigurationError: If the manifest cannot be decoded.
    """
    try:
        if path.name == "package.json":
            return _read_package_json(path)
        return _read_pyproject(path)
    except (OSError, ValueError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Failed to read {path}: {exc}") from exc


def load_manifest(cwd: Path) -> Manifest | None:
    path = find_manifest(cwd)
    if path is None:
        logger.debug("No manifest found from %s", cwd)
        return None
    return read_manifest(path)


def git_remote_url(cwd: Path, remote: str = "origin") -> str | None:
    try:
        return run_git(cwd, "remote", "get-url", remote).strip() or None
    except GitError as exc:
        logger.debug("No %s remote in %s: %s", remote, cwd, exc)
        return None


def hosting_url(repository: str) -> str | None:
    """Normalize a repository reference to a browsable https URL.

    Accepts ``owner/repo`` and ``github:owner/repo`` shorthands (GitHub),
    scp-style ``git@host:owner/repo.git`` and ``https``, ``git``, ``ssh`` or
    ``git+https`` URLs. Returns None when the reference is not recognized.
    """
    repository = repository.strip()

    match = _SHORTHAND_RE.match(repository)
    if match:
        return f"https://github.com/{match.group(1)}/{match.group(2)}"

    match = _URL_RE.match(repository) or _SCP_RE.match(repository)
    if match:
        host, path = match.group(1), match.group(2).strip("/")
        return f"https://{host}/{path}"

    return None


def _read_package_json(path: Path) -> Manifest:
    data = json.loads(path.read_text(encoding="utf-8"))
    repository = data.get("repository")
    if isinstance(repository, dict):
        repository = repository.get("url")
    return Manifest(
        path=path,
        name=data.get("name"),
        version=data.get("version"),
        repository=repository if isinstance(repository, str) else None,
    )


def _read_pyproject(path: Path) -> Manifest:
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    project = data.get("project", {})
    urls = {key.lower(): value for key, value in project.get("urls", {}).items()}
    repository = next((urls[key] for key in _URL_KEYS if key in urls), None)
    return Manifest(
        path=path,
        name=project.get("name"),
        version=project.get("version"),
        repository=repository,
    )
