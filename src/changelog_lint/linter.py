"""Lint and fix a changelog against the Keep a Changelog conventions."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from changelog_lint.changes import UNCATEGORIZED, classify_commits
from changelog_lint.config import CHANGELOG_FILENAME, CHANGELOG_LINT_COMMIT_LIMIT
from changelog_lint.exceptions import ConfigurationError, GitError, ParseError
from changelog_lint.git_log import get_commits, list_tags
from changelog_lint.markdown import (
    definition_node,
    heading_node,
    link_reference_node,
    parse_markdown,
    serialize_markdown,
    text_node,
)
from changelog_lint.repository import Manifest, git_remote_url, hosting_url, load_manifest
from changelog_lint.schemas import Diagnostic, Node, Position
from changelog_lint.sections import Changelog, Group, Release, build_changelog
from changelog_lint.versions import (
    BUMP_KEYWORDS,
    UNRELEASED,
    bump_version,
    compare_releases,
    compare_versions,
    forgiving_tag,
    is_newer,
    is_sorted,
    is_valid_version,
    last_tag_version,
    sort_definitions,
    sort_releases,
)

logger = logging.getLogger(__name__)

REJECT_NAMES = frozenset({"history", "releases", "changelog"})
GROUP_TYPES = ("Changed", "Added", "Deprecated", "Removed", "Fixed", "Security")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_PLACEHOLDER = "YYYY-MM-DD"


@dataclass
class LintOptions:
    """Options for linting a changelog.

    Attributes:
        fix: Rewrite the document instead of only reporting.
        cwd: Project directory; defaults to the changelog's directory.
        repository: Repository URL or ``owner/repo``; read from the project
            manifest or the origin remote when omitted.
        version: Current project version; read from the manifest or the
            latest tag when omitted.
        add: Version or bump keyword of a release to add (fix mode only).
        submodules: Include commits of changed submodules when backfilling.
        commit_limit: Maximum number of commits fetched per empty release.
        tags: Known tag names; listed from git when omitted.
    """

    fix: bool = False
    cwd: Path | None = None
    repository: str | None = None
    version: str | None = None
    add: str | None = None
    submodules: bool = False
    commit_limit: int = CHANGELOG_LINT_COMMIT_LIMIT
    tags: list[str] | None = None


@dataclass
class LintResult:
    """Outcome of linting one document."""

    diagnostics: list[Diagnostic] = field(default_factory=list)
    content: str = ""
    changed: bool = False


async def lint_changelog(
    content: str,
    *,
    path: Path | str | None = CHANGELOG_FILENAME,
    options: LintOptions | None = None,
) -> LintResult:
    """Lint (or fix) changelog markdown text.

    Args:
        content: The markdown document.
        path: File path of the document, used for the filename rule and in
            diagnostics. None skips the filename rule.
        options: Lint options. Uses defaults if None.

    Returns:
        The diagnostics and the resulting document text, which is ``content``
        unchanged unless fixing rebuilt the document.

    Raises:
        ConfigurationError: If no repository URL or valid current version
            can be determined.
    """
    opts = options or LintOptions()
    root = parse_markdown(content)
    linter = ChangelogLinter(path=path, options=opts)
    rebuilt = await linter.run(root)

    if not rebuilt:
        return LintResult(diagnostics=linter.diagnostics, content=content)

    fixed = serialize_markdown(root)
    return LintResult(diagnostics=linter.diagnostics, content=fixed, changed=fixed != content)


async def lint_file(path: Path | str, options: LintOptions | None = None) -> LintResult:
    """Lint a changelog file; in fix mode a changed document is written back.

    Raises:
        ConfigurationError: If the file does not exist.
        ParseError: If the file is not valid UTF-8 text.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Changelog not found: {path}") from exc
    except UnicodeDecodeError as exc:
        raise ParseError(f"Changelog is not valid UTF-8: {path}") from exc

    result = await lint_changelog(content, path=path, options=options)
    if result.changed:
        path.write_text(result.content, encoding="utf-8")
        logger.info("Wrote fixed changelog to %s", path)
    return result


async def lint_tree(
    root: Node,
    *,
    path: Path | str | None = CHANGELOG_FILENAME,
    options: LintOptions | None = None,
) -> list[Diagnostic]:
    """Lint a parsed document; in fix mode ``root.children`` is rebuilt in place."""
    linter = ChangelogLinter(path=path, options=options or LintOptions())
    await linter.run(root)
    return linter.diagnostics


class ChangelogLinter:
    """Runs all changelog rules over one document."""

    def __init__(self, *, path: Path | str | None, options: LintOptions) -> None:
        self.path = Path(path) if path is not None else None
        self.options = options
        self.fix = options.fix
        self.diagnostics: list[Diagnostic] = []
        self.cwd = Path(options.cwd or (self.path.parent if self.path else Path.cwd())).resolve()
        self.tags: list[str] = []
        self.current_version = ""
        self.hosting_url = ""
        self._manifest: Manifest | None = None
        self._manifest_loaded = False
        self._versions: set[str] = set()
        self._root: Node | None = None

    async def run(self, root: Node) -> bool:
        """Lint ``root``; return True if fix mode rebuilt its children."""
        if self.path is not None and self.path.name != CHANGELOG_FILENAME:
            if self.path.stem.lower() in REJECT_NAMES:
                self._warn(f"Filename must be {CHANGELOG_FILENAME}", root, "filename")
            return False

        if root.type != "root":
            raise ConfigurationError("Expected a root node")

        self._root = root
        await self._load_context()
        changelog = build_changelog(root.children)
        logger.debug("Linting %s with %d releases", self.path, len(changelog.releases))

        if self.fix:
            changelog.build_heading()
        elif not changelog.has_valid_heading():
            self._warn(
                'Changelog must start with a top-level "Changelog" heading',
                changelog.heading or root,
                "title",
            )

        if self.fix and self.options.add:
            self._add_release(changelog)

        if self.fix:
            changelog.sort_releases()
        elif not is_sorted(changelog.releases, compare_releases):
            self._warn("Releases must be sorted latest-first", root, "latest-release-first")
            # Only the section list is reordered; lint mode never rewrites the document.
            changelog.sort_releases()

        changelog.relate_versions()
        await asyncio.gather(*(self._lint_release(release) for release in changelog.releases))
        self._link_releases(changelog)

        if self.fix:
            changelog.definitions = sort_definitions(changelog.definitions)
        elif not is_sorted(list(changelog.definitions), compare_versions):
            self._warn("Definitions must be sorted latest-first", root, "latest-definition-first")

        if self.fix:
            root.children = changelog.tree()
            return True
        return False

    async def _load_context(self) -> None:
        opts = self.options

        if opts.tags is not None:
            self.tags = list(opts.tags)
        else:
            try:
                self.tags = await list_tags(self.cwd)
            except GitError as exc:
                logger.warning("Could not list tags in %s: %s", self.cwd, exc)
                self.tags = []

        repository = opts.repository or self._manifest_field("repository") or git_remote_url(self.cwd)
        current_version = opts.version or self._manifest_field("version") or last_tag_version(self.tags)

        if not repository:
            raise ConfigurationError("No repository url found in project manifest or options")
        if not current_version or not is_valid_version(current_version):
            raise ConfigurationError("No valid version found in project manifest or options")

        url = hosting_url(repository)
        if url is None:
            raise ConfigurationError(f"Unsupported repository url: {repository}")

        self.hosting_url = url
        self.current_version = current_version

    def _manifest_field(self, name: str) -> str | None:
        if not self._manifest_loaded:
            self._manifest = load_manifest(self.cwd)
            self._manifest_loaded = True
        if self._manifest is None:
            return None
        return getattr(self._manifest, name)

    def _add_release(self, changelog: Changelog) -> None:
        target = self.options.add or ""
        location = changelog.heading or self._root

        if target in BUMP_KEYWORDS:
            latest = next(
                (release.version for release in sort_releases(changelog.releases) if is_valid_version(release.version)),
                None,
            )
            target = bump_version(latest or self.current_version, target)
        elif target.startswith("v") and is_valid_version(target[1:]):
            target = target[1:]

        if not is_valid_version(target):
            keywords = ", ".join(BUMP_KEYWORDS)
            self._warn(f"Version to add must be semver-valid or one of {keywords}", location, "add-new-release")
            return

        if any(release.version == target for release in changelog.releases):
            self._warn(f"Release ({target}) already exists", location, "add-new-release")
            return

        changelog.add_release(heading_node(2, [text_node(f"{target} - {date.today().isoformat()}")]))
        logger.info("Added release %s", target)

    async def _lint_release(self, release: Release) -> None:
        heading = release.heading

        if heading.depth != 2:
            self._warn("Release must start with second-level heading", heading, "release-heading-depth")
            return
        if not release.parseable:
            self._warn(
                'Release heading must be "Unreleased" or have the format "<version> - <date>"',
                heading,
                "release-heading",
            )
            return

        if release.version:
            if release.version in self._versions:
                self._warn("Release version must be unique", heading, "unique-release")
            if not self.fix and release.is_unreleased and release.title != "Unreleased":
                self._warn('Release heading must be "Unreleased"', heading, "release-heading")
            self._versions.add(release.version)

        if not release.is_unreleased:
            if not release.version:
                self._warn("Release must have a version", heading, "release-version")
            elif not is_valid_version(release.version):
                self._warn("Release version must be semver-valid", heading, "release-version")

            if not release.date:
                self._warn("Release must have date", heading, "release-date")
            elif not _DATE_RE.match(release.date):
                self._warn("Release date must have format YYYY-MM-DD", heading, "release-date")

        if release.is_empty():
            await self._lint_empty_release(release)

        for group in release.children:
            self._lint_group(release, group)

    async def _lint_empty_release(self, release: Release) -> None:
        heading, version, previous = release.heading, release.version, release.previous_version

        if self.fix and version and previous:
            bounds = {"gt": forgiving_tag(previous, self.tags)}
            if release.is_unreleased or is_newer(version, self.current_version):
                bounds["lte"] = "HEAD"
            else:
                bounds["lt"] = forgiving_tag(version, self.tags)

            logger.debug("Fetching commits for release %s: %s", version, bounds)
            try:
                commits = await get_commits(
                    self.cwd,
                    limit=self.options.commit_limit,
                    submodules=self.options.submodules,
                    **bounds,
                )
            except GitError as exc:
                logger.warning("Failed to get commits for release %s: %s", version, exc)
                self._warn(
                    f"Failed to get commits for release ({version}): {exc}",
                    heading,
                    "no-empty-release",
                )
                return

            for group_type, changes in classify_commits(commits).items():
                if changes:
                    release.create_group(group_type).create_list(changes)

            if not release.is_empty():
                logger.info("Filled release %s from %d commits", version, len(commits))
                return

        self._warn(f"Release ({version or 'n/a'}) is empty", heading, "no-empty-release")

    def _lint_group(self, release: Release, group: Group) -> None:
        location = group.heading if group.heading.position else release.heading

        if not group.has_valid_heading():
            self._warn("Group must start with a third-level, text-only heading", location, "group-heading")
            return

        group_type = group.type()
        if group_type == UNCATEGORIZED:
            self._warn(
                f"Release ({release.version or 'n/a'}) has uncategorized changes",
                location,
                "no-uncategorized-changes",
            )
        elif group_type not in GROUP_TYPES:
            self._warn(
                f"Group heading must be one of {', '.join(GROUP_TYPES)}",
                location,
                "group-heading-type",
            )

        if group.is_empty():
            self._warn(f"Group ({group_type}) is empty", location, "no-empty-group")

    def _link_releases(self, changelog: Changelog) -> None:
        """Check or rebuild release heading links and their definitions.

        Runs sequentially after all releases were linted because every diff
        url depends on the next older release in sorted order.
        """
        releases = changelog.releases

        for index, release in enumerate(releases):
            version, previous, heading = release.version, release.previous_version, release.heading
            linkable = index != len(releases) - 1 and version and previous

            if not linkable:
                if self.fix and release.is_unreleased:
                    heading.children = [text_node("Unreleased")]
                continue

            identifier = version.lower()
            url = self._diff_url(version, previous)

            if self.fix:
                label = identifier
                reference_type = "full" if release.is_unreleased else "shortcut"
                heading.children = [
                    link_reference_node(
                        identifier,
                        label,
                        reference_type,
                        [text_node("Unreleased" if release.is_unreleased else version)],
                    )
                ]
                if not release.is_unreleased:
                    heading.children.append(text_node(f" - {release.date or _DATE_PLACEHOLDER}"))
                changelog.definitions[identifier] = definition_node(identifier, label, url)
            elif not release.link_type:
                self._warn("Release version must have a link", heading, "release-version-link")
            elif release.link_type != "linkReference":
                self._warn("Use link reference in release heading", heading, "release-version-link-reference")
            else:
                existing = changelog.definitions.get(identifier)
                if existing is None or existing.url != url:
                    self._warn(f"Expected link to {url}", heading, "release-version-link")

    def _diff_url(self, version: str, previous: str) -> str:
        left = forgiving_tag(previous, self.tags)
        right = "HEAD" if version == UNRELEASED else forgiving_tag(version, self.tags)
        return f"{self.hosting_url}/compare/{left}...{right}"

    def _warn(self, message: str, node: Node | None, rule: str) -> None:
        position: Position | None = node.position if node is not None else None
        diagnostic = Diagnostic(
            message=message,
            rule=rule,
            path=str(self.path) if self.path is not None else None,
            position=position,
        )
        logger.debug("%s [%s]", diagnostic, diagnostic.rule_id)
        self.diagnostics.append(diagnostic)
