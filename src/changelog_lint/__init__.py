"""changelog-lint: lint and fix changelogs that follow Keep a Changelog."""

from changelog_lint.exceptions import (
    ChangelogLintError,
    ConfigurationError,
    GitError,
    ParseError,
)
from changelog_lint.linter import (
    LintOptions,
    LintResult,
    lint_changelog,
    lint_file,
    lint_tree,
)
from changelog_lint.markdown import parse_markdown, serialize_markdown
from changelog_lint.schemas import Diagnostic, Node, Position
from changelog_lint.sections import Changelog, Group, Release, build_changelog
from changelog_lint.versions import compare_versions

__version__ = "0.1.0"

__all__ = [
    "Changelog",
    "ChangelogLintError",
    "ConfigurationError",
    "Diagnostic",
    "GitError",
    "Group",
    "LintOptions",
    "LintResult",
    "Node",
    "ParseError",
    "Position",
    "Release",
    "build_changelog",
    "compare_versions",
    "lint_changelog",
    "lint_file",
    "lint_tree",
    "parse_markdown",
    "serialize_markdown",
    "__version__",
]
