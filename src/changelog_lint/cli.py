"""Command line interface for changelog-lint."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from changelog_lint.config import CHANGELOG_FILENAME, CHANGELOG_LINT_COMMIT_LIMIT
from changelog_lint.exceptions import ChangelogLintError
from changelog_lint.linter import LintOptions, LintResult, lint_file
from changelog_lint.utils.logging_config import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_CONFIGURATION = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="changelog-lint",
        description="Lint and fix changelogs that follow Keep a Changelog.",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        metavar="PATH",
        help=f"Changelog files to check (default: {CHANGELOG_FILENAME})",
    )
    parser.add_argument("--fix", action="store_true", help="Rewrite the changelog instead of only reporting")
    parser.add_argument(
        "--add",
        metavar="VERSION",
        help="Add a release: a semantic version or major, minor, patch, premajor, preminor, prepatch, prerelease",
    )
    parser.add_argument("--cwd", type=Path, help="Project directory (default: the changelog's directory)")
    parser.add_argument("--repository", metavar="URL", help="Repository URL or owner/repo")
    parser.add_argument("--version", dest="current_version", metavar="SEMVER", help="Current project version")
    parser.add_argument(
        "--submodules",
        action="store_true",
        help="Include commits of changed submodules when filling empty releases",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=CHANGELOG_LINT_COMMIT_LIMIT,
        help="Maximum number of commits per empty release",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log output (-vv for debug)")
    return parser


def _log_level(verbosity: int) -> str | int | None:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return None


def _options(args: argparse.Namespace) -> LintOptions:
    return LintOptions(
        fix=args.fix,
        cwd=args.cwd,
        repository=args.repository,
        version=args.current_version,
        add=args.add,
        submodules=args.submodules,
        commit_limit=args.limit,
    )


def _report(result: LintResult) -> None:
    for diagnostic in result.diagnostics:
        print(f"{diagnostic}  {diagnostic.rule_id}")


async def run(args: argparse.Namespace) -> int:
    """Lint every requested path and return the process exit code."""
    paths = args.paths or [Path(CHANGELOG_FILENAME)]
    options = _options(args)
    exit_code = EXIT_OK

    for path in paths:
        try:
            result = await lint_file(path, options)
        except ChangelogLintError as exc:
            logger.error("%s: %s", path, exc)
            return EXIT_CONFIGURATION

        _report(result)
        if result.changed:
            print(f"{path}: fixed", file=sys.stderr)
        if result.diagnostics:
            exit_code = EXIT_DIAGNOSTICS

    return exit_code


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(_log_level(args.verbose))
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
