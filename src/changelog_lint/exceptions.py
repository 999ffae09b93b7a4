"""Custom exceptions for changelog-lint."""


class ChangelogLintError(Exception):
    """Base exception for changelog-lint operations."""


class ConfigurationError(ChangelogLintError):
    """The document or project cannot be processed at all."""


class ParseError(ChangelogLintError):
    """Error during markdown parsing."""


class GitError(ChangelogLintError):
    """Error while running git or resolving a ref."""
