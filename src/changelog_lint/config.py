"""Local configuration for changelog-lint."""

from __future__ import annotations

import os


CHANGELOG_FILENAME = "CHANGELOG.md"

DEFAULT_COMMIT_LIMIT = 100
DEFAULT_GIT_BINARY = "git"
DEFAULT_GIT_TIMEOUT_S = 30.0
DEFAULT_LOG_LEVEL = "WARNING"

# Maximum number of commits fetched to backfill a single empty release.
CHANGELOG_LINT_COMMIT_LIMIT = int(os.getenv("CHANGELOG_LINT_COMMIT_LIMIT", str(DEFAULT_COMMIT_LIMIT)))
CHANGELOG_LINT_GIT_BINARY = os.getenv("CHANGELOG_LINT_GIT_BINARY", DEFAULT_GIT_BINARY)
CHANGELOG_LINT_GIT_TIMEOUT_S = float(os.getenv("CHANGELOG_LINT_GIT_TIMEOUT_S", str(DEFAULT_GIT_TIMEOUT_S)))
CHANGELOG_LINT_LOG_LEVEL = os.getenv("CHANGELOG_LINT_LOG_LEVEL", DEFAULT_LOG_LEVEL)
