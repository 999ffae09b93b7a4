"""Console logging for the command line tools."""

from __future__ import annotations

import logging
import sys

from changelog_lint.config import CHANGELOG_LINT_LOG_LEVEL

PACKAGE_LOGGER = "changelog_lint"

CONSOLE_FORMAT = logging.Formatter("%(levelname)s | %(name)s | %(message)s")

app_logger = logging.getLogger(PACKAGE_LOGGER)


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Stdout is left to diagnostics. Calling this again only updates the level.
    """
    if level is None:
        level = CHANGELOG_LINT_LOG_LEVEL
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    app_logger.setLevel(level)
    if app_logger.handlers:
        for handler in app_logger.handlers:
            handler.setLevel(level)
        return app_logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(CONSOLE_FORMAT)
    handler.setLevel(level)
    app_logger.addHandler(handler)
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger inside the package namespace."""
    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
