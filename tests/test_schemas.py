"""Tests for diagnostics, positions and logging setup."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from changelog_lint.schemas import Diagnostic, Node, Position
from changelog_lint.utils.logging_config import configure_logging, get_logger


class TestDiagnostic:
    """Tests for the Diagnostic model."""

    def test_str_with_path_and_position(self) -> None:
        diagnostic = Diagnostic(
            message="Release must have date",
            rule="release-date",
            path="CHANGELOG.md",
            position=Position(start_line=3, start_column=1, end_line=3, end_column=9),
        )

        assert str(diagnostic) == "CHANGELOG.md:3:1-3:9: Release must have date"
        assert diagnostic.rule_id == "changelog-lint:release-date"

    def test_str_without_location(self) -> None:
        diagnostic = Diagnostic(message="Group (Added) is empty", rule="no-empty-group")

        assert str(diagnostic) == "1:1-1:1: Group (Added) is empty"


class TestNode:
    """Tests for node validation."""

    def test_heading_depth_is_bounded(self) -> None:
        with pytest.raises(ValidationError):
            Node(type="heading", depth=7)

    def test_position_is_one_based(self) -> None:
        with pytest.raises(ValidationError):
            Position(start_line=0)


class TestLoggingConfig:
    """Tests for the logging helpers."""

    def test_configure_is_idempotent(self) -> None:
        logger = configure_logging("debug")
        handlers = list(logger.handlers)

        configure_logging(logging.WARNING)

        assert logger.handlers == handlers
        assert logger.level == logging.WARNING

    def test_get_logger_namespaces(self) -> None:
        assert get_logger("cli").name == "changelog_lint.cli"
        assert get_logger("changelog_lint.linter").name == "changelog_lint.linter"
