"""Shared schemas for changelog-lint."""

from changelog_lint.schemas.commits import Change, Commit, Signature
from changelog_lint.schemas.diagnostics import Diagnostic
from changelog_lint.schemas.nodes import Node, Position

__all__ = ["Change", "Commit", "Diagnostic", "Node", "Position", "Signature"]
