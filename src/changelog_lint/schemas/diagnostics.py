"""Diagnostic model."""

from __future__ import annotations

from pydantic import BaseModel

from changelog_lint.schemas.nodes import Position

DIAGNOSTIC_SOURCE = "changelog-lint"


class Diagnostic(BaseModel):
    """A single finding reported against a changelog."""

    message: str
    rule: str
    source: str = DIAGNOSTIC_SOURCE
    path: str | None = None
    position: Position | None = None

    @property
    def rule_id(self) -> str:
        return f"{self.source}:{self.rule}"

    def __str__(self) -> str:
        location = str(self.position or Position())
        if self.path:
            location = f"{self.path}:{location}"
        return f"{location}: {self.message}"
