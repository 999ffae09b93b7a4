"""Markdown node models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

ReferenceType = Literal["full", "collapsed", "shortcut"]


class Position(BaseModel):
    """Location of a node in the source document.

    Lines and columns are 1-based; ``end_column`` points just past the last
    character, so an empty document spans ``1:1-1:1``.
    """

    start_line: int = Field(1, ge=1)
    start_column: int = Field(1, ge=1)
    end_line: int = Field(1, ge=1)
    end_column: int = Field(1, ge=1)

    def __str__(self) -> str:
        return f"{self.start_line}:{self.start_column}-{self.end_line}:{self.end_column}"


class Node(BaseModel):
    """A block or inline markdown node.

    Opaque blocks (paragraphs, lists, code, ...) read from a document keep
    their raw source in ``value``; blocks built in code carry ``children``
    instead.

    Attributes:
        type: Node kind, e.g. "heading", "definition", "text", "linkReference".
        depth: Heading depth (1-6).
        value: Text value, or raw markdown source of an opaque block.
        url: Destination of links and definitions.
        title: Optional link or definition title.
        identifier: Normalized (lower-cased) reference label.
        label: Reference label as written.
        reference_type: How a link reference was written.
        spread: Whether list items are separated by blank lines.
        children: Child nodes.
        position: Source location, None for generated nodes.
    """

    type: str
    depth: int | None = Field(None, ge=1, le=6)
    value: str | None = None
    url: str | None = None
    title: str | None = None
    identifier: str | None = None
    label: str | None = None
    reference_type: ReferenceType | None = None
    spread: bool = False
    children: list["Node"] = Field(default_factory=list)
    position: Position | None = None
