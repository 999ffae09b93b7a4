"""Build a nested changelog model from a flat sequence of block nodes.

A changelog is sectioned by heading depth: the root ``Changelog`` holds
``Release`` sections, releases hold ``Group`` sections, and anything deeper is
kept as generic ``Section`` nesting. Link reference definitions are hoisted to
the root wherever they appear.
"""

from __future__ import annotations

import re
from typing import Iterable

from changelog_lint.changes import is_squashed_list
from changelog_lint.markdown import (
    heading_node,
    list_item_node,
    list_node,
    paragraph_node,
    parse_fragment,
    text_node,
)
from changelog_lint.schemas import Change, Node
from changelog_lint.versions import UNRELEASED, sort_releases

_UNRELEASED_RE = re.compile(r"Unreleased", re.IGNORECASE)
_DATE_SEPARATOR = " - "

TITLE = "Changelog"


class Section:
    """A heading and everything up to the next heading of equal or lower depth."""

    def __init__(self, depth: int = 1, parent: Section | None = None, heading: Node | None = None) -> None:
        self.depth = depth
        self.parent = parent
        self.heading = heading
        self.content: list[Node] = []
        self.children: list[Section] = []
        self.definitions: dict[str, Node] = {}

    def child_class(self) -> type[Section]:
        return Section

    def add(self, node: Node) -> Section:
        """Add a node and return the section that receives the next one.

        A heading that is not deeper than this section closes it: control
        climbs to the nearest ancestor that can take the heading (or the
        root) and the node is accepted there.
        """
        section = self
        if _is_heading(node):
            while section.parent is not None and node.depth <= section.depth:
                section = section.parent
        return section.accept(node)

    def accept(self, node: Node) -> Section:
        if _is_heading(node) and node.depth > self.depth:
            return self._open_child(node)

        if node.type == "definition" and isinstance(node.identifier, str):
            self.root().definitions[node.identifier.lower()] = node
        else:
            self.content.append(node)
        return self

    def is_empty(self) -> bool:
        return not self.content and not self.children

    def root(self) -> Section:
        section = self
        while section.parent is not None:
            section = section.parent
        return section

    def tree(self) -> list[Node]:
        """Flatten the section back into block nodes."""
        nodes: list[Node] = []
        if self.heading is not None:
            nodes.append(self.heading)
        nodes.extend(self.content)
        for child in self.children:
            nodes.extend(child.tree())
        nodes.extend(self.definitions.values())
        return nodes

    def _open_child(self, heading: Node) -> Section:
        child = self.child_class()(self.depth + 1, self, heading)
        self.children.append(child)
        return child

    def __repr__(self) -> str:
        return f"{type(self).__name__}(depth={self.depth}, children={len(self.children)})"


class Changelog(Section):
    """The document root: title heading, releases and all definitions."""

    children: list[Release]

    def child_class(self) -> type[Section]:
        return Release

    def accept(self, node: Node) -> Section:
        if (
            _is_heading(node)
            and node.depth == 1
            and self.heading is None
            and not self.content
            and not self.children
        ):
            self.heading = node
            return self

        # Any other heading reaching the root starts a release, even at depth 1.
        if _is_heading(node):
            return self._open_child(node)
        return super().accept(node)

    @property
    def releases(self) -> list[Release]:
        return self.children

    def has_valid_heading(self) -> bool:
        if self.heading is None or self.heading.depth != 1:
            return False
        child = _sole_child(self.heading, "text")
        return child is not None and child.value == TITLE

    def build_heading(self) -> None:
        """Force the title heading to ``# Changelog``."""
        if self.heading is not None and self.heading.depth == 1:
            self.heading.children = [text_node(TITLE)]
        else:
            self.heading = heading_node(1, [text_node(TITLE)])

    def sort_releases(self) -> None:
        self.children = sort_releases(self.children)

    def relate_versions(self) -> None:
        """Point every release at the version of its older neighbour."""
        for index, release in enumerate(self.children):
            older = self.children[index + 1] if index + 1 < len(self.children) else None
            release.previous_version = older.version if older is not None else None

    def add_release(self, heading: Node) -> Release:
        release = Release(self.depth + 1, self, heading)
        self.children.append(release)
        return release


class Release(Section):
    """A release section, parsed eagerly from its heading.

    Accepted headings are plain text ``Unreleased`` or ``<version> - <date>``,
    or a link (reference) wrapping the version, optionally followed by a
    `` - <date>`` text node.
    """

    parent: Changelog

    def __init__(self, depth: int, parent: Changelog, heading: Node) -> None:
        super().__init__(depth, parent, heading)
        self.index = len(parent.children)
        self.version: str | None = None
        self.previous_version: str | None = None
        self.date: str | None = None
        self.title: str | None = None
        self.link_type: str | None = None
        self.parseable = False
        self._parse_heading(heading.children)

    def child_class(self) -> type[Section]:
        return Group

    @property
    def is_unreleased(self) -> bool:
        return self.version == UNRELEASED

    def create_group(self, group_type: str) -> Group:
        group = Group(self.depth + 1, self, heading_node(self.depth + 1, [text_node(group_type)]))
        self.children.append(group)
        return group

    def _parse_heading(self, children: list[Node]) -> None:
        first = children[0] if children else None

        if first is not None and first.type == "text" and len(children) == 1:
            value = first.value or ""
            self.title = value
            if _UNRELEASED_RE.search(value):
                self.parseable = True
                self.version = UNRELEASED
                return
            version, *rest = value.split(_DATE_SEPARATOR)
            if len(rest) <= 1:
                self.parseable = True
                self.version = version
                self.date = rest[0] if rest else None
            return

        if first is not None and first.type in ("link", "linkReference") and _sole_child(first, "text"):
            self.link_type = first.type
            version = first.children[0].value or ""

            if len(children) == 1:
                self.parseable = True
                self.version = UNRELEASED if _UNRELEASED_RE.search(version) else version
                self.title = version
            elif len(children) == 2 and children[1].type == "text":
                before, *after = (children[1].value or "").split(_DATE_SEPARATOR)
                if not before and len(after) == 1:
                    self.parseable = True
                    self.version = version
                    self.date = after[0]


class Group(Section):
    """A typed group of changes inside a release."""

    parent: Release

    def has_valid_heading(self) -> bool:
        if self.heading is None or self.heading.depth != 3:
            return False
        return _sole_child(self.heading, "text") is not None

    def type(self) -> str | None:
        if not self.has_valid_heading():
            return None
        return self.heading.children[0].value

    def create_list(self, changes: Iterable[Change]) -> Node:
        """Append a bullet list rendering ``changes`` and return it."""
        items = [_change_item(change) for change in changes]
        node = list_node(items, spread=any(item.spread for item in items))
        self.content.append(node)
        return node


def build_changelog(nodes: Iterable[Node]) -> Changelog:
    """Section a flat sequence of block nodes into a changelog tree."""
    root = Changelog()
    section: Section = root
    for node in nodes:
        section = section.add(node)
    return root


def _change_item(change: Change) -> Node:
    children = parse_fragment(change.title) or [paragraph_node([text_node(change.title)])]
    description = change.description or ""

    if not description.strip():
        return list_item_node(children)

    if is_squashed_list(description):
        sub_items = [
            list_item_node(parse_fragment(line.strip()[2:]) or [paragraph_node([text_node("")])])
            for line in description.splitlines()
            if line.strip()
        ]
        children.append(list_node(sub_items))
        return list_item_node(children)

    children.extend(parse_fragment(description))
    return list_item_node(children, spread=True)


def _is_heading(node: Node) -> bool:
    return node.type == "heading" and node.depth is not None


def _sole_child(node: Node, node_type: str) -> Node | None:
    if len(node.children) != 1:
        return None
    child = node.children[0]
    return child if child.type == node_type else None
