"""Parse changelog markdown into block nodes and serialize them back.

Only the structure a changelog linter needs is interpreted: headings (with
their inline content) and link reference definitions. Every other block is
kept opaque with its raw source, so documents serialize back unchanged apart
from the nodes that were rewritten.
"""

from __future__ import annotations

import re
from typing import Iterable

from changelog_lint.schemas import Node, Position

_ATX_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+|$)(.*?)(?:[ \t]+#+)?[ \t]*$")
_SETEXT_UNDERLINE_RE = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_THEMATIC_BREAK_RE = re.compile(r"^ {0,3}(?:(?:-[ \t]*){3,}|(?:\*[ \t]*){3,}|(?:_[ \t]*){3,})$")
_BLOCKQUOTE_RE = re.compile(r"^ {0,3}>")
_HTML_RE = re.compile(r"^ {0,3}<[a-zA-Z/!?]")
_HTML_BLOCK_ENDS = (
    (
        re.compile(r"^ {0,3}<(?:script|pre|style|textarea)(?:\s|>|$)", re.IGNORECASE),
        re.compile(r"</(?:script|pre|style|textarea)>", re.IGNORECASE),
    ),
    (re.compile(r"^ {0,3}<!--"), re.compile(r"-->")),
    (re.compile(r"^ {0,3}<\?"), re.compile(r"\?>")),
    (re.compile(r"^ {0,3}<![a-zA-Z]"), re.compile(r">")),
    (re.compile(r"^ {0,3}<!\[CDATA\["), re.compile(r"\]\]>")),
)
_INDENTED_CODE_RE = re.compile(r"^(?: {4}|\t)")
_LIST_ITEM_RE = re.compile(r"^( {0,3})([-*+]|\d{1,9}[.)])(?:[ \t]+|$)")
_DEFINITION_RE = re.compile(
    r"^ {0,3}\[((?:[^\[\]\\]|\\.)+)\]:[ \t]*(<[^>]*>|\S+)"
    r"(?:[ \t]+(\"[^\"]*\"|'[^']*'|\([^)]*\)))?[ \t]*$"
)

_LABEL = r"((?:[^\[\]\\]|\\.)*)"
_INLINE_LINK_RE = re.compile(
    r"\[" + _LABEL + r"\]\([ \t]*(<[^>]*>|[^\s)]*)"
    r"(?:[ \t]+(\"[^\"]*\"|'[^']*'|\([^)]*\)))?[ \t]*\)"
)
_FULL_REFERENCE_RE = re.compile(r"\[" + _LABEL + r"\]\[" + _LABEL + r"\]")
_SHORTCUT_REFERENCE_RE = re.compile(r"\[((?:[^\[\]\\]|\\.)+)\](?![(\[:])")
_INLINE_CODE_RE = re.compile(r"(`+)(.*?[^`])\1(?!`)")
_INLINE_START_RE = re.compile(r"[\[`]")


def parse_markdown(text: str) -> Node:
    """Parse a markdown document into a root node of block nodes."""
    lines = text.splitlines()
    children: list[Node] = []
    index = 0

    while index < len(lines):
        line = lines[index]
        if not line.strip():
            index += 1
            continue

        heading_match = _ATX_HEADING_RE.match(line)
        if heading_match:
            children.append(_heading_from_match(heading_match, index))
            index += 1
            continue

        if _FENCE_RE.match(line):
            end = _read_fence(lines, index)
            children.append(_opaque("code", lines, index, end))
        elif _THEMATIC_BREAK_RE.match(line):
            end = index + 1
            children.append(_opaque("thematicBreak", lines, index, end))
        elif _DEFINITION_RE.match(line):
            end = index + 1
            children.append(_definition_from_match(_DEFINITION_RE.match(line), lines, index))
        elif _LIST_ITEM_RE.match(line):
            end = _read_list(lines, index)
            children.append(_opaque("list", lines, index, end))
        elif _BLOCKQUOTE_RE.match(line):
            end = _read_until_blank(lines, index)
            children.append(_opaque("blockquote", lines, index, end))
        elif _HTML_RE.match(line):
            end = _read_html(lines, index)
            children.append(_opaque("html", lines, index, end))
        elif _INDENTED_CODE_RE.match(line):
            end = _read_indented_code(lines, index)
            children.append(_opaque("code", lines, index, end))
        else:
            end, setext_depth = _read_paragraph(lines, index)
            if setext_depth:
                children.append(_setext_heading(lines, index, end, setext_depth))
            else:
                children.append(_opaque("paragraph", lines, index, end))
        index = end

    return Node(type="root", children=children, position=_span(lines, 0, len(lines)))


def parse_fragment(text: str) -> list[Node]:
    """Parse a markdown fragment into block nodes without source positions."""
    nodes = parse_markdown(text).children
    for node in nodes:
        _strip_positions(node)
    return nodes


def parse_inline(text: str, *, line: int | None = None, column: int = 1) -> list[Node]:
    """Parse heading content into text, link, link reference and code nodes.

    Args:
        text: Inline markdown.
        line: 1-based source line of ``text``; positions are omitted if None.
        column: 1-based source column where ``text`` starts.
    """
    nodes: list[Node] = []
    buffer_start = 0
    cursor = 0

    def position(start: int, end: int) -> Position | None:
        if line is None:
            return None
        return Position(
            start_line=line,
            start_column=column + start,
            end_line=line,
            end_column=column + end,
        )

    def flush(until: int) -> None:
        if until > buffer_start:
            nodes.append(
                Node(
                    type="text",
                    value=text[buffer_start:until],
                    position=position(buffer_start, until),
                )
            )

    while True:
        start_match = _INLINE_START_RE.search(text, cursor)
        if not start_match:
            break
        start = start_match.start()
        parsed = _match_inline(text, start)
        if parsed is None:
            cursor = start + 1
            continue

        node, end, inner_start, inner = parsed
        flush(start)
        node.position = position(start, end)
        if inner is not None:
            node.children = parse_inline(inner, line=line, column=column + inner_start)
        nodes.append(node)
        cursor = buffer_start = end

    flush(len(text))
    return nodes


def normalize_identifier(label: str) -> str:
    """Normalize a reference label the way definitions are matched."""
    return re.sub(r"\s+", " ", label).strip().lower()


def to_string(node: Node) -> str:
    """Return the plain text content of a node."""
    if node.value is not None and not node.children:
        return node.value
    return "".join(to_string(child) for child in node.children)


def serialize_markdown(root: Node) -> str:
    """Serialize a root node back into markdown text."""
    parts: list[str] = []
    previous: Node | None = None
    for node in root.children:
        if previous is not None:
            parts.append("\n" if _is_adjacent(previous, node) else "\n\n")
        parts.append(_serialize_block(node))
        previous = node
    if not parts:
        return ""
    return "".join(parts) + "\n"


def serialize_inline(nodes: Iterable[Node]) -> str:
    """Serialize inline nodes into markdown text."""
    return "".join(_serialize_inline_node(node) for node in nodes)


def text_node(value: str) -> Node:
    return Node(type="text", value=value)


def heading_node(depth: int, children: list[Node]) -> Node:
    return Node(type="heading", depth=depth, children=children)


def paragraph_node(children: list[Node]) -> Node:
    return Node(type="paragraph", children=children)


def link_reference_node(
    identifier: str,
    label: str,
    reference_type: str,
    children: list[Node],
) -> Node:
    return Node(
        type="linkReference",
        identifier=identifier,
        label=label,
        reference_type=reference_type,
        children=children,
    )


def definition_node(identifier: str, label: str, url: str, title: str | None = None) -> Node:
    return Node(type="definition", identifier=identifier, label=label, url=url, title=title)


def list_node(items: list[Node], *, spread: bool = False) -> Node:
    return Node(type="list", children=items, spread=spread)


def list_item_node(children: list[Node], *, spread: bool = False) -> Node:
    return Node(type="listItem", children=children, spread=spread)


def _span(lines: list[str], start: int, end: int) -> Position:
    if end <= start:
        return Position(start_line=start + 1, start_column=1, end_line=start + 1, end_column=1)
    return Position(
        start_line=start + 1,
        start_column=1,
        end_line=end,
        end_column=len(lines[end - 1]) + 1,
    )


def _opaque(node_type: str, lines: list[str], start: int, end: int) -> Node:
    return Node(
        type=node_type,
        value="\n".join(lines[start:end]),
        position=_span(lines, start, end),
    )


def _heading_from_match(match: re.Match[str], index: int) -> Node:
    content = match.group(2)
    line = match.string
    return Node(
        type="heading",
        depth=len(match.group(1)),
        children=parse_inline(content, line=index + 1, column=match.start(2) + 1),
        position=Position(
            start_line=index + 1,
            start_column=1,
            end_line=index + 1,
            end_column=len(line) + 1,
        ),
    )


def _setext_heading(lines: list[str], start: int, end: int, depth: int) -> Node:
    content_lines = [line.strip() for line in lines[start : end - 1]]
    content = " ".join(content_lines)
    first_column = len(lines[start]) - len(lines[start].lstrip()) + 1
    children = parse_inline(content, line=start + 1, column=first_column)
    if end - start > 2:
        # Positions of inline nodes spanning joined lines are not meaningful.
        for child in children:
            _strip_positions(child)
    return Node(
        type="heading",
        depth=depth,
        children=children,
        position=_span(lines, start, end),
    )


def _definition_from_match(match: re.Match[str], lines: list[str], index: int) -> Node:
    label = match.group(1)
    url = match.group(2)
    if url.startswith("<") and url.endswith(">"):
        url = url[1:-1]
    title = match.group(3)
    if title:
        title = title[1:-1]
    return Node(
        type="definition",
        identifier=normalize_identifier(label),
        label=label,
        url=url,
        title=title,
        position=_span(lines, index, index + 1),
    )


def _read_fence(lines: list[str], start: int) -> int:
    opening = _FENCE_RE.match(lines[start]).group(1)
    closing_re = re.compile(r"^ {0,3}" + re.escape(opening[0]) + "{" + str(len(opening)) + r",}[ \t]*$")
    for index in range(start + 1, len(lines)):
        if closing_re.match(lines[index]):
            return index + 1
    return len(lines)


def _read_until_blank(lines: list[str], start: int) -> int:
    index = start + 1
    while index < len(lines) and lines[index].strip():
        index += 1
    return index


def _read_html(lines: list[str], start: int) -> int:
    """Return the end of an HTML block.

    Comments, processing instructions, declarations, CDATA and raw text
    elements run until their closing marker, possibly past blank lines. Any
    other HTML block ends at the first blank line.
    """
    for opening_re, closing_re in _HTML_BLOCK_ENDS:
        opening = opening_re.match(lines[start])
        if not opening:
            continue
        if closing_re.search(lines[start], opening.end()):
            return start + 1
        for index in range(start + 1, len(lines)):
            if closing_re.search(lines[index]):
                return index + 1
        return len(lines)
    return _read_until_blank(lines, start)


def _read_indented_code(lines: list[str], start: int) -> int:
    index = start + 1
    end = index
    while index < len(lines):
        line = lines[index]
        if line.strip():
            if not _INDENTED_CODE_RE.match(line):
                break
            end = index + 1
        index += 1
    return end


def _starts_block(line: str) -> bool:
    return bool(
        _ATX_HEADING_RE.match(line)
        or _FENCE_RE.match(line)
        or _THEMATIC_BREAK_RE.match(line)
        or _BLOCKQUOTE_RE.match(line)
        or _HTML_RE.match(line)
    )


def _marker_family(marker: str) -> str:
    return marker if marker in "-*+" else marker[-1]


def _is_sibling_item(line: str, family: str) -> bool:
    match = _LIST_ITEM_RE.match(line)
    return bool(match) and _marker_family(match.group(2)) == family


def _indent_of(line: str) -> int:
    return len(line.expandtabs(4)) - len(line.expandtabs(4).lstrip())


def _read_list(lines: list[str], start: int) -> int:
    family = _marker_family(_LIST_ITEM_RE.match(lines[start]).group(2))
    index = start + 1
    end = index

    while index < len(lines):
        line = lines[index]
        if not line.strip():
            following = index + 1
            while following < len(lines) and not lines[following].strip():
                following += 1
            if following >= len(lines):
                break
            candidate = lines[following]
            if _indent_of(candidate) >= 2 or (
                _is_sibling_item(candidate, family) and not _THEMATIC_BREAK_RE.match(candidate)
            ):
                index = end = following
                continue
            break

        if _indent_of(line) >= 2:
            pass
        elif _THEMATIC_BREAK_RE.match(line):
            break
        elif _is_sibling_item(line, family):
            pass
        elif _starts_block(line) or _DEFINITION_RE.match(line) or _LIST_ITEM_RE.match(line):
            break
        index += 1
        end = index

    return end


def _read_paragraph(lines: list[str], start: int) -> tuple[int, int]:
    """Return the end of a paragraph and its setext depth (0 if none)."""
    index = start + 1
    while index < len(lines):
        line = lines[index]
        if not line.strip():
            break
        underline = _SETEXT_UNDERLINE_RE.match(line)
        if underline:
            return index + 1, 1 if underline.group(1).startswith("=") else 2
        if _starts_block(line):
            break
        item = _LIST_ITEM_RE.match(line)
        if item and line[item.end() :].strip():
            break
        index += 1
    return index, 0


def _match_inline(text: str, start: int) -> tuple[Node, int, int, str | None] | None:
    """Match an inline construct at ``start``.

    Returns the node, the end offset, the offset of its inner content and the
    inner content (None when the node has no parsed children).
    """
    if text[start] == "`":
        match = _INLINE_CODE_RE.match(text, start)
        if not match:
            return None
        return Node(type="inlineCode", value=match.group(2)), match.end(), 0, None

    match = _INLINE_LINK_RE.match(text, start)
    if match:
        url = match.group(2)
        if url.startswith("<") and url.endswith(">"):
            url = url[1:-1]
        title = match.group(3)[1:-1] if match.group(3) else None
        node = Node(type="link", url=url, title=title)
        return node, match.end(), match.start(1), match.group(1)

    match = _FULL_REFERENCE_RE.match(text, start)
    if match and match.group(1):
        label = match.group(2) or match.group(1)
        reference_type = "full" if match.group(2) else "collapsed"
        node = Node(
            type="linkReference",
            identifier=normalize_identifier(label),
            label=label,
            reference_type=reference_type,
        )
        return node, match.end(), match.start(1), match.group(1)

    match = _SHORTCUT_REFERENCE_RE.match(text, start)
    if match:
        label = match.group(1)
        node = Node(
            type="linkReference",
            identifier=normalize_identifier(label),
            label=label,
            reference_type="shortcut",
        )
        return node, match.end(), match.start(1), label

    return None


def _strip_positions(node: Node) -> None:
    node.position = None
    for child in node.children:
        _strip_positions(child)


def _is_adjacent(previous: Node, node: Node) -> bool:
    if previous.type == "definition" and node.type == "definition":
        return True
    # Blocks that touched in the source stay on consecutive lines.
    if previous.position is None or node.position is None:
        return False
    return previous.position.end_line + 1 == node.position.start_line


def _serialize_block(node: Node) -> str:
    if node.type == "heading":
        content = serialize_inline(node.children)
        marker = "#" * (node.depth or 1)
        return f"{marker} {content}" if content else marker

    if node.type == "definition":
        url = node.url or ""
        if not url or re.search(r"\s", url):
            url = f"<{url}>"
        label = node.label or node.identifier or ""
        line = f"[{label}]: {url}"
        if node.title:
            line += f' "{node.title}"'
        return line

    if node.type == "list" and node.children:
        separator = "\n\n" if node.spread else "\n"
        return separator.join(_serialize_list_item(item) for item in node.children)

    if node.type == "paragraph" and node.children:
        return serialize_inline(node.children)

    if node.value is not None:
        return node.value

    return "\n\n".join(_serialize_block(child) for child in node.children)


def _serialize_list_item(item: Node) -> str:
    separator = "\n\n" if item.spread else "\n"
    content = separator.join(_serialize_block(child) for child in item.children)
    lines = content.split("\n")
    rendered = ["- " + lines[0] if lines[0] else "-"]
    rendered.extend("  " + line if line else "" for line in lines[1:])
    return "\n".join(rendered)


def _serialize_inline_node(node: Node) -> str:
    if node.type == "text":
        return node.value or ""

    if node.type == "inlineCode":
        value = node.value or ""
        fence = "``" if "`" in value else "`"
        return f"{fence}{value}{fence}"

    content = serialize_inline(node.children)

    if node.type == "link":
        url = node.url or ""
        if node.title:
            return f'[{content}]({url} "{node.title}")'
        return f"[{content}]({url})"

    if node.type == "linkReference":
        if node.reference_type == "full":
            return f"[{content}][{node.label or node.identifier}]"
        if node.reference_type == "collapsed":
            return f"[{content}][]"
        return f"[{content}]"

    if node.value is not None and not node.children:
        return node.value
    return content
