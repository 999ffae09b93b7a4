"""Inspect how a changelog is sectioned into releases and groups."""

from __future__ import annotations

import argparse
from collections import Counter
from pathlib import Path

from changelog_lint.markdown import parse_markdown, serialize_inline
from changelog_lint.schemas import Node
from changelog_lint.sections import Changelog, build_changelog


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect changelog node types, releases and groups.")
    parser.add_argument("file", nargs="?", default="CHANGELOG.md", help="Changelog file path")
    parser.add_argument("--definitions", action="store_true", help="Also list link reference definitions")
    args = parser.parse_args()

    root = parse_markdown(load_markdown(args.file))
    changelog = build_changelog(root.children)

    print("Node types:")
    for name, count in collect_stats(root).most_common():
        print(f"{name}: {count}")

    print("\nReleases:")
    for line in describe_releases(changelog):
        print(line)

    if args.definitions:
        print("\nDefinitions:")
        for identifier, node in changelog.definitions.items():
            print(f"{identifier}: {node.url}")


def load_markdown(file_path: str) -> str:
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"Changelog file not found: {path}")
    return path.read_text(encoding="utf-8")


def collect_stats(root: Node) -> Counter:
    types = Counter()
    stack = list(root.children)
    while stack:
        node = stack.pop()
        types[node.type] += 1
        stack.extend(node.children)
    return types


def describe_releases(changelog: Changelog) -> list[str]:
    lines = []
    for release in changelog.releases:
        heading = serialize_inline(release.heading.children)
        status = "ok" if release.parseable else "unparseable"
        lines.append(f"{release.version or 'n/a'} ({release.date or 'no date'}) [{status}] {heading}")
        for group in release.children:
            lines.append(f"  {group.type() or 'invalid group'}: {len(group.content)} blocks")
    return lines


if __name__ == "__main__":
    main()
