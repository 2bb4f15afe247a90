"""Digest and tree rendering: the final text artifacts of an ingestion.

The digest banner format is consumed by downstream parsers that split the
digest on file boundaries; keep it byte-for-byte stable.
"""

from __future__ import annotations

from collections.abc import Iterable

from repo_ingest.domain.entities import ClassifiedFile, FetchedFile, TreeEntry

BANNER = "*" * 51
INDENT = "  "

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def _path_of(entry: TreeEntry | ClassifiedFile | str) -> str:
    return entry if isinstance(entry, str) else entry.path


def render_tree(entries: Iterable[TreeEntry | ClassifiedFile | str]) -> str:
    """Render entries as a nested ``- name`` listing, two spaces per level.

    Nodes appear in order of first appearance; a path seen twice yields one
    node.
    """
    tree: dict[str, dict] = {}
    for entry in entries:
        node = tree
        for part in _path_of(entry).strip("/").split("/"):
            if part:
                node = node.setdefault(part, {})

    lines: list[str] = []
    _render_node(tree, lines, depth=0)
    return "\n".join(lines)


def _render_node(node: dict[str, dict], lines: list[str], depth: int) -> None:
    for name, children in node.items():
        lines.append(f"{INDENT * depth}- {name}")
        if children:
            _render_node(children, lines, depth + 1)


def render_digest(files: Iterable[FetchedFile]) -> str:
    """Concatenate file contents, in order, each under a path banner."""
    lines: list[str] = []
    for f in files:
        lines.extend((BANNER, f"File: {f.path}", BANNER, "", f.content, "", ""))
    return "\n".join(lines)


def format_bytes(size: int, decimals: int = 2) -> str:
    """Human-readable byte count, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, decimals):g} {_SIZE_UNITS[unit]}"
