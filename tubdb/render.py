"""Text, console and Graphviz renderings of a B+ tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .pages import INVALID_PAGE_ID

_log = logging.getLogger(__name__)

_TABLE_OPEN = 'label=<<TABLE BORDER="0" CELLBORDER="1" CELLSPACING="0" CELLPADDING="4">\n'


@dataclass
class PrintableBPlusTree:
    """A B+ tree node reduced to its key text, its display width and its children."""

    size: int
    keys: str
    children: list[PrintableBPlusTree] = field(default_factory=list)

    def render(self) -> str:
        """Lay the tree out level by level, one line per level."""
        lines = []
        level = [self]
        while level:
            parts = []
            next_level: list[PrintableBPlusTree] = []
            for node in level:
                pad = " " * max(0, (node.size - len(node.keys)) // 2)
                parts.append(f"{pad}{node.keys}{pad}")
                next_level.extend(node.children)
            lines.append("".join(parts) + "\n")
            level = next_level
        return "".join(lines)


def to_printable(tree: Any, page_id: int) -> PrintableBPlusTree:
    """Build the printable form of the subtree rooted at page_id."""
    with tree.store.fetch_basic(page_id) as guard:
        page = guard.data
        if page.is_leaf:
            keys = page.describe()
            return PrintableBPlusTree(len(keys) + 4, keys)
        children = [to_printable(tree, child_id) for _, child_id in page.entries]
        return PrintableBPlusTree(sum(child.size for child in children), page.describe(), children)


def draw_tree(tree: Any) -> str:
    """The tree as indented text, or "()" when it is empty."""
    if tree.is_empty():
        return "()"
    return to_printable(tree, tree.root_page_id()).render()


def _key_text(key: Any) -> str:
    return "" if key is None else str(key)


def _print_page(tree: Any, page_id: int) -> None:
    with tree.store.fetch_basic(page_id) as guard:
        page = guard.data
        if page.is_leaf:
            print(f"Leaf Page: {page_id}\tNext: {page.next_page_id}")
            print("Contents: " + ", ".join(_key_text(k) for k, _ in page.entries))
            print()
            return
        print(f"Internal Page: {page_id}")
        print("Contents: " + ", ".join(f"{_key_text(k)}: {v}" for k, v in page.entries))
        print()
        children = [child_id for _, child_id in page.entries]
    for child_id in children:
        _print_page(tree, child_id)


def print_tree(tree: Any) -> None:
    """Print every page of the tree, depth first, to standard output."""
    root_id = tree.root_page_id()
    if root_id == INVALID_PAGE_ID:
        return
    _print_page(tree, root_id)


def _graph(tree: Any, page_id: int, out: list[str]) -> None:
    store = tree.store
    with store.fetch_basic(page_id) as guard:
        page = guard.data
        size = page.size
        header = (
            f'<TR><TD COLSPAN="{size}">P={page_id}</TD></TR>\n'
            f'<TR><TD COLSPAN="{size}">'
            f"max_size={page.max_size},min_size={page.min_size()},size={size}"
            "</TD></TR>\n"
        )
        if page.is_leaf:
            out.append(f"LEAF_{page_id}[shape=plain color=green {_TABLE_OPEN}{header}<TR>")
            out.extend(f"<TD>{key}</TD>\n" for key, _ in page.entries)
            out.append("</TR></TABLE>>];\n")
            if page.next_page_id != INVALID_PAGE_ID:
                nxt = page.next_page_id
                out.append(f"LEAF_{page_id} -> LEAF_{nxt};\n")
                out.append(f"{{rank=same LEAF_{page_id} LEAF_{nxt}}};\n")
            return
        out.append(f"INT_{page_id}[shape=plain color=pink {_TABLE_OPEN}{header}<TR>")
        for i, (key, child_id) in enumerate(page.entries):
            out.append(f'<TD PORT="p{child_id}">{key if i > 0 else " "}</TD>\n')
        out.append("</TR></TABLE>>];\n")
        children = [child_id for _, child_id in page.entries]
    for i, child_id in enumerate(children):
        _graph(tree, child_id, out)
        with store.fetch_basic(child_id) as child_guard:
            child_is_leaf = child_guard.data.is_leaf
        if i > 0:
            sibling_id = children[i - 1]
            with store.fetch_basic(sibling_id) as sibling_guard:
                sibling_is_leaf = sibling_guard.data.is_leaf
            if not sibling_is_leaf and not child_is_leaf:
                out.append(f"{{rank=same INT_{sibling_id} INT_{child_id}}};\n")
        prefix = "LEAF_" if child_is_leaf else "INT_"
        out.append(f"INT_{page_id}:p{child_id} -> {prefix}{child_id};\n")


def to_dot(tree: Any) -> str:
    """The tree as a Graphviz digraph."""
    out = ["digraph G {\n"]
    root_id = tree.root_page_id()
    if root_id != INVALID_PAGE_ID:
        _graph(tree, root_id, out)
    out.append("}\n")
    return "".join(out)


def draw(tree: Any, path: str | Path) -> None:
    """Write the Graphviz form of the tree to path; an empty tree writes nothing."""
    if tree.is_empty():
        _log.warning("Drawing an empty tree")
        return
    Path(path).write_text(to_dot(tree))