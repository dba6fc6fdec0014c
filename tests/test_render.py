import re

import pytest

from tubdb.guards import PageStore
from tubdb.render import PrintableBPlusTree, draw, draw_tree, print_tree, to_dot, to_printable
from tubdb.tree import BPlusTree


def _tree(keys, leaf_max=4, internal_max=4):
    store = PageStore()
    tree = BPlusTree("idx", store.new_page(), store, leaf_max, internal_max)
    for key in keys:
        tree.insert(key, key)
    return tree


def _numbers(text):
    return [int(n) for n in re.findall(r"-?\d+", text)]


def test_empty_tree_draws_as_parentheses():
    assert draw_tree(_tree([])) == "()"


def test_single_leaf_layout():
    assert draw_tree(_tree([1, 2])) == "  (1,2)  \n"


def test_render_of_handmade_tree():
    node = PrintableBPlusTree(4, "(1)", [PrintableBPlusTree(2, "x"), PrintableBPlusTree(2, "y")])
    lines = node.render().split("\n")
    assert lines[-1] == ""
    assert len(lines) == 3
    assert "x" in lines[1] and "y" in lines[1]
    assert lines[1].index("x") < lines[1].index("y")


def test_multilevel_render_lists_all_keys_in_order():
    keys = list(range(1, 40))
    text = draw_tree(_tree(reversed(keys)))
    lines = text.split("\n")[:-1]
    assert len(lines) >= 3
    assert _numbers(lines[-1]) == keys
    assert set(_numbers(lines[0])) <= set(keys)


def _check_sizes(node):
    if not node.children:
        assert node.size == len(node.keys) + 4
    else:
        assert node.size == sum(child.size for child in node.children)
        for child in node.children:
            _check_sizes(child)


def test_printable_sizes_are_consistent():
    tree = _tree(range(1, 30))
    root = to_printable(tree, tree.root_page_id())
    assert root.children
    _check_sizes(root)


def test_to_dot_single_leaf():
    tree = _tree([1, 2])
    dot = to_dot(tree)
    root = tree.root_page_id()
    assert dot.startswith("digraph G {\n")
    assert dot.endswith("}\n")
    assert f"LEAF_{root}[shape=plain color=green " in dot
    assert "max_size=4,min_size=2,size=2" in dot
    assert "->" not in dot


def test_to_dot_multilevel_has_edges_for_every_child():
    tree = _tree(range(1, 30))
    dot = to_dot(tree)
    root = tree.root_page_id()
    assert f"INT_{root}[shape=plain color=pink " in dot
    assert f"INT_{root}:p" in dot
    assert "LEAF_" in dot
    # every leaf key appears in a table cell
    cells = re.findall(r"<TD>(\d+)</TD>", dot)
    assert sorted(int(c) for c in cells) == list(range(1, 30))


def test_draw_writes_dot_file(tmp_path):
    tree = _tree(range(1, 10))
    path = tmp_path / "tree.dot"
    draw(tree, path)
    assert path.read_text() == to_dot(tree)


def test_draw_empty_tree_writes_nothing(tmp_path, caplog):
    path = tmp_path / "tree.dot"
    with caplog.at_level("WARNING"):
        draw(_tree([]), path)
    assert not path.exists()
    assert "empty tree" in caplog.text


def test_print_tree_single_leaf(capsys):
    tree = _tree([1, 2])
    print_tree(tree)
    out = capsys.readouterr().out
    assert f"Leaf Page: {tree.root_page_id()}\tNext: -1" in out
    assert "Contents: 1, 2" in out


def test_print_tree_multilevel_lists_root_first(capsys):
    tree = _tree(range(1, 20))
    print_tree(tree)
    out = capsys.readouterr().out
    assert out.startswith(f"Internal Page: {tree.root_page_id()}")
    leaf_lines = [line for line in out.splitlines() if line.startswith("Contents: ") and ":" not in line[10:]]
    found = [n for line in leaf_lines for n in _numbers(line)]
    assert found == list(range(1, 20))


@pytest.mark.parametrize("keys", [[5], [3, 1, 2]])
def test_draw_tree_small_leaf_contains_sorted_keys(keys):
    assert _numbers(draw_tree(_tree(keys))) == sorted(keys)