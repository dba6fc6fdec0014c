import pytest

from tubdb.pages import (
    INVALID_PAGE_ID,
    BPlusTreePage,
    IndexPageType,
    InternalPage,
    LeafPage,
    PageOverflowError,
)


def make_leaf(keys, max_size=10):
    page = LeafPage(max_size)
    for k in keys:
        page.insert(k, f"r{k}")
    return page


def make_internal(keys, max_size=10, first=100):
    page = InternalPage(max_size)
    page.insert_first(first)
    for i, k in enumerate(keys, start=1):
        page.insert(k, first + i)
    return page


# ---- header ----


def test_min_size_leaf():
    assert LeafPage(4).min_size() == 2


def test_min_size_internal():
    assert InternalPage(5).min_size() == 3


def test_min_size_invalid_page():
    assert BPlusTreePage(IndexPageType.INVALID_INDEX_PAGE, 8).min_size() == 0


def test_page_kinds():
    assert LeafPage(4).is_leaf
    assert not InternalPage(4).is_leaf
    assert LeafPage(4).page_type is IndexPageType.LEAF_PAGE
    assert InternalPage(4).page_type is IndexPageType.INTERNAL_PAGE


# ---- leaf ----


def test_leaf_default_next_page():
    assert LeafPage(4).next_page_id == INVALID_PAGE_ID


def test_leaf_insert_keeps_order():
    page = make_leaf([5, 1, 3])
    assert [page.key_at(i) for i in range(page.size)] == [1, 3, 5]
    assert [page.value_at(i) for i in range(page.size)] == ["r1", "r3", "r5"]


def test_leaf_insert_returns_size():
    page = LeafPage(10)
    assert [page.insert(k, k) for k in (7, 2, 9)] == [1, 2, 3]


def test_leaf_insert_full_raises():
    page = make_leaf([1, 2], max_size=2)
    with pytest.raises(PageOverflowError):
        page.insert(3, "r3")
    assert page.size == 2


def test_leaf_lookup():
    page = make_leaf([10, 20, 30])
    assert page.key_at(page.lookup(20)) == 20
    assert page.key_at(page.lookup(15)) == 20
    assert page.key_at(page.lookup(5)) == 10
    assert page.lookup(35) == page.size


def test_leaf_remove_key():
    page = make_leaf([1, 2, 3])
    assert page.remove_key(2) is True
    assert page.describe() == "(1,3)"
    assert page.remove_key(4) is False
    assert page.describe() == "(1,3)"


def test_leaf_remove_at():
    page = make_leaf([1, 2, 3])
    page.remove_at(0)
    assert page.describe() == "(2,3)"


def test_leaf_move_half_to():
    original = [1, 2, 3, 4, 5]
    left = make_leaf(original)
    right = LeafPage(10)
    left.move_half_to(right)
    keys_left = [left.key_at(i) for i in range(left.size)]
    keys_right = [right.key_at(i) for i in range(right.size)]
    assert keys_left + keys_right == original
    assert keys_left and keys_right
    assert keys_left[-1] < keys_right[0]


def test_leaf_move_half_to_overflow():
    left = make_leaf([1, 2, 3, 4, 5, 6])
    right = LeafPage(3)
    with pytest.raises(PageOverflowError):
        left.move_half_to(right)


def test_leaf_move_all_to():
    src = make_leaf([4, 5])
    dst = make_leaf([1, 2])
    src.move_all_to(dst)
    assert src.size == 0
    assert dst.describe() == "(1,2,4,5)"


def test_leaf_move_all_to_overflow():
    src = make_leaf([4, 5], max_size=4)
    dst = make_leaf([1, 2], max_size=10)
    with pytest.raises(PageOverflowError):
        src.move_all_to(dst)


def test_leaf_move_first_to_end_of():
    src = make_leaf([5, 6])
    dst = make_leaf([1, 2])
    src.move_first_to_end_of(dst)
    assert src.describe() == "(6)"
    assert dst.describe() == "(1,2,5)"
    assert dst.value_at(dst.size - 1) == "r5"


def test_leaf_move_first_of_empty_does_nothing():
    src = LeafPage(4)
    dst = make_leaf([1])
    src.move_first_to_end_of(dst)
    assert dst.describe() == "(1)"


def test_leaf_move_end_to_front_of():
    src = make_leaf([1, 2])
    dst = make_leaf([5, 6])
    src.move_end_to_front_of(dst)
    assert src.describe() == "(1)"
    assert dst.describe() == "(2,5,6)"


def test_leaf_move_end_to_front_of_overflow():
    src = make_leaf([1, 2])
    dst = make_leaf([5, 6], max_size=3)
    with pytest.raises(PageOverflowError):
        src.move_end_to_front_of(dst)


def test_leaf_describe():
    assert make_leaf([3, 1, 2]).describe() == "(1,2,3)"
    assert LeafPage(4).describe() == "()"


# ---- internal ----


def test_internal_build():
    page = make_internal([10, 20])
    assert page.size == 3
    assert page.key_at(0) is None
    assert page.value_at(0) == 100
    assert page.key_at(1) == 10
    assert page.value_at(1) == 101
    assert page.key_at(2) == 20
    assert page.value_at(2) == 102


def test_internal_insert_out_of_order():
    page = InternalPage(10)
    page.insert_first(100)
    page.insert(30, 3)
    page.insert(10, 1)
    page.insert(20, 2)
    assert page.describe() == "(10,20,30)"
    assert [page.value_at(i) for i in range(page.size)] == [100, 1, 2, 3]


def test_internal_lookup():
    page = make_internal([10, 20])
    assert page.key_at(page.lookup(10)) == 10
    assert page.key_at(page.lookup(15)) == 20
    assert page.key_at(page.lookup(1)) == 10
    assert page.lookup(25) == page.size


def test_internal_lookup_empty():
    page = InternalPage(4)
    assert page.lookup(5) == page.size


def test_internal_erase_at():
    page = make_internal([10, 20, 30])
    page.erase_at(2)
    assert page.describe() == "(10,30)"


def test_internal_remove_key():
    page = make_internal([10, 20, 30])
    assert page.remove_key(15) is True
    assert page.describe() == "(10,30)"
    assert page.remove_key(40) is False
    assert page.describe() == "(10,30)"


def test_internal_setters():
    page = make_internal([10, 20])
    page.set_key_at(1, 11)
    page.set_value_at(0, 555)
    assert page.key_at(1) == 11
    assert page.value_at(1) == 101
    assert page.value_at(0) == 555


def test_internal_move_half_to():
    page = make_internal([10, 20, 30, 40])
    original = list(page.entries)
    new = InternalPage(10)
    page.move_half_to(new)
    assert new.key_at(0) is None
    assert page.entries + new.entries[1:] == original
    assert page.size >= 1 and new.size >= 2


def test_internal_move_all_to():
    src = make_internal([50, 60], first=200)
    dst = make_internal([10, 20])
    moved = src.entries[1:]
    src.move_all_to(dst)
    assert src.size == 1
    assert src.value_at(0) == 200
    assert dst.entries[-len(moved):] == moved


def test_internal_move_all_to_overflow():
    src = make_internal([50, 60], max_size=3)
    dst = make_internal([10, 20])
    with pytest.raises(PageOverflowError):
        src.move_all_to(dst)


def test_internal_move_first_to_end_of():
    src = make_internal([50, 60], first=200)
    dst = make_internal([10, 20])
    src.move_first_to_end_of(dst)
    assert src.describe() == "(60)"
    assert dst.describe() == "(10,20,50)"
    assert dst.value_at(dst.size - 1) == 201


def test_internal_move_first_to_end_of_overflow():
    src = make_internal([50, 60])
    dst = make_internal([10, 20], max_size=4)
    with pytest.raises(PageOverflowError):
        src.move_first_to_end_of(dst)
    assert src.describe() == "(50,60)"


def test_internal_describe_skips_first_key():
    page = make_internal([10, 20])
    assert page.describe() == "(10,20)"
    empty = InternalPage(4)
    empty.insert_first(1)
    assert empty.describe() == "()"