"""Deleting entries from a B+ tree, with borrowing from and merging with siblings.

``remove_entry`` works on any tree object with a ``store`` attribute (a
``PageStore``) and a context holding the deletion path: ``write_set`` (a deque
of write guards, the page to change last), ``access_set`` (page ids from the
root down), ``root_page_id`` and ``header_page`` (a write guard whose data has
a ``root_page_id`` attribute).
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import Any

from .pages import INVALID_PAGE_ID, InternalPage


def sibling_of(parent: InternalPage, key: Any) -> tuple[int, Any]:
    """The id of a neighbouring child for the child holding key, and the key between them."""
    index = parent.lookup(key)
    n = parent.size
    if index == n:
        return parent.value_at(index - 2), parent.key_at(index - 1)
    if 1 < index <= n - 1:
        if key == parent.key_at(index):
            return parent.value_at(index - 1), parent.key_at(index)
        return parent.value_at(index - 2), parent.key_at(index - 1)
    if key == parent.key_at(index):
        return parent.value_at(index - 1), parent.key_at(index)
    return parent.value_at(index), parent.key_at(index)


def replace_key(page: InternalPage, src: Any, dst: Any) -> None:
    """Replace the first separator that is >= src with dst."""
    index = page.lookup(src)
    if not 0 <= index < page.size:
        raise LookupError(f"source key {src!r} not in page")
    page.set_key_at(index, dst)


def _set_root(ctx: Any, page_id: int) -> None:
    ctx.header_page.data_mut.root_page_id = page_id
    ctx.root_page_id = page_id


def _parent_page_id(ctx: Any, child: int) -> int:
    parent = INVALID_PAGE_ID
    for page_id in ctx.access_set:
        if page_id == child:
            return parent
        parent = page_id
    raise LookupError(f"page {child} is not on the access path")


def _borrow(page: Any, sibling: Any, parent: InternalPage, key: Any, mid_key: Any) -> None:
    index = parent.lookup(key)
    if index == 1 and key < parent.key_at(1):
        # the page lies left of its sibling: take the sibling's first entry
        if not page.is_leaf:
            first_page_id = sibling.value_at(0)
            first_key = sibling.key_at(1)
            page.insert(mid_key, first_page_id)
            sibling.erase_at(0)
            sibling.set_key_at(0, None)
            replace_key(parent, mid_key, first_key)
        else:
            sibling.move_first_to_end_of(page)
            replace_key(parent, mid_key, sibling.key_at(0))
        return
    # the sibling lies left of the page: take its last entry
    last = sibling.size - 1
    if not page.is_leaf:
        last_page_id = sibling.value_at(last)
        last_key = sibling.key_at(last)
        sibling.erase_at(last)
        first_child = page.value_at(0)
        page.set_value_at(0, last_page_id)
        page.insert(mid_key, first_child)
        replace_key(parent, mid_key, last_key)
    else:
        last_key = sibling.key_at(last)
        last_value = sibling.value_at(last)
        sibling.remove_at(last)
        page.insert(last_key, last_value)
        replace_key(parent, mid_key, last_key)


def remove_entry(tree: Any, page_id: int, key: Any, ctx: Any) -> None:
    """Remove key from the page last in ctx.write_set and rebalance upwards."""
    store = tree.store
    doomed: list[int] = []
    with ExitStack() as held:
        guard = held.enter_context(ctx.write_set.pop())
        page = guard.data_mut
        page.remove_key(key)
        root_page_id = ctx.root_page_id

        if page_id == root_page_id and page.size == 0:
            _set_root(ctx, INVALID_PAGE_ID)
            doomed.append(root_page_id)
        elif page_id == root_page_id and page.size == 1 and not page.is_leaf:
            _set_root(ctx, page.value_at(0))
            doomed.append(root_page_id)
        elif page_id != root_page_id and page.size < page.min_size():
            parent_page_id = _parent_page_id(ctx, page_id)
            parent_guard = ctx.write_set.pop()
            parent = parent_guard.data_mut
            sibling_id, mid_key = sibling_of(parent, key)
            sibling_guard = held.enter_context(store.fetch_write(sibling_id))
            sibling = sibling_guard.data_mut

            if sibling.size - 1 < sibling.min_size():
                index = parent.lookup(key)
                if index == 1 and key < parent.key_at(1):
                    # always merge the right page into the left one
                    page, sibling = sibling, page
                    page_id, sibling_id = sibling_id, page_id
                if not page.is_leaf:
                    sibling.insert(mid_key, page.value_at(0))
                    page.move_all_to(sibling)
                else:
                    page.move_all_to(sibling)
                    sibling.next_page_id = page.next_page_id
                ctx.write_set.append(parent_guard)
                remove_entry(tree, parent_page_id, mid_key, ctx)
                doomed.append(page_id)
            else:
                with parent_guard:
                    _borrow(page, sibling, parent, key, mid_key)
    for doomed_id in doomed:
        store.delete_page(doomed_id)