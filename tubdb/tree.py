"""A B+ tree index with unique keys whose nodes live in a page store."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from .guards import BasicPageGuard, PageStore, ReadPageGuard, WritePageGuard
from .iterator import IndexIterator
from .pages import INVALID_PAGE_ID, BPlusTreePage, InternalPage, LeafPage
from .removal import remove_entry

DEFAULT_LEAF_MAX_SIZE = 32
DEFAULT_INTERNAL_MAX_SIZE = 32


@dataclass
class _HeaderPage:
    root_page_id: int = INVALID_PAGE_ID


@dataclass(eq=False)
class Context:
    """The pages an insert, removal or lookup has latched on its way down."""

    header_page: WritePageGuard | None = None
    root_page_id: int = INVALID_PAGE_ID
    write_set: deque[WritePageGuard] = field(default_factory=deque)
    read_set: deque[ReadPageGuard] = field(default_factory=deque)
    access_set: deque[int] = field(default_factory=deque)

    def is_root_page(self, page_id: int) -> bool:
        return page_id == self.root_page_id

    def write_guard_at(self, store: PageStore, page_id: int) -> WritePageGuard:
        """Take the held write guard for page_id, or latch the page afresh."""
        for guard in self.write_set:
            if guard.page_id == page_id:
                self.write_set.remove(guard)
                return guard
        return store.fetch_write(page_id)

    def read_guard_at(self, store: PageStore, page_id: int) -> ReadPageGuard:
        """Take the held read guard for page_id, or latch the page afresh."""
        for guard in self.read_set:
            if guard.page_id == page_id:
                self.read_set.remove(guard)
                return guard
        return store.fetch_read(page_id)

    def _release_ancestors(self) -> None:
        if self.header_page is not None:
            self.header_page.drop()
            self.header_page = None
        while self.write_set:
            self.write_set.popleft().drop()

    def _release(self) -> None:
        while self.write_set:
            self.write_set.pop().drop()
        while self.read_set:
            self.read_set.pop().drop()
        self.access_set.clear()
        if self.header_page is not None:
            self.header_page.drop()
            self.header_page = None
        self.root_page_id = INVALID_PAGE_ID

    def __enter__(self) -> Context:
        return self

    def __exit__(self, *args: object) -> None:
        self._release()


def _child_for(page: InternalPage, key: Any) -> int:
    index = page.lookup(key)
    if index != page.size and page.key_at(index) == key:
        return page.value_at(index)
    return page.value_at(index - 1)


def _parent_of(ctx: Context, child: int) -> int:
    parent = INVALID_PAGE_ID
    for page_id in ctx.access_set:
        if page_id == child:
            return parent
        parent = page_id
    raise LookupError(f"page {child} is not on the access path")


def _safe_for_insert(page: BPlusTreePage) -> bool:
    return page.size + 1 < page.max_size


def _safe_for_delete(page: BPlusTreePage) -> bool:
    return page.size - 1 >= page.min_size()


class BPlusTree:
    """Unique-key B+ tree supporting point lookups, inserts, removals and range scans."""

    def __init__(
        self,
        name: str,
        header_page_id: int,
        store: PageStore,
        leaf_max_size: int = DEFAULT_LEAF_MAX_SIZE,
        internal_max_size: int = DEFAULT_INTERNAL_MAX_SIZE,
    ) -> None:
        if leaf_max_size < 3 or internal_max_size < 3:
            raise ValueError("page max sizes must be at least 3")
        self.name = name
        self.header_page_id = header_page_id
        self.store = store
        self.leaf_max_size = leaf_max_size
        self.internal_max_size = internal_max_size
        with store.fetch_write(header_page_id) as guard:
            guard.data = _HeaderPage()

    def is_empty(self) -> bool:
        return self.root_page_id() == INVALID_PAGE_ID

    def root_page_id(self) -> int:
        with self.store.fetch_read(self.header_page_id) as guard:
            return guard.data.root_page_id

    # -- search ---------------------------------------------------------

    def _descend_for_read(self, key: Any, ctx: Context) -> int:
        header = self.store.fetch_read(self.header_page_id)
        root_id = header.data.root_page_id
        ctx.root_page_id = root_id
        ctx.read_set.append(header)
        if root_id == INVALID_PAGE_ID:
            return INVALID_PAGE_ID
        guard = self.store.fetch_read(root_id)
        ctx.access_set.append(root_id)
        ctx.read_set.append(guard)
        page_id, page = root_id, guard.data
        while not page.is_leaf:
            page_id = _child_for(page, key)
            guard = self.store.fetch_read(page_id)
            page = guard.data
            ctx.read_set.pop().drop()
            ctx.read_set.append(guard)
            ctx.access_set.append(page_id)
        return page_id

    def get_value(self, key: Any) -> Any | None:
        """The value stored under key, or None if the key is absent."""
        with Context() as ctx:
            if self._descend_for_read(key, ctx) == INVALID_PAGE_ID:
                return None
            leaf = ctx.read_set[-1].data
            index = leaf.lookup(key)
            if index < leaf.size and leaf.key_at(index) == key:
                return leaf.value_at(index)
            return None

    # -- insertion ------------------------------------------------------

    def _set_root(self, page_id: int, ctx: Context) -> None:
        ctx.header_page.data_mut.root_page_id = page_id
        ctx.root_page_id = page_id

    def _descend_for_write(
        self, root_id: int, key: Any, ctx: Context, is_safe: Callable[[BPlusTreePage], bool]
    ) -> int:
        guard = self.store.fetch_write(root_id)
        ctx.access_set.append(root_id)
        ctx.write_set.append(guard)
        page_id, page = root_id, guard.data
        while not page.is_leaf:
            page_id = _child_for(page, key)
            guard = self.store.fetch_write(page_id)
            page = guard.data
            if is_safe(page):
                ctx._release_ancestors()
            ctx.write_set.append(guard)
            ctx.access_set.append(page_id)
        return page_id

    def _descend_for_insert(self, key: Any, ctx: Context) -> int:
        header = self.store.fetch_write(self.header_page_id)
        ctx.header_page = header
        root_id = header.data.root_page_id
        if root_id == INVALID_PAGE_ID:
            root_id = self.store.new_page()
            guard = self.store.fetch_write(root_id)
            guard.data = LeafPage(self.leaf_max_size)
            self._set_root(root_id, ctx)
            ctx.write_set.append(guard)
            ctx.access_set.append(root_id)
            return root_id
        ctx.root_page_id = root_id
        return self._descend_for_write(root_id, key, ctx, _safe_for_insert)

    def insert(self, key: Any, value: Any) -> bool:
        """Add key with value; False if the key is already present."""
        with Context() as ctx:
            leaf_page_id = self._descend_for_insert(key, ctx)
            with ctx.write_set.pop() as leaf_guard:
                leaf = leaf_guard.data_mut
                index = leaf.lookup(key)
                if index < leaf.size and leaf.key_at(index) == key:
                    return False
                if leaf.size + 1 < leaf.max_size:
                    leaf.insert(key, value)
                    return True
                new_id = self.store.new_page()
                with self.store.fetch_write(new_id) as new_guard:
                    new_leaf = LeafPage(self.leaf_max_size, leaf.next_page_id)
                    new_guard.data = new_leaf
                    leaf.move_half_to(new_leaf)
                    leaf.next_page_id = new_id
                    if index <= (leaf.max_size - 1) // 2:
                        leaf.insert(key, value)
                    else:
                        new_leaf.move_first_to_end_of(leaf)
                        new_leaf.insert(key, value)
                    self._insert_in_parent(leaf_page_id, new_leaf.key_at(0), new_id, ctx)
            return True

    def _insert_in_parent(self, left_id: int, key: Any, right_id: int, ctx: Context) -> None:
        if left_id == ctx.root_page_id:
            new_root_id = self.store.new_page()
            with self.store.fetch_write(new_root_id) as guard:
                root = InternalPage(self.internal_max_size)
                root.insert_first(left_id)
                root.insert(key, right_id)
                guard.data = root
            self._set_root(new_root_id, ctx)
            return
        parent_id = _parent_of(ctx, left_id)
        with ctx.write_set.pop() as parent_guard:
            parent = parent_guard.data_mut
            if parent.size < parent.max_size:
                parent.insert(key, right_id)
                return
            index = parent.lookup(key)
            new_id = self.store.new_page()
            with self.store.fetch_write(new_id) as new_guard:
                new_page = InternalPage(self.internal_max_size)
                new_guard.data = new_page
                parent.move_half_to(new_page)
                if index >= (parent.max_size + 2) // 2:
                    new_page.move_first_to_end_of(parent)
                    new_page.insert(key, right_id)
                else:
                    parent.insert(key, right_id)
                mid_key = new_page.key_at(1)
                mid_child = new_page.value_at(1)
                new_page.erase_at(1)
                new_page.erase_at(0)
                new_page.insert_first(mid_child)
                self._insert_in_parent(parent_id, mid_key, new_id, ctx)

    # -- removal --------------------------------------------------------

    def _descend_for_delete(self, key: Any, ctx: Context) -> int:
        header = self.store.fetch_write(self.header_page_id)
        ctx.header_page = header
        root_id = header.data.root_page_id
        ctx.root_page_id = root_id
        if root_id == INVALID_PAGE_ID:
            return INVALID_PAGE_ID
        return self._descend_for_write(root_id, key, ctx, _safe_for_delete)

    def remove(self, key: Any) -> None:
        """Delete key if present, rebalancing the tree as needed."""
        with Context() as ctx:
            leaf_page_id = self._descend_for_delete(key, ctx)
            if ctx.root_page_id == INVALID_PAGE_ID:
                return
            remove_entry(self, leaf_page_id, key, ctx)

    # -- iteration ------------------------------------------------------

    def begin(self, key: Any = None) -> IndexIterator:
        """Iterator from the smallest key, or from key itself when given."""
        if key is None:
            return self._begin_leftmost()
        with Context() as ctx:
            page_id = self._descend_for_read(key, ctx)
        if page_id == INVALID_PAGE_ID:
            return IndexIterator()
        guard = self.store.fetch_basic(page_id)
        leaf = guard.data
        index = leaf.lookup(key)
        if index >= leaf.size or leaf.key_at(index) != key:
            guard.drop()
            return IndexIterator()
        return IndexIterator(self.store, guard, index)

    def _begin_leftmost(self) -> IndexIterator:
        page_id = self.root_page_id()
        if page_id == INVALID_PAGE_ID:
            return IndexIterator()
        guard: BasicPageGuard = self.store.fetch_basic(page_id)
        page = guard.data
        while not page.is_leaf:
            child = self.store.fetch_basic(page.value_at(0))
            guard.drop()
            guard = child
            page = guard.data
        return IndexIterator(self.store, guard, 0)

    def end(self) -> IndexIterator:
        return IndexIterator()

    def __iter__(self) -> IndexIterator:
        return self.begin()

    # -- bulk loading ---------------------------------------------------

    @staticmethod
    def _read_keys(file_name: str | Path) -> list[int]:
        return [int(token) for token in Path(file_name).read_text().split()]

    def insert_from_file(self, file_name: str | Path) -> None:
        """Insert every integer in the file, each stored with itself as value."""
        for key in self._read_keys(file_name):
            self.insert(key, key)

    def remove_from_file(self, file_name: str | Path) -> None:
        """Remove every integer in the file."""
        for key in self._read_keys(file_name):
            self.remove(key)