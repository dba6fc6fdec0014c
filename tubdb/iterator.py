"""Forward iteration over the entries of linked B+ tree leaf pages."""

from __future__ import annotations

from typing import Any

from .guards import BasicPageGuard, PageStore
from .pages import INVALID_PAGE_ID


class IndexIterator:
    """Walks (key, value) pairs leaf by leaf, keeping the current leaf pinned."""

    def __init__(
        self,
        store: PageStore | None = None,
        guard: BasicPageGuard | None = None,
        index: int = INVALID_PAGE_ID,
    ) -> None:
        self._store = store
        self._guard = guard
        self._page = guard.data if guard is not None else None
        self._index = index

    def is_end(self) -> bool:
        return self._page is None and self._store is None and self._index == INVALID_PAGE_ID

    def current(self) -> tuple[Any, Any]:
        """The (key, value) pair at the iterator's position."""
        if self.is_end():
            raise IndexError("iterator is at the end")
        return self._page.entries[self._index]

    def advance(self) -> IndexIterator:
        """Move to the next entry, crossing into the next leaf when needed."""
        if self.is_end():
            raise IndexError("iterator is at the end")
        if self._index + 1 >= self._page.size:
            next_page_id = self._page.next_page_id
            old_guard = self._guard
            if next_page_id != INVALID_PAGE_ID:
                self._guard = self._store.fetch_basic(next_page_id)
                self._page = self._guard.data
                self._index = 0
            else:
                self._guard = None
                self._page = None
                self._index = INVALID_PAGE_ID
                self._store = None
            if old_guard is not None:
                old_guard.drop()
        else:
            self._index += 1
        return self

    def __iter__(self) -> IndexIterator:
        return self

    def __next__(self) -> tuple[Any, Any]:
        while not self.is_end() and self._index >= self._page.size:
            self.advance()
        if self.is_end():
            raise StopIteration
        item = self.current()
        self.advance()
        return item

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IndexIterator):
            return NotImplemented
        return self._page is other._page and self._index == other._index

    __hash__ = None  # type: ignore[assignment]