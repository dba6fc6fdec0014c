"""Pages held in an in-memory page store, and the guards that pin and latch them."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from itertools import count
from typing import Any


class GuardDroppedError(RuntimeError):
    """Raised when a guard is used after it has been dropped."""


class _Latch:
    """A readers-writer latch: many readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


@dataclass(eq=False)
class Page:
    """A slot in the page store: its contents, pin count, dirty flag and latch."""

    page_id: int
    data: Any = None
    pin_count: int = 0
    is_dirty: bool = False
    _latch: _Latch = field(default_factory=_Latch, init=False, repr=False)


class PageStore:
    """Keeps pages in memory and hands out guards that pin them."""

    def __init__(self) -> None:
        self._pages: dict[int, Page] = {}
        self._ids = count()
        self._lock = threading.Lock()

    def new_page(self) -> int:
        """Allocate an empty, unpinned page and return its id."""
        with self._lock:
            page_id = next(self._ids)
            self._pages[page_id] = Page(page_id)
            return page_id

    def _pin(self, page_id: int) -> Page:
        with self._lock:
            try:
                page = self._pages[page_id]
            except KeyError:
                raise KeyError(f"no page with id {page_id}") from None
            page.pin_count += 1
            return page

    def fetch_basic(self, page_id: int) -> BasicPageGuard:
        """Pin a page without latching it."""
        return BasicPageGuard(self, self._pin(page_id))

    def fetch_read(self, page_id: int) -> ReadPageGuard:
        """Pin a page and take its latch in shared mode."""
        page = self._pin(page_id)
        page._latch.acquire_read()
        return ReadPageGuard(self, page)

    def fetch_write(self, page_id: int) -> WritePageGuard:
        """Pin a page and take its latch in exclusive mode."""
        page = self._pin(page_id)
        page._latch.acquire_write()
        return WritePageGuard(self, page)

    def unpin(self, page_id: int, is_dirty: bool) -> bool:
        """Release one pin; False if the page is unknown or not pinned."""
        with self._lock:
            page = self._pages.get(page_id)
            if page is None or page.pin_count <= 0:
                return False
            page.pin_count -= 1
            page.is_dirty = page.is_dirty or is_dirty
            return True

    def delete_page(self, page_id: int) -> bool:
        """Remove a page; False if it is still pinned."""
        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                return True
            if page.pin_count > 0:
                return False
            del self._pages[page_id]
            return True

    def pin_count(self, page_id: int) -> int:
        with self._lock:
            try:
                return self._pages[page_id].pin_count
            except KeyError:
                raise KeyError(f"no page with id {page_id}") from None


class BasicPageGuard:
    """Keeps a page pinned until dropped."""

    def __init__(self, store: PageStore | None = None, page: Page | None = None) -> None:
        self._store = store
        self._page = page
        self._is_dirty = False

    def _require(self) -> Page:
        if self._page is None:
            raise GuardDroppedError("page guard has been dropped")
        return self._page

    @property
    def active(self) -> bool:
        return self._page is not None

    @property
    def is_dirty(self) -> bool:
        return self._is_dirty

    @property
    def page_id(self) -> int:
        return self._require().page_id

    @property
    def data(self) -> Any:
        return self._require().data

    @data.setter
    def data(self, value: Any) -> None:
        page = self._require()
        self._is_dirty = True
        page.data = value

    @property
    def data_mut(self) -> Any:
        """The page contents, marking the page dirty."""
        page = self._require()
        self._is_dirty = True
        return page.data

    def drop(self) -> None:
        """Unpin the page; later drops do nothing."""
        if self._store is not None and self._page is not None:
            self._store.unpin(self._page.page_id, self._is_dirty)
        self._page = None
        self._store = None

    def __enter__(self) -> BasicPageGuard:
        return self

    def __exit__(self, *args: object) -> None:
        self.drop()

    def __del__(self) -> None:
        self.drop()


class ReadPageGuard:
    """Keeps a page pinned and latched for reading until dropped."""

    def __init__(self, store: PageStore | None = None, page: Page | None = None) -> None:
        self._guard = BasicPageGuard(store, page)

    @property
    def active(self) -> bool:
        return self._guard.active

    @property
    def page_id(self) -> int:
        return self._guard.page_id

    @property
    def data(self) -> Any:
        return self._guard.data

    def drop(self) -> None:
        """Release the latch, then the pin; later drops do nothing."""
        page = self._guard._page
        if page is not None:
            page._latch.release_read()
        self._guard.drop()

    def __enter__(self) -> ReadPageGuard:
        return self

    def __exit__(self, *args: object) -> None:
        self.drop()

    def __del__(self) -> None:
        if "_guard" in self.__dict__:
            self.drop()


class WritePageGuard:
    """Keeps a page pinned and latched for writing until dropped."""

    def __init__(self, store: PageStore | None = None, page: Page | None = None) -> None:
        self._guard = BasicPageGuard(store, page)

    @property
    def active(self) -> bool:
        return self._guard.active

    @property
    def is_dirty(self) -> bool:
        return self._guard.is_dirty

    @property
    def page_id(self) -> int:
        return self._guard.page_id

    @property
    def data(self) -> Any:
        return self._guard.data

    @data.setter
    def data(self, value: Any) -> None:
        self._guard.data = value

    @property
    def data_mut(self) -> Any:
        """The page contents, marking the page dirty."""
        return self._guard.data_mut

    def drop(self) -> None:
        """Release the latch, then the pin; later drops do nothing."""
        page = self._guard._page
        if page is not None:
            page._latch.release_write()
        self._guard.drop()

    def __enter__(self) -> WritePageGuard:
        return self

    def __exit__(self, *args: object) -> None:
        self.drop()

    def __del__(self) -> None:
        if "_guard" in self.__dict__:
            self.drop()