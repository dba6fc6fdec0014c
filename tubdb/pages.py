"""In-memory B+ tree node pages: the shared header, leaf pages and internal pages."""

from __future__ import annotations

from bisect import bisect_left
from enum import IntEnum
from operator import itemgetter
from typing import Any

INVALID_PAGE_ID = -1

_first = itemgetter(0)


class PageOverflowError(Exception):
    """Raised when an operation would put more entries in a page than it can hold."""


class IndexPageType(IntEnum):
    INVALID_INDEX_PAGE = 0
    LEAF_PAGE = 1
    INTERNAL_PAGE = 2


class BPlusTreePage:
    """Header shared by leaf and internal pages: type, capacity and entries."""

    def __init__(self, page_type: IndexPageType = IndexPageType.INVALID_INDEX_PAGE, max_size: int = 0) -> None:
        self.page_type = page_type
        self.max_size = max_size
        self.entries: list[tuple[Any, Any]] = []

    @property
    def size(self) -> int:
        return len(self.entries)

    @property
    def is_leaf(self) -> bool:
        return self.page_type is IndexPageType.LEAF_PAGE

    def min_size(self) -> int:
        """Smallest number of entries the page may hold outside the root."""
        if self.page_type is IndexPageType.INTERNAL_PAGE:
            return (self.max_size + 1) // 2
        if self.page_type is IndexPageType.LEAF_PAGE:
            return self.max_size // 2
        return 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(max_size={self.max_size}, entries={self.entries!r})"


class LeafPage(BPlusTreePage):
    """Sorted (key, record id) pairs plus a link to the next leaf."""

    def __init__(self, max_size: int, next_page_id: int = INVALID_PAGE_ID) -> None:
        super().__init__(IndexPageType.LEAF_PAGE, max_size)
        self.next_page_id = next_page_id

    def lookup(self, key: Any) -> int:
        """Index of the first entry whose key is >= key, or size if none."""
        return bisect_left(self.entries, key, key=_first)

    def insert(self, key: Any, value: Any) -> int:
        """Insert in key order and return the new size."""
        if self.size == self.max_size:
            raise PageOverflowError("leaf page is full")
        self.entries.insert(self.lookup(key), (key, value))
        return self.size

    def key_at(self, index: int) -> Any:
        return self.entries[index][0]

    def value_at(self, index: int) -> Any:
        return self.entries[index][1]

    def remove_at(self, index: int) -> tuple[Any, Any]:
        """Remove the entry at index and return it."""
        return self.entries.pop(index)

    def remove_key(self, key: Any) -> bool:
        """Remove the entry with exactly this key; return whether one was removed."""
        index = self.lookup(key)
        if index < self.size and self.entries[index][0] == key:
            self.remove_at(index)
            return True
        return False

    def move_half_to(self, recipient: LeafPage) -> None:
        """Move the upper half of the entries to the end of recipient."""
        half = self.size // 2
        if recipient.size + half >= recipient.max_size:
            raise PageOverflowError("can not move half to recipient")
        recipient.entries.extend(self.entries[half:])
        del self.entries[half:]

    def move_all_to(self, recipient: LeafPage) -> None:
        """Append every entry to recipient, leaving this page empty."""
        if self.size + recipient.size >= self.max_size:
            raise PageOverflowError("merged leaf would not fit")
        recipient.entries.extend(self.entries)
        self.entries.clear()

    def move_first_to_end_of(self, recipient: LeafPage) -> None:
        if self.entries:
            recipient.entries.append(self.entries.pop(0))

    def move_end_to_front_of(self, recipient: LeafPage) -> None:
        if recipient.size + 1 >= recipient.max_size:
            raise PageOverflowError("recipient leaf is full")
        recipient.entries.insert(0, self.entries.pop())

    def describe(self) -> str:
        """Keys formatted as "(k1,k2,...)"."""
        return "(" + ",".join(str(k) for k, _ in self.entries) + ")"


class InternalPage(BPlusTreePage):
    """Child page ids separated by keys; the key at index 0 is unused."""

    def __init__(self, max_size: int) -> None:
        super().__init__(IndexPageType.INTERNAL_PAGE, max_size)

    def lookup(self, key: Any) -> int:
        """Index (from 1) of the first key >= key, or size if none."""
        if not self.entries:
            return 0
        return bisect_left(self.entries, key, lo=1, key=_first)

    def insert(self, key: Any, value: int) -> int:
        """Insert a separator key and its right child; return the new size."""
        self.entries.insert(self.lookup(key), (key, value))
        return self.size

    def insert_first(self, value: int) -> None:
        """Put a child in front of all others, with no key."""
        self.entries.insert(0, (None, value))

    def erase_at(self, index: int) -> tuple[Any, int]:
        """Remove the entry at index and return it."""
        return self.entries.pop(index)

    def remove_key(self, key: Any) -> bool:
        """Erase the first entry whose key is >= key; return whether one was erased."""
        index = self.lookup(key)
        if 0 <= index < self.size:
            self.erase_at(index)
            return True
        return False

    def key_at(self, index: int) -> Any:
        return self.entries[index][0]

    def value_at(self, index: int) -> int:
        return self.entries[index][1]

    def set_key_at(self, index: int, key: Any) -> None:
        self.entries[index] = (key, self.entries[index][1])

    def set_value_at(self, index: int, value: int) -> None:
        self.entries[index] = (self.entries[index][0], value)

    def move_half_to(self, recipient: InternalPage) -> None:
        """Move the upper half to recipient, after its slot 0."""
        half = self.size // 2
        if not recipient.entries:
            recipient.entries.append((None, INVALID_PAGE_ID))
        recipient.entries.extend(self.entries[half:])
        del self.entries[half:]

    def move_all_to(self, recipient: InternalPage) -> None:
        """Append every entry after slot 0 to recipient; slot 0 stays here."""
        if self.size + recipient.size - 2 >= self.max_size:
            raise PageOverflowError("merged internal page would not fit")
        recipient.entries.extend(self.entries[1:])
        del self.entries[1:]

    def move_first_to_end_of(self, recipient: InternalPage) -> None:
        """Move the entry at index 1 to the end of recipient."""
        if recipient.size + 1 >= recipient.max_size:
            raise PageOverflowError("recipient internal page is full")
        recipient.entries.append(self.entries.pop(1))

    def describe(self) -> str:
        """Keys after the unused first one, formatted as "(k1,k2,...)"."""
        return "(" + ",".join(str(k) for k, _ in self.entries[1:]) + ")"