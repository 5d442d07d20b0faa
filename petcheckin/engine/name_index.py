"""Sorted (lowercased name, pet id) index searched with binary search."""

from __future__ import annotations

from typing import NamedTuple


class NameIndexEntry(NamedTuple):
    name_lower: str
    pet_id: str


class NameIndex:
    """Keeps entries sorted by lowercased name on every insert.

    Lookups are O(log n); inserts shift the list and are O(n). Duplicate names
    are allowed and a lookup returns whichever exact match the search lands on.
    """

    def __init__(self) -> None:
        self._entries: list[NameIndexEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[NameIndexEntry]:
        return list(self._entries)

    def _search(self, name_lower: str) -> tuple[bool, int]:
        """Return ``(found, index)``; ``index`` is the insertion point when not found."""

        low, high = 0, len(self._entries) - 1
        while low <= high:
            mid = (low + high) // 2
            current = self._entries[mid].name_lower
            if name_lower == current:
                return True, mid
            if name_lower < current:
                high = mid - 1
            else:
                low = mid + 1
        return False, low

    def insert(self, name: str, pet_id: str) -> None:
        name_lower = str(name).lower()
        _, index = self._search(name_lower)
        self._entries.insert(index, NameIndexEntry(name_lower, pet_id))

    def find(self, name: str) -> str | None:
        """Return the pet id filed under ``name`` (case-insensitive) or ``None``."""

        found, index = self._search(str(name).lower())
        if not found:
            return None
        return self._entries[index].pet_id

    def remove(self, pet_id: str) -> bool:
        for index, entry in enumerate(self._entries):
            if entry.pet_id == pet_id:
                del self._entries[index]
                return True
        return False
