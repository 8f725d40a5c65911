"""Bounded, most-recent-first list of selected POIs with no duplicate identities."""

from typing import List

from poi_finder.models.poi import POI


class RecentSearches:
    """The last few selected POIs, newest first."""

    def __init__(self, capacity: int = 5):
        self._items: List[POI] = []
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    @capacity.setter
    def capacity(self, capacity: int) -> None:
        """Shrinking drops the oldest entries at once."""
        self._capacity = capacity
        del self._items[capacity:]

    @property
    def items(self) -> List[POI]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def record(self, poi: POI) -> None:
        """Move (or insert) the POI to the front, dropping the oldest overflow."""
        self._items = [p for p in self._items if p.id != poi.id]
        self._items.insert(0, poi)
        del self._items[self._capacity:]

    def replace(self, poi: POI) -> bool:
        """Swap in a fresher copy of an entry without changing its position."""
        for i, existing in enumerate(self._items):
            if existing.id == poi.id:
                self._items[i] = poi
                return True
        return False

    def clear(self) -> None:
        self._items = []
