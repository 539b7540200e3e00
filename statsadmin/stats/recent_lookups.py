"""
Recent Lookups Tracking

Bounded record of the most recent metric-name lookups, used to find code
paths that keep resolving names at runtime instead of caching handles.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable, Iterator, List, Tuple

import structlog

logger = structlog.get_logger(__name__)


class RecentLookups:
    """
    LRU list of names with per-name lookup counts.

    A capacity of 0 disables tracking. Shrinking the capacity evicts the
    least recently used names.
    """

    def __init__(self, capacity: int = 0):
        self._capacity = capacity
        # Least recent first; the most recent name sits at the end.
        self._items: "OrderedDict[str, int]" = OrderedDict()
        self._total = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def total(self) -> int:
        return self._total

    def lookup(self, name: str) -> None:
        """Record one lookup of ``name``."""
        if self._capacity == 0:
            return

        self._total += 1
        if name in self._items:
            self._items[name] += 1
            self._items.move_to_end(name)
        else:
            self._trim(self._capacity - 1)
            self._items[name] = 1

    def __iter__(self) -> Iterator[Tuple[str, int]]:
        """Iterate most recent first."""
        return iter(reversed(list(self._items.items())))

    def __len__(self) -> int:
        return len(self._items)

    def set_capacity(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity cannot be negative")
        self._capacity = capacity
        self._trim(capacity)

    def clear(self) -> None:
        self._items.clear()
        self._total = 0

    def _trim(self, size: int) -> None:
        while len(self._items) > size:
            self._items.popitem(last=False)


class SymbolTable:
    """
    Thread-safe owner of the process-wide recent lookups tracker.

    Starts disabled. The store reports every name resolution here.
    """

    def __init__(self):
        self._recent_lookups = RecentLookups()
        self._lock = threading.Lock()

    def record_lookup(self, name: str) -> None:
        with self._lock:
            self._recent_lookups.lookup(name)

    def get_recent_lookups(self, fn: Callable[[str, int], None]) -> int:
        """Call ``fn(name, count)`` per tracked name and return the lookup total."""
        with self._lock:
            rows: List[Tuple[str, int]] = list(self._recent_lookups)
            total = self._recent_lookups.total

        for name, count in rows:
            fn(name, count)
        return total

    def clear_recent_lookups(self) -> None:
        with self._lock:
            self._recent_lookups.clear()

    def set_recent_lookup_capacity(self, capacity: int) -> None:
        with self._lock:
            self._recent_lookups.set_capacity(capacity)
        logger.debug("Recent lookup capacity changed", capacity=capacity)

    def recent_lookup_capacity(self) -> int:
        with self._lock:
            return self._recent_lookups.capacity
