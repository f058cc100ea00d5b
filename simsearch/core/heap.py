"""
Updatable Min-Heap
==================

Priority queue keyed by item with decrease-key semantics, used by OPTICS
to order points by reachability.

Implementation: a ``heapq`` binary heap plus a dict holding each item's
live entry. Decreasing a key pushes a fresh entry and marks the old one
stale; stale entries are discarded when they reach the top (lazy
deletion). Equal keys pop in insertion order.
"""

import heapq
import itertools
from typing import Any, Dict, Hashable, List, Optional, Tuple


# Placeholder written over the item slot of superseded heap entries
_STALE = object()


class UpdatableHeap:
    """Min-heap where re-pushing an item keeps the smaller key."""

    def __init__(self):
        self._heap: List[list] = []
        self._live: Dict[Hashable, list] = {}
        self._counter = itertools.count()

    def __len__(self) -> int:
        return len(self._live)

    def __bool__(self) -> bool:
        return bool(self._live)

    def __contains__(self, item: Hashable) -> bool:
        return item in self._live

    def key_of(self, item: Hashable) -> Optional[float]:
        entry = self._live.get(item)
        return None if entry is None else entry[0]

    def push(self, key: float, item: Hashable, payload: Any = None) -> bool:
        """
        Insert ``item`` or decrease its key.

        A key that is not smaller than the current one leaves the queue
        unchanged.

        Returns:
            True if the queue changed
        """
        current = self._live.get(item)
        if current is not None:
            if key >= current[0]:
                return False
            current[2] = _STALE
        entry = [key, next(self._counter), item, payload]
        self._live[item] = entry
        heapq.heappush(self._heap, entry)
        return True

    def pop(self) -> Tuple[float, Hashable, Any]:
        """Remove and return ``(key, item, payload)`` with the smallest key."""
        while self._heap:
            key, _, item, payload = heapq.heappop(self._heap)
            if item is not _STALE:
                del self._live[item]
                return key, item, payload
        raise IndexError("pop from an empty UpdatableHeap")

    def peek(self) -> Tuple[float, Hashable, Any]:
        while self._heap and self._heap[0][2] is _STALE:
            heapq.heappop(self._heap)
        if not self._heap:
            raise IndexError("peek at an empty UpdatableHeap")
        key, _, item, payload = self._heap[0]
        return key, item, payload

    def clear(self) -> None:
        self._heap.clear()
        self._live.clear()
