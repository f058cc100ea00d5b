"""
Bounded k-NN Result Collection
==============================

KNNHeap keeps the best k (distance, id) pairs seen so far in ascending
order. Its current k-th distance is the pruning bound consulted by the
linear scan and the k-d tree on every candidate. Once a query finishes,
the heap is converted to an immutable KNNList.
"""

from bisect import bisect_right
from typing import Callable, Hashable, Iterator, List, Optional, Tuple

import numpy as np

from simsearch.exceptions import InvalidArgumentError


class KNNList:
    """
    Immutable ranked k-NN result: (id, distance) pairs, ascending.
    """

    __slots__ = ('_ids', '_distances')

    def __init__(self, ids: List[Hashable], distances: List[float]):
        self._ids = tuple(ids)
        self._distances = tuple(distances)

    @property
    def ids(self) -> Tuple[Hashable, ...]:
        return self._ids

    @property
    def distances(self) -> np.ndarray:
        return np.array(self._distances, dtype=np.float64)

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[Tuple[Hashable, float]]:
        return iter(zip(self._ids, self._distances))

    def __getitem__(self, index):
        if isinstance(index, slice):
            return KNNList(self._ids[index], self._distances[index])
        return self._ids[index], self._distances[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, KNNList):
            return NotImplemented
        return self._ids == other._ids and self._distances == other._distances

    def __repr__(self) -> str:
        pairs = ', '.join(f"({i!r}, {d:.6g})" for i, d in self)
        return f"KNNList([{pairs}])"

    def kth_distance(self) -> float:
        """Distance of the last (worst) element, +inf if empty."""
        return self._distances[-1] if self._distances else float('inf')


class KNNHeap:
    """
    Fixed-capacity sorted collector of the k best candidates.

    Candidates with equal distances keep their order of insertion.

    Args:
        k: Capacity (> 0)
    """

    __slots__ = ('k', '_distances', '_ids')

    def __init__(self, k: int):
        if k <= 0:
            raise InvalidArgumentError(f"k must be > 0, got {k}")
        self.k = k
        self._distances: List[float] = []
        self._ids: List[Hashable] = []

    def __len__(self) -> int:
        return len(self._distances)

    @property
    def is_full(self) -> bool:
        return len(self._distances) >= self.k

    def kth_distance(self) -> float:
        """Current worst kept distance, or +inf while not yet full."""
        if len(self._distances) < self.k:
            return float('inf')
        return self._distances[-1]

    def insert(self, distance: float, ident: Hashable) -> float:
        """
        Offer a candidate.

        Returns:
            The updated pruning bound (``kth_distance()``)
        """
        if len(self._distances) >= self.k and distance > self._distances[-1]:
            return self._distances[-1]
        pos = bisect_right(self._distances, distance)
        self._distances.insert(pos, distance)
        self._ids.insert(pos, ident)
        if len(self._distances) > self.k:
            self._distances.pop()
            self._ids.pop()
        return self.kth_distance()

    def to_knn_list(self, transform: Optional[Callable[[float], float]] = None) -> KNNList:
        """
        Freeze the collected candidates.

        Args:
            transform: Optional monotonic map applied to every distance
                (e.g. the inverse of a surrogate distance)
        """
        if transform is None:
            return KNNList(self._ids, self._distances)
        return KNNList(self._ids, [transform(d) for d in self._distances])
