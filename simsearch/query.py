"""
k-NN and Range Query Engines
============================

Two interchangeable engines answer k-NN and range queries over a
Relation:

- LinearScanKNNQuery: brute-force baseline, works for any distance
  function and any relation (dense, sparse, precomputed)
- KDTreeKNNQuery: exact search through a KDTree

Both return KNNList results, and OPTICS accepts either.

Usage:
    >>> query = get_knn_query(relation, EuclideanDistance(), use_index=True)
    >>> query.knn(np.array([0.0, 0.0]), k=3)
"""

import numpy as np
from typing import Hashable, List, Optional, Sequence

from simsearch.core.collector import KNNHeap, KNNList
from simsearch.core.distances import DistanceFunction
from simsearch.core.kdtree import KDTree, KDTreeConfig
from simsearch.exceptions import DimensionMismatchError, InvalidArgumentError
from simsearch.relation import Relation


def _check_k(k: int) -> None:
    if k <= 0:
        raise InvalidArgumentError(f"k must be > 0, got {k}")


def _check_epsilon(epsilon: float) -> None:
    if epsilon < 0 or np.isnan(epsilon):
        raise InvalidArgumentError(f"epsilon must be >= 0, got {epsilon}")


def _without(result: KNNList, ident: Hashable, k: int) -> KNNList:
    """Drop `ident` from a k+1 result, or the surplus last element."""
    kept = [(i, d) for i, d in result if i != ident]
    return KNNList([i for i, _ in kept[:k]], [d for _, d in kept[:k]])


class LinearScanKNNQuery:
    """
    Brute-force k-NN and range queries.

    When the distance function exposes a monotonic surrogate (e.g.
    squared Euclidean for Euclidean), the scan ranks by the surrogate and
    converts the kept distances back at the end.

    Args:
        relation: Data relation
        distance: Distance function
        chunk_size: Rows per block in bulk mode
    """

    def __init__(
        self,
        relation: Relation,
        distance: DistanceFunction,
        chunk_size: int = 1024
    ):
        if chunk_size <= 0:
            raise InvalidArgumentError(f"chunk_size must be > 0, got {chunk_size}")
        self.relation = relation
        self.distance = distance
        self.chunk_size = chunk_size
        self._ids: List[Hashable] = relation.ids()

    def _scan_distance(self) -> DistanceFunction:
        return self.distance.surrogate or self.distance

    def _finish(self, heap: KNNHeap) -> KNNList:
        ranked = heap.to_knn_list(
            self.distance.from_surrogate if self.distance.surrogate is not None else None
        )
        return KNNList([self._ids[pos] for pos, _ in ranked], [d for _, d in ranked])

    def _prepare_query(self, query):
        if not self.relation.is_dense:
            return query
        query = np.ascontiguousarray(query, dtype=np.float64)
        if query.ndim != 1:
            raise InvalidArgumentError(f"Query must be 1-dimensional, got shape {query.shape}")
        dim = self.relation.dimensionality()
        if len(self._ids) and query.shape[0] != dim:
            raise DimensionMismatchError(query.shape[0], dim)
        return query

    def _candidate_distances(self, distance: DistanceFunction, query) -> Sequence[float]:
        if self.relation.is_dense:
            return distance.batch_distance(query, self.relation.vectors).tolist()
        return [distance.distance(query, self.relation.get(i)) for i in self._ids]

    @staticmethod
    def _collect(heap: KNNHeap, distances: Sequence[float], offset: int = 0) -> None:
        bound = heap.kth_distance()
        for pos, dist in enumerate(distances, start=offset):
            if heap.is_full and dist >= bound:
                continue
            bound = heap.insert(dist, pos)

    def knn(self, query, k: int) -> KNNList:
        """
        k nearest neighbors of a query object.

        Args:
            query: Query vector (or object compatible with the distance)
            k: Number of neighbors (> 0)

        Returns:
            KNNList of (id, distance), ascending
        """
        _check_k(k)
        query = self._prepare_query(query)
        heap = KNNHeap(k)
        if not self._ids:
            return heap.to_knn_list()
        self._collect(heap, self._candidate_distances(self._scan_distance(), query))
        return self._finish(heap)

    def knn_for_id(self, ident: Hashable, k: int, include_self: bool = True) -> KNNList:
        """
        k nearest neighbors of a stored object.

        With ``include_self=False`` the object itself is left out of the
        result (duplicates of it under other ids are kept).
        """
        if include_self:
            return self.knn(self.relation.get(ident), k)
        _check_k(k)
        return _without(self.knn(self.relation.get(ident), k + 1), ident, k)

    def bulk_knn(self, queries, k: int) -> List[KNNList]:
        """
        k-NN for several queries in a single pass over the relation.

        Results equal independent ``knn`` calls with the same k.

        Args:
            queries: Sequence of query objects (or an (m, d) array)
            k: Number of neighbors (> 0)
        """
        _check_k(k)
        queries = [self._prepare_query(q) for q in queries]
        heaps = [KNNHeap(k) for _ in queries]
        if not self._ids or not queries:
            return [heap.to_knn_list() for heap in heaps]

        scan = self._scan_distance()
        n = len(self._ids)
        for start in range(0, n, self.chunk_size):
            stop = min(start + self.chunk_size, n)
            if self.relation.is_dense:
                block = self.relation.vectors[start:stop]
                for heap, query in zip(heaps, queries):
                    self._collect(heap, scan.batch_distance(query, block).tolist(), start)
            else:
                objects = [self.relation.get(i) for i in self._ids[start:stop]]
                for heap, query in zip(heaps, queries):
                    self._collect(heap, [scan.distance(query, o) for o in objects], start)

        return [self._finish(heap) for heap in heaps]

    def range_query(self, query, epsilon: float) -> KNNList:
        """
        All ids within ``epsilon`` of the query, ascending by distance.

        Args:
            query: Query object
            epsilon: Radius (>= 0, +inf for no cutoff)
        """
        _check_epsilon(epsilon)
        query = self._prepare_query(query)
        if not self._ids:
            return KNNList([], [])
        dists = np.asarray(self._candidate_distances(self.distance, query), dtype=np.float64)
        hits = np.flatnonzero(dists <= epsilon)
        order = hits[np.argsort(dists[hits], kind='stable')]
        return KNNList([self._ids[pos] for pos in order.tolist()], dists[order].tolist())

    def range_for_id(self, ident: Hashable, epsilon: float) -> KNNList:
        return self.range_query(self.relation.get(ident), epsilon)


class KDTreeKNNQuery:
    """
    Index-backed k-NN and range queries with the LinearScanKNNQuery API.

    Args:
        tree: Built KDTree
    """

    def __init__(self, tree: KDTree):
        self.tree = tree
        self.relation = tree.relation
        self.distance = tree.distance

    def knn(self, query, k: int) -> KNNList:
        return self.tree.knn(query, k)

    def knn_for_id(self, ident: Hashable, k: int, include_self: bool = True) -> KNNList:
        if include_self:
            return self.tree.knn(self.relation.get(ident), k)
        _check_k(k)
        return _without(self.tree.knn(self.relation.get(ident), k + 1), ident, k)

    def bulk_knn(self, queries, k: int) -> List[KNNList]:
        _check_k(k)
        return [self.tree.knn(q, k) for q in queries]

    def range_query(self, query, epsilon: float) -> KNNList:
        return self.tree.range_query(query, epsilon)

    def range_for_id(self, ident: Hashable, epsilon: float) -> KNNList:
        return self.tree.range_query(self.relation.get(ident), epsilon)


def get_knn_query(
    relation: Relation,
    distance: DistanceFunction,
    use_index: bool = False,
    config: Optional[KDTreeConfig] = None
):
    """
    Build a query engine for ``relation``.

    Args:
        relation: Data relation
        distance: Distance function
        use_index: Build a KDTree (requires a box-bounding distance)
        config: KDTree configuration

    Returns:
        LinearScanKNNQuery or KDTreeKNNQuery
    """
    if use_index:
        return KDTreeKNNQuery(KDTree(relation, distance, config))
    return LinearScanKNNQuery(relation, distance)
