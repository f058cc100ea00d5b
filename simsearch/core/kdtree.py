"""
Median-Split k-d Tree for SimSearch
===================================

Exact nearest-neighbor index over a dense Relation.

Construction:
- At depth d the split axis is d mod dimensionality
- The split value is the exact median of the current subset on that axis
- Points strictly below go left, strictly above go right, and points equal
  to the median stay in the node's bucket
- An empty subset produces no child

Nodes live in an arena (parallel lists addressed by integer index, -1 for
"no node"), so parent links need no object back-pointers.

Search:
1. Descend to the entry point following the query's coordinates
2. Explore the entry node's subtree, then ascend parent by parent,
   exploring each ancestor's remaining subtree
3. A subtree across a splitting hyperplane is entered only if the distance
   function's box bound to that half-space does not exceed the current
   k-th distance
4. A visited set guarantees each node is evaluated once

Build cost is O(N log N) for well spread data and degrades toward O(N^2)
when medians repeatedly fail to bisect the subset.
"""

import numpy as np
import time
from dataclasses import dataclass
from typing import Callable, Hashable, Iterator, List, Optional, Set, Tuple

from simsearch.core.collector import KNNHeap, KNNList
from simsearch.core.distances import DistanceFunction, has_box_bound
from simsearch.exceptions import (
    DimensionMismatchError,
    InvalidArgumentError,
    UnsupportedDistanceError,
)
from simsearch.relation import Relation


@dataclass
class KDTreeConfig:
    """Configuration for k-d tree construction."""

    # Verbosity
    verbose: bool = False


class KDTree:
    """
    Immutable median-split binary spatial index.

    Attributes:
        relation: Indexed relation (dense vectors)
        distance: Distance function (must support box bounds)
        root: Arena index of the root node (-1 when empty)
        build_stats: Build timing and shape information

    Example:
        >>> tree = KDTree(relation, EuclideanDistance())
        >>> tree.knn(np.array([0.0, 0.0]), k=5)
    """

    def __init__(
        self,
        relation: Relation,
        distance: DistanceFunction,
        config: Optional[KDTreeConfig] = None
    ):
        """
        Build the tree.

        Args:
            relation: Dense vector relation
            distance: Distance function with box-bound capability
            config: Build configuration (uses defaults if None)
        """
        if not has_box_bound(distance):
            raise UnsupportedDistanceError(
                f"{type(distance).__name__} has no box bound and cannot be used with KDTree"
            )
        if not relation.is_dense:
            raise InvalidArgumentError("KDTree requires a relation of dense vectors")

        self.config = config or KDTreeConfig()
        self.relation = relation
        self.distance = distance

        self._ids: List[Hashable] = relation.ids()
        self._vectors: np.ndarray = relation.vectors
        self.n_vectors: int = len(self._ids)
        self.dimension: int = relation.dimensionality()

        if self.n_vectors > 0 and self.dimension == 0:
            raise InvalidArgumentError("Cannot index zero-dimensional vectors")
        if not np.all(np.isfinite(self._vectors)):
            raise InvalidArgumentError("KDTree requires finite coordinates (found NaN or inf)")

        # Node arena
        self._axis: List[int] = []
        self._split: List[float] = []
        self._bucket: List[np.ndarray] = []
        self._left: List[int] = []
        self._right: List[int] = []
        self._parent: List[int] = []
        self._depth: List[int] = []
        self.root: int = -1

        self.build_stats: dict = {}
        self._build()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _new_node(self, axis: int, split: float, parent: int, depth: int) -> int:
        node = len(self._axis)
        self._axis.append(axis)
        self._split.append(split)
        self._bucket.append(np.empty(0, dtype=np.int64))
        self._left.append(-1)
        self._right.append(-1)
        self._parent.append(parent)
        self._depth.append(depth)
        return node

    def _build(self) -> None:
        build_start = time.time()

        if self.config.verbose:
            print(f"\n{'='*60}")
            print("Building k-d Tree")
            print(f"{'='*60}")
            print(f"Vectors: {self.n_vectors:,}, Dimension: {self.dimension}")

        if self.n_vectors > 0:
            # (positions, parent, side, depth); side 0 = left, 1 = right
            stack = [(np.arange(self.n_vectors, dtype=np.int64), -1, 0, 0)]
            while stack:
                positions, parent, side, depth = stack.pop()
                axis = depth % self.dimension
                values = self._vectors[positions, axis]
                median = float(np.median(values))

                node = self._new_node(axis, median, parent, depth)
                if parent == -1:
                    self.root = node
                elif side == 0:
                    self._left[parent] = node
                else:
                    self._right[parent] = node

                self._bucket[node] = positions[values == median]
                lower = positions[values < median]
                higher = positions[values > median]
                if len(higher):
                    stack.append((higher, node, 1, depth + 1))
                if len(lower):
                    stack.append((lower, node, 0, depth + 1))

        self.build_stats = {
            'build_time': time.time() - build_start,
            'n_nodes': self.node_count,
            'depth': self.depth(),
        }

        if self.config.verbose:
            print(f"Nodes: {self.node_count:,}, Depth: {self.build_stats['depth']}")
            print(f"  ✓ Completed in {self.build_stats['build_time']:.2f}s")

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def node_count(self) -> int:
        return len(self._axis)

    @property
    def size(self) -> int:
        return self.n_vectors

    def depth(self) -> int:
        """Number of levels (0 for an empty tree)."""
        return max(self._depth) + 1 if self._depth else 0

    def iter_bucket_ids(self) -> Iterator[Hashable]:
        """Yield every indexed id, node by node."""
        for bucket in self._bucket:
            for pos in bucket:
                yield self._ids[int(pos)]

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _prepare_query(self, query) -> np.ndarray:
        query = np.ascontiguousarray(query, dtype=np.float64)
        if query.ndim != 1:
            raise InvalidArgumentError(f"Query must be 1-dimensional, got shape {query.shape}")
        if self.n_vectors and query.shape[0] != self.dimension:
            raise DimensionMismatchError(query.shape[0], self.dimension)
        return query

    def _entry_point(self, query: np.ndarray) -> int:
        node = self.root
        while True:
            if query[self._axis[node]] < self._split[node]:
                child = self._left[node]
            else:
                child = self._right[node]
            if child == -1:
                return node
            node = child

    def _halfspace_bound(self, query: np.ndarray, node: int, upper_side: bool) -> float:
        """Box bound from the query to one side of ``node``'s hyperplane."""
        lower = np.full(self.dimension, -np.inf)
        upper = np.full(self.dimension, np.inf)
        if upper_side:
            lower[self._axis[node]] = self._split[node]
        else:
            upper[self._axis[node]] = self._split[node]
        return self.distance.min_dist_to_box(query, lower, upper)

    def _explore(
        self,
        start: int,
        query: np.ndarray,
        bound: Callable[[], float],
        offer: Callable[[float, int], None],
        visited: Set[int]
    ) -> None:
        """
        Evaluate the subtree under ``start``, skipping visited nodes and
        subtrees whose hyperplane bound exceeds ``bound()``.
        """
        stack: List[Tuple[int, float]] = [(start, 0.0)]
        while stack:
            node, min_dist = stack.pop()
            if node in visited or min_dist > bound():
                continue
            visited.add(node)

            bucket = self._bucket[node]
            if len(bucket):
                dists = self.distance.batch_distance(query, self._vectors[bucket])
                for pos, dist in zip(bucket.tolist(), dists.tolist()):
                    offer(dist, pos)

            left, right = self._left[node], self._right[node]
            if left == -1 and right == -1:
                continue
            query_is_lower = query[self._axis[node]] < self._split[node]
            near, far = (left, right) if query_is_lower else (right, left)
            if far != -1 and far not in visited:
                far_bound = self._halfspace_bound(query, node, upper_side=query_is_lower)
                if far_bound <= bound():
                    stack.append((far, far_bound))
            if near != -1 and near not in visited:
                stack.append((near, 0.0))

    def knn(self, query, k: int) -> KNNList:
        """
        Exact k nearest neighbors of a query vector.

        Args:
            query: Query vector of shape (d,)
            k: Number of neighbors (> 0)

        Returns:
            KNNList of (id, distance), ascending
        """
        if k <= 0:
            raise InvalidArgumentError(f"k must be > 0, got {k}")
        query = self._prepare_query(query)
        heap = KNNHeap(k)
        if self.root == -1:
            return heap.to_knn_list()

        visited: Set[int] = set()
        node = self._entry_point(query)
        while node != -1:
            if node not in visited:
                self._explore(node, query, heap.kth_distance, heap.insert, visited)
            node = self._parent[node]

        ranked = heap.to_knn_list()
        return KNNList([self._ids[pos] for pos, _ in ranked], [d for _, d in ranked])

    def range_query(self, query, epsilon: float) -> KNNList:
        """
        All ids within ``epsilon`` of the query, ascending by distance.

        Args:
            query: Query vector of shape (d,)
            epsilon: Radius (>= 0, +inf for no cutoff)
        """
        if epsilon < 0 or np.isnan(epsilon):
            raise InvalidArgumentError(f"epsilon must be >= 0, got {epsilon}")
        query = self._prepare_query(query)
        if self.root == -1:
            return KNNList([], [])

        found: List[Tuple[float, int]] = []

        def offer(dist: float, pos: int) -> None:
            if dist <= epsilon:
                found.append((dist, pos))

        self._explore(self.root, query, lambda: epsilon, offer, set())
        found.sort(key=lambda pair: pair[0])
        return KNNList([self._ids[pos] for _, pos in found], [d for d, _ in found])
