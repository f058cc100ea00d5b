"""
OPTICS Cluster Ordering
=======================

Ordering Points To Identify the Clustering Structure (Ankerst, Breunig,
Kriegel, Sander; SIGMOD 1999).

Every point moves Unprocessed -> Queued -> Processed. Each unprocessed
point seeds one expansion: the run-scoped UpdatableHeap is drained
completely, popping the point with the smallest reachability, appending it
to the cluster order, and (for core points) lowering the reachability of
its unprocessed epsilon-neighbors.

Example:
    >>> config = OPTICSConfig(epsilon=2.0, min_pts=2)
    >>> order = OPTICS(EuclideanDistance(), config).run(relation)
    >>> [(e.id, e.reachability) for e in order]
"""

import math
import time
from dataclasses import dataclass
from typing import Dict, Hashable, Iterator, List, NamedTuple, Optional, Set

from simsearch.core.distances import DistanceFunction
from simsearch.core.heap import UpdatableHeap
from simsearch.core.kdtree import KDTreeConfig
from simsearch.exceptions import InvalidArgumentError
from simsearch.query import get_knn_query
from simsearch.relation import Relation


@dataclass
class OPTICSConfig:
    """
    Configuration for OPTICS.

    Attributes:
        epsilon: Neighborhood radius (math.inf for no cutoff)
        min_pts: Neighbors (including the point itself) needed for a core point
        use_index: Answer range queries with a KDTree instead of a linear scan
        verbose: Print progress information
        show_progress: Show a tqdm progress bar while ordering
    """

    epsilon: float = math.inf
    min_pts: int = 5
    use_index: bool = False
    verbose: bool = False
    show_progress: bool = False

    def __post_init__(self):
        if self.min_pts <= 0:
            raise InvalidArgumentError(f"min_pts must be > 0, got {self.min_pts}")
        if math.isnan(self.epsilon) or self.epsilon < 0:
            raise InvalidArgumentError(f"epsilon must be >= 0, got {self.epsilon}")


class ClusterOrderEntry(NamedTuple):
    """One position in the cluster order."""

    id: Hashable
    predecessor: Optional[Hashable]
    reachability: float
    core_distance: float


class ClusterOrder:
    """Append-only OPTICS output; every id appears exactly once."""

    def __init__(self):
        self._entries: List[ClusterOrderEntry] = []
        self._index: Dict[Hashable, int] = {}

    def add(self, entry: ClusterOrderEntry) -> None:
        if entry.id in self._index:
            raise InvalidArgumentError(f"Identifier already in cluster order: {entry.id!r}")
        self._index[entry.id] = len(self._entries)
        self._entries.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ClusterOrderEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> ClusterOrderEntry:
        return self._entries[index]

    def __contains__(self, ident) -> bool:
        return ident in self._index

    def get(self, ident: Hashable) -> ClusterOrderEntry:
        return self._entries[self._index[ident]]

    def position(self, ident: Hashable) -> int:
        return self._index[ident]

    def ids(self) -> List[Hashable]:
        return [e.id for e in self._entries]

    def predecessors(self) -> List[Optional[Hashable]]:
        return [e.predecessor for e in self._entries]

    def reachabilities(self) -> List[float]:
        return [e.reachability for e in self._entries]

    def core_distances(self) -> List[float]:
        return [e.core_distance for e in self._entries]

    def __repr__(self) -> str:
        return f"ClusterOrder({len(self._entries)} entries)"


class OPTICS:
    """
    OPTICS density-based cluster ordering.

    Attributes:
        distance: Distance function
        config: Algorithm configuration
        run_stats: Timing and counts from the last run
    """

    def __init__(
        self,
        distance: DistanceFunction,
        config: Optional[OPTICSConfig] = None
    ):
        self.distance = distance
        self.config = config or OPTICSConfig()
        self.run_stats: Dict = {}

    def run(self, relation: Relation, query=None) -> ClusterOrder:
        """
        Compute the cluster order of ``relation``.

        Args:
            relation: Data relation
            query: Optional prebuilt query engine providing ``range_for_id``
                (defaults to one built from the config)

        Returns:
            ClusterOrder containing every id exactly once
        """
        run_start = time.time()
        size = relation.size()

        if self.config.verbose:
            print(f"\n{'='*60}")
            print("Running OPTICS")
            print(f"{'='*60}")
            print(f"Points: {size:,}, epsilon: {self.config.epsilon}, "
                  f"min_pts: {self.config.min_pts}")

        if query is None:
            query = get_knn_query(
                relation,
                self.distance,
                use_index=self.config.use_index,
                config=KDTreeConfig(verbose=self.config.verbose)
            )

        progress = None
        if self.config.show_progress:
            from tqdm import tqdm
            progress = tqdm(total=size, desc="OPTICS")

        processed: Set[Hashable] = set()
        cluster_order = ClusterOrder()
        n_expansions = 0
        try:
            for ident in relation:
                if ident not in processed:
                    self._expand_cluster_order(
                        cluster_order, query, ident, processed, progress
                    )
                    n_expansions += 1
        finally:
            if progress is not None:
                progress.close()

        self.run_stats = {
            'run_time': time.time() - run_start,
            'n_points': size,
            'n_expansions': n_expansions,
            'n_core_points': sum(
                1 for c in cluster_order.core_distances() if c != math.inf
            ),
        }

        if self.config.verbose:
            print(f"Expansions: {n_expansions:,}, "
                  f"core points: {self.run_stats['n_core_points']:,}")
            print(f"  ✓ Completed in {self.run_stats['run_time']:.2f}s")

        return cluster_order

    def _expand_cluster_order(
        self,
        cluster_order: ClusterOrder,
        query,
        start: Hashable,
        processed: Set[Hashable],
        progress
    ) -> None:
        """Drain one expansion seeded at ``start``."""
        epsilon = self.config.epsilon
        min_pts = self.config.min_pts

        heap = UpdatableHeap()
        heap.push(math.inf, start, None)

        while heap:
            reachability, current, predecessor = heap.pop()
            processed.add(current)

            neighbors = query.range_for_id(current, epsilon)
            if len(neighbors) < min_pts:
                core_distance = math.inf
            else:
                core_distance = neighbors[min_pts - 1][1]

            cluster_order.add(
                ClusterOrderEntry(current, predecessor, reachability, core_distance)
            )
            if progress is not None:
                progress.update(1)

            if core_distance == math.inf:
                continue
            for neighbor, dist in neighbors:
                if neighbor in processed:
                    continue
                heap.push(max(core_distance, dist), neighbor, current)
