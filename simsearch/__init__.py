"""
SimSearch - Exact Similarity Search and OPTICS Cluster Ordering
===============================================================

Nearest-neighbor retrieval (linear scan and median-split k-d tree) and
density-based cluster ordering over in-memory vector collections.

Example:
    >>> from simsearch import Relation, EuclideanDistance, KDTree, OPTICS, OPTICSConfig
    >>> relation = Relation(vectors)
    >>> tree = KDTree(relation, EuclideanDistance())
    >>> neighbors = tree.knn(query, k=10)
    >>> order = OPTICS(EuclideanDistance(), OPTICSConfig(epsilon=0.5, min_pts=5)).run(relation)
"""

from simsearch.core.collector import KNNHeap, KNNList
from simsearch.core.distances import (
    DistanceFunction,
    EuclideanDistance,
    SquaredEuclideanDistance,
    LPNormDistance,
    WeightedLPNormDistance,
    ManhattanDistance,
    WeightedManhattanDistance,
    SparseLPNormDistance,
    get_distance,
)
from simsearch.core.heap import UpdatableHeap
from simsearch.core.kdtree import KDTree, KDTreeConfig
from simsearch.exceptions import (
    DataFormatError,
    DimensionMismatchError,
    InvalidArgumentError,
    UnsupportedDistanceError,
)
from simsearch.optics import OPTICS, OPTICSConfig, ClusterOrder, ClusterOrderEntry
from simsearch.query import LinearScanKNNQuery, KDTreeKNNQuery, get_knn_query
from simsearch.relation import Relation, SparseVector

__version__ = "1.0.0"
__all__ = [
    "Relation",
    "SparseVector",
    "DistanceFunction",
    "EuclideanDistance",
    "SquaredEuclideanDistance",
    "LPNormDistance",
    "WeightedLPNormDistance",
    "ManhattanDistance",
    "WeightedManhattanDistance",
    "SparseLPNormDistance",
    "get_distance",
    "KNNHeap",
    "KNNList",
    "UpdatableHeap",
    "KDTree",
    "KDTreeConfig",
    "LinearScanKNNQuery",
    "KDTreeKNNQuery",
    "get_knn_query",
    "OPTICS",
    "OPTICSConfig",
    "ClusterOrder",
    "ClusterOrderEntry",
    "InvalidArgumentError",
    "DimensionMismatchError",
    "DataFormatError",
    "UnsupportedDistanceError",
    "__version__",
]
