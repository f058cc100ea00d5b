"""
SimSearch Core Components
=========================

Distance functions, result collection, the k-d tree and the updatable
heap used by OPTICS.
"""

from simsearch.core.distances import DistanceFunction, get_distance, has_box_bound
from simsearch.core.collector import KNNHeap, KNNList
from simsearch.core.kdtree import KDTree, KDTreeConfig
from simsearch.core.heap import UpdatableHeap

__all__ = [
    "DistanceFunction",
    "get_distance",
    "has_box_bound",
    "KNNHeap",
    "KNNList",
    "KDTree",
    "KDTreeConfig",
    "UpdatableHeap"
]
