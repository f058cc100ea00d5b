"""
SimSearch Utilities
===================

Precomputed distance files and evaluation helpers.
"""

from simsearch.utils.metrics import (
    compute_recall,
    knn_lists_agree,
    simplified_silhouette,
    extract_dbscan_labels,
)
from simsearch.utils.io import (
    DistanceCache,
    PrecomputedDistance,
    parse_distance_file,
    write_distance_file,
    distance_cache_from_relation,
)

__all__ = [
    "compute_recall",
    "knn_lists_agree",
    "simplified_silhouette",
    "extract_dbscan_labels",
    "DistanceCache",
    "PrecomputedDistance",
    "parse_distance_file",
    "write_distance_file",
    "distance_cache_from_relation"
]
