"""
Evaluation Metrics for SimSearch
================================

Helpers for checking and consuming query and clustering results:
- Recall@k of one engine against another (e.g. index vs. linear scan)
- Agreement of two k-NN lists up to ties
- Simplified silhouette of a labeling
- DBSCAN-style labels extracted from an OPTICS cluster order
"""

import numpy as np
from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Union
from sklearn.cluster import cluster_optics_dbscan

from simsearch.core.collector import KNNList
from simsearch.core.distances import DistanceFunction, EuclideanDistance
from simsearch.exceptions import InvalidArgumentError
from simsearch.relation import Relation


def _ids_of(result) -> list:
    if isinstance(result, KNNList):
        return list(result.ids)
    return list(result)


def compute_recall(
    predicted: Sequence,
    ground_truth: Sequence,
    k: int = 10
) -> float:
    """
    Compute recall@k.

    Recall@k measures the proportion of true nearest neighbors
    that appear in the top-k predictions.

    Args:
        predicted: Per-query KNNLists (or id sequences)
        ground_truth: Per-query reference KNNLists (or id sequences)
        k: Number of neighbors to consider

    Returns:
        Recall@k as percentage (0-100)
    """
    if len(predicted) != len(ground_truth):
        raise InvalidArgumentError(
            f"Got {len(predicted)} predictions for {len(ground_truth)} queries"
        )
    if not predicted:
        return 100.0

    recalls = []
    for pred, true in zip(predicted, ground_truth):
        true_set = set(_ids_of(true)[:k])
        if not true_set:
            recalls.append(1.0)
            continue
        pred_set = set(_ids_of(pred)[:k])
        recalls.append(len(pred_set & true_set) / len(true_set))

    return float(np.mean(recalls) * 100)


def knn_lists_agree(a: KNNList, b: KNNList, rtol: float = 1e-9) -> bool:
    """
    Whether two k-NN results are the same up to ties.

    Distances must match position by position. Ids must match as sets,
    except for ids tied with the k-th distance, where either list may have
    kept a different subset.
    """
    if len(a) != len(b):
        return False
    if not np.allclose(a.distances, b.distances, rtol=rtol, atol=1e-12):
        return False
    kth = min(a.kth_distance(), b.kth_distance())
    inner_a = {i for i, d in a if d < kth}
    inner_b = {i for i, d in b if d < kth}
    return inner_a == inner_b


def simplified_silhouette(
    relation: Relation,
    labels: Union[Mapping[Hashable, int], Sequence[int]],
    distance: Optional[DistanceFunction] = None,
    noise: str = 'singletons',
    penalize: bool = True
) -> float:
    """
    Mean simplified silhouette of a labeling.

    Each point scores (b - a) / max(a, b), where a is the distance to its
    own cluster centroid and b the distance to the nearest other centroid.
    Singleton clusters score 0.

    Args:
        relation: Dense vector relation
        labels: Label per id (mapping) or per relation position (sequence);
            -1 marks noise
        distance: Distance function (Euclidean if None)
        noise: 'singletons' (noise points score 0 and act as their own
            centroids), 'ignore' (skip noise), or 'merge' (noise is a cluster)
        penalize: With noise='ignore', scale by the non-noise fraction

    Returns:
        Mean simplified silhouette in [-1, 1]
    """
    if noise not in ('singletons', 'ignore', 'merge'):
        raise InvalidArgumentError(f"Unknown noise handling: {noise!r}")
    distance = distance or EuclideanDistance()
    ids = relation.ids()
    if isinstance(labels, Mapping):
        label_list = [labels[i] for i in ids]
    else:
        label_list = list(labels)
    if len(label_list) != len(ids):
        raise InvalidArgumentError(f"Got {len(label_list)} labels for {len(ids)} points")
    if not ids:
        return 0.0

    vectors = relation.vectors
    clusters: Dict[int, List[int]] = {}
    for pos, label in enumerate(label_list):
        clusters.setdefault(label, []).append(pos)

    centroids: Dict[int, Optional[np.ndarray]] = {}
    ignored = 0
    for label, members in clusters.items():
        if (len(members) <= 1 or label == -1) and noise != 'merge':
            centroids[label] = None
            if noise == 'ignore':
                ignored += len(members)
        else:
            centroids[label] = vectors[members].mean(axis=0)

    scores: List[float] = []
    for label, members in clusters.items():
        if len(members) <= 1:
            scores.extend([0.0] * len(members))
            continue
        if label == -1 and noise != 'merge':
            if noise == 'singletons':
                scores.extend([0.0] * len(members))
            continue

        center = centroids[label]
        for pos in members:
            obj = vectors[pos]
            a = distance.distance(center, obj)
            b = np.inf
            for other_label, other_members in clusters.items():
                if other_label == label:
                    continue
                other = centroids[other_label]
                if other is None:
                    if noise == 'ignore':
                        continue
                    for opos in other_members:
                        b = min(b, distance.distance(vectors[opos], obj))
                    continue
                b = min(b, distance.distance(other, obj))
            if b == np.inf:
                b = a
            denom = max(a, b)
            scores.append((b - a) / denom if denom > 0 else 0.0)

    if not scores:
        return 0.0
    penalty = 1.0
    if penalize and ignored > 0:
        penalty = (len(ids) - ignored) / len(ids)
    return float(penalty * np.mean(scores))


def extract_dbscan_labels(cluster_order, relation: Relation, eps: float) -> np.ndarray:
    """
    DBSCAN-equivalent labels for radius ``eps`` from an OPTICS cluster order.

    ``eps`` should not exceed the epsilon the order was computed with.

    Args:
        cluster_order: ClusterOrder covering every id of ``relation``
        relation: Relation the order was computed on
        eps: Extraction radius

    Returns:
        Labels aligned with the relation's id order (-1 for noise)
    """
    n = relation.size()
    if len(cluster_order) != n:
        raise InvalidArgumentError(
            f"Cluster order has {len(cluster_order)} entries for {n} points"
        )
    reachability = np.empty(n, dtype=np.float64)
    core_distances = np.empty(n, dtype=np.float64)
    ordering = np.empty(n, dtype=np.int64)
    for rank, entry in enumerate(cluster_order):
        pos = relation.position(entry.id)
        reachability[pos] = entry.reachability
        core_distances[pos] = entry.core_distance
        ordering[rank] = pos
    return cluster_optics_dbscan(
        reachability=reachability,
        core_distances=core_distances,
        ordering=ordering,
        eps=eps,
    )
