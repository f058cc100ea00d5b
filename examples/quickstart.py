"""
SimSearch Quick Start Example
=============================

This example demonstrates basic usage of the SimSearch library.
"""

import numpy as np
import time
import sys
import os
import tempfile

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from simsearch import (
    EuclideanDistance,
    KDTree,
    LinearScanKNNQuery,
    OPTICS,
    OPTICSConfig,
    Relation,
)
from simsearch.core.kdtree import KDTreeConfig
from simsearch.utils.io import (
    PrecomputedDistance,
    distance_cache_from_relation,
    parse_distance_file,
    write_distance_file,
)
from simsearch.utils.metrics import compute_recall, extract_dbscan_labels


def main():
    print("="*60)
    print("SimSearch Quick Start Example")
    print("="*60)

    # Generate sample data
    print("\n[1] Generating sample data...")
    rng = np.random.RandomState(42)

    n_vectors = 5000
    dimension = 4
    n_queries = 50

    centers = rng.randn(5, dimension) * 4.0
    vectors = centers[rng.randint(0, 5, n_vectors)] + rng.randn(n_vectors, dimension) * 0.3
    queries = rng.randn(n_queries, dimension) * 4.0
    relation = Relation(vectors)

    print(f"    Vectors: {n_vectors} × {dimension}")
    print(f"    Queries: {n_queries}")

    # Build the index
    print("\n[2] Building k-d tree...")
    distance = EuclideanDistance()
    tree = KDTree(relation, distance, KDTreeConfig(verbose=True))

    # Search
    print("\n[3] Searching for nearest neighbors...")
    k = 10
    linear = LinearScanKNNQuery(relation, distance)

    start = time.time()
    tree_results = [tree.knn(q, k) for q in queries]
    tree_time = time.time() - start

    start = time.time()
    scan_results = linear.bulk_knn(queries, k)
    scan_time = time.time() - start

    print(f"    First query: {tree_results[0][:3]}")
    print(f"    k-d tree:    {tree_time / n_queries * 1000:.3f} ms/query")
    print(f"    Linear scan: {scan_time / n_queries * 1000:.3f} ms/query")
    print(f"    Recall@{k} (tree vs scan): {compute_recall(tree_results, scan_results, k):.1f}%")

    # OPTICS
    print("\n[4] Running OPTICS...")
    sample = Relation(vectors[:1000])
    config = OPTICSConfig(epsilon=1.0, min_pts=10, use_index=True, verbose=True)
    order = OPTICS(distance, config).run(sample)
    labels = extract_dbscan_labels(order, sample, eps=0.5)
    n_clusters = len(set(labels.tolist()) - {-1})
    print(f"    Cluster order length: {len(order)}")
    print(f"    DBSCAN clusters at eps=0.5: {n_clusters}")

    # Precomputed distances
    print("\n[5] Round-tripping a precomputed distance file...")
    small = Relation(vectors[:50])
    cache = distance_cache_from_relation(small, distance)
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, 'distances.txt')
        write_distance_file(path, cache)
        loaded = parse_distance_file(path)
    ids_relation = Relation.from_ids(loaded.ids())
    nearest = LinearScanKNNQuery(ids_relation, PrecomputedDistance(loaded)).knn_for_id(0, 3)
    print(f"    Pairs: {len(loaded)}, nearest to 0: {nearest}")

    print("\n" + "="*60)
    print("Done")
    print("="*60)


if __name__ == '__main__':
    main()
