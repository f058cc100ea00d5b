"""
SimSearch Benchmark Suite
=========================

Compares the linear scan and the k-d tree on k-NN queries, checks both
against scikit-learn's exact NearestNeighbors, and times OPTICS with
either engine answering the range queries.

Usage:
    python -m benchmarks.run_benchmarks --dataset 10k
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import time
import json
import argparse
from pathlib import Path
from typing import Dict, List, Tuple
from sklearn.neighbors import NearestNeighbors

from simsearch import (
    EuclideanDistance,
    KDTree,
    LinearScanKNNQuery,
    KDTreeKNNQuery,
    OPTICS,
    OPTICSConfig,
    Relation,
)
from simsearch.core.kdtree import KDTreeConfig
from simsearch.utils.metrics import compute_recall


def generate_test_data(
    n_vectors: int = 10000,
    n_queries: int = 100,
    dimension: int = 8,
    random_state: int = 42
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate synthetic test data.

    Creates clustered, normally distributed vectors. k-d trees lose their
    edge in high dimensions, so the default dimension is small.

    Args:
        n_vectors: Number of database vectors
        n_queries: Number of query vectors
        dimension: Vector dimension
        random_state: Random seed

    Returns:
        (vectors, queries): Generated data
    """
    rng = np.random.RandomState(random_state)

    n_clusters = max(10, n_vectors // 1000)
    centers = rng.randn(n_clusters, dimension) * 5.0
    assignments = rng.randint(0, n_clusters, n_vectors)
    vectors = centers[assignments] + rng.randn(n_vectors, dimension) * 0.5

    query_assignments = rng.randint(0, n_clusters, n_queries)
    queries = centers[query_assignments] + rng.randn(n_queries, dimension) * 0.5

    return vectors, queries


def compute_ground_truth(
    vectors: np.ndarray,
    queries: np.ndarray,
    k: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Exact neighbors from scikit-learn's brute-force search."""
    nn = NearestNeighbors(n_neighbors=k, algorithm='brute', metric='euclidean')
    nn.fit(vectors)
    distances, ids = nn.kneighbors(queries)
    return ids, distances


def benchmark_engine(
    name: str,
    build_fn,
    search_fn,
    queries: np.ndarray,
    ground_truth: np.ndarray,
    k: int = 10,
    n_runs: int = 3
) -> Dict:
    """
    Benchmark a single query engine.

    Args:
        name: Engine name
        build_fn: Function building the engine, returns build_time
        search_fn: Function taking (queries, k) and returning KNNLists
        queries: Query vectors
        ground_truth: Ground truth neighbor ids
        k: Number of neighbors
        n_runs: Benchmark iterations

    Returns:
        Benchmark results dictionary
    """
    print(f"\n{'='*60}")
    print(f"Benchmarking: {name}")
    print(f"{'='*60}")

    print("\nBuilding...")
    build_time = build_fn()
    print(f"  Build time: {build_time:.3f}s")

    print("\nBenchmarking search...")
    latencies = []
    results: List = []
    for _ in range(n_runs):
        start = time.time()
        results = search_fn(queries, k)
        latencies.append(time.time() - start)

    avg_total = np.mean(latencies)
    avg_per_query = avg_total / len(queries) * 1000
    throughput = len(queries) / avg_total
    recall = compute_recall(results, [list(row) for row in ground_truth], k)

    print(f"\nResults:")
    print(f"  Build time:    {build_time:.3f}s")
    print(f"  Query latency: {avg_per_query:.4f}ms")
    print(f"  Throughput:    {throughput:,.0f} QPS")
    print(f"  Recall@{k}:     {recall:.1f}%")

    return {
        'name': name,
        'build_time_s': build_time,
        'latency_per_query_ms': avg_per_query,
        'throughput_qps': throughput,
        f'recall@{k}': recall
    }


def benchmark_optics(relation: Relation, epsilon: float, min_pts: int) -> List[Dict]:
    """Time OPTICS with both range-query engines."""
    results = []
    for use_index in (False, True):
        name = "OPTICS (k-d tree)" if use_index else "OPTICS (linear scan)"
        config = OPTICSConfig(epsilon=epsilon, min_pts=min_pts, use_index=use_index)
        start = time.time()
        order = OPTICS(EuclideanDistance(), config).run(relation)
        elapsed = time.time() - start
        n_core = sum(1 for c in order.core_distances() if np.isfinite(c))
        print(f"  {name:<24} {elapsed:.3f}s  ({n_core:,} core points)")
        results.append({'name': name, 'run_time_s': elapsed, 'n_core_points': n_core})
    return results


def run_benchmarks(dataset_size: str = '10k', dimension: int = 8) -> Dict:
    """
    Run full benchmark suite.

    Args:
        dataset_size: Dataset size ('1k', '10k', '100k')
        dimension: Vector dimension

    Returns:
        All benchmark results
    """
    print("="*60)
    print("SIMSEARCH BENCHMARK SUITE")
    print("="*60)

    size_map = {
        '1k': 1000,
        '10k': 10000,
        '100k': 100000
    }
    n_vectors = size_map.get(dataset_size, 10000)
    vectors, queries = generate_test_data(n_vectors=n_vectors, dimension=dimension)
    relation = Relation(vectors)
    distance = EuclideanDistance()

    print(f"\nDataset: {vectors.shape[0]:,} vectors × {vectors.shape[1]} dimensions")
    print(f"Queries: {queries.shape[0]}")

    k = 10
    print("Computing ground truth...")
    ground_truth, _ = compute_ground_truth(vectors, queries, k)

    engines: Dict = {}

    def linear_build():
        start = time.time()
        engines['linear'] = LinearScanKNNQuery(relation, distance)
        return time.time() - start

    def tree_build():
        start = time.time()
        engines['tree'] = KDTreeKNNQuery(KDTree(relation, distance, KDTreeConfig(verbose=True)))
        return time.time() - start

    all_results = [
        benchmark_engine(
            "Linear scan", linear_build,
            lambda qs, k: engines['linear'].bulk_knn(qs, k),
            queries, ground_truth, k
        ),
        benchmark_engine(
            "k-d tree", tree_build,
            lambda qs, k: engines['tree'].bulk_knn(qs, k),
            queries, ground_truth, k
        ),
    ]

    print("\n" + "="*60)
    print("OPTICS")
    print("="*60)
    optics_relation = Relation(vectors[:min(n_vectors, 2000)])
    optics_results = benchmark_optics(optics_relation, epsilon=1.0, min_pts=10)

    linear_lat = all_results[0]['latency_per_query_ms']
    tree_lat = all_results[1]['latency_per_query_ms']
    print("\n" + "="*60)
    print("COMPARISON SUMMARY")
    print("="*60)
    print(f"\n{'Metric':<20} {'Linear':<15} {'k-d tree':<15}")
    print("-" * 50)
    print(f"{'Latency (ms)':<20} {linear_lat:<15.4f} {tree_lat:<15.4f}")
    print(f"{'Recall@10':<20} {all_results[0][f'recall@{k}']:<15.1f} {all_results[1][f'recall@{k}']:<15.1f}")

    output_file = Path(__file__).parent / f'benchmark_results_{dataset_size}.json'
    with open(output_file, 'w') as f:
        json.dump({'knn': all_results, 'optics': optics_results}, f, indent=2)
    print(f"\n✓ Results saved to {output_file}")

    return {
        'results': all_results,
        'optics': optics_results,
        'speedup': linear_lat / tree_lat if tree_lat > 0 else float('inf')
    }


def main():
    parser = argparse.ArgumentParser(description='Run SimSearch benchmarks')
    parser.add_argument(
        '--dataset', '-d',
        type=str,
        default='10k',
        choices=['1k', '10k', '100k'],
        help='Dataset size'
    )
    parser.add_argument(
        '--dimension',
        type=int,
        default=8,
        help='Vector dimension'
    )

    args = parser.parse_args()
    run_benchmarks(args.dataset, args.dimension)


if __name__ == '__main__':
    main()
