"""
Test cases for the distance functions.
"""

import numpy as np
import pytest
from scipy.spatial import distance as sp_distance

from simsearch import (
    DimensionMismatchError,
    EuclideanDistance,
    InvalidArgumentError,
    LPNormDistance,
    ManhattanDistance,
    SparseLPNormDistance,
    SparseVector,
    SquaredEuclideanDistance,
    UnsupportedDistanceError,
    WeightedLPNormDistance,
    WeightedManhattanDistance,
    get_distance,
)
from simsearch.core.distances import has_box_bound


def test_euclidean_distance():
    assert EuclideanDistance().distance([0.0, 0.0], [3.0, 4.0]) == 5.0


def test_squared_euclidean_distance():
    assert SquaredEuclideanDistance().distance([0.0, 0.0], [3.0, 4.0]) == 25.0


def test_euclidean_surrogate_is_squared_euclidean():
    """The surrogate keeps the ordering and maps back with a square root."""
    dist = EuclideanDistance()

    assert isinstance(dist.surrogate, SquaredEuclideanDistance)
    assert dist.from_surrogate(dist.surrogate.distance([1.0, 2.0], [4.0, 6.0])) == 5.0


def test_distances_are_symmetric_and_nonnegative():
    rng = np.random.RandomState(0)
    a, b = rng.randn(6), rng.randn(6)
    for dist in (
        EuclideanDistance(),
        SquaredEuclideanDistance(),
        ManhattanDistance(),
        LPNormDistance(3),
        WeightedLPNormDistance(1.5, rng.rand(6) + 0.1),
        WeightedManhattanDistance(rng.rand(6) + 0.1),
    ):
        assert dist.distance(a, b) >= 0
        assert dist.distance(a, b) == pytest.approx(dist.distance(b, a))
        assert dist.distance(a, a) == 0.0


def test_weighted_lp_matches_scipy_minkowski():
    rng = np.random.RandomState(1)
    u, v = rng.randn(5), rng.randn(5)
    w = rng.rand(5) + 0.5

    dist = WeightedLPNormDistance(3, w)

    assert dist.distance(u, v) == pytest.approx(sp_distance.minkowski(u, v, p=3, w=w))


def test_weighted_manhattan_matches_scipy_cityblock():
    rng = np.random.RandomState(2)
    u, v = rng.randn(5), rng.randn(5)
    w = rng.rand(5) + 0.5

    dist = WeightedManhattanDistance(w)

    assert dist.distance(u, v) == pytest.approx(sp_distance.cityblock(u, v, w=w))
    # Specialized p=1 kernel agrees with the general Lp kernel
    assert dist.distance(u, v) == pytest.approx(WeightedLPNormDistance(1, w).distance(u, v))


def test_unweighted_lp_matches_scipy():
    rng = np.random.RandomState(3)
    u, v = rng.randn(4), rng.randn(4)

    assert LPNormDistance(2).distance(u, v) == pytest.approx(sp_distance.euclidean(u, v))
    assert ManhattanDistance().distance(u, v) == pytest.approx(sp_distance.cityblock(u, v))


def test_dimension_mismatch_raises():
    for dist in (EuclideanDistance(), ManhattanDistance(), LPNormDistance(3)):
        with pytest.raises(DimensionMismatchError) as excinfo:
            dist.distance([0.0, 0.0], [0.0, 0.0, 0.0])
        assert excinfo.value.first == 2
        assert excinfo.value.second == 3


def test_dimension_mismatch_is_invalid_argument():
    with pytest.raises(InvalidArgumentError):
        EuclideanDistance().distance([0.0], [0.0, 1.0])


def test_weights_must_match_dimensionality():
    dist = WeightedLPNormDistance(2, [1.0, 1.0])
    with pytest.raises(DimensionMismatchError):
        dist.distance([0.0, 0.0, 0.0], [1.0, 1.0, 1.0])


@pytest.mark.parametrize("weights", [[1.0, -1.0], [0.0, 1.0], [np.inf, 1.0]])
def test_invalid_weights_rejected(weights):
    with pytest.raises(InvalidArgumentError):
        WeightedLPNormDistance(2, weights)


@pytest.mark.parametrize("p", [0, -1, np.inf, np.nan])
def test_invalid_p_rejected(p):
    with pytest.raises(InvalidArgumentError):
        LPNormDistance(p)
    with pytest.raises(InvalidArgumentError):
        SparseLPNormDistance(p)


def test_batch_distance_equals_pairwise():
    """Batch kernels produce exactly the pairwise values."""
    rng = np.random.RandomState(4)
    query = rng.randn(3)
    vectors = rng.randn(20, 3)
    for dist in (
        EuclideanDistance(),
        SquaredEuclideanDistance(),
        WeightedLPNormDistance(2.5, [1.0, 2.0, 0.5]),
        WeightedManhattanDistance([1.0, 2.0, 0.5]),
    ):
        batch = dist.batch_distance(query, vectors)
        pairwise = [dist.distance(query, v) for v in vectors]
        assert batch.tolist() == pairwise


def test_euclidean_box_bound():
    dist = EuclideanDistance()
    point = np.array([0.0, 0.0])

    # Half-space x >= 1
    assert dist.min_dist_to_box(point, [1.0, -np.inf], [np.inf, np.inf]) == 1.0
    # Point inside the box
    assert dist.min_dist_to_box(point, [-1.0, -1.0], [1.0, 1.0]) == 0.0
    # Corner of a box
    assert dist.min_dist_to_box(point, [3.0, 4.0], [5.0, 5.0]) == 5.0


def test_weighted_manhattan_box_bound():
    dist = WeightedManhattanDistance([1.0, 2.0])

    bound = dist.min_dist_to_box([0.0, 0.0], [1.0, 3.0], [2.0, 4.0])

    assert bound == 1.0 * 1 + 2.0 * 3


def test_box_bound_never_exceeds_distance_to_points_inside():
    rng = np.random.RandomState(5)
    lower = np.array([-1.0, 0.0, 2.0])
    upper = np.array([1.0, 3.0, 2.5])
    inside = lower + rng.rand(50, 3) * (upper - lower)
    for dist in (
        EuclideanDistance(),
        SquaredEuclideanDistance(),
        ManhattanDistance(),
        WeightedLPNormDistance(3, [0.5, 1.0, 2.0]),
        WeightedManhattanDistance([0.5, 1.0, 2.0]),
    ):
        for _ in range(10):
            point = rng.randn(3) * 3
            bound = dist.min_dist_to_box(point, lower, upper)
            assert all(bound <= dist.distance(point, x) + 1e-12 for x in inside)


def test_box_bound_dimension_mismatch():
    with pytest.raises(DimensionMismatchError):
        EuclideanDistance().min_dist_to_box([0.0, 0.0], [0.0], [1.0])


def test_sparse_lp_three_passes():
    """Dimensions set only in a, only in b, and in both all contribute."""
    a = SparseVector(4, {0: 1.0, 2: 2.0})
    b = SparseVector(4, {2: 5.0, 3: -1.0})

    dist = SparseLPNormDistance(2)

    assert dist.distance(a, b) == pytest.approx(np.sqrt(1.0 + 1.0 + 9.0))
    assert dist.distance(a, b) == pytest.approx(
        EuclideanDistance().distance(a.to_dense(), b.to_dense())
    )


def test_sparse_lp_matches_dense_lp():
    rng = np.random.RandomState(6)
    for _ in range(10):
        x = rng.randn(8) * (rng.rand(8) > 0.5)
        y = rng.randn(8) * (rng.rand(8) > 0.5)
        expected = LPNormDistance(1.5).distance(x, y)
        actual = SparseLPNormDistance(1.5).distance(
            SparseVector.from_dense(x), SparseVector.from_dense(y)
        )
        assert actual == pytest.approx(expected)


def test_sparse_lp_dimension_mismatch():
    with pytest.raises(DimensionMismatchError):
        SparseLPNormDistance().distance(SparseVector(3), SparseVector(4))


def test_sparse_lp_has_no_box_bound():
    dist = SparseLPNormDistance()

    assert not has_box_bound(dist)
    with pytest.raises(UnsupportedDistanceError):
        dist.min_dist_to_box([0.0], [0.0], [1.0])


def test_get_distance_by_name():
    assert isinstance(get_distance('euclidean'), EuclideanDistance)
    assert isinstance(get_distance('manhattan'), ManhattanDistance)
    lp = get_distance('weighted_lp', p=3, weights=[1.0, 2.0])
    assert isinstance(lp, WeightedLPNormDistance)
    assert lp.p == 3.0


def test_get_distance_unknown_name():
    with pytest.raises(InvalidArgumentError):
        get_distance('hamming')
