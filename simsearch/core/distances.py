"""
Distance Functions for SimSearch
================================

This module provides the pluggable distance abstraction used by the
query engines, the k-d tree and OPTICS:

1. Euclidean and squared Euclidean distance
2. Weighted Minkowski (Lp) norms, with a specialized weighted Manhattan
3. Sparse Lp norms over vectors with a defined-dimension bitmask

Dense kernels are compiled with Numba. Functions that can bound the
distance from a point to an axis-aligned box expose ``min_dist_to_box``
and set ``supports_box_bound``; the k-d tree requires it for pruning.

Distances are chosen at configuration time by name:

    >>> dist = get_distance('weighted_lp', p=3, weights=[1.0, 2.0])
    >>> dist.distance(np.array([0., 0.]), np.array([1., 1.]))
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence
from numba import njit

from simsearch.exceptions import (
    DimensionMismatchError,
    InvalidArgumentError,
    UnsupportedDistanceError,
)


# ---------------------------------------------------------------------------
# Numba kernels
# ---------------------------------------------------------------------------

@njit(cache=True)
def _squared_euclidean(a, b):
    dist = 0.0
    for i in range(a.shape[0]):
        diff = a[i] - b[i]
        dist += diff * diff
    return dist


@njit(cache=True)
def _squared_euclidean_batch(query, vectors):
    n = vectors.shape[0]
    d = vectors.shape[1]
    result = np.empty(n, dtype=np.float64)
    for i in range(n):
        dist = 0.0
        for j in range(d):
            diff = query[j] - vectors[i, j]
            dist += diff * diff
        result[i] = dist
    return result


@njit(cache=True)
def _squared_euclidean_to_box(point, lower, upper):
    dist = 0.0
    for i in range(point.shape[0]):
        value = point[i]
        if value < lower[i]:
            delta = lower[i] - value
        elif value > upper[i]:
            delta = value - upper[i]
        else:
            continue
        dist += delta * delta
    return dist


@njit(cache=True)
def _weighted_lp(a, b, weights, p):
    agg = 0.0
    for i in range(a.shape[0]):
        delta = abs(a[i] - b[i])
        agg += weights[i] * delta ** p
    return agg ** (1.0 / p)


@njit(cache=True)
def _weighted_lp_batch(query, vectors, weights, p):
    n = vectors.shape[0]
    d = vectors.shape[1]
    result = np.empty(n, dtype=np.float64)
    for i in range(n):
        agg = 0.0
        for j in range(d):
            delta = abs(query[j] - vectors[i, j])
            agg += weights[j] * delta ** p
        result[i] = agg ** (1.0 / p)
    return result


@njit(cache=True)
def _weighted_lp_pre_to_box(point, lower, upper, weights, p):
    agg = 0.0
    for i in range(point.shape[0]):
        value = point[i]
        if value < lower[i]:
            delta = lower[i] - value
        elif value > upper[i]:
            delta = value - upper[i]
        else:
            continue
        agg += weights[i] * delta ** p
    return agg


@njit(cache=True)
def _weighted_manhattan(a, b, weights):
    agg = 0.0
    for i in range(a.shape[0]):
        xd = a[i]
        yd = b[i]
        delta = xd - yd if xd >= yd else yd - xd
        agg += delta * weights[i]
    return agg


@njit(cache=True)
def _weighted_manhattan_batch(query, vectors, weights):
    n = vectors.shape[0]
    d = vectors.shape[1]
    result = np.empty(n, dtype=np.float64)
    for i in range(n):
        agg = 0.0
        for j in range(d):
            xd = query[j]
            yd = vectors[i, j]
            delta = xd - yd if xd >= yd else yd - xd
            agg += delta * weights[j]
        result[i] = agg
    return result


@njit(cache=True)
def _weighted_manhattan_to_box(point, lower, upper, weights):
    agg = 0.0
    for i in range(point.shape[0]):
        value = point[i]
        delta = lower[i] - value
        if delta < 0.0:
            delta = value - upper[i]
        if delta > 0.0:
            agg += delta * weights[i]
    return agg


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_vector(x) -> np.ndarray:
    return np.ascontiguousarray(x, dtype=np.float64)


def _check_dimensions(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(a.shape[0], b.shape[0])


def _check_box(point: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> None:
    _check_dimensions(point, lower)
    _check_dimensions(point, upper)


def has_box_bound(distance) -> bool:
    """Whether ``distance`` can bound the distance from a point to a box."""
    return bool(getattr(distance, 'supports_box_bound', False))


# ---------------------------------------------------------------------------
# Distance functions
# ---------------------------------------------------------------------------

class DistanceFunction(ABC):
    """
    Capability interface for distance functions.

    Subclasses implement ``distance``. Optional capabilities:

    - ``surrogate``: a cheaper distance with the same ordering, together
      with ``from_surrogate`` mapping surrogate values back
    - ``min_dist_to_box``: lower bound from a point to an axis-aligned box
      (set ``supports_box_bound = True``)
    """

    name: str = 'distance'
    supports_box_bound: bool = False
    surrogate: Optional['DistanceFunction'] = None

    @abstractmethod
    def distance(self, a, b) -> float:
        """Distance between two objects."""

    def __call__(self, a, b) -> float:
        return self.distance(a, b)

    def from_surrogate(self, value: float) -> float:
        return value

    def batch_distance(self, query, vectors) -> np.ndarray:
        """
        Distances from ``query`` to every row of ``vectors``.

        Values are identical to calling ``distance`` pairwise.
        """
        return np.array([self.distance(query, v) for v in vectors], dtype=np.float64)

    def min_dist_to_box(self, point, lower, upper) -> float:
        raise UnsupportedDistanceError(
            f"{type(self).__name__} cannot bound distances to a region"
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SquaredEuclideanDistance(DistanceFunction):
    """Sum of squared coordinate differences (not a metric)."""

    name = 'sqeuclidean'
    supports_box_bound = True

    def distance(self, a, b) -> float:
        a, b = _as_vector(a), _as_vector(b)
        _check_dimensions(a, b)
        return float(_squared_euclidean(a, b))

    def batch_distance(self, query, vectors) -> np.ndarray:
        query, vectors = _as_vector(query), _as_vector(vectors)
        if vectors.shape[0] and vectors.shape[1] != query.shape[0]:
            raise DimensionMismatchError(query.shape[0], vectors.shape[1])
        return _squared_euclidean_batch(query, vectors)

    def min_dist_to_box(self, point, lower, upper) -> float:
        point, lower, upper = _as_vector(point), _as_vector(lower), _as_vector(upper)
        _check_box(point, lower, upper)
        return float(_squared_euclidean_to_box(point, lower, upper))


class EuclideanDistance(DistanceFunction):
    """
    Euclidean (L2) distance.

    The squared Euclidean distance is exposed as monotonic surrogate so a
    linear scan can skip the square root for every candidate.
    """

    name = 'euclidean'
    supports_box_bound = True

    def __init__(self):
        self.surrogate = SquaredEuclideanDistance()

    def distance(self, a, b) -> float:
        return float(np.sqrt(self.surrogate.distance(a, b)))

    def from_surrogate(self, value: float) -> float:
        return float(np.sqrt(value))

    def batch_distance(self, query, vectors) -> np.ndarray:
        return np.sqrt(self.surrogate.batch_distance(query, vectors))

    def min_dist_to_box(self, point, lower, upper) -> float:
        return float(np.sqrt(self.surrogate.min_dist_to_box(point, lower, upper)))


class WeightedLPNormDistance(DistanceFunction):
    """
    Weighted Minkowski distance: (sum_d w_d * |a_d - b_d|^p)^(1/p).

    Args:
        p: Exponent (> 0)
        weights: Positive per-dimension weights, or None for all ones
    """

    name = 'weighted_lp'
    supports_box_bound = True

    def __init__(self, p: float, weights: Optional[Sequence[float]] = None):
        p = float(p)
        if not np.isfinite(p) or p <= 0:
            raise InvalidArgumentError(f"p must be a positive finite number, got {p}")
        self.p = p
        if weights is None:
            self.weights = None
        else:
            weights = _as_vector(weights)
            if weights.ndim != 1:
                raise InvalidArgumentError("weights must be a 1-dimensional sequence")
            if not np.all(np.isfinite(weights)) or np.any(weights <= 0):
                raise InvalidArgumentError("weights must be positive and finite")
            self.weights = weights
        self._ones: Dict[int, np.ndarray] = {}

    def _weights_for(self, dim: int) -> np.ndarray:
        if self.weights is not None:
            if self.weights.shape[0] != dim:
                raise DimensionMismatchError(self.weights.shape[0], dim)
            return self.weights
        ones = self._ones.get(dim)
        if ones is None:
            ones = np.ones(dim, dtype=np.float64)
            self._ones[dim] = ones
        return ones

    def _finish(self, agg: float) -> float:
        return agg ** (1.0 / self.p)

    def distance(self, a, b) -> float:
        a, b = _as_vector(a), _as_vector(b)
        _check_dimensions(a, b)
        w = self._weights_for(a.shape[0])
        return float(_weighted_lp(a, b, w, self.p))

    def batch_distance(self, query, vectors) -> np.ndarray:
        query, vectors = _as_vector(query), _as_vector(vectors)
        if vectors.shape[0] and vectors.shape[1] != query.shape[0]:
            raise DimensionMismatchError(query.shape[0], vectors.shape[1])
        w = self._weights_for(query.shape[0])
        return _weighted_lp_batch(query, vectors, w, self.p)

    def min_dist_to_box(self, point, lower, upper) -> float:
        point, lower, upper = _as_vector(point), _as_vector(lower), _as_vector(upper)
        _check_box(point, lower, upper)
        w = self._weights_for(point.shape[0])
        return float(self._finish(_weighted_lp_pre_to_box(point, lower, upper, w, self.p)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(p={self.p})"


class LPNormDistance(WeightedLPNormDistance):
    """Unweighted Minkowski distance."""

    name = 'lp'

    def __init__(self, p: float):
        super().__init__(p, None)


class WeightedManhattanDistance(WeightedLPNormDistance):
    """Weighted L1 distance: sum_d w_d * |a_d - b_d|."""

    name = 'weighted_manhattan'

    def __init__(self, weights: Optional[Sequence[float]] = None):
        super().__init__(1.0, weights)

    def _finish(self, agg: float) -> float:
        return agg

    def distance(self, a, b) -> float:
        a, b = _as_vector(a), _as_vector(b)
        _check_dimensions(a, b)
        return float(_weighted_manhattan(a, b, self._weights_for(a.shape[0])))

    def batch_distance(self, query, vectors) -> np.ndarray:
        query, vectors = _as_vector(query), _as_vector(vectors)
        if vectors.shape[0] and vectors.shape[1] != query.shape[0]:
            raise DimensionMismatchError(query.shape[0], vectors.shape[1])
        return _weighted_manhattan_batch(query, vectors, self._weights_for(query.shape[0]))

    def min_dist_to_box(self, point, lower, upper) -> float:
        point, lower, upper = _as_vector(point), _as_vector(lower), _as_vector(upper)
        _check_box(point, lower, upper)
        return float(_weighted_manhattan_to_box(
            point, lower, upper, self._weights_for(point.shape[0])
        ))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ManhattanDistance(WeightedManhattanDistance):
    """Unweighted L1 distance."""

    name = 'manhattan'

    def __init__(self):
        super().__init__(None)


def _set_bits(mask: int):
    while mask:
        low = mask & -mask
        yield low.bit_length() - 1
        mask ^= low


class SparseLPNormDistance(DistanceFunction):
    """
    Lp norm over SparseVector objects.

    Each dimension is visited once: dimensions defined only in the first
    operand, only in the second, then in both. Undefined dimensions are 0.
    """

    name = 'sparse_lp'

    def __init__(self, p: float = 2.0):
        p = float(p)
        if not np.isfinite(p) or p <= 0:
            raise InvalidArgumentError(f"p must be a positive finite number, got {p}")
        self.p = p

    def distance(self, a, b) -> float:
        if a.dimensionality != b.dimensionality:
            raise DimensionMismatchError(a.dimensionality, b.dimensionality)
        p = self.p
        both = a.mask & b.mask
        agg = 0.0
        for dim in _set_bits(a.mask & ~both):
            agg += abs(a.values[dim]) ** p
        for dim in _set_bits(b.mask & ~both):
            agg += abs(b.values[dim]) ** p
        for dim in _set_bits(both):
            agg += abs(a.values[dim] - b.values[dim]) ** p
        return agg ** (1.0 / p)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(p={self.p})"


_DISTANCES = {
    'euclidean': EuclideanDistance,
    'sqeuclidean': SquaredEuclideanDistance,
    'manhattan': ManhattanDistance,
    'lp': LPNormDistance,
    'weighted_lp': WeightedLPNormDistance,
    'weighted_manhattan': WeightedManhattanDistance,
    'sparse_lp': SparseLPNormDistance,
}


def get_distance(name: str, **params) -> DistanceFunction:
    """
    Instantiate a distance function by name.

    Args:
        name: One of 'euclidean', 'sqeuclidean', 'manhattan', 'lp',
            'weighted_lp', 'weighted_manhattan', 'sparse_lp'
        **params: Constructor arguments (p, weights)

    Returns:
        DistanceFunction instance
    """
    try:
        cls = _DISTANCES[name]
    except KeyError:
        raise InvalidArgumentError(
            f"Unknown distance: {name!r} (available: {', '.join(sorted(_DISTANCES))})"
        ) from None
    return cls(**params)
