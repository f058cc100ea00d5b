"""
Precomputed Distance I/O for SimSearch
======================================

Reading and writing distance caches in the plain-text pair format:

    # comment
    id1 id2 distance

One line per unordered pair of integer ids; fields are whitespace
separated. Blank lines and lines starting with '#' are ignored. A file is
only accepted when every pair of ids between the smallest and the largest
id is present.
"""

import re
import numpy as np
from pathlib import Path
from typing import Dict, Iterable, Iterator, Tuple, Union
from scipy.spatial.distance import squareform

from simsearch.core.distances import DistanceFunction
from simsearch.exceptions import DataFormatError, InvalidArgumentError
from simsearch.relation import Relation


def _pair(i: int, j: int) -> Tuple[int, int]:
    return (i, j) if i <= j else (j, i)


class DistanceCache:
    """Symmetric mapping from unordered id pairs to distances."""

    def __init__(self):
        self._values: Dict[Tuple[int, int], float] = {}
        self.min_id: Union[int, None] = None
        self.max_id: Union[int, None] = None

    def put(self, i: int, j: int, distance: float) -> None:
        self._values[_pair(i, j)] = float(distance)
        lo, hi = min(i, j), max(i, j)
        self.min_id = lo if self.min_id is None else min(self.min_id, lo)
        self.max_id = hi if self.max_id is None else max(self.max_id, hi)

    def get(self, i: int, j: int) -> float:
        key = _pair(i, j)
        if key in self._values:
            return self._values[key]
        if i == j:
            return 0.0
        raise KeyError(f"No distance stored for ({i}, {j})")

    def __contains__(self, pair) -> bool:
        return _pair(*pair) in self._values

    def __len__(self) -> int:
        return len(self._values)

    def items(self) -> Iterator[Tuple[Tuple[int, int], float]]:
        return iter(sorted(self._values.items()))

    def ids(self) -> list:
        """All ids in [min_id, max_id]."""
        if self.min_id is None:
            return []
        return list(range(self.min_id, self.max_id + 1))

    def check_complete(self) -> None:
        """Raise DataFormatError if any pair in [min_id, max_id] is missing."""
        ids = self.ids()
        for a, i1 in enumerate(ids):
            for i2 in ids[a + 1:]:
                if (i1, i2) not in self._values:
                    raise DataFormatError(
                        f"Distance value for {i1} to {i2} is missing"
                    )

    def to_matrix(self) -> np.ndarray:
        """Dense (n, n) matrix over ``ids()``, e.g. for metric='precomputed'."""
        self.check_complete()
        ids = self.ids()
        condensed = np.array(
            [self._values[(i1, i2)] for a, i1 in enumerate(ids) for i2 in ids[a + 1:]],
            dtype=np.float64
        )
        matrix = squareform(condensed) if len(ids) > 1 else np.zeros((len(ids), len(ids)))
        for pos, ident in enumerate(ids):
            if (ident, ident) in self._values:
                matrix[pos, pos] = self._values[(ident, ident)]
        return matrix

    @classmethod
    def from_matrix(cls, matrix: np.ndarray, first_id: int = 0) -> 'DistanceCache':
        """Build a cache from a symmetric (n, n) distance matrix."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise InvalidArgumentError(f"Expected a square matrix, got shape {matrix.shape}")
        cache = cls()
        n = matrix.shape[0]
        if n == 1:
            cache.put(first_id, first_id, matrix[0, 0])
        condensed = squareform(matrix, checks=False) if n > 1 else []
        k = 0
        for a in range(n):
            for b in range(a + 1, n):
                cache.put(first_id + a, first_id + b, condensed[k])
                k += 1
        return cache


class PrecomputedDistance(DistanceFunction):
    """
    Distance function backed by a DistanceCache.

    Operates on integer ids; use it with ``Relation.from_ids(cache.ids())``.
    """

    name = 'precomputed'

    def __init__(self, cache: DistanceCache):
        self.cache = cache

    def distance(self, a, b) -> float:
        return self.cache.get(int(a), int(b))

    def __repr__(self) -> str:
        return f"PrecomputedDistance({len(self.cache)} pairs)"


_INTEGER = re.compile(r"[+-]?[0-9]+\Z")
_DECIMAL = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|(?i:nan|inf|infinity))\Z"
)


def _read_lines(source) -> Iterable[Union[str, bytes]]:
    # Files are read as bytes so decoding errors carry their line number
    if isinstance(source, (str, Path)):
        with open(source, 'rb') as f:
            yield from f
    else:
        yield from source


def parse_distance_file(source, verbose: bool = False) -> DistanceCache:
    """
    Parse a precomputed distance file.

    Args:
        source: Path to the file, or an iterable of lines
        verbose: Print a summary after parsing

    Returns:
        Complete DistanceCache

    Raises:
        DataFormatError: malformed line (with its 1-based number) or a
            missing pair
    """
    cache = DistanceCache()
    line_number = 0
    for line_number, line in enumerate(_read_lines(source), start=1):
        if isinstance(line, bytes):
            try:
                line = line.decode('utf-8')
            except UnicodeDecodeError:
                raise DataFormatError("line is not valid UTF-8 text", line_number) from None
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue

        tokens = stripped.split()
        if len(tokens) < 3:
            raise DataFormatError("Less than three values", line_number)
        if len(tokens) > 3:
            raise DataFormatError("More than three values", line_number)

        if not _INTEGER.match(tokens[0]):
            raise DataFormatError("id1 is not an integer", line_number)
        if not _INTEGER.match(tokens[1]):
            raise DataFormatError("id2 is not an integer", line_number)
        if not _DECIMAL.match(tokens[2]):
            raise DataFormatError(f"distance {tokens[2]!r} is not a number", line_number)
        id1, id2, distance = int(tokens[0]), int(tokens[1]), float(tokens[2])
        if np.isnan(distance) or distance < 0:
            raise DataFormatError(f"distance must be >= 0, got {tokens[2]}", line_number)

        cache.put(id1, id2, distance)

    cache.check_complete()

    if verbose:
        print(f"Parsed {len(cache):,} distances for {len(cache.ids()):,} ids "
              f"({line_number:,} lines)")

    return cache


def write_distance_file(filepath: Union[str, Path], cache: DistanceCache) -> None:
    """
    Write a DistanceCache in the pair format.

    Values are written with ``repr`` so reading them back is exact.
    """
    with open(filepath, 'w') as f:
        f.write("# id1 id2 distance\n")
        for (i1, i2), distance in cache.items():
            f.write(f"{i1} {i2} {distance!r}\n")


def distance_cache_from_relation(relation: Relation, distance: DistanceFunction) -> DistanceCache:
    """
    Compute all pairwise distances of a relation with integer ids.

    Args:
        relation: Relation whose ids are integers
        distance: Distance function

    Returns:
        DistanceCache with one entry per unordered pair
    """
    ids = relation.ids()
    for ident in ids:
        if not isinstance(ident, (int, np.integer)) or isinstance(ident, bool):
            raise InvalidArgumentError(f"Distance caches need integer ids, got {ident!r}")

    cache = DistanceCache()
    for a, i1 in enumerate(ids):
        rest = ids[a + 1:]
        if relation.is_dense:
            dists = distance.batch_distance(relation.get(i1), relation.vectors[a + 1:]).tolist()
        else:
            dists = [distance.distance(relation.get(i1), relation.get(i2)) for i2 in rest]
        for i2, dist in zip(rest, dists):
            cache.put(int(i1), int(i2), dist)
    return cache
