"""
In-Memory Relations
===================

A Relation maps opaque, hashable identifiers to data objects (dense
vectors, sparse vectors, or the identifiers themselves when distances come
from a precomputed cache). Iteration order over identifiers is the
insertion order and never changes for the lifetime of the relation.

Example:
    >>> rel = Relation(np.array([[0., 0.], [1., 0.]]), ids=['A', 'B'])
    >>> rel.get('B')
    array([1., 0.])
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Sequence

from simsearch.exceptions import InvalidArgumentError


@dataclass
class SparseVector:
    """
    Sparse numeric vector.

    Only dimensions present in ``values`` are defined; every other dimension
    reads as 0. ``mask`` is the bitmask of defined dimensions (bit i set for
    dimension i).
    """

    dimensionality: int
    values: Dict[int, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.dimensionality < 0:
            raise InvalidArgumentError(
                f"dimensionality must be >= 0, got {self.dimensionality}"
            )
        for dim in self.values:
            if not 0 <= dim < self.dimensionality:
                raise InvalidArgumentError(
                    f"Dimension {dim} out of range for dimensionality {self.dimensionality}"
                )
        self.values = {int(d): float(v) for d, v in self.values.items()}
        mask = 0
        for dim in self.values:
            mask |= 1 << dim
        self._mask = mask

    @property
    def mask(self) -> int:
        return self._mask

    def value(self, dim: int) -> float:
        return self.values.get(dim, 0.0)

    @classmethod
    def from_dense(cls, vector: Sequence[float]) -> 'SparseVector':
        """Build from a dense vector, keeping only the nonzero entries."""
        arr = np.asarray(vector, dtype=np.float64)
        nonzero = np.flatnonzero(arr)
        return cls(len(arr), {int(d): float(arr[d]) for d in nonzero})

    def to_dense(self) -> np.ndarray:
        out = np.zeros(self.dimensionality, dtype=np.float64)
        for dim, val in self.values.items():
            out[dim] = val
        return out


class Relation:
    """
    Random-access mapping from identifiers to data objects.

    Args:
        data: 2-D array of shape (N, d) for dense vectors, or a sequence of
            objects (e.g. SparseVector instances)
        ids: Identifiers, one per object (default: 0..N-1)
    """

    def __init__(self, data, ids: Optional[Iterable[Hashable]] = None):
        if isinstance(data, np.ndarray) or (
            len(data) > 0 and not isinstance(data[0], SparseVector)
            and np.ndim(data[0]) == 1
        ):
            objects = np.ascontiguousarray(np.asarray(data, dtype=np.float64))
            if objects.ndim == 1 and objects.size == 0:
                objects = objects.reshape(0, 0)
            if objects.ndim != 2:
                raise InvalidArgumentError(
                    f"Dense data must be 2-dimensional, got shape {objects.shape}"
                )
            self._dense = True
        else:
            objects = list(data)
            self._dense = False
            sparse_dims = {o.dimensionality for o in objects if isinstance(o, SparseVector)}
            if len(sparse_dims) > 1:
                raise InvalidArgumentError(
                    f"Sparse vectors must share one dimensionality, got {sorted(sparse_dims)}"
                )

        n = len(objects)
        self._ids: List[Hashable] = list(range(n)) if ids is None else list(ids)
        if len(self._ids) != n:
            raise InvalidArgumentError(
                f"Got {len(self._ids)} ids for {n} objects"
            )
        self._positions: Dict[Hashable, int] = {}
        for pos, ident in enumerate(self._ids):
            if ident in self._positions:
                raise InvalidArgumentError(f"Duplicate identifier: {ident!r}")
            self._positions[ident] = pos
        self._objects = objects

    @classmethod
    def from_mapping(cls, mapping: Mapping[Hashable, Sequence[float]]) -> 'Relation':
        """Build a dense relation from an ``{id: vector}`` mapping."""
        ids = list(mapping.keys())
        return cls(np.array([mapping[i] for i in ids], dtype=np.float64), ids=ids)

    @classmethod
    def from_ids(cls, ids: Iterable[Hashable]) -> 'Relation':
        """Relation whose objects are the identifiers themselves."""
        ids = list(ids)
        rel = cls([], ids=[])
        rel._ids = ids
        rel._positions = {}
        for pos, ident in enumerate(ids):
            if ident in rel._positions:
                raise InvalidArgumentError(f"Duplicate identifier: {ident!r}")
            rel._positions[ident] = pos
        rel._objects = ids
        return rel

    def size(self) -> int:
        return len(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._ids)

    def __contains__(self, ident) -> bool:
        return ident in self._positions

    def ids(self) -> List[Hashable]:
        return list(self._ids)

    def get(self, ident):
        """Return the object stored for ``ident`` (KeyError if unknown)."""
        return self._objects[self._positions[ident]]

    def position(self, ident) -> int:
        return self._positions[ident]

    @property
    def is_dense(self) -> bool:
        return self._dense

    @property
    def vectors(self) -> np.ndarray:
        """Dense (N, d) matrix backing the relation."""
        if not self._dense:
            raise InvalidArgumentError("Relation does not hold dense vectors")
        return self._objects

    def dimensionality(self) -> Optional[int]:
        """Shared dimensionality, or None for non-vector relations."""
        if self._dense:
            return int(self._objects.shape[1])
        if self._objects and isinstance(self._objects[0], SparseVector):
            return self._objects[0].dimensionality
        return None
