"""
Test cases for Relation and SparseVector.
"""

import numpy as np
import pytest

from simsearch import InvalidArgumentError, Relation, SparseVector


def test_dense_relation_defaults_to_positional_ids():
    """Ids default to 0..N-1 and keep insertion order."""
    rel = Relation(np.arange(6, dtype=float).reshape(3, 2))

    assert rel.size() == 3
    assert len(rel) == 3
    assert list(rel) == [0, 1, 2]
    assert rel.dimensionality() == 2
    np.testing.assert_array_equal(rel.get(2), [4.0, 5.0])


def test_relation_from_mapping(four_points):
    """Mapping order becomes iteration order."""
    assert four_points.ids() == ['A', 'B', 'C', 'D']
    np.testing.assert_array_equal(four_points.get('D'), [5.0, 6.0])
    assert 'C' in four_points
    assert 'Z' not in four_points


def test_relation_unknown_id_raises_key_error(four_points):
    with pytest.raises(KeyError):
        four_points.get('Z')


def test_relation_rejects_duplicate_ids():
    with pytest.raises(InvalidArgumentError):
        Relation(np.zeros((2, 2)), ids=['x', 'x'])


def test_relation_rejects_id_count_mismatch():
    with pytest.raises(InvalidArgumentError):
        Relation(np.zeros((3, 2)), ids=['x', 'y'])


def test_relation_from_ids_holds_ids_as_objects():
    rel = Relation.from_ids([3, 4, 5])

    assert rel.get(4) == 4
    assert not rel.is_dense
    assert rel.dimensionality() is None


def test_sparse_vector_mask_and_values():
    """The mask has one bit per defined dimension."""
    vec = SparseVector(5, {0: 1.5, 3: -2.0})

    assert vec.mask == 0b01001
    assert vec.value(3) == -2.0
    assert vec.value(1) == 0.0
    np.testing.assert_array_equal(vec.to_dense(), [1.5, 0.0, 0.0, -2.0, 0.0])


def test_sparse_vector_from_dense_keeps_nonzeros():
    vec = SparseVector.from_dense([0.0, 2.0, 0.0, 3.0])

    assert vec.values == {1: 2.0, 3: 3.0}
    assert vec.dimensionality == 4


def test_sparse_vector_rejects_out_of_range_dimension():
    with pytest.raises(InvalidArgumentError):
        SparseVector(3, {3: 1.0})


def test_sparse_relation(random_vectors):
    """A list of SparseVectors builds a non-dense relation."""
    vectors = [SparseVector.from_dense(v) for v in random_vectors[:10]]
    rel = Relation(vectors)

    assert not rel.is_dense
    assert rel.dimensionality() == 3
    with pytest.raises(InvalidArgumentError):
        rel.vectors


def test_sparse_relation_rejects_mixed_dimensionality():
    with pytest.raises(InvalidArgumentError):
        Relation([SparseVector(3, {0: 1.0}), SparseVector(4, {0: 1.0})])
