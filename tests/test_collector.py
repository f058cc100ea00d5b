"""
Test cases for KNNHeap and KNNList.
"""

import math

import numpy as np
import pytest

from simsearch import InvalidArgumentError, KNNHeap, KNNList


def test_heap_keeps_k_smallest_sorted():
    heap = KNNHeap(3)
    for ident, dist in enumerate([5.0, 1.0, 4.0, 2.0, 3.0]):
        heap.insert(dist, ident)

    result = heap.to_knn_list()

    assert result.ids == (1, 3, 4)
    assert result.distances.tolist() == [1.0, 2.0, 3.0]


def test_kth_distance_infinite_until_full():
    heap = KNNHeap(2)
    assert heap.kth_distance() == math.inf

    assert heap.insert(1.0, 'a') == math.inf
    assert not heap.is_full
    assert heap.insert(3.0, 'b') == 3.0
    assert heap.is_full
    assert heap.insert(2.0, 'c') == 2.0


def test_ties_keep_insertion_order():
    heap = KNNHeap(3)
    heap.insert(1.0, 'x')
    heap.insert(1.0, 'y')
    heap.insert(0.5, 'z')
    heap.insert(1.0, 'w')

    assert heap.to_knn_list().ids == ('z', 'x', 'y')


def test_insert_worse_than_bound_is_ignored():
    heap = KNNHeap(1)
    heap.insert(1.0, 'a')
    heap.insert(2.0, 'b')
    heap.insert(1.0, 'c')

    assert heap.to_knn_list().ids == ('a',)
    assert len(heap) == 1


@pytest.mark.parametrize("k", [0, -3])
def test_invalid_k(k):
    with pytest.raises(InvalidArgumentError):
        KNNHeap(k)


def test_to_knn_list_transform():
    heap = KNNHeap(2)
    heap.insert(4.0, 'a')
    heap.insert(9.0, 'b')

    result = heap.to_knn_list(math.sqrt)

    assert result.distances.tolist() == [2.0, 3.0]


def test_knn_list_access():
    result = KNNList(['a', 'b', 'c'], [0.1, 0.2, 0.3])

    assert len(result) == 3
    assert result[0] == ('a', 0.1)
    assert list(result) == [('a', 0.1), ('b', 0.2), ('c', 0.3)]
    assert result[:2] == KNNList(['a', 'b'], [0.1, 0.2])
    assert result.kth_distance() == 0.3
    assert isinstance(result.distances, np.ndarray)


def test_empty_knn_list():
    result = KNNList([], [])

    assert len(result) == 0
    assert result.kth_distance() == math.inf
    assert repr(result) == "KNNList([])"
