"""
Test cases for evaluation helpers.
"""

import numpy as np
import pytest

from simsearch import OPTICS, EuclideanDistance, InvalidArgumentError, KNNList, OPTICSConfig
from simsearch.utils.metrics import (
    compute_recall,
    extract_dbscan_labels,
    knn_lists_agree,
    simplified_silhouette,
)


def test_recall():
    predicted = [KNNList([1, 2, 3], [0.1, 0.2, 0.3]), [4, 5, 9]]
    truth = [[1, 2, 3], [4, 5, 6]]

    assert compute_recall(predicted, truth, k=3) == pytest.approx(100 * (1.0 + 2 / 3) / 2)


def test_recall_length_mismatch():
    with pytest.raises(InvalidArgumentError):
        compute_recall([[1]], [[1], [2]])


def test_knn_lists_agree_up_to_ties():
    a = KNNList(['a', 'b', 'c'], [0.5, 1.0, 1.0])
    b = KNNList(['a', 'c', 'd'], [0.5, 1.0, 1.0])

    assert knn_lists_agree(a, b)
    assert not knn_lists_agree(a, KNNList(['b', 'a', 'c'], [0.5, 1.0, 1.0]))
    assert not knn_lists_agree(a, a[:2])


def test_silhouette_of_separated_pairs(four_points):
    score = simplified_silhouette(four_points, [0, 0, 1, 1])

    assert 0.9 < score <= 1.0
    mapping = {'A': 0, 'B': 0, 'C': 1, 'D': 1}
    assert simplified_silhouette(four_points, mapping) == score


def test_silhouette_noise_handling(four_points):
    labels = [0, 0, 1, -1]

    singletons = simplified_silhouette(four_points, labels, noise='singletons')
    merged = simplified_silhouette(four_points, labels, noise='merge')

    assert -1.0 <= singletons <= 1.0
    assert -1.0 <= merged <= 1.0
    with pytest.raises(InvalidArgumentError):
        simplified_silhouette(four_points, labels, noise='drop')


def test_silhouette_label_count(four_points):
    with pytest.raises(InvalidArgumentError):
        simplified_silhouette(four_points, [0, 1])


def test_dbscan_extraction(four_points):
    order = OPTICS(EuclideanDistance(), OPTICSConfig(epsilon=2.0, min_pts=2)).run(four_points)

    labels = extract_dbscan_labels(order, four_points, eps=1.5)

    assert labels.tolist() == [0, 0, 1, 1]


def test_dbscan_extraction_small_eps_is_noise(four_points):
    order = OPTICS(EuclideanDistance(), OPTICSConfig(epsilon=2.0, min_pts=2)).run(four_points)

    labels = extract_dbscan_labels(order, four_points, eps=0.5)

    assert np.all(labels == -1)
