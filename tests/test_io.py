"""
Test cases for precomputed distance files.
"""

import numpy as np
import pytest

from simsearch import DataFormatError, EuclideanDistance, Relation
from simsearch.utils.io import (
    DistanceCache,
    distance_cache_from_relation,
    parse_distance_file,
    write_distance_file,
)


VALID_LINES = [
    "# three objects\n",
    "0 1 1.5\n",
    "\n",
    "0 2 2.0\n",
    "2 1 0.25\n",
]


def test_parse_lines():
    cache = parse_distance_file(VALID_LINES)

    assert len(cache) == 3
    assert cache.ids() == [0, 1, 2]
    assert cache.get(1, 0) == 1.5
    assert cache.get(1, 2) == 0.25
    assert cache.get(2, 2) == 0.0


def test_missing_distance_raises_key_error():
    cache = DistanceCache()
    cache.put(0, 1, 1.0)
    with pytest.raises(KeyError):
        cache.get(0, 5)


def test_write_and_read_back(tmp_path):
    rng = np.random.RandomState(0)
    relation = Relation(rng.randn(12, 3))
    cache = distance_cache_from_relation(relation, EuclideanDistance())
    path = tmp_path / "distances.txt"

    write_distance_file(path, cache)
    loaded = parse_distance_file(path)

    assert list(loaded.items()) == list(cache.items())
    assert len(loaded) == 12 * 11 // 2


@pytest.mark.parametrize("line, message", [
    ("0 1", "Less than three values"),
    ("0 1 2.0 3", "More than three values"),
    ("a 1 2.0", "id1 is not an integer"),
    ("0 b 2.0", "id2 is not an integer"),
    ("0 1 far", "is not a number"),
    ("0 1 -1.0", "must be >= 0"),
    ("0 1 nan", "must be >= 0"),
])
def test_malformed_line(line, message):
    with pytest.raises(DataFormatError) as excinfo:
        parse_distance_file(["# header", "0 0 0.0", line])

    assert excinfo.value.line_number == 3
    assert message in str(excinfo.value)
    assert str(excinfo.value).startswith("Error in line 3: ")


def test_missing_pair_rejected():
    with pytest.raises(DataFormatError) as excinfo:
        parse_distance_file(["0 1 1.0", "1 2 1.0"])

    assert excinfo.value.line_number is None
    assert "0 to 2" in str(excinfo.value)


def test_ids_need_not_start_at_zero():
    cache = parse_distance_file(["5 6 1.0", "5 7 2.0", "6 7 3.0"])

    assert cache.ids() == [5, 6, 7]


def test_matrix_conversion():
    matrix = np.array([
        [0.0, 1.0, 4.0],
        [1.0, 0.0, 2.0],
        [4.0, 2.0, 0.0],
    ])

    cache = DistanceCache.from_matrix(matrix, first_id=10)

    assert cache.ids() == [10, 11, 12]
    assert cache.get(12, 10) == 4.0
    np.testing.assert_array_equal(cache.to_matrix(), matrix)


def test_cache_requires_integer_ids(four_points):
    with pytest.raises(ValueError):
        distance_cache_from_relation(four_points, EuclideanDistance())


def test_undecodable_bytes_report_line_number(tmp_path):
    path = tmp_path / "distances.txt"
    path.write_bytes(b"0 1 1.0\n0 \xff 2.0\n")

    with pytest.raises(DataFormatError) as excinfo:
        parse_distance_file(path)

    assert excinfo.value.line_number == 2


@pytest.mark.parametrize("line, message", [
    ("1_0 1 0.5", "id1 is not an integer"),
    ("0 ١ 0.5", "id2 is not an integer"),
    ("0 1 0_5", "is not a number"),
    ("0 1 0x1p0", "is not a number"),
])
def test_strict_number_syntax(line, message):
    with pytest.raises(DataFormatError) as excinfo:
        parse_distance_file([line])

    assert excinfo.value.line_number == 1
    assert message in str(excinfo.value)


def test_accepted_number_forms():
    cache = parse_distance_file(["+0 1 1e-3", "0 2 .5", "1 2 2."])

    assert cache.get(0, 1) == 0.001
    assert cache.get(0, 2) == 0.5
    assert cache.get(1, 2) == 2.0
