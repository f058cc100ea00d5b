"""
Shared fixtures for the SimSearch test-suite.
"""

import numpy as np
import pytest

from simsearch import Relation


@pytest.fixture
def four_points():
    """Two tight pairs far apart: {A, B} and {C, D}."""
    return Relation.from_mapping({
        'A': [0.0, 0.0],
        'B': [1.0, 0.0],
        'C': [5.0, 5.0],
        'D': [5.0, 6.0],
    })


@pytest.fixture
def random_vectors():
    rng = np.random.RandomState(7)
    return rng.randn(300, 3)


@pytest.fixture
def random_relation(random_vectors):
    return Relation(random_vectors)


@pytest.fixture
def random_queries():
    rng = np.random.RandomState(11)
    return rng.randn(25, 3) * 1.5
