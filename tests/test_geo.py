"""
Tests for ranking/geo.py: hierarchical cell proximity boost.
"""

import pytest

from slotfeed.ranking.geo import GeographicProximityScorer, common_prefix_length


@pytest.fixture
def scorer():
    return GeographicProximityScorer()


@pytest.mark.parametrize("cell_a,cell_b,expected", [
    ("9q8yyk", "9q8yyk", 1.5),   # same cell
    ("9q8yyk", "9q8yym", 1.3),   # siblings: one level up
    ("9q8yab", "9q8ycd", 1.15),  # two levels up
    ("9q8abc", "9q8xyz", 1.05),  # three levels up
    ("9q1abc", "9q8xyz", 1.0),   # beyond the table
    ("dr5abc", "9q8xyz", 1.0),
])
def test_boost_table(scorer, cell_a, cell_b, expected):
    assert scorer.boost(cell_a, cell_b) == pytest.approx(expected)
    assert scorer.boost(cell_b, cell_a) == pytest.approx(expected)


@pytest.mark.parametrize("cell_a,cell_b", [
    (None, "9q8yyk"), ("9q8yyk", None), (None, None), ("", "9q8yyk"),
])
def test_missing_geo_is_neutral(scorer, cell_a, cell_b):
    assert scorer.distance_bucket(cell_a, cell_b) is None
    assert scorer.boost(cell_a, cell_b) == 1.0


def test_compares_at_coarser_resolution(scorer):
    # A coarse cell contains the finer one
    assert scorer.distance_bucket("9q8yy", "9q8yyk") == 0
    assert scorer.boost("9q8yy", "9q8yyk") == 1.5


def test_boost_monotonic_non_increasing(scorer):
    buckets = list(range(0, 8)) + [None]
    boosts = [scorer.boost_for_bucket(b) for b in buckets]
    assert all(a >= b for a, b in zip(boosts, boosts[1:])), boosts
    assert boosts[-1] == 1.0


def test_common_prefix_length():
    assert common_prefix_length("abc", "abd") == 2
    assert common_prefix_length("abc", "xbc") == 0
    assert common_prefix_length("abc", "abc") == 3
