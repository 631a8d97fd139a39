"""
Tests for ranking/allocator.py: roll tables and pool share convergence.
"""

from collections import Counter

import numpy as np
import pytest

from slotfeed.config.constants import (
    RANDOM, TRENDING, PERSONALIZED, ROLL_MIN, ROLL_MAX
)
from slotfeed.ranking.allocator import (
    SlotAllocator, pool_for_roll, pool_table, expected_distribution
)


@pytest.mark.parametrize("roll,pool", [
    (0, RANDOM), (9, RANDOM),
    (10, TRENDING), (19, TRENDING),
    (20, PERSONALIZED), (57, PERSONALIZED), (99, PERSONALIZED),
])
def test_authenticated_table(roll, pool):
    assert pool_for_roll(roll, authenticated=True) == pool


@pytest.mark.parametrize("roll,pool", [
    (0, RANDOM), (29, RANDOM),
    (30, TRENDING), (99, TRENDING),
])
def test_anonymous_table(roll, pool):
    assert pool_for_roll(roll, authenticated=False) == pool


@pytest.mark.parametrize("authenticated", [True, False])
def test_tables_partition_roll_range(authenticated):
    table = pool_table(authenticated)
    for roll in range(ROLL_MIN, ROLL_MAX + 1):
        matches = [pool for first, last, pool in table if first <= roll <= last]
        assert len(matches) == 1, f"roll {roll} matched {matches}"


@pytest.mark.parametrize("roll", [-1, 100])
def test_out_of_range_roll_raises(roll):
    with pytest.raises(ValueError):
        pool_for_roll(roll, authenticated=True)


def test_expected_distribution():
    assert expected_distribution(True) == pytest.approx(
        {RANDOM: 0.1, TRENDING: 0.1, PERSONALIZED: 0.8}
    )
    assert expected_distribution(False) == pytest.approx({RANDOM: 0.3, TRENDING: 0.7})


@pytest.mark.parametrize("authenticated", [True, False])
def test_realized_distribution_converges(authenticated):
    allocator = SlotAllocator()
    rng = np.random.default_rng(123)
    n = 20_000
    
    counts = Counter(allocator.allocate(i, authenticated, rng).pool for i in range(n))
    
    for pool, share in expected_distribution(authenticated).items():
        assert abs(counts[pool] / n - share) < 0.015, (pool, counts[pool] / n, share)
    if not authenticated:
        assert counts[PERSONALIZED] == 0


def test_allocate_records_roll_and_position():
    rng = np.random.default_rng(5)
    slot = SlotAllocator().allocate(3, True, rng)
    assert slot.position == 3
    assert ROLL_MIN <= slot.roll_value <= ROLL_MAX
    assert slot.pool == pool_for_roll(slot.roll_value, True)
    assert slot.item_id is None
