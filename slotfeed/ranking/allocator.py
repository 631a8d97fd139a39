from typing import Dict

import numpy as np

from slotfeed.data.schemas import Slot
from slotfeed.config.constants import (
    ROLL_MIN, ROLL_MAX, AUTHENTICATED_POOL_TABLE, ANONYMOUS_POOL_TABLE
)


def pool_table(authenticated: bool):
    return AUTHENTICATED_POOL_TABLE if authenticated else ANONYMOUS_POOL_TABLE


def pool_for_roll(roll: int, authenticated: bool) -> str:
    """Map a roll in [0, 99] to its pool. Pure function of (roll, auth state)."""
    for first, last, pool in pool_table(authenticated):
        if first <= roll <= last:
            return pool
    raise ValueError(f"Roll {roll} outside [{ROLL_MIN}, {ROLL_MAX}]")


def expected_distribution(authenticated: bool) -> Dict[str, float]:
    """Target share per pool for a requester state."""
    n_rolls = ROLL_MAX - ROLL_MIN + 1
    return {
        pool: (last - first + 1) / n_rolls
        for first, last, pool in pool_table(authenticated)
    }


class SlotAllocator:
    """
    Assigns each slot to a pool with one independent uniform roll.
    
    Slots never look at each other's rolls, so a single feed can land far from
    the target shares; only the long-run distribution is fixed.
    """
    
    def roll(self, rng: np.random.Generator) -> int:
        return int(rng.integers(ROLL_MIN, ROLL_MAX + 1))
    
    def allocate(self, position: int, authenticated: bool, rng: np.random.Generator) -> Slot:
        roll_value = self.roll(rng)
        return Slot(
            position=position,
            pool=pool_for_roll(roll_value, authenticated),
            roll_value=roll_value
        )
