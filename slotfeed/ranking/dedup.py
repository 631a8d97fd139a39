from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np

from slotfeed.data.schemas import CandidateItem
from slotfeed.config.constants import FALLBACK_ORDER
from slotfeed.ranking.pools import PoolSelector


def fallback_chain(rolled_pool: str, available_pools: Iterable[str]) -> List[str]:
    """Rolled pool first, then FALLBACK_ORDER minus the pool already tried."""
    available_pools = set(available_pools)
    return [rolled_pool] + [
        pool for pool in FALLBACK_ORDER
        if pool != rolled_pool and pool in available_pools
    ]


class DeduplicationEngine:
    """
    Tracks item ids placed in the current response and draws with fallback.
    
    `excluded` holds ids that must not be served at all (e.g. already served on
    a previous page); they block selection but are not part of `placed`.
    """
    
    def __init__(self, excluded: Optional[Iterable[str]] = None):
        self.placed: Set[str] = set()
        self._blocked: Set[str] = set(excluded or ())
    
    def mark(self, item_id: str):
        self.placed.add(item_id)
        self._blocked.add(item_id)
    
    def is_placed(self, item_id: str) -> bool:
        return item_id in self.placed
    
    def draw(
        self,
        rolled_pool: str,
        selectors: Dict[str, PoolSelector],
        eligible: List[CandidateItem],
        rng: np.random.Generator
    ) -> Optional[Tuple[CandidateItem, str]]:
        """
        Returns (item, serving_pool), or None when every pool is exhausted.
        """
        for pool in fallback_chain(rolled_pool, selectors.keys()):
            item = selectors[pool].select(eligible, self._blocked, rng)
            if item is not None:
                self.mark(item.item_id)
                return item, pool
        return None
