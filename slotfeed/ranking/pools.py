"""
Pool selectors: RANDOM, TRENDING, PERSONALIZED.

Each selector draws one candidate by weighted random sampling, proportional to
its own score, among eligible candidates not yet placed in the response.
Selection is never a top-K cut.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

import numpy as np

from slotfeed.data.schemas import CandidateItem
from slotfeed.config.constants import RANDOM, TRENDING, PERSONALIZED
from slotfeed.ranking.scorers import CandidateScorer


def weighted_index(weights: np.ndarray, rng: np.random.Generator) -> int:
    """
    Index drawn with probability proportional to weight.
    Falls back to a uniform draw when no weight is positive.
    """
    weights = np.where(np.isfinite(weights) & (weights > 0), weights, 0.0)
    total = weights.sum()
    if total <= 0:
        return int(rng.integers(0, len(weights)))
    
    cumulative = np.cumsum(weights)
    target = rng.random() * total
    idx = int(np.searchsorted(cumulative, target, side='right'))
    return min(idx, len(weights) - 1)


class PoolSelector(ABC):
    """
    Common contract: select(eligible, placed, rng) -> CandidateItem or None.
    None signals exhaustion.
    """
    
    pool: str = None
    
    def __init__(self, scorer: CandidateScorer):
        self.scorer = scorer
        self._scores: Dict[str, float] = {}  # Scores are fixed for one request
    
    @abstractmethod
    def score(self, item: CandidateItem) -> float:
        ...
    
    def cached_score(self, item: CandidateItem) -> float:
        score = self._scores.get(item.item_id)
        if score is None:
            score = self.score(item)
            self._scores[item.item_id] = score
        return score
    
    def select(
        self,
        eligible: List[CandidateItem],
        placed: Set[str],
        rng: np.random.Generator
    ) -> Optional[CandidateItem]:
        available = [item for item in eligible if item.item_id not in placed]
        if not available:
            return None
        
        weights = np.array([self.cached_score(item) for item in available], dtype=np.float64)
        return available[weighted_index(weights, rng)]


class RandomPoolSelector(PoolSelector):
    """Recency and a light reputation factor only."""
    
    pool = RANDOM
    
    def score(self, item: CandidateItem) -> float:
        return self.scorer.random_score(item)


class TrendingPoolSelector(PoolSelector):
    
    pool = TRENDING
    
    def score(self, item: CandidateItem) -> float:
        return self.scorer.trending_score(item)


class PersonalizedPoolSelector(PoolSelector):
    
    pool = PERSONALIZED
    
    def score(self, item: CandidateItem) -> float:
        return self.scorer.personalized_score(item)


SELECTOR_CLASSES = {
    RANDOM: RandomPoolSelector,
    TRENDING: TrendingPoolSelector,
    PERSONALIZED: PersonalizedPoolSelector,
}


def build_selectors(scorer: CandidateScorer, pools) -> Dict[str, PoolSelector]:
    return {pool: SELECTOR_CLASSES[pool](scorer) for pool in pools}
