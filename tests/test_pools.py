"""
Tests for ranking/pools.py: weighted draws, dedup exclusion and exhaustion.
"""

from collections import Counter
from types import MappingProxyType

import numpy as np
import pytest

from slotfeed.data.schemas import InterestProfile
from slotfeed.config.constants import RANDOM, TRENDING, PERSONALIZED
from slotfeed.config.feed_config import FeedConfig
from slotfeed.ranking.pools import (
    RandomPoolSelector, TrendingPoolSelector, PersonalizedPoolSelector,
    build_selectors, weighted_index
)
from slotfeed.ranking.scorers import CandidateScorer

from fakes import NOW, DIM, make_item, make_items


@pytest.fixture
def scorer():
    return CandidateScorer(FeedConfig(EMBEDDING_DIM=DIM), NOW)


def test_weighted_index_skips_zero_weights():
    rng = np.random.default_rng(0)
    for _ in range(200):
        assert weighted_index(np.array([0.0, 0.0, 5.0]), rng) == 2


def test_weighted_index_uniform_when_all_zero():
    rng = np.random.default_rng(0)
    seen = {weighted_index(np.array([0.0, 0.0, 0.0]), rng) for _ in range(200)}
    assert seen == {0, 1, 2}


def test_weighted_index_ignores_non_finite():
    rng = np.random.default_rng(0)
    for _ in range(100):
        assert weighted_index(np.array([np.nan, 1.0, np.inf]), rng) == 1


@pytest.mark.parametrize("selector_cls", [RandomPoolSelector, TrendingPoolSelector, PersonalizedPoolSelector])
def test_selectors_exclude_placed_and_signal_exhaustion(scorer, selector_cls):
    selector = selector_cls(scorer)
    items = make_items(4)
    rng = np.random.default_rng(1)
    
    placed = {"p0", "p1", "p2"}
    for _ in range(50):
        assert selector.select(items, placed, rng).item_id == "p3"
    
    assert selector.select(items, {"p0", "p1", "p2", "p3"}, rng) is None
    assert selector.select([], set(), rng) is None


def test_trending_prefers_engagement_but_stays_probabilistic(scorer):
    selector = TrendingPoolSelector(scorer)
    items = [make_item("hot", engagement=100.0), make_item("cold", engagement=1.0)]
    rng = np.random.default_rng(2)
    
    counts = Counter(selector.select(items, set(), rng).item_id for _ in range(2000))
    assert counts["hot"] > 1800
    assert counts["cold"] > 0


def test_random_pool_ignores_engagement(scorer):
    selector = RandomPoolSelector(scorer)
    items = [make_item("hot", engagement=1000.0), make_item("cold", engagement=0.0)]
    rng = np.random.default_rng(3)
    
    counts = Counter(selector.select(items, set(), rng).item_id for _ in range(4000))
    assert abs(counts["hot"] / 4000 - 0.5) < 0.05


def test_personalized_favors_subscribed_author():
    profile = InterestProfile(
        user_id="me",
        interest_vector=(),
        geo_index=None,
        explicit_topics=frozenset(),
        relationship_weights=MappingProxyType({"sub": 2.0}),
    )
    scorer = CandidateScorer(FeedConfig(EMBEDDING_DIM=DIM), NOW, profile)
    selector = PersonalizedPoolSelector(scorer)
    items = [make_item("from_sub", author_id="sub"), make_item("from_other", author_id="other")]
    rng = np.random.default_rng(4)
    
    counts = Counter(selector.select(items, set(), rng).item_id for _ in range(3000))
    assert 0.6 < counts["from_sub"] / 3000 < 0.73


def test_scores_are_cached_per_request(scorer):
    selector = TrendingPoolSelector(scorer)
    item = make_item("p1", engagement=4.0)
    first = selector.cached_score(item)
    item.engagement_score = 400.0
    assert selector.cached_score(item) == first


def test_build_selectors(scorer):
    selectors = build_selectors(scorer, [RANDOM, TRENDING])
    assert set(selectors) == {RANDOM, TRENDING}
    assert selectors[RANDOM].pool == RANDOM
    assert isinstance(build_selectors(scorer, [PERSONALIZED])[PERSONALIZED], PersonalizedPoolSelector)
