"""
Tests for ranking/scorers.py: decay, reputation, similarity and pool scores.
"""

import math
from datetime import timedelta
from types import MappingProxyType

import pytest

from slotfeed.data.schemas import InterestProfile
from slotfeed.config.feed_config import FeedConfig
from slotfeed.ranking.scorers import (
    CandidateScorer, time_decay, reputation_factor, cosine_similarity, topic_match
)

from fakes import NOW, DIM, make_item


def _profile(**kwargs) -> InterestProfile:
    defaults = dict(
        user_id="me",
        interest_vector=(),
        geo_index=None,
        explicit_topics=frozenset(),
        relationship_weights=MappingProxyType({}),
    )
    defaults.update(kwargs)
    return InterestProfile(**defaults)


def test_time_decay():
    assert time_decay(NOW, NOW, 24.0) == pytest.approx(1.0)
    assert time_decay(NOW - timedelta(hours=24), NOW, 24.0) == pytest.approx(math.exp(-1))
    assert time_decay(NOW + timedelta(hours=5), NOW, 24.0) == pytest.approx(1.0)
    older = time_decay(NOW - timedelta(hours=48), NOW, 24.0)
    newer = time_decay(NOW - timedelta(hours=2), NOW, 24.0)
    assert older < newer


@pytest.mark.parametrize("reputation,expected", [
    (100, 1.1), (95, 1.1), (94.9, 1.0), (70, 1.0), (50, 1.0),
    (40, 0.9), (30, 0.9), (10, 0.8), (0, 0.8), (150, 1.1), (-5, 0.8),
])
def test_reputation_factor(reputation, expected):
    assert reputation_factor(reputation, FeedConfig().REPUTATION_TIERS) == pytest.approx(expected)


def test_cosine_similarity():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert cosine_similarity([], [1, 0]) == 0.0
    assert cosine_similarity([1, 0, 0], [1, 0]) == 0.0
    assert cosine_similarity([0, 0], [1, 0]) == 0.0


def test_topic_match():
    assert topic_match({"a", "b"}, {"a"}) == pytest.approx(0.5)
    assert topic_match(set(), {"a"}) == 0.0
    assert topic_match({"a"}, frozenset()) == 0.0


def test_pool_scores_compose():
    config = FeedConfig(EMBEDDING_DIM=DIM)
    scorer = CandidateScorer(config, NOW)
    item = make_item("p1", engagement=20.0, age_hours=24.0, reputation=96)
    
    decay = math.exp(-1)
    assert scorer.random_score(item) == pytest.approx(decay * 1.1)
    assert scorer.trending_score(item) == pytest.approx(20.0 * decay * 1.1)
    # Anonymous scorer: no personalization
    assert scorer.personalized_score(item) == pytest.approx(scorer.trending_score(item))


def test_cold_start_personalized_equals_base_score():
    config = FeedConfig(EMBEDDING_DIM=DIM)
    scorer = CandidateScorer(config, NOW, _profile())
    items = [
        make_item("p1", author_id="x", embedding=[1, 0, 0, 0], geo_index="9q8yyk", topics={"transit"}),
        make_item("p2", author_id="y", embedding=[0, 0, 0, 0], engagement=3.0, age_hours=30),
        make_item("p3", author_id="z", embedding=[], reputation=20),
    ]
    for item in items:
        assert scorer.personalization_multiplier(item) == pytest.approx(1.0)
        assert scorer.personalized_score(item) == pytest.approx(scorer.trending_score(item))


def test_personalized_multiplier_combines_signals():
    config = FeedConfig(EMBEDDING_DIM=DIM)
    profile = _profile(
        interest_vector=(1.0, 0.0, 0.0, 0.0),
        geo_index="9q8yyk",
        explicit_topics=frozenset({"transit", "housing"}),
        relationship_weights=MappingProxyType({"sub": 2.0}),
    )
    scorer = CandidateScorer(config, NOW, profile)
    item = make_item("p1", author_id="sub", embedding=[1, 0, 0, 0], geo_index="9q8yyk", topics={"transit"})
    
    expected = 2.0 * (1.0 + 1.0 + config.TOPIC_WEIGHT * 0.5) * 1.5
    assert scorer.personalization_multiplier(item) == pytest.approx(expected)
    
    unrelated = make_item("p2", author_id="other", embedding=[0, 1, 0, 0])
    assert scorer.personalization_multiplier(unrelated) == pytest.approx(1.0)
