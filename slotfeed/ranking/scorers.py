"""
Per-candidate score components shared by the pool selectors.

    random        = time_decay * reputation_factor
    trending      = engagement * time_decay * reputation_factor
    personalized  = trending * relationship_weight
                    * (1 + cosine + TOPIC_WEIGHT * topic_match) * geo_boost
"""

import math
from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from slotfeed.data.schemas import CandidateItem, InterestProfile
from slotfeed.config.constants import UNRELATED_WEIGHT
from slotfeed.config.feed_config import FeedConfig
from slotfeed.ranking.geo import GeographicProximityScorer


def time_decay(created_at: datetime, now: datetime, decay_hours: float) -> float:
    """Exponential decay in (0, 1]; future timestamps count as age 0."""
    age_hours = max(0.0, (now - created_at).total_seconds() / 3600.0)
    return math.exp(-age_hours / decay_hours)


def reputation_factor(reputation: float, tiers) -> float:
    """Visibility multiplier for the author's reputation tier."""
    reputation = max(0.0, min(100.0, reputation))
    for min_reputation, multiplier in tiers:
        if reputation >= min_reputation:
            return multiplier
    return tiers[-1][1]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine in [-1, 1]; 0.0 for empty, mismatched or zero vectors."""
    if len(a) == 0 or len(a) != len(b):
        return 0.0
    
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    
    if norm_a == 0 or norm_b == 0:
        return 0.0
    
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def topic_match(explicit_topics, item_topics) -> float:
    """Fraction of the user's explicit topics present on the item."""
    if not explicit_topics or not item_topics:
        return 0.0
    return len(set(explicit_topics) & set(item_topics)) / len(explicit_topics)


def relationship_weight(profile: InterestProfile, author_id: str) -> float:
    return profile.relationship_weights.get(author_id, UNRELATED_WEIGHT)


class CandidateScorer:
    """
    Computes pool scores for one request (fixed `now` and profile).
    """
    
    def __init__(
        self,
        config: FeedConfig,
        now: datetime,
        profile: Optional[InterestProfile] = None,
        geo_scorer: Optional[GeographicProximityScorer] = None
    ):
        self.config = config
        self.now = now
        self.profile = profile
        self.geo_scorer = geo_scorer or GeographicProximityScorer()
    
    def decay(self, item: CandidateItem) -> float:
        return time_decay(item.created_at, self.now, self.config.TIME_DECAY_HOURS)
    
    def reputation(self, item: CandidateItem) -> float:
        return reputation_factor(item.author_reputation, self.config.REPUTATION_TIERS)
    
    def random_score(self, item: CandidateItem) -> float:
        return self.decay(item) * self.reputation(item)
    
    def trending_score(self, item: CandidateItem) -> float:
        return item.engagement_score * self.decay(item) * self.reputation(item)
    
    def personalization_multiplier(self, item: CandidateItem) -> float:
        """1.0 for a cold-start profile or an anonymous requester."""
        profile = self.profile
        if profile is None:
            return 1.0
        
        similarity = cosine_similarity(profile.interest_vector, item.embedding)
        topics = topic_match(profile.explicit_topics, item.topics)
        geo_boost = self.geo_scorer.boost(profile.geo_index, item.geo_index)
        
        return (
            relationship_weight(profile, item.author_id)
            * (1.0 + similarity + self.config.TOPIC_WEIGHT * topics)
            * geo_boost
        )
    
    def personalized_score(self, item: CandidateItem) -> float:
        return self.trending_score(item) * self.personalization_multiplier(item)
