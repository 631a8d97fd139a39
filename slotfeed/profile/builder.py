"""
Builds InterestProfile from social graph, behavioral history, explicit
preferences and geography.

Signal sources (weight applied to each gathered embedding):
    Liked items (last 50)    relationship weight of the item's author
                             (SUBSCRIBED 2.0 / FRIEND 1.5 / FOLLOWED 1.0,
                             unrelated authors 1.0)
    Own items (last 20)      FeedConfig.SELF_WEIGHT
    Explicit topics          kept as a set, scored additively, never blended
    Location cell            attached as-is

Any source that raises or times out is logged and omitted; building a profile
never fails.
"""

import logging
import time
from types import MappingProxyType
from typing import Dict, List, Optional, Tuple

import numpy as np

from slotfeed.data.schemas import InterestProfile, Relationships, BehaviorSignal
from slotfeed.data.stores import (
    SocialGraphStore, BehaviorStore, GeoResolver, PreferenceStore, SignalCaller
)
from slotfeed.config.constants import (
    SUBSCRIBED, FRIEND, FOLLOWED, RELATIONSHIP_WEIGHTS, UNRELATED_WEIGHT,
    MAX_RECENT_LIKES, MAX_RECENT_AUTHORED
)
from slotfeed.config.feed_config import FeedConfig
from slotfeed.profile.cache import TTLCache

logger = logging.getLogger(__name__)

SOURCE_RELATIONSHIPS = "relationships"
SOURCE_LIKES = "likes"
SOURCE_AUTHORED = "authored"
SOURCE_TOPICS = "topics"
SOURCE_GEO = "geo"
ALL_SOURCES = (SOURCE_RELATIONSHIPS, SOURCE_LIKES, SOURCE_AUTHORED, SOURCE_TOPICS, SOURCE_GEO)


def build_relationship_weights(user_id: str, relationships: Relationships) -> Dict[str, float]:
    """Strongest relationship class wins when a user appears in several sets."""
    weights: Dict[str, float] = {}
    for kind, related_ids in (
        (FOLLOWED, relationships.follows),
        (FRIEND, relationships.friends),
        (SUBSCRIBED, relationships.subscriptions),
    ):
        weight = RELATIONSHIP_WEIGHTS[kind]
        for related_id in related_ids:
            if related_id == user_id:
                continue
            weights[related_id] = max(weights.get(related_id, 0.0), weight)
    return weights


def weighted_mean_vector(
    weighted_embeddings: List[Tuple[List[float], float]],
    dimension: int
) -> Tuple[float, ...]:
    """
    Weighted mean of embeddings with the expected dimension.
    Returns () when nothing usable was gathered.
    """
    usable = [
        (embedding, weight) for embedding, weight in weighted_embeddings
        if len(embedding) == dimension and weight > 0
    ]
    if not usable:
        return ()
    
    matrix = np.asarray([embedding for embedding, _ in usable], dtype=np.float64)
    weights = np.asarray([weight for _, weight in usable], dtype=np.float64)
    
    vector = (matrix * weights[:, None]).sum(axis=0) / weights.sum()
    if not np.all(np.isfinite(vector)):
        return ()
    return tuple(float(v) for v in vector)


class UserInterestProfileBuilder:
    
    def __init__(
        self,
        social_store: Optional[SocialGraphStore],
        behavior_store: Optional[BehaviorStore],
        geo_resolver: Optional[GeoResolver],
        preference_store: Optional[PreferenceStore],
        config: Optional[FeedConfig] = None,
        caller: Optional[SignalCaller] = None,
        cache: Optional[TTLCache] = None
    ):
        self.social_store = social_store
        self.behavior_store = behavior_store
        self.geo_resolver = geo_resolver
        self.preference_store = preference_store
        self.config = config or FeedConfig()
        self.caller = caller
        self.cache = cache if cache is not None else TTLCache(self.config.PROFILE_CACHE_TTL_SECONDS)
    
    def _fetch(self, user_id: str, source: str, fn, *args):
        """Returns (value, ok). Failures and timeouts are logged, never raised."""
        if fn is None:
            return None, False
        try:
            if self.caller is None:
                return fn(*args), True
            return self.caller.call(fn, *args), True
        except Exception as exc:
            logger.warning(
                "Signal source %s unavailable for %s (%s: %s), omitting",
                source, user_id, type(exc).__name__, exc
            )
            return None, False
    
    def build(self, user_id: str) -> InterestProfile:
        start_time = time.perf_counter()
        degraded = []
        
        # 1. Social graph
        relationships, ok = self._fetch(
            user_id, SOURCE_RELATIONSHIPS,
            self.social_store and self.social_store.get_relationships, user_id
        )
        if not ok:
            degraded.append(SOURCE_RELATIONSHIPS)
            relationships = Relationships()
        relationship_weights = build_relationship_weights(user_id, relationships)
        
        # 2. Behavioral history
        liked, ok = self._fetch(
            user_id, SOURCE_LIKES,
            self.behavior_store and self.behavior_store.get_recent_likes, user_id, MAX_RECENT_LIKES
        )
        if not ok:
            degraded.append(SOURCE_LIKES)
            liked = []
        
        authored, ok = self._fetch(
            user_id, SOURCE_AUTHORED,
            self.behavior_store and self.behavior_store.get_recent_authored, user_id, MAX_RECENT_AUTHORED
        )
        if not ok:
            degraded.append(SOURCE_AUTHORED)
            authored = []
        
        weighted_embeddings = self._weighted_embeddings(
            liked[:MAX_RECENT_LIKES], authored[:MAX_RECENT_AUTHORED], relationship_weights
        )
        interest_vector = weighted_mean_vector(weighted_embeddings, self.config.EMBEDDING_DIM)
        
        # 3. Explicit preferences
        topics, ok = self._fetch(
            user_id, SOURCE_TOPICS,
            self.preference_store and self.preference_store.get_explicit_topics, user_id
        )
        if not ok:
            degraded.append(SOURCE_TOPICS)
            topics = set()
        
        # 4. Geography
        geo_index, ok = self._fetch(
            user_id, SOURCE_GEO,
            self.geo_resolver and self.geo_resolver.resolve_cell, user_id
        )
        if not ok:
            degraded.append(SOURCE_GEO)
            geo_index = None
        
        profile = InterestProfile(
            user_id=user_id,
            interest_vector=interest_vector,
            geo_index=geo_index or None,
            explicit_topics=frozenset(topics),
            relationship_weights=MappingProxyType(relationship_weights),
            degraded_sources=tuple(degraded)
        )
        
        logger.debug(
            "Profile built for %s: %d relationships, %d liked, %d authored, "
            "vector=%s, topics=%d, geo=%s, degraded=%s, %.1f ms",
            user_id, len(relationship_weights), len(liked), len(authored),
            bool(interest_vector), len(topics), geo_index, degraded,
            (time.perf_counter() - start_time) * 1000
        )
        return profile
    
    def _weighted_embeddings(
        self,
        liked: List[BehaviorSignal],
        authored: List[BehaviorSignal],
        relationship_weights: Dict[str, float]
    ) -> List[Tuple[List[float], float]]:
        weighted = [
            (signal.embedding, relationship_weights.get(signal.author_id, UNRELATED_WEIGHT))
            for signal in liked
        ]
        weighted += [(signal.embedding, self.config.SELF_WEIGHT) for signal in authored]
        return weighted
    
    def get_profile(self, user_id: str) -> InterestProfile:
        """
        Cached profile, rebuilt when expired.
        
        If every signal source fails during a rebuild, a stale cached profile
        is served instead of the degenerate one, and nothing is cached. Profiles
        missing only some sources are cached for DEGRADED_PROFILE_TTL_SECONDS.
        """
        profile = self.cache.get(user_id)
        if profile is not None:
            return profile

        profile = self.build(user_id)

        if len(profile.degraded_sources) == len(ALL_SOURCES):
            stale = self.cache.get_stale(user_id)
            if stale is not None:
                logger.warning("All signal sources failed for %s, serving stale profile", user_id)
                return stale
            return profile

        if profile.degraded_sources:
            # Retry the failed sources soon instead of after the full TTL
            self.cache.put(user_id, profile, ttl_seconds=self.config.DEGRADED_PROFILE_TTL_SECONDS)
        else:
            self.cache.put(user_id, profile)
        return profile
