"""
Feed assembly: profile -> negative filter -> per-slot roll -> pool draw with
fallback -> ordered FeedResult with pool provenance.
"""

import logging
import threading
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

import numpy as np

from slotfeed.data.schemas import (
    CandidateItem, FeedEntry, FeedResult, FeedStats, InterestProfile
)
from slotfeed.data.stores import ContentStore, NegativeSignalStore, SignalCaller
from slotfeed.data.validators import InvalidFeedRequest, validate_slot_count
from slotfeed.config.constants import RANDOM, TRENDING, PERSONALIZED, POOLS
from slotfeed.config.feed_config import FeedConfig
from slotfeed.profile.builder import UserInterestProfileBuilder
from slotfeed.profile.invalidation import ProfileInvalidationHub
from slotfeed.ranking.allocator import SlotAllocator, expected_distribution
from slotfeed.ranking.dedup import DeduplicationEngine
from slotfeed.ranking.geo import GeographicProximityScorer
from slotfeed.ranking.negative import NegativeSignalFilter
from slotfeed.ranking.pools import build_selectors
from slotfeed.ranking.scorers import CandidateScorer
from slotfeed.serving.cursor import decode_cursor, encode_cursor

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FeedEngine:
    """
    Produces a fixed-size ordered feed for one requester.
    
    Requests share nothing mutable except the profile cache, so generate_feed
    can be called from many threads at once. Each call draws from its own
    random stream spawned from the engine seed; pass `rng` to control it.
    """
    
    def __init__(
        self,
        content_store: ContentStore,
        negative_store: Optional[NegativeSignalStore],
        profile_builder: Optional[UserInterestProfileBuilder],
        config: Optional[FeedConfig] = None,
        caller: Optional[SignalCaller] = None,
        seed: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.content_store = content_store
        self.profile_builder = profile_builder
        self.config = config or FeedConfig()
        self.caller = caller
        self.clock = clock
        
        self.allocator = SlotAllocator()
        self.geo_scorer = GeographicProximityScorer()
        self.negative_filter = NegativeSignalFilter(negative_store, caller)
        self.invalidation = (
            ProfileInvalidationHub(profile_builder.cache) if profile_builder is not None else None
        )
        
        self._seed_sequence = np.random.SeedSequence(seed)
        self._spawn_lock = threading.Lock()
    
    def _spawn_rng(self) -> np.random.Generator:
        with self._spawn_lock:
            child = self._seed_sequence.spawn(1)[0]
        return np.random.default_rng(child)
    
    def _call(self, fn, *args):
        if self.caller is None:
            return fn(*args)
        return self.caller.call(fn, *args)
    
    def _empty_result(
        self,
        requester_id: Optional[str],
        slot_count: int,
        served_ids: List[str]
    ) -> FeedResult:
        return FeedResult(
            requester_id=requester_id,
            entries=[],
            stats=FeedStats(
                total_slots=slot_count,
                filled_slots=0,
                pool_distribution={pool: 0 for pool in POOLS},
                expected_distribution=expected_distribution(requester_id is not None)
            ),
            next_cursor=encode_cursor(served_ids, self.config.MAX_CURSOR_IDS)
        )
    
    def _load_candidates(self) -> Optional[List[CandidateItem]]:
        try:
            return list(self._call(self.content_store.get_eligible_candidates))
        except Exception as exc:
            logger.error("Content store unavailable (%s: %s), serving empty feed", type(exc).__name__, exc)
            return None
    
    def generate_feed(
        self,
        requester_id: Optional[str],
        slot_count: int,
        cursor: Optional[str] = None,
        exclude_ids: Optional[Iterable[str]] = None,
        rng: Optional[np.random.Generator] = None,
        now: Optional[datetime] = None
    ) -> FeedResult:
        """
        Args:
            requester_id: None for anonymous requests
            slot_count: Positive number of slots to fill
            cursor: Token from a previous FeedResult.next_cursor
            exclude_ids: Extra item ids never to serve
        
        Returns:
            FeedResult with at most slot_count entries
        
        Raises:
            InvalidFeedRequest: bad slot_count, requester id or cursor
        """
        slot_count = validate_slot_count(slot_count)
        if requester_id is not None and not requester_id:
            raise InvalidFeedRequest("requester_id must be non-empty or None")
        
        served_ids = decode_cursor(cursor) + [str(i) for i in (exclude_ids or [])]
        authenticated = requester_id is not None
        rng = rng if rng is not None else self._spawn_rng()
        now = now or self.clock()
        
        # 1. Candidate universe
        candidates = self._load_candidates()
        if candidates is None:
            return self._empty_result(requester_id, slot_count, served_ids)
        
        # 2. Negative signals (fail closed)
        try:
            eligible = self.negative_filter.apply(requester_id, candidates, now)
        except Exception as exc:
            logger.error(
                "Negative signal store unavailable for %s (%s: %s), serving empty feed",
                requester_id, type(exc).__name__, exc
            )
            return self._empty_result(requester_id, slot_count, served_ids)
        
        if authenticated and self.config.EXCLUDE_OWN_ITEMS:
            eligible = [item for item in eligible if item.author_id != requester_id]
        
        # 3. Profile
        profile = None
        if authenticated and self.profile_builder is not None:
            profile = self.profile_builder.get_profile(requester_id)
        
        # 4. Selectors for this request
        scorer = CandidateScorer(self.config, now, profile, self.geo_scorer)
        pools = [RANDOM, TRENDING, PERSONALIZED] if authenticated else [RANDOM, TRENDING]
        selectors = build_selectors(scorer, pools)
        dedup = DeduplicationEngine(excluded=served_ids)
        
        # 5. Slots
        entries: List[FeedEntry] = []
        for position in range(slot_count):
            slot = self.allocator.allocate(position, authenticated, rng)
            drawn = dedup.draw(slot.pool, selectors, eligible, rng)
            if drawn is None:
                # Every pool exhausted: the slot is omitted
                continue
            
            item, serving_pool = drawn
            slot.item_id = item.item_id
            entries.append(FeedEntry(
                position=len(entries),
                item_id=item.item_id,
                pool=serving_pool,
                rolled_pool=slot.pool,
                roll_value=slot.roll_value
            ))
        
        return self._collate(requester_id, slot_count, entries, served_ids, profile)
    
    def _collate(
        self,
        requester_id: Optional[str],
        slot_count: int,
        entries: List[FeedEntry],
        served_ids: List[str],
        profile: Optional[InterestProfile]
    ) -> FeedResult:
        counts = Counter(entry.pool for entry in entries)
        pool_distribution = {pool: counts.get(pool, 0) for pool in POOLS}
        
        logger.debug(
            "Feed for %s: %d/%d slots, pools=%s, cold_start=%s",
            requester_id or "anonymous", len(entries), slot_count, pool_distribution,
            profile.is_cold_start if profile is not None else None
        )
        
        return FeedResult(
            requester_id=requester_id,
            entries=entries,
            stats=FeedStats(
                total_slots=slot_count,
                filled_slots=len(entries),
                pool_distribution=pool_distribution,
                expected_distribution=expected_distribution(requester_id is not None)
            ),
            next_cursor=encode_cursor(
                served_ids + [entry.item_id for entry in entries],
                self.config.MAX_CURSOR_IDS
            )
        )


def create_engine(
    data_dir: str,
    config: Optional[FeedConfig] = None,
    seed: Optional[int] = None,
    signal_timeout: Optional[float] = None
) -> FeedEngine:
    """Wire a FeedEngine over the parquet stores in data_dir."""
    from slotfeed.data.repositories import (
        ContentRepository, SocialGraphRepository, BehaviorRepository,
        NegativeSignalRepository, UserRepository
    )
    
    config = config or FeedConfig()
    caller = SignalCaller(
        timeout=signal_timeout if signal_timeout is not None else config.SIGNAL_TIMEOUT_SECONDS,
        max_workers=config.SIGNAL_WORKERS
    )
    content_repo = ContentRepository(data_dir, config)
    social_repo = SocialGraphRepository(data_dir)
    behavior_repo = BehaviorRepository(data_dir)
    negative_repo = NegativeSignalRepository(data_dir)
    user_repo = UserRepository(data_dir)

    # Read every store now, outside the per-call signal timeout
    for repo in (content_repo, social_repo, behavior_repo, negative_repo, user_repo):
        repo.load()
    logger.info(
        "Loaded %d candidates from %s", len(content_repo.get_eligible_candidates()), data_dir
    )

    profile_builder = UserInterestProfileBuilder(
        social_store=social_repo,
        behavior_store=behavior_repo,
        geo_resolver=user_repo,
        preference_store=user_repo,
        config=config,
        caller=caller
    )
    return FeedEngine(
        content_store=content_repo,
        negative_store=negative_repo,
        profile_builder=profile_builder,
        config=config,
        caller=caller,
        seed=seed
    )
