from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple, FrozenSet, Mapping
from datetime import datetime


def compute_engagement_score(
    num_likes: int,
    num_comments: int,
    num_shares: int,
    num_reports: int = 0
) -> float:
    """
    Maps raw engagement counts to a non-negative engagement score.
    
    Logic:
    - +1.0 per like
    - +2.0 per comment (conversation is worth more than a tap)
    - +3.0 per share
    - -0.5 per report
    
    Floored at 0.0
    """
    score = (
        num_likes * 1.0
        + num_comments * 2.0
        + num_shares * 3.0
        - num_reports * 0.5
    )
    return max(score, 0.0)


@dataclass
class CandidateItem:
    """
    One piece of moderation-approved content eligible for ranking.
    Read-only input per request.
    """
    item_id: str
    author_id: str
    embedding: List[float]  # Same dimensionality as InterestProfile.interest_vector
    engagement_score: float  # From compute_engagement_score
    created_at: datetime
    geo_index: Optional[str] = None  # Hierarchical cell id, one character per level
    author_reputation: float = 70.0  # 0-100
    topics: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class InterestProfile:
    """
    Per-user interest representation. Ephemeral, cached with a short TTL.
    Shared read-only between requests.
    """
    user_id: str
    interest_vector: Tuple[float, ...]  # Empty for users with no behavioral history
    geo_index: Optional[str]
    explicit_topics: FrozenSet[str]
    relationship_weights: Mapping[str, float]  # related user id -> weight class value
    degraded_sources: Tuple[str, ...] = ()  # Signal sources omitted while building
    
    @property
    def is_cold_start(self) -> bool:
        return (
            not self.interest_vector
            and not self.explicit_topics
            and not self.relationship_weights
        )


@dataclass
class Relationships:
    """Social graph edges going out from one user."""
    subscriptions: List[str] = field(default_factory=list)
    friends: List[str] = field(default_factory=list)
    follows: List[str] = field(default_factory=list)


@dataclass
class BehaviorSignal:
    """A liked or authored item reduced to what profile aggregation needs."""
    item_id: str
    author_id: str
    embedding: List[float]


@dataclass
class Mute:
    """Unidirectional, optionally expiring."""
    muter_id: str
    muted_id: str
    expires_at: Optional[datetime] = None
    
    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


@dataclass
class Block:
    """Permanent; excludes content in both directions."""
    blocker_id: str
    blocked_id: str


@dataclass
class Slot:
    """One output position, assigned to a pool by a roll."""
    position: int
    pool: str  # RANDOM | TRENDING | PERSONALIZED
    roll_value: int  # 0-99
    item_id: Optional[str] = None  # Filled after selection


@dataclass
class FeedEntry:
    """One served position with its provenance."""
    position: int
    item_id: str
    pool: str  # Pool that actually served the item
    rolled_pool: str  # Pool assigned by the roll (differs after a fallback)
    roll_value: int


@dataclass
class FeedStats:
    total_slots: int
    filled_slots: int
    pool_distribution: Dict[str, int]
    expected_distribution: Dict[str, float]


@dataclass
class FeedResult:
    """
    Ordered feed. Length <= requested slot count, never padded.
    """
    requester_id: Optional[str]
    entries: List[FeedEntry]
    stats: FeedStats
    next_cursor: Optional[str] = None
    
    @property
    def item_ids(self) -> List[str]:
        return [entry.item_id for entry in self.entries]
    
    def as_tuples(self) -> List[Tuple[int, str, str]]:
        """(position, item_id, pool) triples."""
        return [(e.position, e.item_id, e.pool) for e in self.entries]
