from dataclasses import dataclass


@dataclass
class FeedConfig:
    """
    Tunables for feed generation.
    Scoring constants MUST stay consistent across serving replicas.
    """
    # Embeddings
    EMBEDDING_DIM: int = 384  # Precomputed content embedding dimension

    # Time decay: exp(-age_hours / TIME_DECAY_HOURS)
    TIME_DECAY_HOURS: float = 24.0

    # Author reputation (0-100 scale)
    DEFAULT_REPUTATION: float = 70.0
    REPUTATION_TIERS: list = None  # [(min_reputation, multiplier), ...] descending

    # Profile aggregation
    SELF_WEIGHT: float = 0.5  # Weight of the user's own posts in the interest vector
    TOPIC_WEIGHT: float = 0.25  # Additive explicit-topic boost inside the similarity term

    # Profile cache
    PROFILE_CACHE_TTL_SECONDS: float = 300.0
    DEGRADED_PROFILE_TTL_SECONDS: float = 30.0  # Profiles built with a failed source

    # External calls
    SIGNAL_TIMEOUT_SECONDS: float = 0.5
    SIGNAL_WORKERS: int = 8

    # Pagination
    MAX_CURSOR_IDS: int = 500

    # Candidate universe
    EXCLUDE_OWN_ITEMS: bool = True

    def __post_init__(self):
        if self.REPUTATION_TIERS is None:
            self.REPUTATION_TIERS = [
                (95.0, 1.1),  # +10% visibility
                (50.0, 1.0),  # normal
                (30.0, 0.9),  # -10%
                (0.0, 0.8),   # -20%
            ]
