"""
Configuration for synthetic feed data generation.
"""

from dataclasses import dataclass
from typing import List


@dataclass
class SyntheticConfig:
    """Configuration for synthetic data generation."""
    
    # Scale
    N_USERS: int = 1_000
    N_ITEMS: int = 5_000
    N_TOPICS: int = 12
    
    # Embeddings (must match FeedConfig.EMBEDDING_DIM)
    EMBEDDING_DIM: int = 384
    TOPIC_NOISE: float = 0.35  # Std of item noise around its topic center
    
    # Geography: cells are GEO_RESOLUTION characters of GEO_ALPHABET
    GEO_ALPHABET: str = "0123456789bcdefghjkmnpqrstuvwxyz"
    GEO_RESOLUTION: int = 6
    N_REGIONS: int = 4
    P_ITEM_HAS_GEO: float = 0.7
    
    # Items
    TIME_HORIZON_HOURS: float = 24.0 * 14  # Items created over the last two weeks
    LIKES_LOGNORMAL_MEAN: float = 1.5
    LIKES_LOGNORMAL_SIGMA: float = 1.2
    REPUTATION_RANGE: tuple = (10.0, 100.0)
    
    # Users
    TOPICS_PER_USER_RANGE: tuple = (0, 4)  # Explicit topics, 0 allowed (cold users)
    LIKES_PER_USER_RANGE: tuple = (0, 80)
    
    # Social graph (per user)
    SUBSCRIPTIONS_RANGE: tuple = (0, 5)
    FRIENDS_RANGE: tuple = (0, 10)
    FOLLOWS_RANGE: tuple = (0, 20)
    
    # Negative signals
    P_USER_MUTES: float = 0.05
    P_USER_BLOCKS: float = 0.02
    P_MUTE_EXPIRES: float = 0.5
    
    TOPIC_NAMES: List[str] = None
    
    # Random seed for reproducibility
    RANDOM_SEED: int = 42
    
    def __post_init__(self):
        if self.TOPIC_NAMES is None:
            base = [
                "local_politics", "elections", "education", "transit", "housing",
                "environment", "public_safety", "healthcare", "economy", "arts",
                "sports", "technology",
            ]
            self.TOPIC_NAMES = (base + [f"topic_{i}" for i in range(len(base), self.N_TOPICS)])[:self.N_TOPICS]


def get_default_config() -> SyntheticConfig:
    """Get default configuration."""
    return SyntheticConfig()
