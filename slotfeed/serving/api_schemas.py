from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class FeedSlot(BaseModel):
    """Single served position."""
    position: int
    item_id: str
    pool: str  # RANDOM | TRENDING | PERSONALIZED
    rolled_pool: str
    roll_value: int


class FeedStatsModel(BaseModel):
    total_slots: int
    filled_slots: int
    pool_distribution: Dict[str, int]
    expected_distribution: Dict[str, float]


class FeedResponse(BaseModel):
    """Ordered feed with pool provenance."""
    user_id: Optional[str]
    algorithm: str  # slot-roll-personalized | slot-roll-public
    slots: List[FeedSlot]
    stats: FeedStatsModel
    next_cursor: Optional[str] = None


class FeedEvent(BaseModel):
    """Relationship / mute / block mutation reported by another service."""
    kind: str = Field(..., pattern="^(relationship|mute|block)$")
    actor_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)
