import math

from slotfeed.data.schemas import CandidateItem, InterestProfile
from slotfeed.config.constants import RELATIONSHIP_WEIGHTS


class InvalidFeedRequest(ValueError):
    """Request-validation failure surfaced to the caller."""


def validate_slot_count(slot_count) -> int:
    """Return slot_count as int or raise InvalidFeedRequest."""
    if isinstance(slot_count, bool) or not isinstance(slot_count, int):
        raise InvalidFeedRequest(f"slot_count must be an integer, got {slot_count!r}")
    if slot_count <= 0:
        raise InvalidFeedRequest(f"slot_count must be positive, got {slot_count}")
    return slot_count


def validate_candidate(item: CandidateItem, embedding_dim: int) -> None:
    """Validate candidate data integrity."""
    assert item.item_id, "item_id must be non-empty"
    assert item.author_id, "author_id must be non-empty"
    assert item.created_at is not None, "created_at is required"
    assert len(item.embedding) in (0, embedding_dim), (
        f"embedding of {item.item_id} has dimension {len(item.embedding)}, expected {embedding_dim}"
    )
    assert math.isfinite(item.engagement_score) and item.engagement_score >= 0
    assert 0 <= item.author_reputation <= 100


def validate_profile(profile: InterestProfile, embedding_dim: int) -> None:
    """Validate profile integrity."""
    assert len(profile.interest_vector) in (0, embedding_dim)
    assert all(math.isfinite(v) for v in profile.interest_vector)
    allowed = set(RELATIONSHIP_WEIGHTS.values())
    assert all(w in allowed for w in profile.relationship_weights.values())
