"""
Geographic proximity boost from hierarchical cell ids.

A cell id encodes one hierarchy level per character (geohash style): the
parent of a cell is the id with its last character dropped. Two cells are
compared at the coarser of their two resolutions; the distance bucket is the
number of levels to climb until both sit in the same cell.
"""

from typing import Optional

from slotfeed.config.constants import GEO_BOOSTS, GEO_NO_BOOST


def common_prefix_length(a: str, b: str) -> int:
    n = 0
    for char_a, char_b in zip(a, b):
        if char_a != char_b:
            break
        n += 1
    return n


class GeographicProximityScorer:
    
    def __init__(self, boosts=GEO_BOOSTS, no_boost: float = GEO_NO_BOOST):
        self.boosts = tuple(boosts)
        self.no_boost = no_boost
    
    def distance_bucket(self, cell_a: Optional[str], cell_b: Optional[str]) -> Optional[int]:
        """
        Levels out to the common ancestor; 0 = same cell, None = unknown.
        """
        if not cell_a or not cell_b:
            return None
        
        resolution = min(len(cell_a), len(cell_b))
        return resolution - common_prefix_length(cell_a[:resolution], cell_b[:resolution])
    
    def boost_for_bucket(self, bucket: Optional[int]) -> float:
        if bucket is None or bucket >= len(self.boosts):
            return self.no_boost
        return self.boosts[bucket]
    
    def boost(self, requester_cell: Optional[str], item_cell: Optional[str]) -> float:
        return self.boost_for_bucket(self.distance_bucket(requester_cell, item_cell))
