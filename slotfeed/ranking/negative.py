import logging
from datetime import datetime
from typing import List, Optional, Set

from slotfeed.data.schemas import CandidateItem, Mute, Block
from slotfeed.data.stores import NegativeSignalStore, SignalCaller

logger = logging.getLogger(__name__)


def excluded_authors(
    requester_id: str,
    mutes: List[Mute],
    blocks: List[Block],
    now: datetime
) -> Set[str]:
    """
    Authors hidden from requester_id: blocked in either direction, or muted by
    the requester with an unexpired mute.
    """
    excluded = set()
    
    for block in blocks:
        if block.blocker_id == requester_id:
            excluded.add(block.blocked_id)
        elif block.blocked_id == requester_id:
            excluded.add(block.blocker_id)
    
    for mute in mutes:
        if mute.muter_id == requester_id and mute.is_active(now):
            excluded.add(mute.muted_id)
    
    return excluded


class NegativeSignalFilter:
    """
    Removes muted/blocked authors from the candidate universe, once per request.
    
    Store failures propagate: the caller must not serve an unfiltered feed.
    """
    
    def __init__(self, store: Optional[NegativeSignalStore], caller: Optional[SignalCaller] = None):
        self.store = store
        self.caller = caller
    
    def _call(self, fn, *args):
        if self.caller is None:
            return fn(*args)
        return self.caller.call(fn, *args)
    
    def apply(
        self,
        requester_id: Optional[str],
        candidates: List[CandidateItem],
        now: datetime
    ) -> List[CandidateItem]:
        if requester_id is None or self.store is None:
            return list(candidates)
        
        mutes = self._call(self.store.get_mutes, requester_id)
        blocks = self._call(self.store.get_blocks, requester_id)
        excluded = excluded_authors(requester_id, mutes, blocks, now)
        
        filtered = [item for item in candidates if item.author_id not in excluded]
        logger.debug(
            "Negative filter for %s: %d excluded authors, %d -> %d candidates",
            requester_id, len(excluded), len(candidates), len(filtered)
        )
        return filtered
