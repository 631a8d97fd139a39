"""
Subscription interface for relationship / mute / block mutation events.

External collaborators call the *_changed methods; the hub drops the affected
cached profiles and notifies subscribed listeners.
"""

import logging
from typing import Callable, List

from slotfeed.profile.cache import TTLCache

logger = logging.getLogger(__name__)

RELATIONSHIP = "relationship"
MUTE = "mute"
BLOCK = "block"
EVENT_KINDS = (RELATIONSHIP, MUTE, BLOCK)

Listener = Callable[[str, str], None]  # (event_kind, user_id)


class ProfileInvalidationHub:
    
    def __init__(self, cache: TTLCache):
        self.cache = cache
        self._listeners: List[Listener] = []
    
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners = self._listeners + [listener]
        
        def unsubscribe():
            self._listeners = [l for l in self._listeners if l is not listener]
        
        return unsubscribe
    
    def _invalidate(self, kind: str, *user_ids: str):
        for user_id in user_ids:
            dropped = self.cache.invalidate(user_id)
            logger.debug("Invalidated profile of %s on %s event (cached=%s)", user_id, kind, dropped)
            for listener in self._listeners:
                listener(kind, user_id)
    
    def relationship_changed(self, user_id: str, other_id: str):
        # Friendships count for both sides
        self._invalidate(RELATIONSHIP, user_id, other_id)
    
    def mute_changed(self, muter_id: str, muted_id: str):
        self._invalidate(MUTE, muter_id)
    
    def block_changed(self, blocker_id: str, blocked_id: str):
        self._invalidate(BLOCK, blocker_id, blocked_id)
    
    def handle(self, kind: str, actor_id: str, target_id: str):
        """Dispatch an event by kind name."""
        handlers = {
            RELATIONSHIP: self.relationship_changed,
            MUTE: self.mute_changed,
            BLOCK: self.block_changed,
        }
        if kind not in handlers:
            raise ValueError(f"Unknown event kind: {kind}")
        handlers[kind](actor_id, target_id)
