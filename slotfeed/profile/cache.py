"""
Short-TTL cache for interest profiles.

Entries are immutable and replaced whole, so readers never see a half-written
profile and never block each other. Concurrent rebuilds for the same user are
allowed; the last write wins.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Key -> value with TTL and atomic replace."""
    
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
    
    def get(self, key: Hashable) -> Optional[Any]:
        """Fresh value or None."""
        entry = self._entries.get(key)
        if entry is None or entry.expires_at <= self.clock():
            return None
        return entry.value
    
    def get_stale(self, key: Hashable) -> Optional[Any]:
        """Value regardless of expiry; None if never cached or invalidated."""
        entry = self._entries.get(key)
        return None if entry is None else entry.value
    
    def put(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None):
        """Replace the entry; ttl_seconds overrides the default TTL for this entry."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, expires_at=self.clock() + ttl)
    
    def invalidate(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None
    
    def clear(self):
        self._entries = {}
    
    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
    
    def __len__(self) -> int:
        return len(self._entries)
