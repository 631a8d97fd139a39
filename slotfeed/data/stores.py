"""
Interfaces of the external stores the feed engine reads from.

The engine never mutates anything behind these interfaces. Every call is
routed through SignalCaller so that a slow store costs at most one timeout.
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Set

from slotfeed.data.schemas import (
    CandidateItem, Relationships, BehaviorSignal, Mute, Block
)
from slotfeed.config.constants import MAX_RECENT_LIKES, MAX_RECENT_AUTHORED


class ContentStore(ABC):
    
    @abstractmethod
    def get_eligible_candidates(self) -> List[CandidateItem]:
        """Moderation-approved candidates. Never re-checked here."""


class SocialGraphStore(ABC):
    
    @abstractmethod
    def get_relationships(self, user_id: str) -> Relationships:
        ...


class BehaviorStore(ABC):
    
    @abstractmethod
    def get_recent_likes(self, user_id: str, limit: int = MAX_RECENT_LIKES) -> List[BehaviorSignal]:
        """Most recently liked items first."""
    
    @abstractmethod
    def get_recent_authored(self, user_id: str, limit: int = MAX_RECENT_AUTHORED) -> List[BehaviorSignal]:
        """Most recently authored items first."""


class NegativeSignalStore(ABC):
    
    @abstractmethod
    def get_mutes(self, user_id: str) -> List[Mute]:
        """Mutes where user_id is the muter."""
    
    @abstractmethod
    def get_blocks(self, user_id: str) -> List[Block]:
        """Blocks where user_id is either the blocker or the blocked party."""


class GeoResolver(ABC):
    
    @abstractmethod
    def resolve_cell(self, user_id: str) -> Optional[str]:
        ...


class PreferenceStore(ABC):
    
    @abstractmethod
    def get_explicit_topics(self, user_id: str) -> Set[str]:
        ...


class SignalCaller:
    """
    Runs store calls on a worker pool and waits at most `timeout` seconds.
    
    A timed-out call raises concurrent.futures.TimeoutError; the worker thread
    finishes in the background and its result is discarded.
    """
    
    def __init__(self, timeout: float, max_workers: int = 8):
        self.timeout = timeout
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="slotfeed-signal"
        )
    
    def call(self, fn, *args, **kwargs):
        future = self.executor.submit(fn, *args, **kwargs)
        return future.result(timeout=self.timeout)
    
    def shutdown(self):
        self.executor.shutdown(wait=False)
