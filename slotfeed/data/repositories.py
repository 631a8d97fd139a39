"""
Parquet-backed implementations of the external store interfaces.

Layout of `data_dir` (written by slotfeed.scripts.run_synthetic_generation):
    items.parquet          item_id, author_id, embedding, num_likes, num_comments,
                           num_shares, created_at, geo_index, author_reputation, topics
    likes.parquet          user_id, item_id, created_at
    relationships.parquet  user_id, related_id, kind (subscription | friend | follow)
    mutes.parquet          muter_id, muted_id, expires_at
    blocks.parquet         blocker_id, blocked_id
    users.parquet          user_id, geo_index, topics
"""

import logging
import threading
from datetime import datetime, timezone
from typing import List, Optional, Set

import numpy as np
import pandas as pd

from slotfeed.data.schemas import (
    CandidateItem, Relationships, BehaviorSignal, Mute, Block,
    compute_engagement_score
)
from slotfeed.data.stores import (
    ContentStore, SocialGraphStore, BehaviorStore,
    NegativeSignalStore, GeoResolver, PreferenceStore
)
from slotfeed.data.validators import validate_candidate
from slotfeed.config.constants import MAX_RECENT_LIKES, MAX_RECENT_AUTHORED
from slotfeed.config.feed_config import FeedConfig

logger = logging.getLogger(__name__)


def _read_parquet(path: str) -> pd.DataFrame:
    try:
        return pd.read_parquet(path)
    except FileNotFoundError:
        # If file doesn't exist, behave as an empty store
        logger.warning("Parquet file not found: %s", path)
        return pd.DataFrame()


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return []


def _to_datetime(value) -> Optional[datetime]:
    """Parse iso strings / pandas timestamps into aware UTC datetimes."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    elif isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _optional_str(value) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    value = str(value)
    return value or None


class LoadOnceMixin:
    """
    Parquet files are read once, under a lock. Call load() at startup so the
    first request does not pay for the read inside its signal timeout.
    """

    def load(self):
        if not self._loaded:
            with self._load_lock:
                if not self._loaded:
                    self._load()
                    self._loaded = True
        return self


class ContentRepository(LoadOnceMixin, ContentStore):
    """Candidate items from parquet."""
    
    def __init__(self, data_dir: str, config: Optional[FeedConfig] = None):
        self.data_dir = data_dir
        self._load_lock = threading.Lock()
        self._loaded = False
        self.config = config or FeedConfig()
        self.df = None
        self._candidates = None
    
    def _load(self):
        if self.df is None:
            self.df = _read_parquet(f"{self.data_dir}/items.parquet")
        
        candidates = []
        for _, row in self.df.iterrows():
            try:
                item = self._row_to_candidate(row)
                validate_candidate(item, self.config.EMBEDDING_DIM)
            except (AssertionError, ValueError, TypeError, KeyError) as e:
                # One bad row must not take the whole store down
                logger.warning("Skipping invalid item %s: %s", row.get('item_id'), e)
                continue
            candidates.append(item)
        
        if len(candidates) < len(self.df):
            logger.warning("Loaded %d of %d items from %s", len(candidates), len(self.df), self.data_dir)
        self._candidates = candidates
    
    def _row_to_candidate(self, row) -> CandidateItem:
        """Convert a dataframe row to CandidateItem."""
        return CandidateItem(
            item_id=str(row['item_id']),
            author_id=str(row['author_id']),
            embedding=[float(v) for v in _as_list(row['embedding'])],
            engagement_score=compute_engagement_score(
                int(row['num_likes']),
                int(row['num_comments']),
                int(row['num_shares'])
            ),
            created_at=_to_datetime(row['created_at']),
            geo_index=_optional_str(row.get('geo_index')),
            author_reputation=float(row.get('author_reputation', self.config.DEFAULT_REPUTATION)),
            topics=frozenset(str(t) for t in _as_list(row.get('topics')))
        )
    
    def get_eligible_candidates(self) -> List[CandidateItem]:
        self.load()
        return list(self._candidates)


class SocialGraphRepository(LoadOnceMixin, SocialGraphStore):
    """Relationships from parquet. Friendships may be stored in either direction."""
    
    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self._load_lock = threading.Lock()
        self._loaded = False
        self.df = None
    
    def _load(self):
        if self.df is None:
            self.df = _read_parquet(f"{self.data_dir}/relationships.parquet")
    
    def get_relationships(self, user_id: str) -> Relationships:
        self.load()
        if self.df.empty:
            return Relationships()
        
        outgoing = self.df[self.df['user_id'] == user_id]
        incoming_friends = self.df[
            (self.df['related_id'] == user_id) & (self.df['kind'] == 'friend')
        ]
        
        friends = set(outgoing[outgoing['kind'] == 'friend']['related_id'])
        friends |= set(incoming_friends['user_id'])
        
        return Relationships(
            subscriptions=sorted(outgoing[outgoing['kind'] == 'subscription']['related_id']),
            friends=sorted(friends),
            follows=sorted(outgoing[outgoing['kind'] == 'follow']['related_id'])
        )


class BehaviorRepository(LoadOnceMixin, BehaviorStore):
    """Recent likes and authored items, joined with item embeddings."""
    
    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self._load_lock = threading.Lock()
        self._loaded = False
        self.likes_df = None
        self.items_df = None
    
    def _load(self):
        if self.likes_df is None:
            self.likes_df = _read_parquet(f"{self.data_dir}/likes.parquet")
        if self.items_df is None:
            self.items_df = _read_parquet(f"{self.data_dir}/items.parquet")
    
    @staticmethod
    def _rows_to_signals(df: pd.DataFrame) -> List[BehaviorSignal]:
        return [
            BehaviorSignal(
                item_id=str(row['item_id']),
                author_id=str(row['author_id']),
                embedding=[float(v) for v in _as_list(row['embedding'])]
            )
            for _, row in df.iterrows()
        ]
    
    def get_recent_likes(self, user_id: str, limit: int = MAX_RECENT_LIKES) -> List[BehaviorSignal]:
        self.load()
        if self.likes_df.empty or self.items_df.empty:
            return []
        
        likes = self.likes_df[self.likes_df['user_id'] == user_id]
        likes = likes.sort_values('created_at', ascending=False).head(limit)
        liked_items = likes[['item_id']].merge(
            self.items_df[['item_id', 'author_id', 'embedding']],
            on='item_id',
            how='inner'
        )
        return self._rows_to_signals(liked_items)
    
    def get_recent_authored(self, user_id: str, limit: int = MAX_RECENT_AUTHORED) -> List[BehaviorSignal]:
        self.load()
        if self.items_df.empty:
            return []
        
        own = self.items_df[self.items_df['author_id'] == user_id]
        own = own.sort_values('created_at', ascending=False).head(limit)
        return self._rows_to_signals(own)


class NegativeSignalRepository(LoadOnceMixin, NegativeSignalStore):
    """Mutes and blocks from parquet."""
    
    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self._load_lock = threading.Lock()
        self._loaded = False
        self.mutes_df = None
        self.blocks_df = None
    
    def _load(self):
        if self.mutes_df is None:
            self.mutes_df = _read_parquet(f"{self.data_dir}/mutes.parquet")
        if self.blocks_df is None:
            self.blocks_df = _read_parquet(f"{self.data_dir}/blocks.parquet")
    
    def get_mutes(self, user_id: str) -> List[Mute]:
        self.load()
        if self.mutes_df.empty:
            return []
        
        rows = self.mutes_df[self.mutes_df['muter_id'] == user_id]
        return [
            Mute(
                muter_id=str(row['muter_id']),
                muted_id=str(row['muted_id']),
                expires_at=_to_datetime(row.get('expires_at'))
            )
            for _, row in rows.iterrows()
        ]
    
    def get_blocks(self, user_id: str) -> List[Block]:
        self.load()
        if self.blocks_df.empty:
            return []
        
        rows = self.blocks_df[
            (self.blocks_df['blocker_id'] == user_id) | (self.blocks_df['blocked_id'] == user_id)
        ]
        return [
            Block(blocker_id=str(row['blocker_id']), blocked_id=str(row['blocked_id']))
            for _, row in rows.iterrows()
        ]


class UserRepository(LoadOnceMixin, GeoResolver, PreferenceStore):
    """Declared location cell and explicit topics per user."""
    
    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self._load_lock = threading.Lock()
        self._loaded = False
        self.df = None
        self._user_cache = {}  # Cache for individual lookups
    
    def _load(self):
        if self.df is None:
            self.df = _read_parquet(f"{self.data_dir}/users.parquet")
    
    def _get_row(self, user_id: str):
        if user_id in self._user_cache:
            return self._user_cache[user_id]
        
        self.load()
        if self.df.empty:
            return None
        
        user_rows = self.df[self.df['user_id'] == user_id]
        if len(user_rows) == 0:
            return None
        
        row = user_rows.iloc[0]
        self._user_cache[user_id] = row
        return row
    
    def resolve_cell(self, user_id: str) -> Optional[str]:
        row = self._get_row(user_id)
        if row is None:
            return None
        return _optional_str(row.get('geo_index'))
    
    def get_explicit_topics(self, user_id: str) -> Set[str]:
        row = self._get_row(user_id)
        if row is None:
            return set()
        return {str(t) for t in _as_list(row.get('topics'))}
