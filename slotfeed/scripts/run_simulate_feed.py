#!/usr/bin/env python3
"""
Generate many feeds and compare realized pool shares with the roll tables.
"""

import argparse
import logging
from collections import Counter

import pandas as pd

from slotfeed.config.constants import POOLS
from slotfeed.config.feed_config import FeedConfig
from slotfeed.ranking.allocator import expected_distribution
from slotfeed.serving.feed_core import create_engine


def summarize(label: str, counts: Counter, authenticated: bool):
    total = sum(counts.values())
    expected = expected_distribution(authenticated)
    print(f"\n{label} ({total} served slots)")
    print(f"  {'pool':<14}{'realized':>10}{'expected':>10}")
    for pool in POOLS:
        realized = counts.get(pool, 0) / total if total else 0.0
        print(f"  {pool:<14}{realized:>10.3f}{expected.get(pool, 0.0):>10.3f}")


def main():
    parser = argparse.ArgumentParser(description="Simulate slot-roll feeds")
    parser.add_argument("--data_dir", type=str, default="data")
    parser.add_argument("--n_requests", type=int, default=200)
    parser.add_argument("--slots", type=int, default=15)
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--embedding_dim", type=int, default=384)
    args = parser.parse_args()
    
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s [%(levelname)s] %(name)s — %(message)s")
    
    engine = create_engine(
        args.data_dir,
        config=FeedConfig(EMBEDDING_DIM=args.embedding_dim),
        seed=args.seed
    )
    users = pd.read_parquet(f"{args.data_dir}/users.parquet")["user_id"].tolist()
    
    print("=" * 80)
    print("SLOT-ROLL SIMULATION")
    print("=" * 80)
    
    rolled = {True: Counter(), False: Counter()}
    served = {True: Counter(), False: Counter()}
    short_feeds = 0
    
    for i in range(args.n_requests):
        for authenticated in (True, False):
            requester = users[i % len(users)] if authenticated else None
            result = engine.generate_feed(requester, args.slots)
            
            assert len(result.item_ids) == len(set(result.item_ids)), "duplicate item in feed"
            if result.stats.filled_slots < args.slots:
                short_feeds += 1
            
            rolled[authenticated].update(e.rolled_pool for e in result.entries)
            served[authenticated].update(e.pool for e in result.entries)
    
    summarize("Authenticated, rolled pools", rolled[True], True)
    summarize("Authenticated, serving pools", served[True], True)
    summarize("Anonymous, rolled pools", rolled[False], False)
    summarize("Anonymous, serving pools", served[False], False)
    print(f"\nShort feeds: {short_feeds}")


if __name__ == "__main__":
    main()
