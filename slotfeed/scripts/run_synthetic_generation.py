#!/usr/bin/env python3
"""
Master script to generate all synthetic feed data.
"""

import argparse
from pathlib import Path

import pandas as pd

from slotfeed.synthetic.generator_config import get_default_config
from slotfeed.synthetic.generate_feed_data import generate_all


def save_to_parquet(rows, output_path: Path, columns):
    """Save a list of row dicts to Parquet."""
    df = pd.DataFrame(rows, columns=columns)
    df.to_parquet(output_path, index=False)
    print(f"  Saved {len(df)} rows to {output_path}")


COLUMNS = {
    "users": ["user_id", "geo_index", "topics"],
    "items": [
        "item_id", "author_id", "embedding", "num_likes", "num_comments",
        "num_shares", "created_at", "geo_index", "author_reputation", "topics"
    ],
    "likes": ["user_id", "item_id", "created_at"],
    "relationships": ["user_id", "related_id", "kind"],
    "mutes": ["muter_id", "muted_id", "expires_at"],
    "blocks": ["blocker_id", "blocked_id"],
}


def main():
    parser = argparse.ArgumentParser(description="Generate synthetic data for the feed engine")
    parser.add_argument("--output_dir", type=str, default="data", help="Output directory")
    parser.add_argument("--n_users", type=int, default=1_000, help="Number of users to generate")
    parser.add_argument("--n_items", type=int, default=5_000, help="Number of items to generate")
    parser.add_argument("--embedding_dim", type=int, default=384, help="Embedding dimension")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()
    
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    
    print("=" * 80)
    print("SYNTHETIC FEED DATA GENERATION")
    print("=" * 80)
    
    config = get_default_config()
    config.N_USERS = args.n_users
    config.N_ITEMS = args.n_items
    config.EMBEDDING_DIM = args.embedding_dim
    config.RANDOM_SEED = args.seed
    
    print(f"\nConfiguration:")
    print(f"  Users: {config.N_USERS}")
    print(f"  Items: {config.N_ITEMS}")
    print(f"  Embedding dim: {config.EMBEDDING_DIM}")
    print(f"  Random seed: {config.RANDOM_SEED}")
    print()
    
    tables = generate_all(config)
    
    print("\nSaving tables...")
    for name, rows in tables.items():
        save_to_parquet(rows, output_dir / f"{name}.parquet", COLUMNS[name])
    
    print("=" * 80)
    print("GENERATION COMPLETE")
    print("=" * 80)
    print(f"\nFiles saved to: {output_dir.absolute()}")
    print("\nNext steps:")
    print("  1. Run python -m slotfeed.scripts.run_simulate_feed to check pool shares")
    print("  2. Run python -m slotfeed.serving.api_main to serve feeds")
    print()


if __name__ == "__main__":
    main()
