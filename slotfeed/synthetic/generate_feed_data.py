"""
Generate synthetic users, items, likes, relationships and negative signals.

Items cluster around topic centers in embedding space; users like items from
their preferred topics, so the interest vector has something real to find.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List

import numpy as np

from slotfeed.synthetic.generator_config import SyntheticConfig


def user_id_for(idx: int) -> str:
    return f"u{idx:05d}"


def item_id_for(idx: int) -> str:
    return f"p{idx:06d}"


def random_cell(prefix: str, config: SyntheticConfig, rng: np.random.Generator) -> str:
    """Extend a cell prefix with random children up to GEO_RESOLUTION."""
    n_missing = config.GEO_RESOLUTION - len(prefix)
    children = rng.choice(list(config.GEO_ALPHABET), size=n_missing)
    return prefix + "".join(children)


def generate_topic_centers(config: SyntheticConfig, rng: np.random.Generator) -> np.ndarray:
    centers = rng.standard_normal((config.N_TOPICS, config.EMBEDDING_DIM))
    return centers / np.linalg.norm(centers, axis=1, keepdims=True)


def generate_region_prefixes(config: SyntheticConfig, rng: np.random.Generator) -> List[str]:
    """Two-character region cells; users and items sit below them."""
    prefixes = set()
    while len(prefixes) < config.N_REGIONS:
        prefixes.add("".join(rng.choice(list(config.GEO_ALPHABET), size=2)))
    return sorted(prefixes)


def generate_users(
    config: SyntheticConfig,
    regions: List[str],
    rng: np.random.Generator
) -> List[Dict]:
    users = []
    for idx in range(config.N_USERS):
        n_topics = int(rng.integers(config.TOPICS_PER_USER_RANGE[0], config.TOPICS_PER_USER_RANGE[1] + 1))
        topic_idx = rng.choice(config.N_TOPICS, size=n_topics, replace=False)
        
        # Roughly 10% of users never declare a location
        geo_index = None
        if rng.random() > 0.1:
            geo_index = random_cell(regions[int(rng.integers(0, len(regions)))], config, rng)
        
        users.append({
            "user_id": user_id_for(idx),
            "geo_index": geo_index,
            "topics": [config.TOPIC_NAMES[t] for t in topic_idx],
            "topic_pref": rng.dirichlet([0.5] * config.N_TOPICS),
        })
    return users


def generate_items(
    config: SyntheticConfig,
    users: List[Dict],
    centers: np.ndarray,
    regions: List[str],
    now: datetime,
    rng: np.random.Generator
) -> List[Dict]:
    items = []
    for idx in range(config.N_ITEMS):
        author = users[int(rng.integers(0, len(users)))]
        topic = int(rng.choice(config.N_TOPICS, p=author["topic_pref"]))
        
        embedding = centers[topic] + rng.normal(0.0, config.TOPIC_NOISE, config.EMBEDDING_DIM) / np.sqrt(config.EMBEDDING_DIM)
        embedding = embedding / np.linalg.norm(embedding)
        
        num_likes = int(rng.lognormal(config.LIKES_LOGNORMAL_MEAN, config.LIKES_LOGNORMAL_SIGMA))
        age_hours = float(rng.uniform(0.0, config.TIME_HORIZON_HOURS))
        
        geo_index = None
        if rng.random() < config.P_ITEM_HAS_GEO:
            # Items mostly posted near their author
            base = author["geo_index"][:4] if author["geo_index"] else regions[int(rng.integers(0, len(regions)))]
            geo_index = random_cell(base, config, rng)
        
        items.append({
            "item_id": item_id_for(idx),
            "author_id": author["user_id"],
            "embedding": embedding.astype(np.float32).tolist(),
            "num_likes": num_likes,
            "num_comments": int(rng.poisson(num_likes * 0.2)),
            "num_shares": int(rng.poisson(num_likes * 0.05)),
            "created_at": (now - timedelta(hours=age_hours)).isoformat(),
            "geo_index": geo_index,
            "author_reputation": float(rng.uniform(*config.REPUTATION_RANGE)),
            "topics": [config.TOPIC_NAMES[topic]],
            "topic": topic,
        })
    return items


def generate_likes(
    config: SyntheticConfig,
    users: List[Dict],
    items: List[Dict],
    now: datetime,
    rng: np.random.Generator
) -> List[Dict]:
    items_by_topic: Dict[int, List[Dict]] = {t: [] for t in range(config.N_TOPICS)}
    for item in items:
        items_by_topic[item["topic"]].append(item)
    
    likes = []
    for user in users:
        n_likes = int(rng.integers(config.LIKES_PER_USER_RANGE[0], config.LIKES_PER_USER_RANGE[1] + 1))
        for _ in range(n_likes):
            topic = int(rng.choice(config.N_TOPICS, p=user["topic_pref"]))
            pool = items_by_topic[topic]
            if not pool:
                continue
            item = pool[int(rng.integers(0, len(pool)))]
            likes.append({
                "user_id": user["user_id"],
                "item_id": item["item_id"],
                "created_at": (now - timedelta(hours=float(rng.uniform(0, config.TIME_HORIZON_HOURS)))).isoformat(),
            })
    return likes


def generate_relationships(
    config: SyntheticConfig,
    users: List[Dict],
    rng: np.random.Generator
) -> List[Dict]:
    """Subscriptions and follows are one-way; friendships are stored once per pair."""
    n_users = len(users)
    rows = []
    friend_pairs = set()
    
    for idx, user in enumerate(users):
        for kind, value_range in (
            ("subscription", config.SUBSCRIPTIONS_RANGE),
            ("follow", config.FOLLOWS_RANGE),
            ("friend", config.FRIENDS_RANGE),
        ):
            n = int(rng.integers(value_range[0], value_range[1] + 1))
            targets = rng.choice(n_users, size=min(n, n_users - 1), replace=False)
            for target in targets:
                if int(target) == idx:
                    continue
                if kind == "friend":
                    pair = (min(idx, int(target)), max(idx, int(target)))
                    if pair in friend_pairs:
                        continue
                    friend_pairs.add(pair)
                rows.append({
                    "user_id": user["user_id"],
                    "related_id": user_id_for(int(target)),
                    "kind": kind,
                })
    return rows


def generate_negative_signals(
    config: SyntheticConfig,
    users: List[Dict],
    now: datetime,
    rng: np.random.Generator
):
    """Returns (mutes, blocks) row lists."""
    n_users = len(users)
    mutes, blocks = [], []
    
    for idx, user in enumerate(users):
        if rng.random() < config.P_USER_MUTES:
            target = int(rng.integers(0, n_users))
            if target != idx:
                expires_at = None
                if rng.random() < config.P_MUTE_EXPIRES:
                    # Half of expiring mutes are already over
                    expires_at = (now + timedelta(hours=float(rng.uniform(-48, 48)))).isoformat()
                mutes.append({
                    "muter_id": user["user_id"],
                    "muted_id": user_id_for(target),
                    "expires_at": expires_at,
                })
        
        if rng.random() < config.P_USER_BLOCKS:
            target = int(rng.integers(0, n_users))
            if target != idx:
                blocks.append({
                    "blocker_id": user["user_id"],
                    "blocked_id": user_id_for(target),
                })
    
    return mutes, blocks


def generate_all(config: SyntheticConfig, now: datetime = None) -> Dict[str, List[Dict]]:
    """
    Generate every table. Keys match the parquet file stems read by
    slotfeed.data.repositories.
    """
    now = now or datetime.now(timezone.utc)
    rng = np.random.default_rng(config.RANDOM_SEED)
    
    print("Generating topic centers and regions...")
    centers = generate_topic_centers(config, rng)
    regions = generate_region_prefixes(config, rng)
    
    print(f"Generating {config.N_USERS} users...")
    users = generate_users(config, regions, rng)
    
    print(f"Generating {config.N_ITEMS} items...")
    items = generate_items(config, users, centers, regions, now, rng)
    
    print("Generating likes...")
    likes = generate_likes(config, users, items, now, rng)
    
    print("Generating relationships...")
    relationships = generate_relationships(config, users, rng)
    
    print("Generating mutes and blocks...")
    mutes, blocks = generate_negative_signals(config, users, now, rng)
    
    return {
        "users": [{k: u[k] for k in ("user_id", "geo_index", "topics")} for u in users],
        "items": [{k: v for k, v in item.items() if k != "topic"} for item in items],
        "likes": likes,
        "relationships": relationships,
        "mutes": mutes,
        "blocks": blocks,
    }
