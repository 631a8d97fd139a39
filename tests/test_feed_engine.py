"""
Tests for serving/feed_core.py: end-to-end feed assembly over in-memory stores.
"""

import base64
import json
from collections import Counter
from datetime import timedelta

import numpy as np
import pytest

from slotfeed.data.schemas import Mute, Block, Relationships
from slotfeed.data.validators import InvalidFeedRequest
from slotfeed.config.constants import RANDOM, TRENDING, PERSONALIZED
from slotfeed.serving.cursor import decode_cursor

from fakes import (
    NOW, FakeContentStore, FakeNegativeSignals, FakeSocialGraph,
    make_builder, make_engine, make_item, make_items
)


@pytest.mark.parametrize("seed", range(5))
def test_no_duplicates_and_contiguous_positions(seed):
    engine = make_engine(items=make_items(20), seed=seed)
    result = engine.generate_feed("me", 15)
    
    assert len(result.entries) == 15
    assert len(set(result.item_ids)) == 15
    assert [e.position for e in result.entries] == list(range(15))


def test_short_feed_when_candidates_run_out():
    engine = make_engine(items=make_items(3))
    result = engine.generate_feed("me", 5)
    
    assert len(result.entries) == 3
    assert sorted(result.item_ids) == ["p0", "p1", "p2"]
    assert [e.position for e in result.entries] == [0, 1, 2]
    assert result.stats.total_slots == 5
    assert result.stats.filled_slots == 3


def test_empty_candidate_set():
    result = make_engine(items=[]).generate_feed("me", 5)
    assert result.entries == []
    assert result.stats.filled_slots == 0


def test_blocked_authors_never_served_in_either_direction():
    items = [
        make_item("x1", author_id="i_blocked"),
        make_item("x2", author_id="blocked_me"),
        make_item("ok", author_id="neutral"),
    ]
    negative = FakeNegativeSignals(blocks=[Block("me", "i_blocked"), Block("blocked_me", "me")])
    
    for seed in range(10):
        result = make_engine(items=items, negative=negative, seed=seed).generate_feed("me", 5)
        assert result.item_ids == ["ok"]


def test_mutes_hide_only_while_active():
    items = [make_item("m1", author_id="muted"), make_item("e1", author_id="expired")]
    negative = FakeNegativeSignals(mutes=[
        Mute("me", "muted", expires_at=NOW + timedelta(days=7)),
        Mute("me", "expired", expires_at=NOW - timedelta(days=1)),
    ])
    result = make_engine(items=items, negative=negative).generate_feed("me", 5)
    assert result.item_ids == ["e1"]


def test_negative_signals_do_not_apply_to_anonymous_requests():
    items = [make_item("m1", author_id="muted")]
    negative = FakeNegativeSignals(mutes=[Mute("me", "muted")])
    assert make_engine(items=items, negative=negative).generate_feed(None, 3).item_ids == ["m1"]


def test_negative_store_failure_fails_closed():
    negative = FakeNegativeSignals(error=ConnectionError("mute service down"))
    result = make_engine(items=make_items(10), negative=negative).generate_feed("me", 5)
    assert result.entries == []
    assert result.stats.filled_slots == 0


def test_content_store_failure_serves_empty_feed():
    content = FakeContentStore(error=TimeoutError("content store slow"))
    result = make_engine(content=content).generate_feed("me", 5)
    assert result.entries == []


def test_profile_failure_degrades_but_still_serves():
    builder = make_builder(social=FakeSocialGraph(error=ConnectionError("graph down")))
    result = make_engine(items=make_items(10), builder=builder).generate_feed("me", 5)
    assert len(result.entries) == 5


def test_own_items_excluded():
    items = [make_item("mine", author_id="me"), make_item("theirs", author_id="them")]
    assert make_engine(items=items).generate_feed("me", 5).item_ids == ["theirs"]
    assert sorted(make_engine(items=items).generate_feed(None, 5).item_ids) == ["mine", "theirs"]


@pytest.mark.parametrize("slot_count", [0, -3, "5", 2.0, True, None])
def test_invalid_slot_count(slot_count):
    with pytest.raises(InvalidFeedRequest):
        make_engine(items=make_items(3)).generate_feed("me", slot_count)


def test_empty_requester_id_rejected():
    with pytest.raises(InvalidFeedRequest):
        make_engine(items=make_items(3)).generate_feed("", 5)


def test_malformed_cursor_rejected():
    engine = make_engine(items=make_items(3))
    with pytest.raises(InvalidFeedRequest):
        engine.generate_feed("me", 5, cursor="not-a-cursor")
    
    wrong_version = base64.urlsafe_b64encode(json.dumps({"v": 99, "served": []}).encode()).decode()
    with pytest.raises(InvalidFeedRequest):
        engine.generate_feed("me", 5, cursor=wrong_version)


def test_same_seed_same_feed():
    items = make_items(30)
    first = make_engine(items=items, seed=7).generate_feed("me", 10)
    second = make_engine(items=items, seed=7).generate_feed("me", 10)
    assert first.as_tuples() == second.as_tuples()
    
    rng_a = make_engine(items=items).generate_feed("me", 10, rng=np.random.default_rng(3))
    rng_b = make_engine(items=items).generate_feed("me", 10, rng=np.random.default_rng(3))
    assert rng_a.as_tuples() == rng_b.as_tuples()


def test_cursor_pagination_never_repeats():
    engine = make_engine(items=make_items(10))
    
    page1 = engine.generate_feed("me", 4)
    page2 = engine.generate_feed("me", 4, cursor=page1.next_cursor)
    page3 = engine.generate_feed("me", 4, cursor=page2.next_cursor)
    page4 = engine.generate_feed("me", 4, cursor=page3.next_cursor)
    
    served = page1.item_ids + page2.item_ids + page3.item_ids
    assert len(served) == 10
    assert len(set(served)) == 10
    assert page4.entries == []
    assert sorted(decode_cursor(page3.next_cursor)) == sorted(served)


def test_exclude_ids():
    engine = make_engine(items=make_items(4))
    result = engine.generate_feed("me", 4, exclude_ids=["p0", "p1"])
    assert sorted(result.item_ids) == ["p2", "p3"]


def test_anonymous_feed_never_uses_personalized_pool():
    engine = make_engine(items=make_items(40))
    for _ in range(20):
        result = engine.generate_feed(None, 15)
        assert all(e.pool in (RANDOM, TRENDING) for e in result.entries)
        assert all(e.rolled_pool in (RANDOM, TRENDING) for e in result.entries)
        assert result.stats.expected_distribution == pytest.approx({RANDOM: 0.3, TRENDING: 0.7})


def test_anonymous_roll_values_map_to_pools():
    engine = make_engine(items=make_items(40))
    result = engine.generate_feed(None, 15)
    for entry in result.entries:
        assert entry.rolled_pool == (RANDOM if entry.roll_value < 30 else TRENDING)


def test_pool_shares_converge_for_subscribed_requester():
    """3 subscriptions, 50 candidates, 10 slots: about 1 / 1 / 8 per feed on average."""
    subs = ["s1", "s2", "s3"]
    items = [
        make_item(f"p{i}", author_id=subs[i % 3] if i < 15 else f"other{i}", engagement=float(i % 7 + 1))
        for i in range(50)
    ]
    builder = make_builder(social=FakeSocialGraph({"me": Relationships(subscriptions=subs)}))
    engine = make_engine(items=items, builder=builder, seed=11)
    
    n_trials = 400
    totals = Counter()
    for _ in range(n_trials):
        result = engine.generate_feed("me", 10)
        assert len(result.entries) == 10
        totals.update(result.stats.pool_distribution)
    
    assert totals[RANDOM] / n_trials == pytest.approx(1.0, abs=0.3)
    assert totals[TRENDING] / n_trials == pytest.approx(1.0, abs=0.3)
    assert totals[PERSONALIZED] / n_trials == pytest.approx(8.0, abs=0.3)


def test_stats_match_entries():
    result = make_engine(items=make_items(20)).generate_feed("me", 12)
    counts = Counter(e.pool for e in result.entries)
    
    assert result.stats.filled_slots == len(result.entries)
    assert sum(result.stats.pool_distribution.values()) == 12
    for pool, count in result.stats.pool_distribution.items():
        assert count == counts.get(pool, 0)
    assert result.stats.expected_distribution == pytest.approx(
        {RANDOM: 0.1, TRENDING: 0.1, PERSONALIZED: 0.8}
    )


def test_invalidation_hub_shares_builder_cache():
    social = FakeSocialGraph({"me": Relationships(friends=["pal"])})
    engine = make_engine(items=make_items(5), builder=make_builder(social=social))
    
    engine.generate_feed("me", 3)
    engine.generate_feed("me", 3)
    assert social.calls == 1
    
    engine.invalidation.handle("block", "me", "pal")
    engine.generate_feed("me", 3)
    assert social.calls == 2
