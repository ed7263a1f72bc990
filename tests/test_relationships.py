from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from empire_sim.domain.memory_models import MemoryEventType, RelationshipTier
from empire_sim.systems.relationships import (
    calculate_net_relationship,
    has_permanent_grudge,
    most_significant_memories,
    relationship_tier,
    summarize,
)
from tests.helpers.factories import make_record, rules
from tests.helpers.strategies import event_type_strategy


def _memory():
    return rules().memory


def _tiers():
    return rules().relationships


def test_no_memories_is_neutral() -> None:
    summary = summarize([], 10, _memory(), _tiers())

    assert summary.net_score == 0
    assert summary.tier is RelationshipTier.NEUTRAL
    assert summary.has_permanent_grudge is False
    assert summary.top_memories == ()


def test_capture_outweighs_trade() -> None:
    records = [
        make_record(MemoryEventType.SECTOR_CAPTURED, turn=5),
        make_record(MemoryEventType.TRADE_COMPLETED, turn=5),
    ]

    summary = summarize(records, 5, _memory(), _tiers())

    assert summary.net_score == -70
    assert summary.tier is RelationshipTier.UNFRIENDLY


@pytest.mark.parametrize(
    "score, tier",
    [
        (-101, RelationshipTier.HOSTILE),
        (-100, RelationshipTier.UNFRIENDLY),
        (-26, RelationshipTier.UNFRIENDLY),
        (-25, RelationshipTier.NEUTRAL),
        (0, RelationshipTier.NEUTRAL),
        (24.99, RelationshipTier.NEUTRAL),
        (25, RelationshipTier.FRIENDLY),
        (99, RelationshipTier.FRIENDLY),
        (100, RelationshipTier.ALLIED),
        (250, RelationshipTier.ALLIED),
    ],
)
def test_tier_boundaries(score: float, tier: RelationshipTier) -> None:
    assert relationship_tier(score, False, _tiers()) is tier


@pytest.mark.parametrize("score", [0, 50, 150])
def test_grudge_caps_tier_at_unfriendly(score: float) -> None:
    assert relationship_tier(score, True, _tiers()) is RelationshipTier.UNFRIENDLY


def test_grudge_does_not_lift_hostile() -> None:
    assert relationship_tier(-200, True, _tiers()) is RelationshipTier.HOSTILE


def test_only_negative_scars_are_grudges() -> None:
    assert has_permanent_grudge([make_record(MemoryEventType.SECTOR_CAPTURED, scar=True)])
    assert not has_permanent_grudge([make_record(MemoryEventType.SECTOR_CAPTURED)])
    assert not has_permanent_grudge([make_record(MemoryEventType.SAVED_FROM_DESTRUCTION, scar=True)])


def test_scarred_relationship_cannot_recover() -> None:
    records = [make_record(MemoryEventType.SECTOR_CAPTURED, turn=0, scar=True, record_id="scar")]
    records += [
        make_record(MemoryEventType.SAVED_FROM_DESTRUCTION, turn=1000, record_id=f"save-{i}")
        for i in range(3)
    ]

    summary = summarize(records, 1000, _memory(), _tiers())

    assert summary.net_score == 190
    assert summary.has_permanent_grudge is True
    assert summary.tier is RelationshipTier.UNFRIENDLY


@given(
    events=st.lists(event_type_strategy(), max_size=8),
    positive=st.sampled_from(
        [MemoryEventType.TRADE_COMPLETED, MemoryEventType.TREATY_SIGNED, MemoryEventType.SAVED_FROM_DESTRUCTION]
    ),
)
@settings(max_examples=50)
def test_positive_memory_never_lowers_score(events: list[MemoryEventType], positive: MemoryEventType) -> None:
    config = _memory()
    records = [make_record(event, turn=0, record_id=f"r{i}") for i, event in enumerate(events)]
    before = calculate_net_relationship(records, 20, config)
    after = calculate_net_relationship(records + [make_record(positive, turn=20, record_id="new")], 20, config)
    assert after > before


def test_top_memories_limited_and_ordered() -> None:
    records = [
        make_record(MemoryEventType.MESSAGE_SENT, turn=10, record_id="a"),
        make_record(MemoryEventType.SECTOR_CAPTURED, turn=10, record_id="b"),
        make_record(MemoryEventType.TRADE_COMPLETED, turn=10, record_id="c"),
        make_record(MemoryEventType.BATTLE_WON, turn=10, record_id="d"),
        make_record(MemoryEventType.TREATY_SIGNED, turn=10, record_id="e"),
        make_record(MemoryEventType.THREAT_ISSUED, turn=10, record_id="f"),
        make_record(MemoryEventType.SAVED_FROM_DESTRUCTION, turn=10, record_id="g"),
    ]

    top = most_significant_memories(records, 10, _memory())

    assert [r.id for r in top] == ["g", "b", "d", "e", "f"]
    assert [r.id for r in most_significant_memories(records, 10, _memory(), limit=2)] == ["g", "b"]


def test_newer_memory_wins_ties() -> None:
    old = make_record(MemoryEventType.SECTOR_CAPTURED, turn=0, scar=True, record_id="old")
    new = make_record(MemoryEventType.SECTOR_CAPTURED, turn=40, scar=True, record_id="new")

    assert [r.id for r in most_significant_memories([old, new], 40, _memory())] == ["new", "old"]
