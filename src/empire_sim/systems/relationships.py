"""Reduces one holder's memories of a target to a score and a tier."""

from __future__ import annotations

from typing import Iterable

from empire_sim.domain.memory_models import MemoryRecord, RelationshipSummary, RelationshipTier
from empire_sim.rules.ruleset import MemoryConfig, RelationshipConfig
from empire_sim.systems.memory import decayed_weight, signed_weight


def calculate_net_relationship(
    records: Iterable[MemoryRecord], current_turn: int, config: MemoryConfig
) -> float:
    return round(sum(signed_weight(record, current_turn, config) for record in records), 2)


def has_permanent_grudge(records: Iterable[MemoryRecord]) -> bool:
    return any(record.is_permanent_scar and record.is_negative for record in records)


def relationship_tier(
    net_score: float, has_grudge: bool, config: RelationshipConfig
) -> RelationshipTier:
    if net_score < config.hostile_below:
        tier = RelationshipTier.HOSTILE
    elif net_score < config.unfriendly_below:
        tier = RelationshipTier.UNFRIENDLY
    elif net_score < config.neutral_below:
        tier = RelationshipTier.NEUTRAL
    elif net_score < config.friendly_below:
        tier = RelationshipTier.FRIENDLY
    else:
        tier = RelationshipTier.ALLIED
    if has_grudge and tier.rank > RelationshipTier.UNFRIENDLY.rank:
        return RelationshipTier.UNFRIENDLY
    return tier


def most_significant_memories(
    records: Iterable[MemoryRecord],
    current_turn: int,
    config: MemoryConfig,
    limit: int | None = None,
) -> list[MemoryRecord]:
    count = config.top_memory_limit if limit is None else limit
    ranked = sorted(
        records,
        key=lambda r: (-decayed_weight(r, current_turn, config), -r.turn_recorded, r.id),
    )
    return ranked[: max(0, count)]


def summarize(
    records: Iterable[MemoryRecord],
    current_turn: int,
    memory_config: MemoryConfig,
    relationship_config: RelationshipConfig,
) -> RelationshipSummary:
    items = list(records)
    net = calculate_net_relationship(items, current_turn, memory_config)
    grudge = has_permanent_grudge(items)
    return RelationshipSummary(
        net_score=net,
        tier=relationship_tier(net, grudge, relationship_config),
        has_permanent_grudge=grudge,
        top_memories=tuple(most_significant_memories(items, current_turn, memory_config)),
    )
