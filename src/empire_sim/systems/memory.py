"""Relationship memory: weighted events that fade over time.

Each empire keeps its own log of what other empires did to it. Records are
never edited; the weight a record carries on a given turn is recomputed from
its original weight, the turns elapsed and its decay-resistance tier, so
asking twice for the same turn always yields the same value.

A negative event heavy enough to cross the scar threshold may become a
permanent scar on creation. Scars keep their full weight forever, survive
every pruning pass and cap how far the relationship can recover.
"""

from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Iterable

from empire_sim.domain.memory_models import (
    DecayResistance,
    MemoryEventDef,
    MemoryEventType,
    MemoryRecord,
)
from empire_sim.domain.reports import CombatOutcome
from empire_sim.domain.types import AttackType, EmpireId
from empire_sim.rules.ruleset import MemoryConfig, UnknownEventType

logger = logging.getLogger(__name__)


def calculate_memory_decay(
    weight: float,
    turns_elapsed: int,
    resistance: DecayResistance,
    config: MemoryConfig,
) -> float:
    weight = max(0.0, weight)
    if resistance is DecayResistance.PERMANENT:
        return weight
    turns = max(0, turns_elapsed)
    per_turn = config.base_decay_rate * (1.0 - config.resistance_values[resistance])
    remaining = max(0.0, 1.0 - turns * per_turn)
    return round(weight * remaining, 2)


def decayed_weight(record: MemoryRecord, current_turn: int, config: MemoryConfig) -> float:
    if record.is_permanent_scar:
        return max(0.0, record.original_weight)
    return calculate_memory_decay(
        record.original_weight,
        current_turn - record.turn_recorded,
        record.decay_resistance,
        config,
    )


def signed_weight(record: MemoryRecord, current_turn: int, config: MemoryConfig) -> float:
    return record.polarity.sign * decayed_weight(record, current_turn, config)


def is_scar_eligible(definition: MemoryEventDef, config: MemoryConfig) -> bool:
    return definition.polarity.sign < 0 and definition.weight >= config.scar_weight_threshold


def roll_permanent_scar(definition: MemoryEventDef, rng: random.Random, config: MemoryConfig) -> bool:
    # Ineligible events take no draw so they cannot shift later rolls.
    if not is_scar_eligible(definition, config):
        return False
    return rng.random() < config.scar_chance


def parse_event_type(event_type: MemoryEventType | str) -> MemoryEventType:
    try:
        return MemoryEventType(event_type)
    except ValueError as exc:
        raise UnknownEventType(f"Unknown memory event type: {event_type!r}") from exc


def _record_id(rng: random.Random) -> str:
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


class MemoryStore:
    """Append-only memory log keyed by (holder, target)."""

    def __init__(self, config: MemoryConfig) -> None:
        self.config = config
        self._records: dict[tuple[EmpireId, EmpireId], list[MemoryRecord]] = {}

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())

    def record(
        self,
        holder: EmpireId,
        target: EmpireId,
        event_type: MemoryEventType | str,
        turn: int,
        rng: random.Random,
        context: dict[str, Any] | None = None,
    ) -> MemoryRecord:
        event = parse_event_type(event_type)
        definition = self.config.events[event]
        scar = roll_permanent_scar(definition, rng, self.config)
        record = MemoryRecord(
            id=_record_id(rng),
            holder_id=holder,
            target_id=target,
            event_type=event,
            original_weight=definition.weight,
            polarity=definition.polarity,
            turn_recorded=turn,
            decay_resistance=definition.decay_resistance,
            is_permanent_scar=scar,
            context=dict(context or {}),
        )
        self._records.setdefault((holder, target), []).append(record)
        if scar:
            logger.debug("%s now holds a permanent scar against %s (%s)", holder, target, event.value)
        return record

    def load(self, records: Iterable[MemoryRecord]) -> None:
        for record in records:
            self._records.setdefault((record.holder_id, record.target_id), []).append(record)

    def records(self, holder: EmpireId, target: EmpireId) -> list[MemoryRecord]:
        return list(self._records.get((holder, target), ()))

    def records_held_by(self, holder: EmpireId) -> dict[EmpireId, list[MemoryRecord]]:
        return {
            target: list(records)
            for (owner, target), records in sorted(self._records.items())
            if owner == holder
        }

    def all_records(self) -> list[MemoryRecord]:
        return [record for _, records in sorted(self._records.items()) for record in records]

    def prune(self, current_turn: int, threshold: float | None = None) -> list[MemoryRecord]:
        """Drop faded records; permanent scars are always kept."""
        limit = self.config.prune_threshold if threshold is None else threshold
        removed: list[MemoryRecord] = []
        for key in list(self._records):
            kept: list[MemoryRecord] = []
            for record in self._records[key]:
                if not record.is_permanent_scar and decayed_weight(record, current_turn, self.config) < limit:
                    removed.append(record)
                else:
                    kept.append(record)
            if kept:
                self._records[key] = kept
            else:
                del self._records[key]
        if removed:
            logger.debug("Pruned %d faded memories at turn %d", len(removed), current_turn)
        return removed


def combat_memory_events(outcome: CombatOutcome) -> list[tuple[EmpireId, EmpireId, MemoryEventType]]:
    """(holder, target, event) entries each side remembers from an engagement."""
    attacker, defender = outcome.attacker_id, outcome.defender_id
    if outcome.attack_type is AttackType.GUERILLA:
        return [
            (defender, attacker, MemoryEventType.MINOR_SKIRMISH),
            (attacker, defender, MemoryEventType.MINOR_SKIRMISH),
        ]
    if outcome.territory_transferred:
        return [
            (defender, attacker, MemoryEventType.SECTOR_CAPTURED),
            (attacker, defender, MemoryEventType.BATTLE_LOST),
        ]
    # A failed invasion is still an attack on the defender.
    return [
        (defender, attacker, MemoryEventType.MINOR_SKIRMISH),
        (attacker, defender, MemoryEventType.BATTLE_WON),
    ]
