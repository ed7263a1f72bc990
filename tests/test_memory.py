"""Memory decay, permanent scars and pruning."""

from __future__ import annotations

import random

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from empire_sim.domain.memory_models import DecayResistance, MemoryEventType
from empire_sim.domain.reports import CombatOutcome
from empire_sim.domain.types import AttackType, Forces, Side
from empire_sim.rules.ruleset import UnknownEventType
from empire_sim.systems.memory import (
    MemoryStore,
    calculate_memory_decay,
    combat_memory_events,
    decayed_weight,
    roll_permanent_scar,
)
from tests.helpers.factories import ScriptedRandom, make_record, rules
from tests.helpers.strategies import resistance_strategy


def _config():
    return rules().memory


def _store() -> MemoryStore:
    return MemoryStore(_config())


def test_low_resistance_memory_fades_completely_after_500_turns() -> None:
    assert calculate_memory_decay(50, 500, DecayResistance.LOW, _config()) == 0


def test_decay_rate_depends_on_resistance() -> None:
    config = _config()
    # 1% per turn scaled by (1 - resistance).
    assert calculate_memory_decay(40, 10, DecayResistance.MEDIUM, config) == 38.0
    assert calculate_memory_decay(40, 10, DecayResistance.HIGH, config) == 39.2
    assert calculate_memory_decay(40, 10, DecayResistance.VERY_LOW, config) == 36.4


@given(weight=st.integers(min_value=0, max_value=100), resistance=resistance_strategy())
def test_no_decay_at_zero_elapsed_turns(weight: int, resistance: DecayResistance) -> None:
    assert calculate_memory_decay(weight, 0, resistance, _config()) == weight


@given(
    weight=st.integers(min_value=0, max_value=100),
    turns=st.integers(min_value=0, max_value=2000),
    extra=st.integers(min_value=0, max_value=2000),
    resistance=resistance_strategy(),
)
@settings(max_examples=50)
def test_decay_is_monotonic(weight: int, turns: int, extra: int, resistance: DecayResistance) -> None:
    config = _config()
    earlier = calculate_memory_decay(weight, turns, resistance, config)
    later = calculate_memory_decay(weight, turns + extra, resistance, config)
    assert 0 <= later <= earlier <= weight


@given(weight=st.integers(min_value=0, max_value=100), turns=st.integers(min_value=0, max_value=100_000))
def test_permanent_tier_never_decays(weight: int, turns: int) -> None:
    assert calculate_memory_decay(weight, turns, DecayResistance.PERMANENT, _config()) == weight


def test_out_of_range_inputs_are_clamped() -> None:
    config = _config()
    assert calculate_memory_decay(40, -5, DecayResistance.MEDIUM, config) == 40
    assert calculate_memory_decay(-10, 5, DecayResistance.MEDIUM, config) == 0


def test_decayed_weight_is_recomputed_not_accumulated() -> None:
    record = make_record(MemoryEventType.BATTLE_WON, turn=10)
    first = decayed_weight(record, 60, _config())
    second = decayed_weight(record, 60, _config())
    assert first == second == 30.0


def test_scar_keeps_full_weight() -> None:
    record = make_record(MemoryEventType.SECTOR_CAPTURED, turn=0, scar=True)
    assert decayed_weight(record, 5000, _config()) == 80


def test_heavy_negative_event_becomes_scar_when_roll_succeeds() -> None:
    store = _store()
    record = store.record("blue", "red", MemoryEventType.SECTOR_CAPTURED, 30, ScriptedRandom(0.1))
    assert record.is_permanent_scar is True


def test_heavy_negative_event_without_lucky_roll_is_not_scar() -> None:
    store = _store()
    record = store.record("blue", "red", MemoryEventType.SECTOR_CAPTURED, 30, ScriptedRandom(0.5))
    assert record.is_permanent_scar is False


@pytest.mark.parametrize(
    "event_type",
    [MemoryEventType.THREAT_ISSUED, MemoryEventType.MINOR_SKIRMISH, MemoryEventType.SAVED_FROM_DESTRUCTION],
)
def test_light_or_positive_events_never_scar(event_type: MemoryEventType) -> None:
    store = _store()
    record = store.record("blue", "red", event_type, 1, ScriptedRandom(0.0))
    assert record.is_permanent_scar is False


def test_ineligible_event_takes_no_draw() -> None:
    config = _config()
    rng = random.Random(11)
    before = rng.getstate()

    assert roll_permanent_scar(config.events[MemoryEventType.THREAT_ISSUED], rng, config) is False
    assert rng.getstate() == before


def test_record_fields_come_from_event_table() -> None:
    record = _store().record("blue", "red", "treaty_signed", 12, random.Random(1), context={"note": "x"})

    assert record.event_type is MemoryEventType.TREATY_SIGNED
    assert record.original_weight == 25
    assert record.decay_resistance is DecayResistance.LOW
    assert record.holder_id == "blue"
    assert record.target_id == "red"
    assert record.turn_recorded == 12
    assert dict(record.context) == {"note": "x"}


def test_record_context_is_read_only() -> None:
    note = {"note": "x"}
    record = _store().record("blue", "red", MemoryEventType.TREATY_SIGNED, 12, random.Random(1), context=note)
    note["note"] = "changed"

    assert record.context["note"] == "x"
    with pytest.raises(TypeError):
        record.context["note"] = "y"  # type: ignore[index]


def test_unknown_event_type_raises() -> None:
    with pytest.raises(UnknownEventType):
        _store().record("blue", "red", "planet_captured", 1, random.Random(1))


def test_record_ids_follow_the_rng() -> None:
    first = _store().record("blue", "red", MemoryEventType.TRADE_COMPLETED, 1, random.Random(7))
    second = _store().record("blue", "red", MemoryEventType.TRADE_COMPLETED, 1, random.Random(7))
    assert first.id == second.id


def test_each_holder_keeps_its_own_log() -> None:
    store = _store()
    rng = random.Random(3)
    store.record("blue", "red", MemoryEventType.SECTOR_CAPTURED, 5, rng)
    store.record("red", "blue", MemoryEventType.BATTLE_LOST, 5, rng)

    assert [r.event_type for r in store.records("blue", "red")] == [MemoryEventType.SECTOR_CAPTURED]
    assert [r.event_type for r in store.records("red", "blue")] == [MemoryEventType.BATTLE_LOST]
    assert list(store.records_held_by("blue")) == ["red"]
    assert len(store) == 2


def test_prune_removes_faded_records_but_keeps_scars() -> None:
    store = _store()
    faded = make_record(MemoryEventType.MESSAGE_SENT, turn=0, record_id="m1")
    old_capture = make_record(MemoryEventType.SECTOR_CAPTURED, turn=0, record_id="c1")
    scar = make_record(MemoryEventType.SECTOR_CAPTURED, turn=0, scar=True, record_id="s1")
    fresh = make_record(MemoryEventType.TRADE_COMPLETED, turn=990, record_id="t1")
    store.load([faded, old_capture, scar, fresh])

    removed = store.prune(1000)

    assert {r.id for r in removed} == {"m1", "c1"}
    assert {r.id for r in store.all_records()} == {"s1", "t1"}
    assert store.prune(1000) == []


def test_prune_is_explicit() -> None:
    store = _store()
    store.load([make_record(MemoryEventType.MESSAGE_SENT, turn=0)])

    assert len(store.records("holder", "target")) == 1
    assert len(store) == 1


def _outcome(attack_type: AttackType, captured: bool) -> CombatOutcome:
    return CombatOutcome(
        attack_type=attack_type,
        attacker_id="red",
        defender_id="blue",
        phases=(),
        attacker_committed=Forces(ground_troops=10),
        attacker_losses=Forces(),
        defender_losses=Forces(),
        territory_transferred=captured,
        sectors_captured=1 if captured else 0,
        attacker_effectiveness_delta=0.0,
        defender_effectiveness_delta=0.0,
        winner=Side.ATTACKER if captured else Side.DEFENDER,
    )


def test_combat_memory_events() -> None:
    assert combat_memory_events(_outcome(AttackType.INVASION, True)) == [
        ("blue", "red", MemoryEventType.SECTOR_CAPTURED),
        ("red", "blue", MemoryEventType.BATTLE_LOST),
    ]
    assert combat_memory_events(_outcome(AttackType.INVASION, False)) == [
        ("blue", "red", MemoryEventType.MINOR_SKIRMISH),
        ("red", "blue", MemoryEventType.BATTLE_WON),
    ]
    raid = combat_memory_events(_outcome(AttackType.GUERILLA, False))
    assert {event for _, _, event in raid} == {MemoryEventType.MINOR_SKIRMISH}
