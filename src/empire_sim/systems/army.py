"""Army effectiveness rating (0-100) that scales combat power."""

from __future__ import annotations

from empire_sim.domain.reports import CombatOutcome
from empire_sim.domain.types import AttackType, EmpireId, Side
from empire_sim.rules.ruleset import ArmyConfig


def clamp_effectiveness(value: float, config: ArmyConfig) -> float:
    return max(config.effectiveness_min, min(config.effectiveness_max, value))


def apply_effectiveness_change(current: float, delta: float, config: ArmyConfig) -> float:
    return clamp_effectiveness(current + delta, config)


def recover_effectiveness(current: float, config: ArmyConfig) -> float:
    return clamp_effectiveness(current + config.recovery_per_turn, config)


def combat_modifier(current: float, config: ArmyConfig) -> float:
    """Multiplier applied to phase power; 100 effectiveness is full strength."""
    return clamp_effectiveness(current, config) / 100.0


def outcome_deltas(attack_type: AttackType, winner: Side, config: ArmyConfig) -> tuple[float, float]:
    """(attacker delta, defender delta) for a resolved engagement.

    Raids are skirmishes and leave effectiveness untouched.
    """
    if attack_type is AttackType.GUERILLA:
        return 0.0, 0.0
    if winner is Side.ATTACKER:
        return config.victory_bonus, -config.defeat_penalty
    return -config.defeat_penalty, config.victory_bonus


def accumulate_deltas(outcomes: list[CombatOutcome]) -> dict[EmpireId, float]:
    totals: dict[EmpireId, float] = {}
    for outcome in outcomes:
        totals[outcome.attacker_id] = totals.get(outcome.attacker_id, 0.0) + outcome.attacker_effectiveness_delta
        totals[outcome.defender_id] = totals.get(outcome.defender_id, 0.0) + outcome.defender_effectiveness_delta
    return totals
