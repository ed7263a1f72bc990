"""Unit effectiveness per combat phase."""

from __future__ import annotations

from enum import Enum

from empire_sim.domain.types import CombatPhase, Forces, UnitType
from empire_sim.rules.ruleset import UnitsConfig


class EffectivenessLevel(float, Enum):
    NONE = 0.0
    LOW = 0.25
    MEDIUM = 0.5
    HIGH = 1.0


_N = EffectivenessLevel.NONE
_L = EffectivenessLevel.LOW
_M = EffectivenessLevel.MEDIUM
_H = EffectivenessLevel.HIGH

EFFECTIVENESS_MATRIX: dict[UnitType, dict[CombatPhase, EffectivenessLevel]] = {
    UnitType.GROUND_TROOPS: {
        CombatPhase.SPACE: _N,
        CombatPhase.ORBITAL: _N,
        CombatPhase.GROUND: _H,
        CombatPhase.GUERILLA: _H,
    },
    UnitType.STRIKE_CRAFT: {
        CombatPhase.SPACE: _L,
        CombatPhase.ORBITAL: _H,
        CombatPhase.GROUND: _L,
        CombatPhase.GUERILLA: _N,
    },
    UnitType.STATIC_DEFENSES: {
        CombatPhase.SPACE: _N,
        CombatPhase.ORBITAL: _M,
        CombatPhase.GROUND: _M,
        CombatPhase.GUERILLA: _N,
    },
    UnitType.LIGHT_CRUISERS: {
        CombatPhase.SPACE: _H,
        CombatPhase.ORBITAL: _H,
        CombatPhase.GROUND: _N,
        CombatPhase.GUERILLA: _N,
    },
    UnitType.HEAVY_CRUISERS: {
        CombatPhase.SPACE: _H,
        CombatPhase.ORBITAL: _M,
        CombatPhase.GROUND: _N,
        CombatPhase.GUERILLA: _N,
    },
    UnitType.CARRIERS: {
        CombatPhase.SPACE: _N,
        CombatPhase.ORBITAL: _N,
        CombatPhase.GROUND: _N,
        CombatPhase.GUERILLA: _N,
    },
}

_PHASE_ROLES: dict[tuple[UnitType, CombatPhase], str] = {
    (UnitType.GROUND_TROOPS, CombatPhase.GROUND): "Primary ground assault force",
    (UnitType.GROUND_TROOPS, CombatPhase.GUERILLA): "Insurgent raiders",
    (UnitType.STRIKE_CRAFT, CombatPhase.SPACE): "Screening escorts",
    (UnitType.STRIKE_CRAFT, CombatPhase.ORBITAL): "Orbital superiority fighters",
    (UnitType.STRIKE_CRAFT, CombatPhase.GROUND): "Close air support",
    (UnitType.STATIC_DEFENSES, CombatPhase.ORBITAL): "Orbital defense platform",
    (UnitType.STATIC_DEFENSES, CombatPhase.GROUND): "Fortified ground emplacement",
    (UnitType.LIGHT_CRUISERS, CombatPhase.SPACE): "Fleet line combatant",
    (UnitType.LIGHT_CRUISERS, CombatPhase.ORBITAL): "Orbital strike ship",
    (UnitType.HEAVY_CRUISERS, CombatPhase.SPACE): "Capital line combatant",
    (UnitType.HEAVY_CRUISERS, CombatPhase.ORBITAL): "Orbital bombardment",
}


def effectiveness(unit: UnitType, phase: CombatPhase, is_defender: bool = False) -> float:
    value = EFFECTIVENESS_MATRIX[unit][phase].value
    if unit is UnitType.STATIC_DEFENSES and phase is CombatPhase.ORBITAL and is_defender:
        value = min(value * 2, EffectivenessLevel.HIGH.value)
    return value


def effective_power(
    unit: UnitType,
    count: int,
    base_power: float,
    phase: CombatPhase,
    is_defender: bool = False,
) -> float:
    if count <= 0 or base_power <= 0:
        return 0.0
    return count * base_power * effectiveness(unit, phase, is_defender)


def can_participate(unit: UnitType, phase: CombatPhase, is_defender: bool = False) -> bool:
    return effectiveness(unit, phase, is_defender) > 0


def participating_units(phase: CombatPhase, is_defender: bool = False) -> list[UnitType]:
    return [unit for unit in UnitType if can_participate(unit, phase, is_defender)]


def primary_phase(unit: UnitType) -> CombatPhase | None:
    """Phase where the unit contributes most; ``None`` for non-combat units."""
    best: CombatPhase | None = None
    best_value = 0.0
    for phase in CombatPhase:
        value = effectiveness(unit, phase)
        if value > best_value:
            best, best_value = phase, value
    return best


def phase_role(unit: UnitType, phase: CombatPhase) -> str:
    return _PHASE_ROLES.get((unit, phase), "Does not participate")


def phase_power(
    forces: Forces,
    phase: CombatPhase,
    units: UnitsConfig,
    is_defender: bool = False,
) -> float:
    return sum(
        effective_power(unit, count, units.base_power(unit), phase, is_defender)
        for unit, count in forces.items()
    )


def transport_capacity(carriers: int, troops_per_carrier: int) -> int:
    return max(0, carriers) * max(0, troops_per_carrier)
