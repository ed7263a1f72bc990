"""Core value types shared by every system."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Iterator, Mapping, TypeAlias

EmpireId: TypeAlias = str


class UnitType(str, Enum):
    GROUND_TROOPS = "ground_troops"
    STRIKE_CRAFT = "strike_craft"
    STATIC_DEFENSES = "static_defenses"
    LIGHT_CRUISERS = "light_cruisers"
    HEAVY_CRUISERS = "heavy_cruisers"
    CARRIERS = "carriers"


# Units that can leave home on an attack and fight in orbit or deep space.
FLEET_UNITS = (
    UnitType.STRIKE_CRAFT,
    UnitType.LIGHT_CRUISERS,
    UnitType.HEAVY_CRUISERS,
)


class CombatPhase(str, Enum):
    SPACE = "space"
    ORBITAL = "orbital"
    GROUND = "ground"
    GUERILLA = "guerilla"


INVASION_PHASES = (CombatPhase.SPACE, CombatPhase.ORBITAL, CombatPhase.GROUND)


class AttackType(str, Enum):
    INVASION = "invasion"
    GUERILLA = "guerilla"


class Side(str, Enum):
    ATTACKER = "attacker"
    DEFENDER = "defender"


class ResourceKind(str, Enum):
    FOOD = "food"
    ORE = "ore"
    PETROLEUM = "petroleum"


@dataclass(frozen=True)
class Forces:
    """Unit counts for one side of an engagement or one empire's stockpile."""

    ground_troops: int = 0
    strike_craft: int = 0
    static_defenses: int = 0
    light_cruisers: int = 0
    heavy_cruisers: int = 0
    carriers: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"Forces.{f.name} must be int, got {type(value).__name__}")
            if value < 0:
                raise ValueError(f"Forces.{f.name} must be >= 0, got {value}")

    @classmethod
    def from_mapping(cls, data: Mapping[UnitType | str, int]) -> "Forces":
        counts: dict[str, int] = {}
        for key, value in data.items():
            unit = UnitType(key)
            counts[unit.value] = int(value)
        return cls(**counts)

    def count(self, unit: UnitType) -> int:
        return getattr(self, unit.value)

    def items(self) -> Iterator[tuple[UnitType, int]]:
        for unit in UnitType:
            yield unit, self.count(unit)

    def as_dict(self) -> dict[str, int]:
        return {unit.value: count for unit, count in self.items()}

    def total(self) -> int:
        return sum(count for _, count in self.items())

    def is_empty(self) -> bool:
        return self.total() == 0

    def with_count(self, unit: UnitType, count: int) -> "Forces":
        return replace(self, **{unit.value: max(0, int(count))})

    def plus(self, other: "Forces") -> "Forces":
        return Forces(**{unit.value: self.count(unit) + other.count(unit) for unit in UnitType})

    def minus(self, other: "Forces") -> "Forces":
        """Subtract counts, flooring each unit at zero."""
        return Forces(
            **{unit.value: max(0, self.count(unit) - other.count(unit)) for unit in UnitType}
        )

    def capped_by(self, other: "Forces") -> "Forces":
        return Forces(
            **{unit.value: min(self.count(unit), other.count(unit)) for unit in UnitType}
        )


@dataclass(frozen=True)
class Resources:
    credits: int = 0
    food: int = 0
    ore: int = 0
    petroleum: int = 0
    population: int = 0
    research_points: int = 0

    def amount(self, kind: ResourceKind) -> int:
        return getattr(self, kind.value)
