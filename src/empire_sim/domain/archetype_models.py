"""Bot personality profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from empire_sim.domain.types import UnitType


class ArchetypeName(str, Enum):
    WARLORD = "warlord"
    DIPLOMAT = "diplomat"
    MERCHANT = "merchant"
    SCHEMER = "schemer"
    TURTLE = "turtle"
    BLITZKRIEG = "blitzkrieg"
    TECH_RUSH = "tech_rush"
    OPPORTUNIST = "opportunist"


class CombatStyle(str, Enum):
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    OPPORTUNISTIC = "opportunistic"
    BALANCED = "balanced"


class PassiveAbility(str, Enum):
    WAR_ECONOMY = "war_economy"
    TRADE_NETWORK = "trade_network"
    MARKET_INSIGHT = "market_insight"
    SHADOW_NETWORK = "shadow_network"
    FORTIFICATION = "fortification"
    NONE = "none"


class Focus(str, Enum):
    MILITARY = "military"
    ECONOMY = "economy"
    DIPLOMACY = "diplomacy"
    RESEARCH = "research"


@dataclass(frozen=True)
class Priorities:
    military: float
    economy: float
    diplomacy: float
    research: float

    def weight(self, focus: Focus) -> float:
        return getattr(self, focus.value)


@dataclass(frozen=True)
class WarningRange:
    min: int
    max: int


@dataclass(frozen=True)
class DiplomacyStance:
    propose_chance: float = 1.0
    alliance_chance: float = 0.3


@dataclass(frozen=True)
class ArchetypeProfile:
    name: ArchetypeName
    display_name: str
    description: str
    priorities: Priorities
    attack_threshold: float
    combat_style: CombatStyle
    tell_rate: float
    bluff_rate: float
    warning_range: WarningRange
    passive_ability: PassiveAbility
    unit_preference: Mapping[UnitType, float] = field(default_factory=dict, hash=False)
    diplomacy: DiplomacyStance = DiplomacyStance()

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_preference", MappingProxyType(dict(self.unit_preference)))

    @property
    def initiates_attacks(self) -> bool:
        return self.attack_threshold > 0
