"""Data-driven rules engine."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from empire_sim.domain.archetype_models import (
    ArchetypeName,
    ArchetypeProfile,
    CombatStyle,
    DiplomacyStance,
    PassiveAbility,
    Priorities,
    WarningRange,
)
from empire_sim.domain.memory_models import (
    DecayResistance,
    MemoryEventDef,
    MemoryEventType,
    Polarity,
)
from empire_sim.domain.types import ResourceKind, UnitType

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"


class RulesError(ValueError):
    """Error loading or validating rules."""


class UnknownArchetype(RulesError):
    """Archetype id missing from, or not part of, the archetype table."""


class UnknownEventType(RulesError):
    """Memory event id missing from, or not part of, the event table."""


@dataclass(frozen=True)
class UnitDef:
    unit_type: UnitType
    name: str
    base_power: float
    cost: int


@dataclass(frozen=True)
class UnitsConfig:
    units: dict[UnitType, UnitDef]
    troops_per_carrier: int

    def base_power(self, unit: UnitType) -> float:
        return self.units[unit].base_power

    def cost(self, unit: UnitType) -> int:
        return self.units[unit].cost


@dataclass(frozen=True)
class CombatConfig:
    defender_power_bonus: float
    loser_loss_rate: float
    winner_loss_rate: float
    overwhelming_ratio: float
    overwhelming_adjustment: float
    variance_min: float
    variance_max: float
    guerilla_loser_loss_rate: float
    guerilla_winner_loss_rate: float
    guerilla_loss_cap: float
    capture_min_pct: float
    capture_max_pct: float


@dataclass(frozen=True)
class ArmyConfig:
    effectiveness_min: float
    effectiveness_max: float
    effectiveness_default: float
    victory_bonus: float
    defeat_penalty: float
    recovery_per_turn: float


@dataclass(frozen=True)
class MemoryConfig:
    events: dict[MemoryEventType, MemoryEventDef]
    resistance_values: dict[DecayResistance, float]
    base_decay_rate: float
    scar_weight_threshold: float
    scar_chance: float
    prune_threshold: float
    top_memory_limit: int


@dataclass(frozen=True)
class RelationshipConfig:
    hostile_below: float
    unfriendly_below: float
    neutral_below: float
    friendly_below: float


@dataclass(frozen=True)
class TradeRule:
    resource: ResourceKind
    low: float
    high: float
    per_population: bool
    min_credits_to_buy: int
    max_buy: int
    max_sell: int
    min_sell: int
    sell_chance: float
    default_price: float


@dataclass(frozen=True)
class DecisionConfig:
    protection_turns: int
    hostile_threshold_bonus: float
    commit_fraction: dict[CombatStyle, tuple[float, float]]
    min_committed_troops: int
    scarcity_weight: float
    threat_weight: float
    build_spend_range: tuple[float, float]
    research_spend_fraction: float
    sector_cost: int
    trade_rules: dict[ResourceKind, TradeRule]


@dataclass(frozen=True)
class Ruleset:
    """Loaded and validated ruleset."""

    units: UnitsConfig
    combat: CombatConfig
    army: ArmyConfig
    memory: MemoryConfig
    relationships: RelationshipConfig
    archetypes: dict[ArchetypeName, ArchetypeProfile]
    decisions: DecisionConfig

    @staticmethod
    def load(data_dir: Path) -> "Ruleset":
        """Load ruleset from JSON files in data directory."""
        combat_config, army_config = _load_combat(data_dir / "combat.json")
        return Ruleset(
            units=_load_units(data_dir / "units.json"),
            combat=combat_config,
            army=army_config,
            memory=_load_memory(data_dir / "memory.json"),
            relationships=_load_relationships(data_dir / "relationships.json"),
            archetypes=_load_archetypes(data_dir / "archetypes.json"),
            decisions=_load_decisions(data_dir / "decisions.json"),
        )

    @staticmethod
    def default() -> "Ruleset":
        """Packaged rules, loaded once per process."""
        return _default_rules()


@lru_cache(maxsize=1)
def _default_rules() -> Ruleset:
    return Ruleset.load(DATA_DIR)


def _load_json(path: Path) -> dict[str, Any]:
    """Load JSON file."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise RulesError(f"Rules file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise RulesError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RulesError(f"{path}: top level must be object")
    return data


def _fraction(path: Path, name: str, value: Any) -> float:
    result = float(value)
    if not 0.0 <= result <= 1.0:
        raise RulesError(f"{path}: {name} must be within [0, 1], got {result}")
    return result


def _pair(path: Path, name: str, value: Any) -> tuple[float, float]:
    if not isinstance(value, list) or len(value) != 2:
        raise RulesError(f"{path}: {name} must be [min, max]")
    low, high = float(value[0]), float(value[1])
    if low > high:
        raise RulesError(f"{path}: {name} min {low} exceeds max {high}")
    return low, high


def _load_units(path: Path) -> UnitsConfig:
    data = _load_json(path)
    if "units" not in data:
        raise RulesError(f"{path}: missing 'units' key")
    units: dict[UnitType, UnitDef] = {}
    for item in data["units"]:
        if not isinstance(item, dict):
            raise RulesError(f"{path}: unit entry must be object")
        unit_id = item.get("id")
        try:
            unit_type = UnitType(unit_id)
        except ValueError as exc:
            raise RulesError(f"{path}: unknown unit id {unit_id!r}") from exc
        base_power = float(item.get("base_power", 1.0))
        cost = int(item.get("cost", 0))
        if base_power < 0 or cost < 0:
            raise RulesError(f"{path}: unit {unit_id} has negative power or cost")
        units[unit_type] = UnitDef(
            unit_type=unit_type,
            name=str(item.get("name", unit_id)),
            base_power=base_power,
            cost=cost,
        )
    missing = [unit.value for unit in UnitType if unit not in units]
    if missing:
        raise RulesError(f"{path}: missing unit definitions {missing}")
    troops_per_carrier = int(data.get("troops_per_carrier", 100))
    if troops_per_carrier < 0:
        raise RulesError(f"{path}: troops_per_carrier must be >= 0")
    return UnitsConfig(units=units, troops_per_carrier=troops_per_carrier)


def _load_combat(path: Path) -> tuple[CombatConfig, ArmyConfig]:
    data = _load_json(path)
    casualties = data.get("casualties", {})
    guerilla = data.get("guerilla", {})
    capture = data.get("capture", {})
    army = data.get("army_effectiveness", {})

    variance_min, variance_max = _pair(path, "casualties.variance", casualties.get("variance", [0.8, 1.2]))
    capture_min, capture_max = _pair(path, "capture.sector_pct", capture.get("sector_pct", [0.05, 0.15]))

    combat = CombatConfig(
        defender_power_bonus=float(data.get("defender_power_bonus", 1.2)),
        loser_loss_rate=_fraction(path, "loser_loss_rate", casualties.get("loser_loss_rate", 0.25)),
        winner_loss_rate=_fraction(path, "winner_loss_rate", casualties.get("winner_loss_rate", 0.10)),
        overwhelming_ratio=float(casualties.get("overwhelming_ratio", 2.0)),
        overwhelming_adjustment=_fraction(
            path, "overwhelming_adjustment", casualties.get("overwhelming_adjustment", 0.10)
        ),
        variance_min=variance_min,
        variance_max=variance_max,
        guerilla_loser_loss_rate=_fraction(path, "guerilla.loser_loss_rate", guerilla.get("loser_loss_rate", 0.10)),
        guerilla_winner_loss_rate=_fraction(
            path, "guerilla.winner_loss_rate", guerilla.get("winner_loss_rate", 0.05)
        ),
        guerilla_loss_cap=_fraction(path, "guerilla.loss_cap", guerilla.get("loss_cap", 0.15)),
        capture_min_pct=_fraction(path, "capture.sector_pct[0]", capture_min),
        capture_max_pct=_fraction(path, "capture.sector_pct[1]", capture_max),
    )
    if combat.overwhelming_ratio < 1.0:
        raise RulesError(f"{path}: overwhelming_ratio must be >= 1")

    eff_min, eff_max = _pair(path, "army_effectiveness.range", army.get("range", [0, 100]))
    army_config = ArmyConfig(
        effectiveness_min=eff_min,
        effectiveness_max=eff_max,
        effectiveness_default=float(army.get("default", 85)),
        victory_bonus=float(army.get("victory_bonus", 5)),
        defeat_penalty=float(army.get("defeat_penalty", 5)),
        recovery_per_turn=float(army.get("recovery_per_turn", 2)),
    )
    if not eff_min <= army_config.effectiveness_default <= eff_max:
        raise RulesError(f"{path}: army_effectiveness.default outside range")
    return combat, army_config


def _load_memory(path: Path) -> MemoryConfig:
    data = _load_json(path)
    if "events" not in data:
        raise RulesError(f"{path}: missing 'events' key")

    resistance_raw = data.get("decay_resistance", {})
    resistance_values: dict[DecayResistance, float] = {}
    for tier in DecayResistance:
        if tier.value not in resistance_raw:
            raise RulesError(f"{path}: decay_resistance missing tier {tier.value!r}")
        resistance_values[tier] = _fraction(path, f"decay_resistance.{tier.value}", resistance_raw[tier.value])

    events: dict[MemoryEventType, MemoryEventDef] = {}
    for item in data["events"]:
        if not isinstance(item, dict):
            raise RulesError(f"{path}: event entry must be object")
        event_id = item.get("id")
        try:
            event_type = MemoryEventType(event_id)
        except ValueError as exc:
            raise UnknownEventType(f"{path}: unknown event type {event_id!r}") from exc
        weight = float(item.get("weight", 0))
        if not 1 <= weight <= 100:
            raise RulesError(f"{path}: event {event_id} weight must be within [1, 100]")
        try:
            resistance = DecayResistance(item.get("decay_resistance", "medium"))
            polarity = Polarity(item.get("polarity", "negative"))
        except ValueError as exc:
            raise RulesError(f"{path}: event {event_id}: {exc}") from exc
        events[event_type] = MemoryEventDef(
            event_type=event_type,
            weight=weight,
            decay_resistance=resistance,
            polarity=polarity,
            description=str(item.get("description", "")),
        )
    missing = [event.value for event in MemoryEventType if event not in events]
    if missing:
        raise UnknownEventType(f"{path}: no weight defined for {missing}")

    scar = data.get("permanent_scar", {})
    return MemoryConfig(
        events=events,
        resistance_values=resistance_values,
        base_decay_rate=float(data.get("base_decay_rate", 0.01)),
        scar_weight_threshold=float(scar.get("weight_threshold", 30)),
        scar_chance=_fraction(path, "permanent_scar.chance", scar.get("chance", 0.2)),
        prune_threshold=float(data.get("prune_threshold", 0.5)),
        top_memory_limit=int(data.get("top_memory_limit", 5)),
    )


def _load_relationships(path: Path) -> RelationshipConfig:
    data = _load_json(path)
    tiers = data.get("tier_thresholds", {})
    config = RelationshipConfig(
        hostile_below=float(tiers.get("hostile_below", -100)),
        unfriendly_below=float(tiers.get("unfriendly_below", -25)),
        neutral_below=float(tiers.get("neutral_below", 25)),
        friendly_below=float(tiers.get("friendly_below", 100)),
    )
    ordered = [config.hostile_below, config.unfriendly_below, config.neutral_below, config.friendly_below]
    if ordered != sorted(ordered):
        raise RulesError(f"{path}: tier thresholds must be ascending")
    return config


def _load_archetypes(path: Path) -> dict[ArchetypeName, ArchetypeProfile]:
    data = _load_json(path)
    if "archetypes" not in data:
        raise RulesError(f"{path}: missing 'archetypes' key")
    profiles: dict[ArchetypeName, ArchetypeProfile] = {}
    for item in data["archetypes"]:
        if not isinstance(item, dict):
            raise RulesError(f"{path}: archetype entry must be object")
        archetype_id = item.get("id")
        try:
            name = ArchetypeName(archetype_id)
        except ValueError as exc:
            raise UnknownArchetype(f"{path}: unknown archetype {archetype_id!r}") from exc

        priorities_raw = item.get("priorities", {})
        priorities = Priorities(
            military=_fraction(path, f"{archetype_id}.priorities.military", priorities_raw.get("military", 0.25)),
            economy=_fraction(path, f"{archetype_id}.priorities.economy", priorities_raw.get("economy", 0.25)),
            diplomacy=_fraction(
                path, f"{archetype_id}.priorities.diplomacy", priorities_raw.get("diplomacy", 0.25)
            ),
            research=_fraction(path, f"{archetype_id}.priorities.research", priorities_raw.get("research", 0.25)),
        )
        warning_min, warning_max = _pair(path, f"{archetype_id}.warning_range", item.get("warning_range", [1, 3]))
        if warning_min < 0:
            raise RulesError(f"{path}: {archetype_id}.warning_range must be >= 0")
        preference_raw = item.get("unit_preference", {})
        try:
            unit_preference = {UnitType(k): float(v) for k, v in preference_raw.items()}
            combat_style = CombatStyle(item.get("combat_style", "balanced"))
            passive = PassiveAbility(item.get("passive_ability", "none"))
        except ValueError as exc:
            raise RulesError(f"{path}: archetype {archetype_id}: {exc}") from exc
        stance_raw = item.get("diplomacy", {})

        profiles[name] = ArchetypeProfile(
            name=name,
            display_name=str(item.get("name", archetype_id)),
            description=str(item.get("description", "")),
            priorities=priorities,
            attack_threshold=float(item.get("attack_threshold", 0.5)),
            combat_style=combat_style,
            tell_rate=_fraction(path, f"{archetype_id}.tell_rate", item.get("tell_rate", 0.5)),
            bluff_rate=_fraction(path, f"{archetype_id}.bluff_rate", item.get("bluff_rate", 0.2)),
            warning_range=WarningRange(min=int(warning_min), max=int(warning_max)),
            passive_ability=passive,
            unit_preference=unit_preference,
            diplomacy=DiplomacyStance(
                propose_chance=_fraction(
                    path, f"{archetype_id}.diplomacy.propose_chance", stance_raw.get("propose_chance", 1.0)
                ),
                alliance_chance=_fraction(
                    path, f"{archetype_id}.diplomacy.alliance_chance", stance_raw.get("alliance_chance", 0.3)
                ),
            ),
        )
    missing = [name.value for name in ArchetypeName if name not in profiles]
    if missing:
        raise UnknownArchetype(f"{path}: no profile defined for {missing}")
    return profiles


def _load_decisions(path: Path) -> DecisionConfig:
    data = _load_json(path)
    commit_raw = data.get("commit_fraction", {})
    commit_fraction: dict[CombatStyle, tuple[float, float]] = {}
    for style in CombatStyle:
        low, high = _pair(path, f"commit_fraction.{style.value}", commit_raw.get(style.value, [0.3, 0.7]))
        commit_fraction[style] = (_fraction(path, "commit_fraction", low), _fraction(path, "commit_fraction", high))

    trade_rules: dict[ResourceKind, TradeRule] = {}
    for resource_id, rule in dict(data.get("trade", {})).items():
        try:
            resource = ResourceKind(resource_id)
        except ValueError as exc:
            raise RulesError(f"{path}: unknown trade resource {resource_id!r}") from exc
        trade_rules[resource] = TradeRule(
            resource=resource,
            low=float(rule.get("low", 0)),
            high=float(rule.get("high", 0)),
            per_population=bool(rule.get("per_population", False)),
            min_credits_to_buy=int(rule.get("min_credits_to_buy", 0)),
            max_buy=int(rule.get("max_buy", 0)),
            max_sell=int(rule.get("max_sell", 0)),
            min_sell=int(rule.get("min_sell", 50)),
            sell_chance=_fraction(path, f"trade.{resource_id}.sell_chance", rule.get("sell_chance", 0.5)),
            default_price=float(rule.get("default_price", 1.0)),
        )
    if not trade_rules:
        logger.warning("%s: no trade rules defined; bots will never trade", path)

    spend_low, spend_high = _pair(path, "build_spend_range", data.get("build_spend_range", [0.1, 0.5]))
    return DecisionConfig(
        protection_turns=int(data.get("protection_turns", 20)),
        hostile_threshold_bonus=float(data.get("hostile_threshold_bonus", 0.25)),
        commit_fraction=commit_fraction,
        min_committed_troops=int(data.get("min_committed_troops", 10)),
        scarcity_weight=float(data.get("scarcity_weight", 1.0)),
        threat_weight=float(data.get("threat_weight", 0.5)),
        build_spend_range=(spend_low, spend_high),
        research_spend_fraction=_fraction(
            path, "research_spend_fraction", data.get("research_spend_fraction", 0.2)
        ),
        sector_cost=int(data.get("sector_cost", 8000)),
        trade_rules=trade_rules,
    )
