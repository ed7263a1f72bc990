"""Archetype-driven bot decisions.

``decide`` is a pure function of the bot's view of the turn, its archetype
profile, the ruleset and an injected RNG. It always returns exactly one
action; ``Wait`` is what a bot does when nothing else makes sense.

Attack step: every reachable rival is scored by relative power (rival
strength / own strength). Friendly or allied rivals and treaty partners are
never attacked, hostile rivals are attacked more readily, and the weakest
qualifying rival is chosen. Outside combat the bot splits its effort across
military, economy, diplomacy and research by its priority weights, tilted
by market scarcity and by any hostile neighbours, and acts on one of them.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable

from empire_sim.domain.actions import (
    AcquireSectorOrder,
    Action,
    AttackOrder,
    BuildOrder,
    MessageKind,
    MessageOrder,
    ResearchOrder,
    TradeDirection,
    TradeOrder,
    Wait,
)
from empire_sim.domain.archetype_models import ArchetypeProfile, Focus
from empire_sim.domain.memory_models import RelationshipSummary, RelationshipTier
from empire_sim.domain.types import (
    FLEET_UNITS,
    AttackType,
    EmpireId,
    Forces,
    ResourceKind,
    UnitType,
)
from empire_sim.rules.ruleset import ArmyConfig, Ruleset, UnitsConfig
from empire_sim.sim.state import EmpireSnapshot, MarketContext
from empire_sim.systems.archetypes import ArchetypeTable
from empire_sim.systems.army import combat_modifier
from empire_sim.systems.effectiveness import primary_phase
from empire_sim.systems.tells import plan_attack_warning, roll_bluff

logger = logging.getLogger(__name__)

NEUTRAL = RelationshipSummary(net_score=0.0, tier=RelationshipTier.NEUTRAL, has_permanent_grudge=False)


@dataclass(frozen=True)
class DecisionContext:
    """Everything one bot may look at when choosing its action."""

    empire: EmpireSnapshot
    turn: int
    others: tuple[EmpireSnapshot, ...]
    relationships: dict[EmpireId, RelationshipSummary] = field(default_factory=dict, hash=False)
    treaty_partners: frozenset[EmpireId] = frozenset()
    market: MarketContext = MarketContext()

    def relationship(self, other: EmpireId) -> RelationshipSummary:
        return self.relationships.get(other, NEUTRAL)


@dataclass(frozen=True)
class TargetAssessment:
    empire_id: EmpireId
    relative_power: float
    threshold: float
    net_score: float
    tier: RelationshipTier
    eligible: bool
    reason: str = ""


def military_strength(
    forces: Forces,
    army_effectiveness: float | None,
    units: UnitsConfig,
    army: ArmyConfig,
) -> float:
    raw = sum(
        count * units.base_power(unit)
        for unit, count in forces.items()
        if primary_phase(unit) is not None
    )
    rating = army.effectiveness_default if army_effectiveness is None else army_effectiveness
    return raw * combat_modifier(rating, army)


def relative_power(target_strength: float, own_strength: float) -> float:
    if own_strength <= 0:
        return math.inf
    return target_strength / own_strength


def is_protected(turn: int, rules: Ruleset) -> bool:
    return turn <= rules.decisions.protection_turns


def assess_targets(context: DecisionContext, profile: ArchetypeProfile, rules: Ruleset) -> list[TargetAssessment]:
    own = military_strength(context.empire.forces, context.empire.army_effectiveness, rules.units, rules.army)
    assessments: list[TargetAssessment] = []
    for other in context.others:
        if other.empire_id == context.empire.empire_id:
            continue
        summary = context.relationship(other.empire_id)
        strength = military_strength(other.forces, other.army_effectiveness, rules.units, rules.army)
        ratio = relative_power(strength, own)
        threshold = profile.attack_threshold
        if summary.tier is RelationshipTier.HOSTILE:
            threshold += rules.decisions.hostile_threshold_bonus

        reason = ""
        if other.is_eliminated:
            reason = "eliminated"
        elif not context.empire.can_reach(other.empire_id):
            reason = "out of range"
        elif other.empire_id in context.treaty_partners:
            reason = "treaty"
        elif summary.tier.rank >= RelationshipTier.FRIENDLY.rank:
            reason = f"relationship is {summary.tier.value}"
        elif ratio > threshold:
            reason = "too strong"
        assessments.append(
            TargetAssessment(
                empire_id=other.empire_id,
                relative_power=ratio,
                threshold=threshold,
                net_score=summary.net_score,
                tier=summary.tier,
                eligible=not reason,
                reason=reason,
            )
        )
    return assessments


def choose_target(assessments: list[TargetAssessment]) -> TargetAssessment | None:
    eligible = [a for a in assessments if a.eligible]
    if not eligible:
        return None
    return min(eligible, key=lambda a: (a.relative_power, a.net_score, a.empire_id))


def commit_forces(
    empire: EmpireSnapshot,
    profile: ArchetypeProfile,
    rules: Ruleset,
    rng: random.Random,
) -> tuple[AttackType, Forces] | None:
    forces = empire.forces
    low, high = rules.decisions.commit_fraction[profile.combat_style]
    fraction = rng.uniform(low, high)

    has_fleet = any(forces.count(unit) > 0 for unit in FLEET_UNITS)
    troops = math.floor(forces.ground_troops * fraction)
    if troops == 0 and forces.ground_troops > 0:
        troops = min(rules.decisions.min_committed_troops, forces.ground_troops)

    if has_fleet:
        committed = Forces(
            ground_troops=troops,
            strike_craft=math.floor(forces.strike_craft * fraction),
            light_cruisers=math.floor(forces.light_cruisers * fraction),
            heavy_cruisers=math.floor(forces.heavy_cruisers * fraction),
            carriers=forces.carriers,
        )
        if any(committed.count(unit) > 0 for unit in FLEET_UNITS):
            return AttackType.INVASION, committed
    if troops > 0:
        return AttackType.GUERILLA, Forces(ground_troops=troops)
    return None


def plan_attack(
    context: DecisionContext,
    profile: ArchetypeProfile,
    rules: Ruleset,
    rng: random.Random,
) -> AttackOrder | None:
    if is_protected(context.turn, rules) or not profile.initiates_attacks:
        return None
    target = choose_target(assess_targets(context, profile, rules))
    if target is None:
        return None
    commitment = commit_forces(context.empire, profile, rules, rng)
    if commitment is None:
        return None
    attack_type, forces = commitment
    warning = plan_attack_warning(profile, rng)
    logger.debug(
        "%s attacks %s (%s, ratio %.2f <= %.2f)",
        context.empire.empire_id,
        target.empire_id,
        attack_type.value,
        target.relative_power,
        target.threshold,
    )
    return AttackOrder(
        empire_id=context.empire.empire_id,
        target_id=target.empire_id,
        attack_type=attack_type,
        forces=forces,
        warning=warning,
    )


def allocate_effort(context: DecisionContext, profile: ArchetypeProfile, rules: Ruleset) -> dict[Focus, float]:
    """Share of effort per focus, normalised to sum to 1."""
    config = rules.decisions
    priorities = profile.priorities
    threatened = any(s.tier is RelationshipTier.HOSTILE for s in context.relationships.values())
    raw = {
        Focus.MILITARY: priorities.military * (1.0 + config.threat_weight if threatened else 1.0),
        Focus.ECONOMY: priorities.economy * (1.0 + config.scarcity_weight * context.market.max_scarcity()),
        Focus.DIPLOMACY: priorities.diplomacy,
        Focus.RESEARCH: priorities.research,
    }
    total = sum(raw.values())
    if total <= 0:
        return {focus: 1.0 / len(raw) for focus in raw}
    return {focus: weight / total for focus, weight in raw.items()}


def choose_focus(weights: dict[Focus, float], rng: random.Random) -> Focus:
    roll = rng.random()
    cumulative = 0.0
    chosen = Focus.MILITARY
    for focus in Focus:
        weight = weights.get(focus, 0.0)
        if weight <= 0:
            continue
        chosen = focus
        cumulative += weight
        if roll < cumulative:
            return focus
    return chosen


def plan_build(
    context: DecisionContext,
    profile: ArchetypeProfile,
    rules: Ruleset,
    rng: random.Random,
) -> BuildOrder | None:
    credits = context.empire.resources.credits
    preference = profile.unit_preference or {unit: 1.0 for unit in UnitType}
    options = [
        (unit, weight)
        for unit, weight in sorted(preference.items(), key=lambda item: item[0].value)
        if weight > 0 and 0 < rules.units.cost(unit) <= credits
    ]
    if not options:
        return None
    roll = rng.random() * sum(weight for _, weight in options)
    unit = options[-1][0]
    for candidate, weight in options:
        if roll < weight:
            unit = candidate
            break
        roll -= weight
    low, high = rules.decisions.build_spend_range
    budget = credits * rng.uniform(low, high)
    quantity = max(1, math.floor(budget / rules.units.cost(unit)))
    return BuildOrder(empire_id=context.empire.empire_id, unit_type=unit, quantity=quantity)


def plan_trade(context: DecisionContext, rules: Ruleset, rng: random.Random) -> TradeOrder | None:
    resources = context.empire.resources
    roll = rng.random()
    ordered = [rules.decisions.trade_rules[kind] for kind in ResourceKind if kind in rules.decisions.trade_rules]

    for rule in ordered:
        scale = resources.population if rule.per_population else 1
        price = context.market.price(rule.resource, rule.default_price)
        if resources.amount(rule.resource) < rule.low * scale and resources.credits >= rule.min_credits_to_buy:
            quantity = min(rule.max_buy, math.floor(resources.credits / price)) if price > 0 else 0
            if quantity > 0:
                return TradeOrder(
                    empire_id=context.empire.empire_id,
                    resource=rule.resource,
                    quantity=quantity,
                    direction=TradeDirection.BUY,
                    unit_price=price,
                )

    for rule in ordered:
        scale = resources.population if rule.per_population else 1
        surplus = resources.amount(rule.resource) - rule.high * scale
        if surplus > 0 and roll < rule.sell_chance:
            quantity = min(rule.max_sell, math.floor(surplus / 2))
            if quantity > rule.min_sell:
                return TradeOrder(
                    empire_id=context.empire.empire_id,
                    resource=rule.resource,
                    quantity=quantity,
                    direction=TradeDirection.SELL,
                    unit_price=context.market.price(rule.resource, rule.default_price),
                )
    return None


def plan_economy(
    context: DecisionContext,
    profile: ArchetypeProfile,
    rules: Ruleset,
    rng: random.Random,
) -> Action | None:
    trade = plan_trade(context, rules, rng)
    if trade is not None:
        return trade
    cost = rules.decisions.sector_cost
    if context.empire.resources.credits >= cost:
        return AcquireSectorOrder(empire_id=context.empire.empire_id, cost=cost)
    return None


def plan_diplomacy(
    context: DecisionContext,
    profile: ArchetypeProfile,
    rules: Ruleset,
    rng: random.Random,
) -> MessageOrder | None:
    candidates = [
        other
        for other in context.others
        if other.empire_id != context.empire.empire_id
        and not other.is_eliminated
        and other.empire_id not in context.treaty_partners
        and context.empire.can_reach(other.empire_id)
    ]
    if not candidates:
        return None
    if rng.random() >= profile.diplomacy.propose_chance:
        return None

    target = min(candidates, key=lambda o: (-context.relationship(o.empire_id).net_score, o.empire_id))
    tier = context.relationship(target.empire_id).tier
    if tier.rank >= RelationshipTier.NEUTRAL.rank:
        if rng.random() < profile.diplomacy.alliance_chance:
            kind = MessageKind.PROPOSE_ALLIANCE
        else:
            kind = MessageKind.PROPOSE_NAP
    else:
        kind = MessageKind.THREAT

    is_bluff = roll_bluff(profile, rng)
    if is_bluff:
        kind = MessageKind.PROPOSE_NAP if kind is MessageKind.THREAT else MessageKind.THREAT
    return MessageOrder(
        empire_id=context.empire.empire_id,
        target_id=target.empire_id,
        kind=kind,
        is_bluff=is_bluff,
    )


def plan_research(
    context: DecisionContext,
    profile: ArchetypeProfile,
    rules: Ruleset,
    rng: random.Random,
) -> ResearchOrder | None:
    investment = math.floor(context.empire.resources.credits * rules.decisions.research_spend_fraction)
    if investment <= 0:
        return None
    return ResearchOrder(empire_id=context.empire.empire_id, investment=investment)


_PLANNERS: dict[Focus, Callable[[DecisionContext, ArchetypeProfile, Ruleset, random.Random], Action | None]] = {
    Focus.MILITARY: plan_build,
    Focus.ECONOMY: plan_economy,
    Focus.DIPLOMACY: plan_diplomacy,
    Focus.RESEARCH: plan_research,
}


def decide(
    context: DecisionContext,
    profile: ArchetypeProfile,
    rules: Ruleset,
    rng: random.Random,
) -> Action:
    empire_id = context.empire.empire_id
    if context.empire.is_eliminated:
        return Wait(empire_id=empire_id, reason="eliminated")

    attack = plan_attack(context, profile, rules, rng)
    if attack is not None:
        return attack

    focus = choose_focus(allocate_effort(context, profile, rules), rng)
    action = _PLANNERS[focus](context, profile, rules, rng)
    if action is None:
        return Wait(empire_id=empire_id, reason=f"no {focus.value} action available")
    logger.debug("%s chose %s (%s)", empire_id, type(action).__name__, focus.value)
    return action


class DecisionEngine:
    def __init__(self, rules: Ruleset) -> None:
        self.rules = rules
        self.archetypes = ArchetypeTable(rules)

    def decide(self, context: DecisionContext, rng: random.Random) -> Action:
        if context.empire.archetype is None:
            return Wait(empire_id=context.empire.empire_id, reason="not a bot")
        profile = self.archetypes.get(context.empire.archetype)
        return decide(context, profile, self.rules, rng)
