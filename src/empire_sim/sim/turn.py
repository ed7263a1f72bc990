"""One full game turn: decide, fight, remember."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from empire_sim.domain.actions import Action, AttackOrder
from empire_sim.domain.memory_models import MemoryRecord, RelationshipSummary
from empire_sim.domain.reports import CombatOutcome
from empire_sim.domain.types import EmpireId, Forces
from empire_sim.rules.ruleset import Ruleset
from empire_sim.sim.rng import TurnContext
from empire_sim.sim.state import EmpireSnapshot, TurnInput
from empire_sim.systems.archetypes import ArchetypeTable
from empire_sim.systems.army import accumulate_deltas, apply_effectiveness_change, recover_effectiveness
from empire_sim.systems.combat import CombatResolver, CombatSide, InvalidAttack
from empire_sim.systems.decisions import DecisionContext, DecisionEngine
from empire_sim.systems.memory import MemoryStore, combat_memory_events
from empire_sim.systems.relationships import summarize
from empire_sim.systems.tells import Tell, generate_tell

logger = logging.getLogger(__name__)


class TurnOrderError(RuntimeError):
    """Turn submitted out of sequence for a game instance."""


@dataclass(frozen=True)
class RejectedAttack:
    order: AttackOrder
    reason: str


@dataclass(frozen=True)
class TurnResult:
    turn: int
    actions: tuple[Action, ...]
    outcomes: tuple[CombatOutcome, ...]
    new_memories: tuple[MemoryRecord, ...]
    rejected_attacks: tuple[RejectedAttack, ...] = ()
    tells: tuple[Tell, ...] = ()
    forces_after: dict[EmpireId, Forces] = field(default_factory=dict, hash=False)
    effectiveness_updates: dict[EmpireId, float] = field(default_factory=dict, hash=False)


def build_decision_context(
    turn_input: TurnInput,
    empire: EmpireSnapshot,
    store: MemoryStore,
    rules: Ruleset,
) -> DecisionContext:
    others = tuple(other for other in turn_input.empires if other.empire_id != empire.empire_id)
    relationships: dict[EmpireId, RelationshipSummary] = {
        other.empire_id: summarize(
            store.records(empire.empire_id, other.empire_id),
            turn_input.turn,
            rules.memory,
            rules.relationships,
        )
        for other in others
    }
    return DecisionContext(
        empire=empire,
        turn=turn_input.turn,
        others=others,
        relationships=relationships,
        treaty_partners=turn_input.treaty_partners(empire.empire_id),
        market=turn_input.market,
    )


def process_turn(
    turn_input: TurnInput,
    store: MemoryStore,
    rules: Ruleset,
    base_seed: int,
) -> TurnResult:
    """Run one turn to completion.

    Bots decide against the memory state as of the start of the turn, then
    every attack resolves in bot order against forces already worn down by
    earlier fights this turn, then both sides of each fight record what
    happened. The store is the only thing mutated.
    """
    ctx = TurnContext(base_seed=base_seed, turn=turn_input.turn)
    engine = DecisionEngine(rules)
    archetypes = ArchetypeTable(rules)
    resolver = CombatResolver(rules)

    bots = sorted((e for e in turn_input.empires if e.is_bot), key=lambda e: e.empire_id)
    contexts = [build_decision_context(turn_input, bot, store, rules) for bot in bots]

    actions: list[Action] = []
    tells: list[Tell] = []
    for bot, context in zip(bots, contexts):
        action = engine.decide(context, ctx.rng("decision", "action", bot.empire_id))
        actions.append(action)
        if bot.is_eliminated:
            continue
        profile = archetypes.get(bot.archetype)
        tell = generate_tell(action, profile, ctx.rng("tell", "signal", bot.empire_id), ctx.turn)
        if tell is not None:
            tells.append(tell)

    outcomes, rejected, remaining = _resolve_attacks(turn_input, actions, resolver, ctx)
    new_memories = list(_record_outcomes(outcomes, store, ctx))
    effectiveness = _update_effectiveness(turn_input, outcomes, rules)

    return TurnResult(
        turn=turn_input.turn,
        actions=tuple(actions),
        outcomes=tuple(outcomes),
        new_memories=tuple(new_memories),
        rejected_attacks=tuple(rejected),
        tells=tuple(tells),
        forces_after=remaining,
        effectiveness_updates=effectiveness,
    )


def _resolve_attacks(
    turn_input: TurnInput,
    actions: list[Action],
    resolver: CombatResolver,
    ctx: TurnContext,
) -> tuple[list[CombatOutcome], list[RejectedAttack], dict[EmpireId, Forces]]:
    remaining = {empire.empire_id: empire.forces for empire in turn_input.empires}
    outcomes: list[CombatOutcome] = []
    rejected: list[RejectedAttack] = []

    for order in actions:
        if not isinstance(order, AttackOrder):
            continue
        attacker = turn_input.empire(order.empire_id)
        try:
            defender = turn_input.empire(order.target_id)
        except KeyError:
            rejected.append(RejectedAttack(order=order, reason=f"unknown target {order.target_id}"))
            logger.warning("%s targeted unknown empire %s", order.empire_id, order.target_id)
            continue

        # Units lost earlier this turn cannot be sent again.
        committed = order.forces.capped_by(remaining[attacker.empire_id])
        try:
            outcome = resolver.resolve(
                CombatSide(attacker.empire_id, committed, attacker.army_effectiveness),
                CombatSide(defender.empire_id, remaining[defender.empire_id], defender.army_effectiveness),
                order.attack_type,
                ctx.rng("combat", "resolve", f"{attacker.empire_id}->{defender.empire_id}"),
                defender_sectors=defender.sector_count,
                in_range=attacker.can_reach(defender.empire_id) and not defender.is_eliminated,
            )
        except InvalidAttack as exc:
            rejected.append(RejectedAttack(order=order, reason=str(exc)))
            logger.warning("Rejected attack %s -> %s: %s", order.empire_id, order.target_id, exc)
            continue

        remaining[attacker.empire_id] = remaining[attacker.empire_id].minus(outcome.attacker_losses)
        remaining[defender.empire_id] = remaining[defender.empire_id].minus(outcome.defender_losses)
        outcomes.append(outcome)
    return outcomes, rejected, remaining


def _record_outcomes(
    outcomes: list[CombatOutcome],
    store: MemoryStore,
    ctx: TurnContext,
) -> Iterable[MemoryRecord]:
    for index, outcome in enumerate(outcomes):
        rng = ctx.rng("memory", "combat", str(index))
        for holder, target, event in combat_memory_events(outcome):
            yield store.record(
                holder,
                target,
                event,
                ctx.turn,
                rng,
                context={
                    "attack_type": outcome.attack_type.value,
                    "sectors_captured": outcome.sectors_captured,
                },
            )


def _update_effectiveness(
    turn_input: TurnInput,
    outcomes: list[CombatOutcome],
    rules: Ruleset,
) -> dict[EmpireId, float]:
    deltas = accumulate_deltas(outcomes)
    updates: dict[EmpireId, float] = {}
    for empire in turn_input.empires:
        if empire.is_eliminated:
            continue
        current = rules.army.effectiveness_default if empire.army_effectiveness is None else empire.army_effectiveness
        if empire.empire_id in deltas:
            updates[empire.empire_id] = apply_effectiveness_change(current, deltas[empire.empire_id], rules.army)
        else:
            updates[empire.empire_id] = recover_effectiveness(current, rules.army)
    return updates


class GameInstance:
    """One isolated game: its own rules, seed, memories and turn history."""

    def __init__(
        self,
        seed: int,
        rules: Ruleset | None = None,
        records: Iterable[MemoryRecord] = (),
    ) -> None:
        self.seed = seed
        self.rules = rules or Ruleset.default()
        self.store = MemoryStore(self.rules.memory)
        self.store.load(records)
        self.history: list[TurnResult] = []

    @property
    def last_turn(self) -> int | None:
        return self.history[-1].turn if self.history else None

    def advance(self, turn_input: TurnInput) -> TurnResult:
        if self.last_turn is not None and turn_input.turn <= self.last_turn:
            raise TurnOrderError(f"Turn {turn_input.turn} already processed (last was {self.last_turn})")
        result = process_turn(turn_input, self.store, self.rules, self.seed)
        self.history.append(result)
        return result

    def relationship(self, holder: EmpireId, target: EmpireId, current_turn: int) -> RelationshipSummary:
        return summarize(
            self.store.records(holder, target),
            current_turn,
            self.rules.memory,
            self.rules.relationships,
        )

    def prune_memories(self, current_turn: int) -> list[MemoryRecord]:
        return self.store.prune(current_turn)
