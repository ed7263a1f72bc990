from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass

from empire_sim.domain.reports import CombatOutcome, CombatPhaseResult
from empire_sim.domain.types import (
    INVASION_PHASES,
    AttackType,
    CombatPhase,
    EmpireId,
    Forces,
    Side,
    UnitType,
)
from empire_sim.rules.ruleset import Ruleset
from empire_sim.systems.army import combat_modifier, outcome_deltas
from empire_sim.systems.effectiveness import can_participate, phase_power, transport_capacity

logger = logging.getLogger(__name__)


class InvalidAttack(ValueError):
    """Attack rejected before any resolution work was done."""


@dataclass(frozen=True)
class CombatSide:
    empire_id: EmpireId
    forces: Forces
    army_effectiveness: float | None = None


class CombatResolver:
    """Resolves invasions and guerilla raids between two force compositions.

    Pure: returns a ``CombatOutcome`` and leaves recording memories and
    applying losses to the caller.
    """

    def __init__(self, rules: Ruleset) -> None:
        self.rules = rules
        self.config = rules.combat

    def resolve(
        self,
        attacker: CombatSide,
        defender: CombatSide,
        attack_type: AttackType,
        rng: random.Random,
        *,
        defender_sectors: int = 0,
        in_range: bool = True,
    ) -> CombatOutcome:
        committed = self.committed_forces(attacker.forces, attack_type)
        self.validate(attacker, defender, attack_type, in_range=in_range, committed=committed)
        if attack_type is AttackType.INVASION:
            return self._resolve_invasion(attacker, defender, committed, rng, defender_sectors)
        return self._resolve_guerilla(attacker, defender, committed, rng)

    def committed_forces(self, forces: Forces, attack_type: AttackType) -> Forces:
        """Forces that actually reach the target.

        Invasions can only land as many troops as the carriers hold; raids
        use ground troops alone.
        """
        if attack_type is AttackType.GUERILLA:
            return Forces(ground_troops=forces.ground_troops)
        capacity = transport_capacity(forces.carriers, self.rules.units.troops_per_carrier)
        return forces.with_count(UnitType.GROUND_TROOPS, min(forces.ground_troops, capacity))

    def validate(
        self,
        attacker: CombatSide,
        defender: CombatSide,
        attack_type: AttackType,
        *,
        in_range: bool = True,
        committed: Forces | None = None,
    ) -> None:
        if attacker.empire_id == defender.empire_id:
            raise InvalidAttack(f"{attacker.empire_id} cannot attack itself")
        if not in_range:
            raise InvalidAttack(f"{defender.empire_id} is outside the reach of {attacker.empire_id}")
        if committed is None:
            committed = self.committed_forces(attacker.forces, attack_type)
        phases = INVASION_PHASES if attack_type is AttackType.INVASION else (CombatPhase.GUERILLA,)
        has_force = any(
            count > 0 and can_participate(unit, phase)
            for unit, count in committed.items()
            for phase in phases
        )
        if not has_force:
            raise InvalidAttack(
                f"{attacker.empire_id} committed no force able to fight a {attack_type.value}"
            )

    def side_power(self, side: CombatSide, forces: Forces, phase: CombatPhase, *, is_defender: bool) -> float:
        raw = phase_power(forces, phase, self.rules.units, is_defender)
        power = raw * combat_modifier(self._effectiveness(side), self.rules.army)
        if is_defender:
            power *= self.config.defender_power_bonus
        return power

    def _effectiveness(self, side: CombatSide) -> float:
        if side.army_effectiveness is None:
            return self.rules.army.effectiveness_default
        return side.army_effectiveness

    def _loss_rates(self, winner_power: float, loser_power: float) -> tuple[float, float]:
        """(winner rate, loser rate) for one phase."""
        winner_rate = self.config.winner_loss_rate
        loser_rate = self.config.loser_loss_rate
        if winner_power > 0 and winner_power >= loser_power * self.config.overwhelming_ratio:
            winner_rate -= self.config.overwhelming_adjustment
            loser_rate += self.config.overwhelming_adjustment
        return _clamp_rate(winner_rate), _clamp_rate(loser_rate)

    def _variance(self, rng: random.Random) -> float:
        return rng.uniform(self.config.variance_min, self.config.variance_max)

    def _resolve_invasion(
        self,
        attacker: CombatSide,
        defender: CombatSide,
        committed: Forces,
        rng: random.Random,
        defender_sectors: int,
    ) -> CombatOutcome:
        attacking = committed
        defending = defender.forces
        attacker_losses = Forces()
        defender_losses = Forces()
        phases: list[CombatPhaseResult] = []

        for phase in INVASION_PHASES:
            attacker_power = self.side_power(attacker, attacking, phase, is_defender=False)
            defender_power = self.side_power(defender, defending, phase, is_defender=True)
            winner = Side.ATTACKER if attacker_power > defender_power else Side.DEFENDER
            if winner is Side.ATTACKER:
                winner_rate, loser_rate = self._loss_rates(attacker_power, defender_power)
                attacker_rate, defender_rate = winner_rate, loser_rate
            else:
                winner_rate, loser_rate = self._loss_rates(defender_power, attacker_power)
                attacker_rate, defender_rate = loser_rate, winner_rate

            phase_attacker_losses = _phase_losses(
                attacking, phase, attacker_rate, self._variance(rng), is_defender=False
            )
            phase_defender_losses = _phase_losses(
                defending, phase, defender_rate, self._variance(rng), is_defender=True
            )
            attacking = attacking.minus(phase_attacker_losses)
            defending = defending.minus(phase_defender_losses)
            attacker_losses = attacker_losses.plus(phase_attacker_losses)
            defender_losses = defender_losses.plus(phase_defender_losses)

            phases.append(
                CombatPhaseResult(
                    phase=phase,
                    attacker_power=round(attacker_power, 4),
                    defender_power=round(defender_power, 4),
                    winner=winner,
                    attacker_losses=phase_attacker_losses,
                    defender_losses=phase_defender_losses,
                )
            )
            logger.debug(
                "%s -> %s %s phase: %.2f vs %.2f, %s wins",
                attacker.empire_id,
                defender.empire_id,
                phase.value,
                attacker_power,
                defender_power,
                winner.value,
            )
            if winner is Side.DEFENDER:
                break

        captured = len(phases) == len(INVASION_PHASES) and phases[-1].winner is Side.ATTACKER
        sectors = self._sectors_captured(defender_sectors, rng) if captured else 0
        winner = Side.ATTACKER if captured else Side.DEFENDER
        attacker_delta, defender_delta = outcome_deltas(AttackType.INVASION, winner, self.rules.army)

        if captured:
            summary = f"{attacker.empire_id} invaded {defender.empire_id} and captured {sectors} sector(s)"
        else:
            summary = (
                f"{defender.empire_id} repelled the invasion by {attacker.empire_id} "
                f"in the {phases[-1].phase.value} phase"
            )
        return CombatOutcome(
            attack_type=AttackType.INVASION,
            attacker_id=attacker.empire_id,
            defender_id=defender.empire_id,
            phases=tuple(phases),
            attacker_committed=committed,
            attacker_losses=attacker_losses,
            defender_losses=defender_losses,
            territory_transferred=captured,
            sectors_captured=sectors,
            attacker_effectiveness_delta=attacker_delta,
            defender_effectiveness_delta=defender_delta,
            winner=winner,
            summary=summary,
        )

    def _sectors_captured(self, defender_sectors: int, rng: random.Random) -> int:
        if defender_sectors <= 0:
            return 0
        pct = rng.uniform(self.config.capture_min_pct, self.config.capture_max_pct)
        return min(defender_sectors, max(1, math.floor(defender_sectors * pct)))

    def _resolve_guerilla(
        self,
        attacker: CombatSide,
        defender: CombatSide,
        committed: Forces,
        rng: random.Random,
    ) -> CombatOutcome:
        defending = Forces(ground_troops=defender.forces.ground_troops)
        phase = CombatPhase.GUERILLA
        attacker_power = self.side_power(attacker, committed, phase, is_defender=False)
        defender_power = self.side_power(defender, defending, phase, is_defender=True)
        winner = Side.ATTACKER if attacker_power > defender_power else Side.DEFENDER

        cap = self.config.guerilla_loss_cap
        if winner is Side.ATTACKER:
            attacker_rate = self.config.guerilla_winner_loss_rate
            defender_rate = self.config.guerilla_loser_loss_rate
        else:
            attacker_rate = self.config.guerilla_loser_loss_rate
            defender_rate = self.config.guerilla_winner_loss_rate
        attacker_fraction = min(cap, attacker_rate * self._variance(rng))
        defender_fraction = min(cap, defender_rate * self._variance(rng))
        attacker_losses = Forces(ground_troops=math.floor(committed.ground_troops * attacker_fraction))
        defender_losses = Forces(ground_troops=math.floor(defending.ground_troops * defender_fraction))

        result = CombatPhaseResult(
            phase=phase,
            attacker_power=round(attacker_power, 4),
            defender_power=round(defender_power, 4),
            winner=winner,
            attacker_losses=attacker_losses,
            defender_losses=defender_losses,
        )
        attacker_delta, defender_delta = outcome_deltas(AttackType.GUERILLA, winner, self.rules.army)
        verb = "succeeded" if winner is Side.ATTACKER else "was beaten back"
        return CombatOutcome(
            attack_type=AttackType.GUERILLA,
            attacker_id=attacker.empire_id,
            defender_id=defender.empire_id,
            phases=(result,),
            attacker_committed=committed,
            attacker_losses=attacker_losses,
            defender_losses=defender_losses,
            territory_transferred=False,
            sectors_captured=0,
            attacker_effectiveness_delta=attacker_delta,
            defender_effectiveness_delta=defender_delta,
            winner=winner,
            summary=f"Guerilla raid by {attacker.empire_id} on {defender.empire_id} {verb}",
        )


def _clamp_rate(rate: float) -> float:
    return max(0.0, min(1.0, rate))


def _phase_losses(
    forces: Forces,
    phase: CombatPhase,
    rate: float,
    variance: float,
    *,
    is_defender: bool,
) -> Forces:
    """Losses among units that fought in the phase; never more than were present."""
    losses: dict[str, int] = {}
    for unit, count in forces.items():
        if count <= 0 or not can_participate(unit, phase, is_defender):
            continue
        losses[unit.value] = min(count, math.floor(count * rate * variance))
    return Forces(**losses)
