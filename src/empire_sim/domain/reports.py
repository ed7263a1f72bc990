"""Combat outcome data."""

from __future__ import annotations

from dataclasses import dataclass

from empire_sim.domain.types import AttackType, CombatPhase, EmpireId, Forces, Side


@dataclass(frozen=True)
class CombatPhaseResult:
    phase: CombatPhase
    attacker_power: float
    defender_power: float
    winner: Side
    attacker_losses: Forces = Forces()
    defender_losses: Forces = Forces()


@dataclass(frozen=True)
class CombatOutcome:
    attack_type: AttackType
    attacker_id: EmpireId
    defender_id: EmpireId
    phases: tuple[CombatPhaseResult, ...]
    attacker_committed: Forces
    attacker_losses: Forces
    defender_losses: Forces
    territory_transferred: bool
    sectors_captured: int
    attacker_effectiveness_delta: float
    defender_effectiveness_delta: float
    winner: Side
    summary: str = ""

    @property
    def phases_fought(self) -> tuple[CombatPhase, ...]:
        return tuple(result.phase for result in self.phases)

    @property
    def attacker_won(self) -> bool:
        return self.winner is Side.ATTACKER
