"""Behavioral tells: signals a bot gives off about its intentions.

Bots with a high tell rate telegraph what they are doing. Bots with a high
bluff rate show the opposite signal instead.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum

from empire_sim.domain.actions import (
    AcquireSectorOrder,
    Action,
    AttackOrder,
    AttackWarning,
    BuildOrder,
    MessageKind,
    MessageOrder,
    ResearchOrder,
    TradeDirection,
    TradeOrder,
    Wait,
)
from empire_sim.domain.archetype_models import ArchetypeProfile
from empire_sim.domain.types import EmpireId, UnitType

BASE_TELL_DURATION = 3
MAX_TELL_DURATION = 5
LARGE_SALE = 100


class TellType(str, Enum):
    MILITARY_BUILDUP = "military_buildup"
    FLEET_MOVEMENT = "fleet_movement"
    TARGET_FIXATION = "target_fixation"
    DIPLOMATIC_OVERTURE = "diplomatic_overture"
    ECONOMIC_PREPARATION = "economic_preparation"
    SILENCE = "silence"
    AGGRESSION_SPIKE = "aggression_spike"
    TREATY_INTEREST = "treaty_interest"


TELL_INVERSIONS: dict[TellType, TellType] = {
    TellType.MILITARY_BUILDUP: TellType.DIPLOMATIC_OVERTURE,
    TellType.FLEET_MOVEMENT: TellType.SILENCE,
    TellType.TARGET_FIXATION: TellType.ECONOMIC_PREPARATION,
    TellType.DIPLOMATIC_OVERTURE: TellType.AGGRESSION_SPIKE,
    TellType.ECONOMIC_PREPARATION: TellType.MILITARY_BUILDUP,
    TellType.SILENCE: TellType.DIPLOMATIC_OVERTURE,
    TellType.AGGRESSION_SPIKE: TellType.TREATY_INTEREST,
    TellType.TREATY_INTEREST: TellType.AGGRESSION_SPIKE,
}


@dataclass(frozen=True)
class Tell:
    empire_id: EmpireId
    tell_type: TellType
    target_id: EmpireId | None
    is_bluff: bool
    true_type: TellType | None
    confidence: float
    created_turn: int
    expires_turn: int


def determine_tell_type(action: Action) -> TellType | None:
    if isinstance(action, AttackOrder):
        return TellType.AGGRESSION_SPIKE
    if isinstance(action, BuildOrder):
        if action.unit_type is UnitType.STATIC_DEFENSES:
            return TellType.SILENCE
        return TellType.MILITARY_BUILDUP
    if isinstance(action, MessageOrder):
        if action.kind is MessageKind.THREAT:
            return TellType.TARGET_FIXATION
        return TellType.DIPLOMATIC_OVERTURE
    if isinstance(action, TradeOrder):
        if action.direction is TradeDirection.SELL and action.quantity > LARGE_SALE:
            return TellType.ECONOMIC_PREPARATION
        return None
    if isinstance(action, (ResearchOrder, AcquireSectorOrder)):
        return TellType.ECONOMIC_PREPARATION
    if isinstance(action, Wait):
        return TellType.SILENCE
    return None


def roll_tell(profile: ArchetypeProfile, rng: random.Random) -> bool:
    return rng.random() < profile.tell_rate


def roll_bluff(profile: ArchetypeProfile, rng: random.Random) -> bool:
    return rng.random() < profile.bluff_rate


def roll_warning_turns(profile: ArchetypeProfile, rng: random.Random) -> int:
    return rng.randint(profile.warning_range.min, profile.warning_range.max)


def plan_attack_warning(profile: ArchetypeProfile, rng: random.Random) -> AttackWarning | None:
    """Honest advance notice for an attack, or None when the bot stays quiet."""
    if not roll_tell(profile, rng):
        return None
    return AttackWarning(turns_ahead=roll_warning_turns(profile, rng))


def tell_confidence(profile: ArchetypeProfile, is_bluff: bool) -> float:
    confidence = 0.6 + (profile.tell_rate - 0.5) * 0.3
    if is_bluff:
        confidence *= 0.85
    return round(max(0.1, min(1.0, confidence)), 4)


def tell_duration(profile: ArchetypeProfile, rng: random.Random) -> int:
    warning = profile.warning_range
    base = (warning.min + warning.max) // 2 + BASE_TELL_DURATION
    return min(MAX_TELL_DURATION, max(BASE_TELL_DURATION, base + rng.randint(-1, 1)))


def generate_tell(
    action: Action,
    profile: ArchetypeProfile,
    rng: random.Random,
    turn: int,
) -> Tell | None:
    true_type = determine_tell_type(action)
    if true_type is None or not roll_tell(profile, rng):
        return None
    is_bluff = roll_bluff(profile, rng)
    shown = TELL_INVERSIONS[true_type] if is_bluff else true_type
    return Tell(
        empire_id=action.empire_id,
        tell_type=shown,
        target_id=getattr(action, "target_id", None),
        is_bluff=is_bluff,
        true_type=true_type if is_bluff else None,
        confidence=tell_confidence(profile, is_bluff),
        created_turn=turn,
        expires_turn=turn + tell_duration(profile, rng),
    )
