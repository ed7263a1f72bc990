"""Relationship memory records and their classification enums."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from empire_sim.domain.types import EmpireId


class MemoryEventType(str, Enum):
    # High impact
    SECTOR_CAPTURED = "sector_captured"
    SAVED_FROM_DESTRUCTION = "saved_from_destruction"
    ALLIANCE_BROKEN = "alliance_broken"
    # Medium impact
    BATTLE_WON = "battle_won"
    BATTLE_LOST = "battle_lost"
    INVASION_REPELLED = "invasion_repelled"
    MAJOR_TRADE = "major_trade"
    COVERT_OP_DETECTED = "covert_op_detected"
    REINFORCEMENT_RECEIVED = "reinforcement_received"
    REINFORCEMENT_DENIED = "reinforcement_denied"
    # Low impact
    TRADE_COMPLETED = "trade_completed"
    TREATY_SIGNED = "treaty_signed"
    TREATY_REJECTED = "treaty_rejected"
    MINOR_SKIRMISH = "minor_skirmish"
    SPY_CAUGHT = "spy_caught"
    THREAT_ISSUED = "threat_issued"
    APOLOGY_GIVEN = "apology_given"
    # Background noise
    MESSAGE_SENT = "message_sent"
    TRADE_OFFER_MADE = "trade_offer_made"
    ROUTINE_INTERACTION = "routine_interaction"


class DecayResistance(str, Enum):
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    PERMANENT = "permanent"


class Polarity(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"

    @property
    def sign(self) -> int:
        return 1 if self is Polarity.POSITIVE else -1


class RelationshipTier(str, Enum):
    HOSTILE = "hostile"
    UNFRIENDLY = "unfriendly"
    NEUTRAL = "neutral"
    FRIENDLY = "friendly"
    ALLIED = "allied"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK = {
    RelationshipTier.HOSTILE: 0,
    RelationshipTier.UNFRIENDLY: 1,
    RelationshipTier.NEUTRAL: 2,
    RelationshipTier.FRIENDLY: 3,
    RelationshipTier.ALLIED: 4,
}


@dataclass(frozen=True)
class MemoryEventDef:
    """Static weight table entry for one event type."""

    event_type: MemoryEventType
    weight: float
    decay_resistance: DecayResistance
    polarity: Polarity
    description: str = ""


@dataclass(frozen=True)
class MemoryRecord:
    """One remembered event, owned by the holder empire.

    Immutable. Scar status is fixed when the record is created and the
    current weight is always derived from ``original_weight`` and the turn
    the record was written.
    """

    id: str
    holder_id: EmpireId
    target_id: EmpireId
    event_type: MemoryEventType
    original_weight: float
    polarity: Polarity
    turn_recorded: int
    decay_resistance: DecayResistance
    is_permanent_scar: bool = False
    context: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    @property
    def is_negative(self) -> bool:
        return self.polarity is Polarity.NEGATIVE


@dataclass(frozen=True)
class RelationshipSummary:
    net_score: float
    tier: RelationshipTier
    has_permanent_grudge: bool
    top_memories: tuple[MemoryRecord, ...] = ()
