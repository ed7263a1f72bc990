"""Per-turn bot actions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias, Union

from empire_sim.domain.types import AttackType, EmpireId, Forces, ResourceKind, UnitType


class TradeDirection(str, Enum):
    BUY = "buy"
    SELL = "sell"


class MessageKind(str, Enum):
    PROPOSE_NAP = "propose_nap"
    PROPOSE_ALLIANCE = "propose_alliance"
    THREAT = "threat"


@dataclass(frozen=True)
class AttackWarning:
    """Honest advance notice of an attack."""

    turns_ahead: int


@dataclass(frozen=True)
class AttackOrder:
    empire_id: EmpireId
    target_id: EmpireId
    attack_type: AttackType
    forces: Forces
    warning: AttackWarning | None = None


@dataclass(frozen=True)
class BuildOrder:
    empire_id: EmpireId
    unit_type: UnitType
    quantity: int


@dataclass(frozen=True)
class AcquireSectorOrder:
    empire_id: EmpireId
    cost: int


@dataclass(frozen=True)
class TradeOrder:
    empire_id: EmpireId
    resource: ResourceKind
    quantity: int
    direction: TradeDirection
    unit_price: float


@dataclass(frozen=True)
class MessageOrder:
    empire_id: EmpireId
    target_id: EmpireId
    kind: MessageKind
    is_bluff: bool = False


@dataclass(frozen=True)
class ResearchOrder:
    empire_id: EmpireId
    investment: int


@dataclass(frozen=True)
class Wait:
    empire_id: EmpireId
    reason: str = ""


Action: TypeAlias = Union[
    AttackOrder,
    BuildOrder,
    AcquireSectorOrder,
    TradeOrder,
    MessageOrder,
    ResearchOrder,
    Wait,
]
