"""Per-turn inputs supplied by the surrounding game service."""

from __future__ import annotations

from dataclasses import dataclass, field

from empire_sim.domain.archetype_models import ArchetypeName
from empire_sim.domain.types import EmpireId, Forces, ResourceKind, Resources


@dataclass(frozen=True)
class EmpireSnapshot:
    """One empire as seen at the start of a turn.

    ``archetype`` is None for human players, who are never decided for.
    ``reachable`` of None means every other empire is in range.
    """

    empire_id: EmpireId
    forces: Forces
    resources: Resources = Resources()
    army_effectiveness: float | None = None
    archetype: ArchetypeName | None = None
    sector_count: int = 0
    is_eliminated: bool = False
    reachable: frozenset[EmpireId] | None = None

    @property
    def is_bot(self) -> bool:
        return self.archetype is not None

    def can_reach(self, other: EmpireId) -> bool:
        if other == self.empire_id:
            return False
        return self.reachable is None or other in self.reachable


@dataclass(frozen=True)
class MarketContext:
    """Prices and scarcity computed by the market subsystem.

    Scarcity runs from 0 (plentiful) to 1 (none for sale).
    """

    prices: dict[ResourceKind, float] = field(default_factory=dict, hash=False)
    scarcity: dict[ResourceKind, float] = field(default_factory=dict, hash=False)

    def price(self, kind: ResourceKind, default: float) -> float:
        return self.prices.get(kind, default)

    def scarcity_of(self, kind: ResourceKind) -> float:
        return max(0.0, min(1.0, self.scarcity.get(kind, 0.0)))

    def max_scarcity(self) -> float:
        return max((self.scarcity_of(kind) for kind in ResourceKind), default=0.0)


@dataclass(frozen=True)
class TurnInput:
    turn: int
    empires: tuple[EmpireSnapshot, ...]
    treaties: frozenset[frozenset[EmpireId]] = frozenset()
    market: MarketContext = MarketContext()

    def __post_init__(self) -> None:
        ids = [empire.empire_id for empire in self.empires]
        if len(ids) != len(set(ids)):
            raise ValueError("TurnInput.empires contains duplicate empire ids")

    def empire(self, empire_id: EmpireId) -> EmpireSnapshot:
        for empire in self.empires:
            if empire.empire_id == empire_id:
                return empire
        raise KeyError(empire_id)

    def has_treaty(self, a: EmpireId, b: EmpireId) -> bool:
        return frozenset((a, b)) in self.treaties

    def treaty_partners(self, empire_id: EmpireId) -> frozenset[EmpireId]:
        return frozenset(
            other for pair in self.treaties if empire_id in pair for other in pair if other != empire_id
        )
