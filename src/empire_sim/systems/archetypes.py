from __future__ import annotations

from empire_sim.domain.archetype_models import (
    ArchetypeName,
    ArchetypeProfile,
    CombatStyle,
    Focus,
    PassiveAbility,
)
from empire_sim.rules.ruleset import Ruleset, UnknownArchetype


def parse_archetype(name: ArchetypeName | str) -> ArchetypeName:
    try:
        return ArchetypeName(name)
    except ValueError as exc:
        raise UnknownArchetype(f"Unknown archetype: {name!r}") from exc


class ArchetypeTable:
    """Read-only lookup over the archetype profiles in a ruleset."""

    def __init__(self, rules: Ruleset) -> None:
        self._profiles = dict(rules.archetypes)

    def get(self, name: ArchetypeName | str) -> ArchetypeProfile:
        return self._profiles[parse_archetype(name)]

    def names(self) -> list[ArchetypeName]:
        return list(ArchetypeName)

    def by_combat_style(self, style: CombatStyle) -> list[ArchetypeProfile]:
        return [profile for profile in self._profiles.values() if profile.combat_style is style]

    def with_passive(self, ability: PassiveAbility) -> list[ArchetypeProfile]:
        return [profile for profile in self._profiles.values() if profile.passive_ability is ability]

    def priority(self, name: ArchetypeName | str, focus: Focus) -> float:
        return self.get(name).priorities.weight(focus)

    def would_attack(self, name: ArchetypeName | str, relative_power: float, threshold_bonus: float = 0.0) -> bool:
        """True when a target at ``relative_power`` is weak enough to attack."""
        profile = self.get(name)
        if not profile.initiates_attacks:
            return False
        return relative_power <= profile.attack_threshold + threshold_bonus
