from __future__ import annotations

import random

import pytest
from hypothesis import given
from hypothesis import strategies as st

from empire_sim.domain.actions import (
    AcquireSectorOrder,
    AttackOrder,
    BuildOrder,
    MessageKind,
    MessageOrder,
    ResearchOrder,
    TradeDirection,
    TradeOrder,
    Wait,
)
from empire_sim.domain.archetype_models import ArchetypeName
from empire_sim.domain.types import AttackType, Forces, ResourceKind, UnitType
from empire_sim.systems.tells import (
    BASE_TELL_DURATION,
    MAX_TELL_DURATION,
    TELL_INVERSIONS,
    TellType,
    determine_tell_type,
    generate_tell,
    plan_attack_warning,
    tell_duration,
)
from tests.helpers.factories import ScriptedRandom, rules
from tests.helpers.strategies import archetype_strategy

ATTACK = AttackOrder("red", "blue", AttackType.INVASION, Forces(light_cruisers=10, carriers=1))


def _profile(name: ArchetypeName):
    return rules().archetypes[name]


@pytest.mark.parametrize(
    "action, expected",
    [
        (ATTACK, TellType.AGGRESSION_SPIKE),
        (BuildOrder("red", UnitType.LIGHT_CRUISERS, 3), TellType.MILITARY_BUILDUP),
        (BuildOrder("red", UnitType.STATIC_DEFENSES, 1), TellType.SILENCE),
        (MessageOrder("red", "blue", MessageKind.THREAT), TellType.TARGET_FIXATION),
        (MessageOrder("red", "blue", MessageKind.PROPOSE_NAP), TellType.DIPLOMATIC_OVERTURE),
        (TradeOrder("red", ResourceKind.ORE, 500, TradeDirection.SELL, 50.0), TellType.ECONOMIC_PREPARATION),
        (TradeOrder("red", ResourceKind.ORE, 100, TradeDirection.SELL, 50.0), None),
        (TradeOrder("red", ResourceKind.FOOD, 500, TradeDirection.BUY, 20.0), None),
        (ResearchOrder("red", 1000), TellType.ECONOMIC_PREPARATION),
        (AcquireSectorOrder("red", 8000), TellType.ECONOMIC_PREPARATION),
        (Wait("red"), TellType.SILENCE),
    ],
)
def test_tell_type_for_action(action, expected) -> None:
    assert determine_tell_type(action) == expected


def test_bluffing_attacker_shows_treaty_interest() -> None:
    tell = generate_tell(ATTACK, _profile(ArchetypeName.WARLORD), ScriptedRandom(0.0), turn=30)

    assert tell is not None
    assert tell.is_bluff is True
    assert tell.tell_type is TellType.TREATY_INTEREST
    assert tell.true_type is TellType.AGGRESSION_SPIKE
    assert tell.target_id == "blue"
    assert tell.empire_id == "red"
    assert tell.created_turn == 30
    assert 33 <= tell.expires_turn <= 35


def test_honest_tell_keeps_true_type_hidden() -> None:
    tell = generate_tell(ATTACK, _profile(ArchetypeName.TURTLE), ScriptedRandom(0.5), turn=30)

    assert tell is not None
    assert tell.is_bluff is False
    assert tell.tell_type is TellType.AGGRESSION_SPIKE
    assert tell.true_type is None


def test_no_tell_when_roll_fails() -> None:
    assert generate_tell(ATTACK, _profile(ArchetypeName.TURTLE), ScriptedRandom(0.99), turn=30) is None


def test_action_without_tell_type_draws_nothing() -> None:
    rng = random.Random(5)
    before = rng.getstate()
    sale = TradeOrder("red", ResourceKind.FOOD, 10, TradeDirection.SELL, 20.0)

    assert generate_tell(sale, _profile(ArchetypeName.WARLORD), rng, turn=1) is None
    assert rng.getstate() == before


def test_bluff_lowers_confidence() -> None:
    profile = _profile(ArchetypeName.WARLORD)
    bluff = generate_tell(ATTACK, profile, ScriptedRandom(0.0), turn=1)
    honest = generate_tell(ATTACK, profile, ScriptedRandom(0.5), turn=1)

    assert bluff is not None and honest is not None
    assert bluff.confidence < honest.confidence


def test_inversions_cover_every_tell() -> None:
    assert set(TELL_INVERSIONS) == set(TellType)
    for shown, inverted in TELL_INVERSIONS.items():
        assert inverted is not shown


@given(name=archetype_strategy(), seed=st.integers(min_value=0, max_value=10_000))
def test_duration_is_bounded(name: ArchetypeName, seed: int) -> None:
    duration = tell_duration(_profile(name), random.Random(seed))
    assert BASE_TELL_DURATION <= duration <= MAX_TELL_DURATION


def test_attack_warning_within_archetype_range() -> None:
    profile = _profile(ArchetypeName.TURTLE)
    for seed in range(20):
        warning = plan_attack_warning(profile, ScriptedRandom(0.0, seed=seed))
        assert warning is not None
        assert profile.warning_range.min <= warning.turns_ahead <= profile.warning_range.max

    assert plan_attack_warning(profile, ScriptedRandom(0.95)) is None
