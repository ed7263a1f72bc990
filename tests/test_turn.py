"""Full turns through a game instance."""

from __future__ import annotations

import pytest

from empire_sim.domain.actions import AttackOrder
from empire_sim.domain.archetype_models import ArchetypeName
from empire_sim.domain.memory_models import MemoryEventType, RelationshipTier
from empire_sim.domain.types import AttackType, Forces
from empire_sim.sim.rng import TurnContext, derive_seed
from empire_sim.sim.turn import GameInstance, TurnOrderError
from tests.helpers.factories import make_empire, make_record, make_turn_input


def _invasion_turn(turn: int = 25):
    warlord = make_empire(
        "red",
        archetype=ArchetypeName.WARLORD,
        forces=Forces(light_cruisers=200, ground_troops=2000, carriers=20),
        effectiveness=85.0,
    )
    human = make_empire("blue", forces=Forces(ground_troops=10), effectiveness=85.0)
    fortress = make_empire(
        "green",
        archetype=ArchetypeName.TURTLE,
        forces=Forces(ground_troops=50_000),
        effectiveness=85.0,
    )
    return make_turn_input(warlord, human, fortress, turn=turn)


def test_derived_seeds_are_stable_and_separated() -> None:
    seed = derive_seed(7, turn=3, stream="combat", purpose="resolve", key="a->b")
    assert seed == derive_seed(7, turn=3, stream="combat", purpose="resolve", key="a->b")
    assert seed != derive_seed(7, turn=3, stream="combat", purpose="resolve", key="b->a")
    assert seed != derive_seed(7, turn=4, stream="combat", purpose="resolve", key="a->b")
    assert seed != derive_seed(8, turn=3, stream="combat", purpose="resolve", key="a->b")

    ctx = TurnContext(base_seed=7, turn=3)
    assert ctx.rng("decision", "action", "red").random() == ctx.rng("decision", "action", "red").random()


def test_warlord_captures_from_weak_human() -> None:
    game = GameInstance(seed=1234)

    result = game.advance(_invasion_turn())

    attacks = [a for a in result.actions if isinstance(a, AttackOrder)]
    assert len(attacks) == 1
    assert attacks[0].target_id == "blue"
    assert attacks[0].attack_type is AttackType.INVASION

    [outcome] = result.outcomes
    assert outcome.territory_transferred is True
    assert outcome.sectors_captured >= 1
    assert result.forces_after["blue"].ground_troops < 10
    assert result.rejected_attacks == ()

    held = {(r.holder_id, r.target_id, r.event_type) for r in result.new_memories}
    assert held == {
        ("blue", "red", MemoryEventType.SECTOR_CAPTURED),
        ("red", "blue", MemoryEventType.BATTLE_LOST),
    }
    assert len(game.store) == 2
    assert all(r.turn_recorded == 25 for r in result.new_memories)
    assert all(r.context["attack_type"] == "invasion" for r in result.new_memories)

    assert result.effectiveness_updates["red"] == 90
    assert result.effectiveness_updates["blue"] == 80

    summary = game.relationship("blue", "red", 25)
    assert summary.net_score == -80
    assert summary.tier is RelationshipTier.UNFRIENDLY


def test_bystanders_recover_effectiveness() -> None:
    result = GameInstance(seed=1234).advance(_invasion_turn())
    assert result.effectiveness_updates["green"] == 87


def test_one_action_per_bot() -> None:
    result = GameInstance(seed=99).advance(_invasion_turn())

    assert [action.empire_id for action in result.actions] == ["green", "red"]
    assert all(tell.empire_id in {"green", "red"} for tell in result.tells)


def test_same_seed_same_turn() -> None:
    first = GameInstance(seed=2024).advance(_invasion_turn())
    second = GameInstance(seed=2024).advance(_invasion_turn())

    assert first == second
    assert [r.id for r in first.new_memories] == [r.id for r in second.new_memories]


def test_games_do_not_share_memory() -> None:
    busy = GameInstance(seed=5)
    quiet = GameInstance(seed=5)

    busy.advance(_invasion_turn())

    assert len(busy.store) == 2
    assert len(quiet.store) == 0


@pytest.mark.parametrize("repeat", [25, 24])
def test_turns_must_advance(repeat: int) -> None:
    game = GameInstance(seed=1)
    game.advance(_invasion_turn(25))

    with pytest.raises(TurnOrderError):
        game.advance(_invasion_turn(repeat))
    assert game.last_turn == 25


def test_human_only_turn_does_nothing() -> None:
    human = make_empire("me", forces=Forces(ground_troops=100), effectiveness=85.0)
    other = make_empire("you", forces=Forces(ground_troops=100), effectiveness=85.0)

    result = GameInstance(seed=3).advance(make_turn_input(human, other))

    assert result.actions == ()
    assert result.outcomes == ()
    assert result.new_memories == ()
    assert result.effectiveness_updates == {"me": 87, "you": 87}


def test_loaded_memories_shape_relationships() -> None:
    scar = make_record(MemoryEventType.SECTOR_CAPTURED, holder="blue", target="red", turn=1, scar=True)
    game = GameInstance(seed=1, records=[scar])

    summary = game.relationship("blue", "red", 500)

    assert summary.net_score == -80
    assert summary.has_permanent_grudge is True
    assert game.prune_memories(500) == []


@pytest.mark.parametrize("seed", range(20))
def test_eliminated_bot_gives_no_tell(seed: int) -> None:
    fallen = make_empire("red", archetype=ArchetypeName.TURTLE, is_eliminated=True, effectiveness=85.0)
    rival = make_empire("blue", forces=Forces(ground_troops=100), effectiveness=85.0)

    result = GameInstance(seed=seed).advance(make_turn_input(fallen, rival))

    assert [action.empire_id for action in result.actions] == ["red"]
    assert result.tells == ()
    assert "red" not in result.effectiveness_updates
