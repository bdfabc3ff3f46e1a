"""
Tests for the game engine.

These drive the async flows the way a client would: start an operation as
a task, wait until it is suspended on targeting, then answer it.
"""

import asyncio

from ..card_schema.card_definition import CardDefinition, CardLibrary, CardType
from ..card_schema.effect_dsl import Effect, damage_step
from ..engine_core import mutations
from ..engine_core.state import Target
from ..games.scifi.cards import SCIFI_CARDS
from ..games.scifi.setup import create_game


FAULTY_SPELL = CardDefinition(
    id="test_faulty",
    name="Faulty Script",
    cost=2,
    card_type=CardType.SPELL,
    spell_effect=Effect(
        effect_id="faulty",
        name="Faulty Script",
        steps=[damage_step("zap", 2, "$nobody")],
    ),
)


async def until_selecting(engine, task):
    """Yield to the loop until `task` waits on targeting (or finishes)."""
    for _ in range(20):
        if engine.targeting.is_selecting or task.done():
            return
        await asyncio.sleep(0)


class TestStartGame:
    """Tests for starting through the engine."""

    def test_start_and_legal_actions(self, make_engine):
        engine = make_engine(create_game(["alice", "bob"], seed=11))
        assert engine.start_game().success
        assert engine.store.version == 1
        assert engine.legal_actions()[-1].payload.player_id == "alice"


class TestCastSpell:
    """Tests for casting scripted spells."""

    def test_cast_with_targeting(self, playing_state, make_engine):
        engine = make_engine(playing_state)

        async def scenario():
            task = asyncio.create_task(engine.play_card("alice", "card_002"))
            await until_selecting(engine, task)
            assert engine.targeting.is_selecting
            assert Target.player("bob") in engine.targeting.legal_targets()
            engine.targeting.handle_target_click(Target.player("bob"))
            engine.targeting.confirm_selection()
            return await task

        result = asyncio.run(scenario())

        assert result.success
        state = engine.state
        assert state.get_player_state("bob").health == 22
        assert state.get_player_state("alice").energy == 7
        assert "card_002" not in state.get_hand("alice")
        assert state.graveyard == ["card_002"]

    def test_cancel_leaves_costs_unpaid(self, playing_state, make_engine):
        engine = make_engine(playing_state)

        async def scenario():
            task = asyncio.create_task(engine.cast_spell("alice", "card_002"))
            await until_selecting(engine, task)
            engine.targeting.cancel_targeting()
            return await task

        result = asyncio.run(scenario())

        assert not result.success
        assert result.error_code == "CANCELLED"
        state = engine.state
        assert state.get_player_state("alice").energy == 10
        assert "card_002" in state.get_hand("alice")
        assert state.graveyard == []
        assert state.get_player_state("bob").health == 25
        assert state.game_log[-1].description == "Cancelled Plasma Burst"

    def test_script_failure_changes_nothing_but_the_log(self, playing_state, make_engine):
        playing_state.card_library = CardLibrary(SCIFI_CARDS + [FAULTY_SPELL])
        playing_state.hands["alice"].append("test_faulty")
        engine = make_engine(playing_state)

        result = asyncio.run(engine.cast_spell("alice", "test_faulty"))

        assert not result.success
        assert result.error_code == "CAST_FAILED"
        state = engine.state
        assert "test_faulty" in state.get_hand("alice")
        assert state.get_player_state("alice").energy == 10
        assert state.graveyard == []
        assert state.game_log[-1].description == "Failed to cast Faulty Script"

    def test_rejected_before_script_runs(self, playing_state, make_engine):
        engine = make_engine(playing_state)

        not_turn = asyncio.run(engine.cast_spell("bob", "card_006"))
        not_in_hand = asyncio.run(engine.cast_spell("alice", "card_014"))

        assert not_turn.error_code == "INVALID_ACTION"
        assert not_in_hand.error_code == "INVALID_ACTION"
        assert engine.store.version == 0
        assert not engine.targeting.is_selecting

    def test_insufficient_energy(self, playing_state, make_engine):
        playing_state.get_player_state("alice").energy = 2
        engine = make_engine(playing_state)

        result = asyncio.run(engine.cast_spell("alice", "card_002"))

        assert result.error_code == "INSUFFICIENT_ENERGY"

    def test_actions_blocked_while_targeting(self, playing_state, make_engine):
        engine = make_engine(playing_state)

        async def scenario():
            task = asyncio.create_task(engine.play_card("alice", "card_006"))
            await until_selecting(engine, task)
            blocked_turn = engine.end_turn("alice")
            blocked_play = await engine.play_card("alice", "card_001")
            engine.targeting.cancel_targeting()
            await task
            return blocked_turn, blocked_play

        blocked_turn, blocked_play = asyncio.run(scenario())

        assert blocked_turn.error_code == "TARGETING_ACTIVE"
        assert blocked_play.error_code == "TARGETING_ACTIVE"
        assert engine.state.current_player_id == "alice"

    def test_target_removed_before_commit(self, playing_state, put_on_battlefield, make_engine):
        """The staged hit on a unit that left play is skipped; the spell is still paid."""
        shield = put_on_battlefield(playing_state, "bob", "card_008")
        engine = make_engine(playing_state)
        target = Target.creature("bob", shield.instance_id)

        async def scenario():
            task = asyncio.create_task(engine.cast_spell("alice", "card_002"))
            await until_selecting(engine, task)
            engine.targeting.handle_target_click(target)
            engine.targeting.confirm_selection()
            # The task resumes only once we yield
            engine.store.change(
                lambda doc: mutations.destroy_creature(doc, "bob", shield.instance_id)
            )
            return await task

        result = asyncio.run(scenario())

        assert result.success
        state = engine.state
        assert state.get_player_state("alice").energy == 7
        assert sorted(state.graveyard) == ["card_002", "card_008"]

    def test_actions_wait_for_confirmed_cast(self, playing_state, make_engine):
        """Between confirming and committing, the turn cannot be passed."""
        engine = make_engine(playing_state)

        async def scenario():
            task = asyncio.create_task(engine.cast_spell("alice", "card_002"))
            await until_selecting(engine, task)
            engine.targeting.handle_target_click(Target.player("bob"))
            engine.targeting.confirm_selection()
            assert not engine.targeting.is_selecting
            blocked = engine.end_turn("alice")
            return blocked, await task

        blocked, result = asyncio.run(scenario())

        assert blocked.error_code == "TARGETING_ACTIVE"
        assert result.success
        state = engine.state
        assert state.current_player_id == "alice"
        assert state.get_player_state("bob").health == 22
        assert not engine.is_busy

    def test_rejected_commit_is_logged(self, playing_state, make_engine):
        """A confirmed cast rejected at commit still leaves a failure entry."""
        engine = make_engine(playing_state)

        async def scenario():
            task = asyncio.create_task(engine.cast_spell("alice", "card_002"))
            await until_selecting(engine, task)
            engine.targeting.handle_target_click(Target.player("bob"))
            engine.targeting.confirm_selection()
            # The turn moves on outside the engine
            engine.store.change(lambda doc: setattr(doc, "current_player_index", 1))
            return await task

        result = asyncio.run(scenario())

        assert not result.success
        assert result.error_code == "INVALID_ACTION"
        state = engine.state
        assert state.game_log[-1].description == "Failed to cast Plasma Burst"
        assert "card_002" in state.get_hand("alice")
        assert state.get_player_state("bob").health == 25


class TestPlayCard:
    """Tests for playing units through the engine."""

    def test_play_creature_needs_no_targeting(self, playing_state, make_engine):
        engine = make_engine(playing_state)

        result = asyncio.run(engine.play_card("alice", "card_001"))

        assert result.success
        assert len(engine.state.get_battlefield("alice")) == 1


class TestAttack:
    """Tests for interactive attacks."""

    def test_attack_with_click(self, playing_state, put_on_battlefield, make_engine):
        drone = put_on_battlefield(playing_state, "alice", "card_001")
        engine = make_engine(playing_state)

        async def scenario():
            task = asyncio.create_task(engine.attack("alice", drone.instance_id))
            await until_selecting(engine, task)
            engine.targeting.handle_target_click(Target.player("bob"))
            return await task

        result = asyncio.run(scenario())

        assert result.success
        assert engine.state.get_player_state("bob").health == 23
        assert engine.state.find_battlefield_card("alice", drone.instance_id).sapped

    def test_policy_limits_clicks(self, playing_state, put_on_battlefield, make_engine):
        """Steel Sentinel's targeting session refuses players."""
        sentinel = put_on_battlefield(playing_state, "alice", "card_003")
        engine = make_engine(playing_state)

        async def scenario():
            task = asyncio.create_task(engine.attack("alice", sentinel.instance_id))
            await until_selecting(engine, task)
            legal = engine.targeting.legal_targets()
            clicked = engine.targeting.handle_target_click(Target.player("bob"))
            engine.targeting.cancel_targeting()
            return legal, clicked, await task

        legal, clicked, result = asyncio.run(scenario())

        assert legal == []
        assert not clicked
        assert result.error_code == "CANCELLED"
        assert engine.state.get_player_state("bob").health == 25

    def test_unready_attacker(self, playing_state, put_on_battlefield, make_engine):
        drone = put_on_battlefield(playing_state, "alice", "card_001", sapped=True)
        engine = make_engine(playing_state)

        result = asyncio.run(engine.attack("alice", drone.instance_id))

        assert result.error_code == "ILLEGAL_ATTACK"
        assert not engine.targeting.is_selecting

    def test_attack_known_target(self, playing_state, put_on_battlefield, make_engine):
        bot = put_on_battlefield(playing_state, "alice", "card_011")
        interface = put_on_battlefield(playing_state, "bob", "card_009")
        engine = make_engine(playing_state)

        result = engine.attack_target("alice", bot.instance_id, Target.artifact("bob", interface.instance_id))

        assert result.success
        assert engine.state.get_battlefield("bob") == []


class TestEndTurn:
    """Tests for ending turns through the engine."""

    def test_end_turn(self, playing_state, make_engine):
        engine = make_engine(playing_state)
        assert engine.end_turn("alice").success
        assert engine.state.current_player_id == "bob"
        assert not engine.end_turn("alice").success
