"""
Tests for game start, turn hand-over and triggered abilities.
"""

import pytest

from ..card_schema.card_definition import (
    ArtifactAbility,
    CardDefinition,
    CardLibrary,
    CardType,
    TriggerType,
)
from ..card_schema.effect_dsl import Effect, TargetRef, damage_step, log_step
from ..config import GameRules
from ..engine_core.state import GameStatus
from ..engine_core.triggers import TriggerDispatcher
from ..engine_core.turns import end_player_turn, start_game
from ..games.scifi.cards import SCIFI_CARDS
from ..games.scifi.setup import create_game


BROKEN_RELAY = CardDefinition(
    id="test_broken",
    name="Broken Relay",
    cost=1,
    card_type=CardType.ARTIFACT,
    health=1,
    artifact_abilities=(
        ArtifactAbility(
            trigger=TriggerType.START_TURN,
            effect=Effect(
                effect_id="broken",
                name="Broken Relay",
                steps=[damage_step("zap", 1, "$nowhere")],
            ),
        ),
    ),
)

DOOMSDAY_BEACON = CardDefinition(
    id="test_beacon",
    name="Doomsday Beacon",
    cost=1,
    card_type=CardType.ARTIFACT,
    health=1,
    artifact_abilities=(
        ArtifactAbility(
            trigger=TriggerType.START_TURN,
            effect=Effect(
                effect_id="beacon_blast",
                name="Doomsday Beacon",
                steps=[damage_step("blast", 1, TargetRef.OPPONENTS)],
            ),
        ),
        ArtifactAbility(
            trigger=TriggerType.START_TURN,
            effect=Effect(
                effect_id="beacon_echo",
                name="Doomsday Beacon",
                steps=[log_step("echo", "Beacon echoes")],
            ),
        ),
    ),
)

WATCHTOWER = CardDefinition(
    id="test_watch",
    name="Watchtower",
    cost=1,
    card_type=CardType.ARTIFACT,
    health=1,
    artifact_abilities=(
        ArtifactAbility(
            trigger=TriggerType.PLAY_CARD,
            effect=Effect(
                effect_id="watch",
                name="Watchtower",
                steps=[log_step("spot", "Enemy movement spotted")],
            ),
            description="Report enemy plays",
        ),
    ),
)


def log_descriptions(state):
    return [entry.description for entry in state.game_log]


class TestStartGame:
    """Tests for moving a waiting game to playing."""

    def test_deals_opening_hands(self):
        state = create_game(["alice", "bob"], rules=GameRules(), seed=7)
        assert state.status == GameStatus.WAITING
        assert len(state.deck) == 35

        assert start_game(state)

        assert state.status == GameStatus.PLAYING
        assert state.current_player_id == "alice"
        assert state.turn == 1
        assert len(state.get_hand("alice")) == 5
        assert len(state.get_hand("bob")) == 5
        assert len(state.deck) == 25
        for player_id in state.players:
            player = state.get_player_state(player_id)
            assert (player.health, player.max_health) == (25, 25)
            assert (player.energy, player.max_energy) == (1, 1)
        assert state.game_log[-1].description == "Game started"

    def test_rules_are_honoured(self):
        rules = GameRules(starting_health=10, starting_energy=3, starting_hand_size=2)
        state = create_game(["alice", "bob", "carol"], rules=rules, seed=1)
        start_game(state)

        assert all(len(state.get_hand(p)) == 2 for p in state.players)
        assert state.get_player_state("carol").health == 10
        assert state.get_player_state("carol").max_energy == 3

    def test_seed_is_deterministic(self):
        first = create_game(["alice", "bob"], seed=42)
        second = create_game(["alice", "bob"], seed=42)
        assert first.deck == second.deck

    def test_only_once(self, playing_state):
        assert not start_game(playing_state)

    def test_invalid_players(self):
        with pytest.raises(ValueError):
            create_game([])
        with pytest.raises(ValueError):
            create_game(["alice", "alice"])


class TestEndTurn:
    """Tests for turn hand-over."""

    def test_passes_to_next_seat(self, playing_state):
        playing_state.get_player_state("bob").energy = 0

        assert end_player_turn(playing_state, "alice")

        assert playing_state.current_player_id == "bob"
        assert playing_state.turn == 1
        assert playing_state.get_player_state("bob").energy == 10
        assert playing_state.get_hand("bob") == ["card_003", "card_006", "card_011"]
        assert "Ended turn" in log_descriptions(playing_state)

    def test_not_your_turn(self, playing_state):
        assert not end_player_turn(playing_state, "bob")
        assert playing_state.current_player_id == "alice"

    def test_wrap_starts_new_round(self, playing_state):
        """Wrapping to the first seat grows every player's energy by 1."""
        for player_id in playing_state.players:
            player = playing_state.get_player_state(player_id)
            player.max_energy = 3
            player.energy = 0

        end_player_turn(playing_state, "alice")
        end_player_turn(playing_state, "bob")

        assert playing_state.current_player_id == "alice"
        assert playing_state.turn == 2
        for player_id in playing_state.players:
            player = playing_state.get_player_state(player_id)
            assert (player.energy, player.max_energy) == (4, 4)

    def test_energy_growth_is_capped(self, playing_state):
        end_player_turn(playing_state, "alice")
        end_player_turn(playing_state, "bob")
        assert playing_state.get_player_state("alice").max_energy == 10

    def test_refreshes_and_heals_new_player(self, playing_state, put_on_battlefield):
        sentinel = put_on_battlefield(playing_state, "bob", "card_003", sapped=True, current_health=3)
        interface = put_on_battlefield(playing_state, "bob", "card_009", current_health=1)

        end_player_turn(playing_state, "alice")

        assert not sentinel.sapped
        assert sentinel.current_health == 4
        assert interface.current_health == 1
        assert "1 creature(s) healed 1 health" in log_descriptions(playing_state)

    def test_departing_player_not_refreshed(self, playing_state, put_on_battlefield):
        drone = put_on_battlefield(playing_state, "alice", "card_001", sapped=True)
        end_player_turn(playing_state, "alice")
        assert drone.sapped

    def test_empty_deck_draw(self, playing_state):
        playing_state.deck = []
        assert end_player_turn(playing_state, "alice")
        assert playing_state.get_hand("bob") == ["card_003", "card_006"]
        assert "Deck is empty" in log_descriptions(playing_state)


class TestTriggeredAbilities:
    """Tests for abilities fired on lifecycle events."""

    def test_neural_interface_draws(self, playing_state, put_on_battlefield):
        put_on_battlefield(playing_state, "bob", "card_009")

        end_player_turn(playing_state, "alice")

        assert playing_state.get_hand("bob") == ["card_003", "card_006", "card_011", "card_013"]
        assert "Neural Interface: Draw an additional card" in log_descriptions(playing_state)

    def test_fusion_core_pulses_opponents(self, playing_state, put_on_battlefield):
        put_on_battlefield(playing_state, "bob", "card_010")
        end_player_turn(playing_state, "alice")
        assert playing_state.get_player_state("alice").health == 24
        assert playing_state.get_player_state("bob").health == 25

    def test_pulse_can_end_game(self, playing_state, put_on_battlefield):
        playing_state.get_player_state("alice").health = 1
        put_on_battlefield(playing_state, "bob", "card_010")

        assert end_player_turn(playing_state, "alice")

        assert playing_state.status == GameStatus.FINISHED
        assert playing_state.winner_id == "bob"

    def test_repair_drone_heals_on_end_turn(self, playing_state, put_on_battlefield):
        put_on_battlefield(playing_state, "alice", "card_013")
        sentinel = put_on_battlefield(playing_state, "alice", "card_003", current_health=2)

        end_player_turn(playing_state, "alice")

        assert sentinel.current_health == 4

    def test_start_turn_abilities_only_for_owner(self, playing_state, put_on_battlefield):
        put_on_battlefield(playing_state, "alice", "card_010")
        end_player_turn(playing_state, "alice")
        assert playing_state.get_player_state("bob").health == 25

    def test_failing_ability_is_logged_and_skipped(self, playing_state, put_on_battlefield):
        """A broken ability does not stop later abilities or the turn."""
        playing_state.card_library = CardLibrary(SCIFI_CARDS + [BROKEN_RELAY])
        put_on_battlefield(playing_state, "bob", "test_broken")
        put_on_battlefield(playing_state, "bob", "card_009")

        assert end_player_turn(playing_state, "alice")

        descriptions = log_descriptions(playing_state)
        assert "Broken Relay failed to trigger" in descriptions
        assert "Neural Interface: Draw an additional card" in descriptions
        assert playing_state.current_player_id == "bob"
        assert len(playing_state.get_hand("bob")) == 4

    def test_play_card_fires_for_opponents(self, playing_state, put_on_battlefield):
        playing_state.card_library = CardLibrary(SCIFI_CARDS + [WATCHTOWER])
        put_on_battlefield(playing_state, "bob", "test_watch")
        put_on_battlefield(playing_state, "alice", "test_watch")

        resolved = TriggerDispatcher().fire_for_opponents(
            playing_state, TriggerType.PLAY_CARD, "alice"
        )

        assert resolved == 1
        entries = [e for e in playing_state.game_log if e.description == "Enemy movement spotted"]
        assert [e.player_id for e in entries] == ["bob"]

    def test_game_end_stops_remaining_abilities(self, playing_state, put_on_battlefield):
        """Once an ability ends the game, later abilities on the same card do not run."""
        playing_state.card_library = CardLibrary(SCIFI_CARDS + [DOOMSDAY_BEACON])
        playing_state.get_player_state("bob").health = 1
        put_on_battlefield(playing_state, "alice", "test_beacon")

        resolved = TriggerDispatcher().fire(playing_state, TriggerType.START_TURN, "alice")

        assert resolved == 1
        assert playing_state.status == GameStatus.FINISHED
        assert "Beacon echoes" not in log_descriptions(playing_state)
