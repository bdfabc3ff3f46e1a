"""
Tests for the mutation API.

Tests:
- Energy spending and clamping
- Player damage, healing and elimination
- Drawing, including the empty deck
- Unit damage, healing and removal
- Playing cards without a script
"""

from ..engine_core import mutations
from ..engine_core.state import GameStatus


class TestEnergy:
    """Tests for energy operations."""

    def test_spend_more_than_available_fails(self, playing_state):
        """Spending more than the pool fails and leaves energy unchanged."""
        assert not mutations.spend_energy(playing_state, "alice", 11)
        assert playing_state.get_player_state("alice").energy == 10

    def test_spend_energy(self, playing_state):
        assert mutations.spend_energy(playing_state, "alice", 4)
        assert playing_state.get_player_state("alice").energy == 6

    def test_gain_energy_clamps_to_max(self, playing_state):
        mutations.spend_energy(playing_state, "alice", 3)
        assert mutations.gain_energy(playing_state, "alice", 5)
        assert playing_state.get_player_state("alice").energy == 10

    def test_max_energy_capped_by_rules(self, playing_state):
        """Max energy never grows past the rules' cap."""
        assert mutations.increase_max_energy(playing_state, "alice", 3)
        assert playing_state.get_player_state("alice").max_energy == playing_state.rules.max_energy_cap

    def test_negative_amount_rejected(self, playing_state):
        assert not mutations.gain_energy(playing_state, "alice", -1)
        assert not mutations.spend_energy(playing_state, "alice", -1)


class TestPlayerHealth:
    """Tests for player damage and healing."""

    def test_damage_reduces_health(self, playing_state):
        assert mutations.deal_damage_to_player(playing_state, "bob", 7)
        assert playing_state.get_player_state("bob").health == 18
        assert playing_state.status == GameStatus.PLAYING

    def test_damage_clamps_at_zero_and_ends_game(self, playing_state):
        """Health never goes negative; reaching 0 finishes the game."""
        assert mutations.deal_damage_to_player(playing_state, "bob", 40)
        assert playing_state.get_player_state("bob").health == 0
        assert playing_state.status == GameStatus.FINISHED
        assert playing_state.winner_id == "alice"

        last = playing_state.game_log[-1]
        assert last.action == "game_end"
        assert last.player_id == "bob"
        assert last.description == "Player defeated"

    def test_defeated_player_remains(self, playing_state):
        mutations.deal_damage_to_player(playing_state, "bob", 40)
        assert playing_state.get_player_state("bob") is not None
        assert playing_state.players == ("alice", "bob")

    def test_heal_clamps_to_max(self, playing_state):
        mutations.deal_damage_to_player(playing_state, "alice", 3)
        assert mutations.heal_player(playing_state, "alice", 10)
        assert playing_state.get_player_state("alice").health == 25

    def test_unknown_player(self, playing_state):
        assert not mutations.deal_damage_to_player(playing_state, "carol", 1)


class TestDraw:
    """Tests for drawing cards."""

    def test_draw_takes_top_of_deck(self, playing_state):
        drawn = mutations.draw_card(playing_state, "alice")
        assert drawn == "card_011"
        assert playing_state.get_hand("alice")[-1] == "card_011"
        assert playing_state.deck == ["card_013", "card_008", "card_005"]

    def test_draw_from_empty_deck_is_logged_noop(self, playing_state):
        """An empty deck is not an error; it is logged."""
        playing_state.deck = []
        hand_before = list(playing_state.get_hand("alice"))

        assert mutations.draw_card(playing_state, "alice") is None
        assert playing_state.get_hand("alice") == hand_before
        assert playing_state.game_log[-1].description == "Deck is empty"


class TestUnits:
    """Tests for battlefield unit operations."""

    def test_damage_creature(self, playing_state, put_on_battlefield):
        sentinel = put_on_battlefield(playing_state, "bob", "card_003")
        assert mutations.deal_damage_to_creature(playing_state, "bob", sentinel.instance_id, 2)
        assert sentinel.current_health == 4

    def test_lethal_damage_removes_creature(self, playing_state, put_on_battlefield):
        """A unit at 0 health leaves play for the graveyard."""
        drone = put_on_battlefield(playing_state, "bob", "card_001")
        assert mutations.deal_damage_to_creature(playing_state, "bob", drone.instance_id, 5)

        assert playing_state.get_battlefield("bob") == []
        assert playing_state.graveyard == ["card_001"]
        assert playing_state.game_log[-1].description == "Cyber Drone was destroyed"

    def test_heal_creature_clamps_to_definition(self, playing_state, put_on_battlefield):
        sentinel = put_on_battlefield(playing_state, "bob", "card_003", current_health=2)
        assert mutations.heal_creature(playing_state, "bob", sentinel.instance_id, 10)
        assert sentinel.current_health == 6

    def test_destroy_creature(self, playing_state, put_on_battlefield):
        interface = put_on_battlefield(playing_state, "bob", "card_009")
        assert mutations.destroy_creature(playing_state, "bob", interface.instance_id)
        assert playing_state.get_battlefield("bob") == []
        assert "card_009" in playing_state.graveyard

    def test_missing_unit(self, playing_state):
        assert not mutations.deal_damage_to_creature(playing_state, "bob", "nope#1", 1)
        assert not mutations.destroy_creature(playing_state, "bob", "nope#1")

    def test_heal_creatures_skips_artifacts(self, playing_state, put_on_battlefield):
        """Turn-start healing applies to damaged creatures only."""
        sentinel = put_on_battlefield(playing_state, "alice", "card_003", current_health=3)
        core = put_on_battlefield(playing_state, "alice", "card_010", current_health=1)

        healed = mutations.heal_creatures(playing_state, "alice", 1)

        assert healed == 1
        assert sentinel.current_health == 4
        assert core.current_health == 1

    def test_refresh_creatures(self, playing_state, put_on_battlefield):
        first = put_on_battlefield(playing_state, "alice", "card_001", sapped=True)
        second = put_on_battlefield(playing_state, "alice", "card_011")

        assert mutations.refresh_creatures(playing_state, "alice") == 1
        assert not first.sapped
        assert not second.sapped


class TestPlayCard:
    """Tests for playing cards without a script."""

    def test_play_creature(self, playing_state):
        """A creature enters unsapped at full health and is paid for."""
        assert mutations.play_card(playing_state, "alice", "card_001")

        battlefield = playing_state.get_battlefield("alice")
        assert len(battlefield) == 1
        assert battlefield[0].card_id == "card_001"
        assert battlefield[0].current_health == 1
        assert not battlefield[0].sapped
        assert "card_001" not in playing_state.get_hand("alice")
        assert playing_state.get_player_state("alice").energy == 8
        assert playing_state.game_log[-1].description == "Played Cyber Drone"

    def test_play_artifact(self, playing_state):
        assert mutations.play_card(playing_state, "alice", "card_009")
        assert playing_state.get_battlefield("alice")[0].current_health == 2

    def test_instance_ids_are_unique(self, playing_state):
        playing_state.hands["alice"].append("card_001")
        mutations.play_card(playing_state, "alice", "card_001")
        mutations.play_card(playing_state, "alice", "card_001")

        ids = [c.instance_id for c in playing_state.get_battlefield("alice")]
        assert len(ids) == 2
        assert len(set(ids)) == 2

    def test_not_your_turn(self, playing_state):
        before = playing_state.clone()
        assert not mutations.play_card(playing_state, "bob", "card_003")
        assert playing_state.get_hand("bob") == before.get_hand("bob")
        assert playing_state.get_player_state("bob").energy == 10

    def test_insufficient_energy(self, playing_state):
        playing_state.get_player_state("alice").energy = 1
        assert not mutations.play_card(playing_state, "alice", "card_001")
        assert playing_state.get_player_state("alice").energy == 1
        assert "card_001" in playing_state.get_hand("alice")

    def test_card_not_in_hand(self, playing_state):
        assert not mutations.play_card(playing_state, "alice", "card_007")

    def test_scripted_spell_rejected(self, playing_state):
        """Spells with scripts go through the effect interpreter instead."""
        assert not mutations.play_card(playing_state, "alice", "card_002")
        assert "card_002" in playing_state.get_hand("alice")
