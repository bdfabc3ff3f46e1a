"""
Pytest fixtures for Skirmish tests.
"""

import pytest

from ..config import GameRules
from ..engine_core.engine import GameEngine
from ..engine_core.state import BattlefieldCard, GameState, GameStatus, PlayerState
from ..engine_core.store import InMemoryDocumentStore
from ..games.scifi.cards import CARD_LIBRARY


@pytest.fixture
def rules() -> GameRules:
    """Default rules, independent of the environment."""
    return GameRules()


@pytest.fixture
def playing_state(rules: GameRules) -> GameState:
    """
    A two-player game in progress.

    alice is on turn with 10/10 energy; both players are at 25 health.
    Hands and deck are fixed so tests can rely on exact contents.
    """
    state = GameState(
        game_id="test_game",
        players=("alice", "bob"),
        card_library=CARD_LIBRARY,
        rules=rules,
        deck=["card_011", "card_013", "card_008", "card_005"],
    )
    for player_id in state.players:
        state.player_states[player_id] = PlayerState(
            player_id=player_id, health=25, max_health=25, energy=10, max_energy=10
        )
    state.hands["alice"] = ["card_001", "card_002", "card_006", "card_009", "card_012"]
    state.hands["bob"] = ["card_003", "card_006"]
    state.status = GameStatus.PLAYING
    return state


@pytest.fixture
def put_on_battlefield():
    """Factory placing a card instance directly on a battlefield."""
    def _put(
        state: GameState,
        owner: str,
        card_id: str,
        sapped: bool = False,
        current_health: int | None = None,
    ) -> BattlefieldCard:
        definition = state.card_library[card_id]
        card = BattlefieldCard(
            instance_id=state.mint_instance_id(card_id),
            card_id=card_id,
            sapped=sapped,
            current_health=definition.health if current_health is None else current_health,
        )
        state.battlefields[owner].append(card)
        return card
    return _put


@pytest.fixture
def make_engine():
    """Factory wrapping a state in a store and an engine."""
    def _make(state: GameState) -> GameEngine:
        return GameEngine(InMemoryDocumentStore(state))
    return _make
