"""
Turn State Machine - Game start and turn hand-over.

Status: waiting -> playing -> finished (terminal).

Ending a turn:
1. end_turn abilities fire for the departing player
2. the seat advances; wrapping to seat 0 starts a new round (turn += 1)
   and every player's max energy grows by 1 up to the cap
3. the new current player refills energy, refreshes and heals their
   creatures by 1, and draws a card
4. start_turn abilities fire for the new current player
"""

from __future__ import annotations
import logging

from ..card_schema.card_definition import TriggerType
from .state import GameState, GameStatus, PlayerState
from .triggers import TriggerDispatcher
from . import mutations

logger = logging.getLogger(__name__)


def start_game(state: GameState) -> bool:
    """
    Move a waiting game to playing.

    Creates player states from the game's rules and deals opening hands
    one card at a time in seat order.
    """
    if state.status != GameStatus.WAITING:
        return False

    rules = state.rules
    for player_id in state.players:
        state.player_states[player_id] = PlayerState(
            player_id=player_id,
            health=rules.starting_health,
            max_health=rules.starting_health,
            energy=rules.starting_energy,
            max_energy=rules.starting_energy,
        )

    for _ in range(rules.starting_hand_size):
        for player_id in state.players:
            mutations.draw_card(state, player_id)

    state.status = GameStatus.PLAYING
    state.current_player_index = 0
    state.turn = 1
    mutations.add_game_log_entry(state, state.current_player_id, "start_game", "Game started")
    logger.info("Game %s started with %d players", state.game_id, state.num_players)
    return True


def end_player_turn(
    state: GameState,
    player_id: str,
    dispatcher: TriggerDispatcher | None = None,
) -> bool:
    """End the current player's turn. Fails if it is not their turn."""
    if state.status != GameStatus.PLAYING or state.current_player_id != player_id:
        return False

    dispatcher = dispatcher or TriggerDispatcher()

    mutations.add_game_log_entry(state, player_id, "end_turn", "Ended turn")
    dispatcher.fire(state, TriggerType.END_TURN, player_id)
    if state.status != GameStatus.PLAYING:
        return True

    next_index = (state.current_player_index + 1) % state.num_players
    state.current_player_index = next_index
    next_player = state.current_player_id

    if next_index == 0:
        state.turn += 1
        for pid in state.players:
            mutations.increase_max_energy(state, pid, 1)
            mutations.restore_energy(state, pid)
    else:
        mutations.restore_energy(state, next_player)

    mutations.refresh_creatures(state, next_player)
    healed = mutations.heal_creatures(state, next_player, 1)
    if healed:
        mutations.add_game_log_entry(
            state, next_player, "heal", f"{healed} creature(s) healed 1 health"
        )

    mutations.draw_card(state, next_player)
    dispatcher.fire(state, TriggerType.START_TURN, next_player)
    return True
