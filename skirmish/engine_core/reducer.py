"""
Reducer - Applies actions to game state.

The reducer is the single point of state mutation for player actions.
All player-driven changes go through Reducer.apply().

Design principles:
- (state, action) -> new_state: the input state is never touched
- Validates before applying
- Returns ActionResult with success/failure, never raises
- Delegates rules to the mutation, combat, turn and effect modules
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..card_schema.card_definition import TriggerType
from .state import GameState, GameStatus
from .action import Action, ActionType, ActionResult
from . import mutations
from .combat import attack_creature_with_creature, attack_player_with_creature
from .effect_resolver import commit_spell
from .triggers import TriggerDispatcher
from .turns import end_player_turn, start_game

logger = logging.getLogger(__name__)


@dataclass
class Reducer:
    """
    Reducer applies actions to game state.

    Stateless - all state is in GameState.
    """
    dispatcher: TriggerDispatcher = field(default_factory=TriggerDispatcher)

    def apply(self, state: GameState, action: Action) -> ActionResult:
        """
        Apply an action to the game state.

        Returns ActionResult with new state or error. A failure result may
        still carry a new state when the failure is recorded in the game log.
        """
        # Validate action is legal
        validation_error = self._validate_action(state, action)
        if validation_error:
            logger.info("Rejected %s: %s", action.action_type.value, validation_error)
            return ActionResult.failure(validation_error, error_code="INVALID_ACTION")

        # Dispatch to handler based on action type
        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code="NO_HANDLER",
            )

        try:
            return handler(state.clone(), action)
        except Exception as e:
            logger.exception("Handler for %s failed", action.action_type.value)
            return ActionResult.failure(str(e), error_code="HANDLER_ERROR")

    def _validate_action(self, state: GameState, action: Action) -> str | None:
        """
        Validate that an action is legal in the current state.

        Returns error message if invalid, None if valid.
        """
        if state.status == GameStatus.FINISHED:
            return "Game is over - no actions allowed"

        if state.status == GameStatus.WAITING:
            if action.action_type != ActionType.START_GAME:
                return "Game not started - only start_game allowed"
            return None

        if action.action_type == ActionType.START_GAME:
            return "Game already started"

        player_id = action.payload.player_id
        if player_id not in state.players:
            return f"Unknown player {player_id}"
        if player_id != state.current_player_id:
            return f"Not {player_id}'s turn"

        return None

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.START_GAME: self._handle_start_game,
            ActionType.PLAY_CARD: self._handle_play_card,
            ActionType.CAST_SPELL: self._handle_cast_spell,
            ActionType.ATTACK_PLAYER: self._handle_attack_player,
            ActionType.ATTACK_CREATURE: self._handle_attack_creature,
            ActionType.END_TURN: self._handle_end_turn,
        }
        return handlers.get(action_type)

    def _handle_start_game(self, state: GameState, action: Action) -> ActionResult:
        if not start_game(state):
            return ActionResult.failure("Game cannot be started", error_code="INVALID_ACTION")
        return ActionResult.success_with_state(state, changes=["Game started"])

    def _handle_play_card(self, state: GameState, action: Action) -> ActionResult:
        """Handle playing a card that needs no script."""
        player_id = action.payload.player_id
        card_id = action.payload.card_id

        definition = state.card_library.get(card_id)
        if definition is None:
            return ActionResult.failure(f"Unknown card {card_id}", error_code="NOT_FOUND")
        if card_id not in state.get_hand(player_id):
            return ActionResult.failure(f"Card {card_id} not in hand", error_code="INVALID_ACTION")
        if not mutations.can_afford(state, player_id, card_id):
            return ActionResult.failure("Not enough energy", error_code="INSUFFICIENT_ENERGY")
        if definition.is_spell and definition.spell_effect is not None:
            return ActionResult.failure(
                f"{definition.name} must be cast", error_code="REQUIRES_CAST"
            )

        if not mutations.play_card(state, player_id, card_id):
            return ActionResult.failure(f"Cannot play {definition.name}", error_code="INVALID_ACTION")

        if definition.is_spell:
            self.dispatcher.fire_for_all(state, TriggerType.PLAY_CARD)
        else:
            self.dispatcher.fire_for_opponents(state, TriggerType.PLAY_CARD, player_id)
        return ActionResult.success_with_state(state, changes=[f"Played {definition.name}"])

    def _handle_cast_spell(self, state: GameState, action: Action) -> ActionResult:
        """Handle phase two of a cast: pay, then replay the staged operations."""
        player_id = action.payload.player_id
        card_id = action.payload.card_id

        if not commit_spell(state, player_id, card_id, action.payload.operations):
            # The failure entry is part of the result state
            return ActionResult.failure(
                f"Failed to cast {card_id}", error_code="CAST_FAILED", state=state
            )

        # Spells reach every battlefield, the caster's included
        self.dispatcher.fire_for_all(state, TriggerType.PLAY_CARD)
        name = state.card_library[card_id].name
        return ActionResult.success_with_state(state, changes=[f"Cast {name}"])

    def _handle_attack_player(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        target = payload.target
        if target is None or not target.is_player:
            return ActionResult.failure("Attack needs a player target", error_code="INVALID_TARGET")

        if not attack_player_with_creature(
            state, payload.player_id, payload.attacker_instance_id, target.player_id, payload.damage
        ):
            return ActionResult.failure("Illegal attack", error_code="ILLEGAL_ATTACK")
        return ActionResult.success_with_state(state, changes=["Attack resolved"])

    def _handle_attack_creature(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        target = payload.target
        if target is None or target.is_player:
            return ActionResult.failure("Attack needs a unit target", error_code="INVALID_TARGET")

        if not attack_creature_with_creature(
            state, payload.player_id, payload.attacker_instance_id,
            target.player_id, target.instance_id,
        ):
            return ActionResult.failure("Illegal attack", error_code="ILLEGAL_ATTACK")
        return ActionResult.success_with_state(state, changes=["Attack resolved"])

    def _handle_end_turn(self, state: GameState, action: Action) -> ActionResult:
        player_id = action.payload.player_id
        if not end_player_turn(state, player_id, self.dispatcher):
            return ActionResult.failure("Cannot end turn", error_code="INVALID_ACTION")
        return ActionResult.success_with_state(
            state, changes=[f"Turn passed to {state.current_player_id}"]
        )


def apply_action(state: GameState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    reducer = Reducer()
    return reducer.apply(state, action)
