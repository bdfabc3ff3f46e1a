"""
Action System - Actions, payloads, and results.

Actions represent player intents that change the game document:
1. Game lifecycle (start game)
2. Player actions (play card, attack, end turn)
3. Spell commits (phase two of a cast, carrying the staged operations)

All state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .state import Target


class ActionType(Enum):
    """Types of actions in the system."""
    # System actions
    START_GAME = "start_game"

    # Player actions
    PLAY_CARD = "play_card"
    CAST_SPELL = "cast_spell"
    ATTACK_PLAYER = "attack_player"
    ATTACK_CREATURE = "attack_creature"
    END_TURN = "end_turn"


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types use different fields.
    This is a generic container; validation happens in the reducer.
    """
    player_id: str | None = None
    card_id: str | None = None

    # For attacks
    attacker_instance_id: str | None = None
    target: Target | None = None
    damage: int | None = None

    # For spell commits
    operations: list[Any] = field(default_factory=list)  # SpellOperation

    # Generic params
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Action:
    """
    A complete action to be applied to the game state.

    Actions are:
    - Validated before application
    - Applied atomically by the reducer
    """
    action_type: ActionType
    payload: ActionPayload
    timestamp: float | None = None
    action_id: str | None = None

    @classmethod
    def start_game(cls) -> Action:
        """Factory for starting a waiting game."""
        return cls(action_type=ActionType.START_GAME, payload=ActionPayload())

    @classmethod
    def play_card(cls, player_id: str, card_id: str) -> Action:
        """Factory for playing a creature, artifact or script-less spell."""
        return cls(
            action_type=ActionType.PLAY_CARD,
            payload=ActionPayload(player_id=player_id, card_id=card_id),
        )

    @classmethod
    def cast_spell(cls, player_id: str, card_id: str, operations: list[Any]) -> Action:
        """Factory for committing a staged spell."""
        return cls(
            action_type=ActionType.CAST_SPELL,
            payload=ActionPayload(player_id=player_id, card_id=card_id, operations=list(operations)),
        )

    @classmethod
    def attack_player(
        cls,
        player_id: str,
        attacker_instance_id: str,
        defender_player_id: str,
        damage: int | None = None,
    ) -> Action:
        """Factory for a unit attacking a player."""
        return cls(
            action_type=ActionType.ATTACK_PLAYER,
            payload=ActionPayload(
                player_id=player_id,
                attacker_instance_id=attacker_instance_id,
                target=Target.player(defender_player_id),
                damage=damage,
            ),
        )

    @classmethod
    def attack_creature(
        cls, player_id: str, attacker_instance_id: str, target: Target
    ) -> Action:
        """Factory for a unit attacking another unit."""
        return cls(
            action_type=ActionType.ATTACK_CREATURE,
            payload=ActionPayload(
                player_id=player_id,
                attacker_instance_id=attacker_instance_id,
                target=target,
            ),
        )

    @classmethod
    def end_turn(cls, player_id: str) -> Action:
        """Factory for ending the current turn."""
        return cls(
            action_type=ActionType.END_TURN,
            payload=ActionPayload(player_id=player_id),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = self.payload
        return {
            "action_type": self.action_type.value,
            "player_id": payload.player_id,
            "card_id": payload.card_id,
            "attacker_instance_id": payload.attacker_instance_id,
            "target": payload.target.to_dict() if payload.target else None,
        }


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if anything should be published, including logged failures)
    - Errors (if failed)
    - Human-readable changes
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: str | None = None

    # For UI/presentation
    state_changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(
        cls, error: str, error_code: str | None = None, state: Any | None = None
    ) -> ActionResult:
        """Create a failure result. Pass `state` when the failure itself is recorded."""
        return cls(success=False, new_state=state, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
        )
