"""
Action Generator - Generates the legal actions from a game state.

The action generator is used by:
1. UI to show available actions
2. The CLI demo to drive automated play
3. Validation (is this action in legal_actions?)

Design: Generates Action objects, not just action types.
Spells with scripts are listed as PLAY_CARD; GameEngine.play_card routes
them through the effect interpreter.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..card_schema.effect_dsl import TargetKind
from .state import GameState, GameStatus, Target
from .action import Action
from .combat import ready_attacker
from . import mutations


@dataclass
class ActionGenerator:
    """Generates legal actions for the current player."""

    def generate(self, state: GameState) -> list[Action]:
        """
        Generate all legal actions for the current player.

        Returns a list of fully-specified Action objects.
        """
        if state.status == GameStatus.FINISHED:
            return []

        if state.status == GameStatus.WAITING:
            return [Action.start_game()]

        player_id = state.current_player_id
        actions = []

        # Play actions
        actions.extend(self._generate_play_actions(state, player_id))

        # Attack actions
        actions.extend(self._generate_attack_actions(state, player_id))

        # End turn is always available
        actions.append(Action.end_turn(player_id))

        return actions

    def _generate_play_actions(self, state: GameState, player_id: str) -> list[Action]:
        actions = []
        seen: set[str] = set()
        for card_id in state.get_hand(player_id):
            if card_id in seen:
                continue
            seen.add(card_id)
            if state.card_library.get(card_id) is None:
                continue
            if mutations.can_afford(state, player_id, card_id):
                actions.append(Action.play_card(player_id, card_id))
        return actions

    def _generate_attack_actions(self, state: GameState, player_id: str) -> list[Action]:
        actions = []
        for card in state.get_battlefield(player_id):
            ready = ready_attacker(state, player_id, card.instance_id)
            if ready is None:
                continue
            _, definition = ready
            policy = definition.attack_policy

            for opponent in state.opponents_of(player_id):
                if policy.can_target_players:
                    actions.append(Action.attack_player(player_id, card.instance_id, opponent))

                for defender in state.get_battlefield(opponent):
                    kind = state.target_kind_of(defender)
                    if kind == TargetKind.CREATURE and not policy.can_target_creatures:
                        continue
                    if kind == TargetKind.ARTIFACT and not policy.can_target_artifacts:
                        continue
                    if kind is None:
                        continue
                    actions.append(
                        Action.attack_creature(
                            player_id,
                            card.instance_id,
                            Target(type=kind, player_id=opponent, instance_id=defender.instance_id),
                        )
                    )
        return actions


def legal_actions(state: GameState) -> list[Action]:
    """Convenience function to generate legal actions."""
    return ActionGenerator().generate(state)
