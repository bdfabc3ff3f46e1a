"""
Trigger Dispatcher - Fires triggered abilities on lifecycle events.

For an event and a player, every card on that player's battlefield is
visited in battlefield order; each ability bound to the event runs through
the same staging/replay path as a spell. Abilities never prompt: a
selection step is answered with the single legal target when the selector
allows auto-targeting, otherwise the ability fizzles.

A failing ability is logged and skipped. It never stops the remaining
abilities or the event itself.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from ..card_schema.card_definition import ArtifactAbility, CardDefinition, TriggerType
from ..card_schema.effect_dsl import TargetSelector
from .state import GameState, GameStatus, Target
from . import mutations
from .effect_resolver import StagingAPI, apply_operations, stage_effect_sync
from .targeting import TargetingContext, TargetingMode, get_auto_targets

logger = logging.getLogger(__name__)


@dataclass
class TriggerDispatcher:
    """Runs abilities for lifecycle events. Stateless."""

    def fire(self, state: GameState, trigger: TriggerType, player_id: str) -> int:
        """
        Fire `trigger` for the cards `player_id` controls.

        Returns the number of abilities that resolved.
        """
        resolved = 0
        # Abilities can remove cards; walk a copy and skip anything that left play
        for card in list(state.get_battlefield(player_id)):
            if state.status == GameStatus.FINISHED:
                break
            if state.find_battlefield_card(player_id, card.instance_id) is None:
                continue
            definition = state.get_card(card.card_id)
            if definition is None:
                continue
            for ability in definition.abilities_for(trigger):
                if state.status == GameStatus.FINISHED:
                    break
                if self._run_ability(state, player_id, definition, ability):
                    resolved += 1
        return resolved

    def fire_for_opponents(self, state: GameState, trigger: TriggerType, player_id: str) -> int:
        """Fire `trigger` for every player except `player_id`, in seat order."""
        return sum(self.fire(state, trigger, other) for other in state.opponents_of(player_id))

    def fire_for_all(self, state: GameState, trigger: TriggerType) -> int:
        """Fire `trigger` for every player, in seat order."""
        return sum(self.fire(state, trigger, player_id) for player_id in state.players)

    def _run_ability(
        self,
        state: GameState,
        player_id: str,
        definition: CardDefinition,
        ability: ArtifactAbility,
    ) -> bool:
        staging = StagingAPI(state.clone(), player_id, definition.id)
        context = TargetingContext(
            mode=TargetingMode.SPELL, player_id=player_id, card_id=definition.id
        )

        def choose(selector: TargetSelector) -> list[Target] | None:
            return get_auto_targets(staging.snapshot, selector, context)

        try:
            operations = stage_effect_sync(ability.effect, staging, choose)
        except Exception:
            logger.exception(
                "Ability of %s (%s) failed in game %s",
                definition.id, ability.trigger.value, state.game_id,
            )
            mutations.add_game_log_entry(
                state, player_id, "trigger_failed",
                f"{definition.name} failed to trigger", definition.id,
            )
            return False

        if operations is None:
            logger.info("Ability of %s had no legal targets", definition.id)
            return False

        mutations.add_game_log_entry(
            state, player_id, "trigger",
            f"{definition.name}: {ability.description or 'triggered ability'}",
            definition.id,
        )
        apply_operations(state, operations, player_id, definition.id)
        return True
