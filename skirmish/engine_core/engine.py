"""
Game Engine - Sequences player intents against a document store.

The engine is the entry point callers use. It:
1. Rejects player actions while a spell or attack is in flight (from its
   first await until its commit)
2. Runs spell scripts in two phases (stage with human targeting, then
   commit through the reducer in one store change)
3. Runs interactive attacks (choose a defender, then resolve)
4. Applies everything else directly through the reducer

Suspension happens only while awaiting the Targeting Resolver. Every
store change is synchronous, and phase two always re-reads the latest
version, so nothing staged against an old snapshot is applied blindly.
"""

from __future__ import annotations
import logging

from .state import GameState, GameStatus, Target
from .action import Action, ActionResult
from .action_generator import legal_actions
from .combat import ready_attacker
from .effect_resolver import StagingAPI, record_cast_failure, stage_effect
from .reducer import Reducer
from .store import DocumentStore
from .targeting import (
    TargetingContext,
    TargetingMode,
    TargetingResolver,
    selector_for_attack,
)
from . import mutations

logger = logging.getLogger(__name__)


class GameEngine:
    """
    Runs one game.

    Usage:
        engine = GameEngine(InMemoryDocumentStore(state))
        engine.start_game()
        result = await engine.play_card("alice", "card_002")  # may await targeting
    """

    def __init__(
        self,
        store: DocumentStore,
        reducer: Reducer | None = None,
        targeting: TargetingResolver | None = None,
    ):
        self.store = store
        self.reducer = reducer or Reducer()
        self.targeting = targeting or TargetingResolver(get_state=store.read)
        # Card id or attacker instance id of the cast/attack awaiting commit
        self._in_flight: str | None = None

    @property
    def state(self) -> GameState:
        """A snapshot of the latest version."""
        return self.store.read()

    @property
    def is_busy(self) -> bool:
        """True while a selection is open or a confirmed cast/attack has not committed."""
        return self.targeting.is_selecting or self._in_flight is not None

    def submit(self, action: Action) -> ActionResult:
        """Apply an action through the reducer in one store change."""
        if self.is_busy:
            return _busy()
        return self._commit(action)

    def _commit(self, action: Action) -> ActionResult:
        return self.store.apply(lambda doc: self.reducer.apply(doc, action))

    def start_game(self) -> ActionResult:
        return self.submit(Action.start_game())

    def legal_actions(self) -> list[Action]:
        return legal_actions(self.store.read())

    # =========================================================================
    # Cards
    # =========================================================================

    async def play_card(self, player_id: str, card_id: str) -> ActionResult:
        """Play any card from hand; scripted spells are cast."""
        if self.is_busy:
            return _busy()
        definition = self.store.read().card_library.get(card_id)
        if definition is not None and definition.is_spell and definition.spell_effect is not None:
            return await self.cast_spell(player_id, card_id)
        return self.submit(Action.play_card(player_id, card_id))

    async def cast_spell(self, player_id: str, card_id: str) -> ActionResult:
        """
        Cast a scripted spell.

        Phase one stages the script against a snapshot, awaiting the human
        for any target selection. Phase two commits the staged operations.
        A script error records "Failed to cast" and a cancelled selection
        records "Cancelled"; neither spends energy or moves the card.
        Other intents are rejected until phase two has committed.
        """
        if self.is_busy:
            return _busy()

        snapshot = self.store.read()
        problem = self._check_cast(snapshot, player_id, card_id)
        if problem:
            message, code = problem
            logger.info("Rejected cast of %s by %s: %s", card_id, player_id, message)
            return ActionResult.failure(message, error_code=code)

        self._in_flight = card_id
        try:
            return await self._cast(snapshot, player_id, card_id)
        finally:
            self._in_flight = None

    async def _cast(self, snapshot: GameState, player_id: str, card_id: str) -> ActionResult:
        definition = snapshot.card_library[card_id]
        staging = StagingAPI(snapshot, player_id, card_id)
        context = TargetingContext(mode=TargetingMode.SPELL, player_id=player_id, card_id=card_id)

        try:
            operations = await stage_effect(
                definition.spell_effect,
                staging,
                lambda selector: self.targeting.start_targeting(selector, context),
            )
        except Exception as e:
            logger.exception("Script for %s failed in game %s", card_id, snapshot.game_id)
            self.store.change(lambda doc: record_cast_failure(doc, player_id, card_id))
            return ActionResult.failure(
                f"Failed to cast {definition.name}: {e}",
                error_code="CAST_FAILED",
                state=self.store.read(),
            )

        if operations is None:
            self.store.change(
                lambda doc: mutations.add_game_log_entry(
                    doc, player_id, "cancel", f"Cancelled {definition.name}", card_id
                )
            )
            return ActionResult.failure("Targeting cancelled", error_code="CANCELLED")

        result = self._commit(Action.cast_spell(player_id, card_id, operations))
        if not result.success and result.error_code != "CAST_FAILED":
            # Rejected before commit_spell could log it
            logger.warning("Commit of %s rejected: %s", card_id, result.error)
            self.store.change(lambda doc: record_cast_failure(doc, player_id, card_id))
        return result

    def _check_cast(
        self, state: GameState, player_id: str, card_id: str
    ) -> tuple[str, str] | None:
        """Preconditions checked before a script runs. Returns (message, code) or None."""
        if state.status != GameStatus.PLAYING:
            return "Game is not in progress", "INVALID_ACTION"
        if state.current_player_id != player_id:
            return f"Not {player_id}'s turn", "INVALID_ACTION"
        definition = state.card_library.get(card_id)
        if definition is None:
            return f"Unknown card {card_id}", "NOT_FOUND"
        if not definition.is_spell or definition.spell_effect is None:
            return f"{definition.name} is not a scripted spell", "INVALID_ACTION"
        if card_id not in state.get_hand(player_id):
            return f"Card {card_id} not in hand", "INVALID_ACTION"
        if not mutations.can_afford(state, player_id, card_id):
            return "Not enough energy", "INSUFFICIENT_ENERGY"
        return None

    # =========================================================================
    # Combat
    # =========================================================================

    async def attack(self, player_id: str, attacker_instance_id: str) -> ActionResult:
        """Attack with a unit, awaiting the human's choice of defender."""
        if self.is_busy:
            return _busy()

        ready = ready_attacker(self.store.read(), player_id, attacker_instance_id)
        if ready is None:
            return ActionResult.failure("That unit cannot attack", error_code="ILLEGAL_ATTACK")
        card, definition = ready

        context = TargetingContext(
            mode=TargetingMode.ATTACK,
            player_id=player_id,
            card_id=card.card_id,
            attacker_instance_id=attacker_instance_id,
            attack_policy=definition.attack_policy,
        )
        self._in_flight = attacker_instance_id
        try:
            targets = await self.targeting.start_targeting(selector_for_attack(definition), context)
            if not targets:
                return ActionResult.failure("Targeting cancelled", error_code="CANCELLED")
            return self._commit(_attack_action(player_id, attacker_instance_id, targets[0]))
        finally:
            self._in_flight = None

    def attack_target(
        self, player_id: str, attacker_instance_id: str, target: Target
    ) -> ActionResult:
        """Attack a known target without a targeting session."""
        return self.submit(_attack_action(player_id, attacker_instance_id, target))

    # =========================================================================
    # Turns
    # =========================================================================

    def end_turn(self, player_id: str) -> ActionResult:
        return self.submit(Action.end_turn(player_id))


def _busy() -> ActionResult:
    return ActionResult.failure("Finish or cancel targeting first", error_code="TARGETING_ACTIVE")


def _attack_action(player_id: str, attacker_instance_id: str, target: Target) -> Action:
    if target.is_player:
        return Action.attack_player(player_id, attacker_instance_id, target.player_id)
    return Action.attack_creature(player_id, attacker_instance_id, target)
