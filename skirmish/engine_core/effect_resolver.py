"""
Effect Resolver - Two-phase execution of card scripts.

Phase one runs a script against a StagingAPI bound to a read-only
snapshot. Effect steps do not touch real state; they append
SpellOperations to an ordered operation log. Selection steps pause the
resolver with a PendingTargetChoice, which the async driver hands to the
Targeting Resolver, resuming once the human has chosen.

Phase two (apply_operations / commit_spell) replays the operation log
against the live document inside a single store change. If phase one
raises or a selection is cancelled, there is no phase two, so a script
can never leave a partial mutation behind.

The resolver maintains a context stack and processes steps one at a time,
pausing when player input is required.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable
import logging

from ..card_schema.effect_dsl import Effect, EffectStep, StepType, TargetKind, TargetRef, TargetSelector
from .state import GameState, GameStatus, Target
from . import mutations
from .targeting import TargetingContext, TargetingMode, validate_target

logger = logging.getLogger(__name__)


class EffectExecutionError(Exception):
    """Raised when a script cannot be resolved (bad reference, bad amount, missing target)."""


# ============================================================================
# Staging
# ============================================================================

class OperationType(Enum):
    """Operations a script can stage."""
    DAMAGE_PLAYER = "damage_player"
    DAMAGE_CREATURE = "damage_creature"
    HEAL_PLAYER = "heal_player"
    HEAL_CREATURE = "heal_creature"
    DESTROY_CREATURE = "destroy_creature"
    DRAW_CARD = "draw_card"
    GAIN_ENERGY = "gain_energy"
    LOG = "log"


@dataclass(frozen=True)
class SpellOperation:
    """One recorded operation, with its targets already resolved."""
    op_type: OperationType
    player_id: str
    instance_id: str | None = None
    amount: int = 0
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "op_type": self.op_type.value,
            "player_id": self.player_id,
            "instance_id": self.instance_id,
            "amount": self.amount,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpellOperation:
        return cls(
            op_type=OperationType(data["op_type"]),
            player_id=data["player_id"],
            instance_id=data.get("instance_id"),
            amount=data.get("amount", 0),
            message=data.get("message", ""),
        )


class StagingAPI:
    """
    Records operations instead of applying them.

    The snapshot is private to this staging run and must be treated as
    read-only. Calls are checked against the snapshot so that a script
    aimed at something that does not exist fails in phase one.
    """

    def __init__(self, snapshot: GameState, caster_id: str, source_card_id: str | None = None):
        self.snapshot = snapshot
        self.caster_id = caster_id
        self.source_card_id = source_card_id
        self.operations: list[SpellOperation] = []

    def _require_player(self, player_id: str) -> None:
        if not self.snapshot.has_player(player_id):
            raise EffectExecutionError(f"Unknown player: {player_id}")

    def _require_unit(self, owner_id: str, instance_id: str) -> None:
        if self.snapshot.find_battlefield_card(owner_id, instance_id) is None:
            raise EffectExecutionError(f"No unit {instance_id} on {owner_id}'s battlefield")

    def _require_amount(self, amount: int) -> None:
        if amount < 0:
            raise EffectExecutionError(f"Amount must be non-negative, got {amount}")

    def _record(self, op_type: OperationType, player_id: str, **kwargs) -> None:
        self.operations.append(SpellOperation(op_type=op_type, player_id=player_id, **kwargs))

    def deal_damage_to_player(self, player_id: str, amount: int) -> None:
        self._require_player(player_id)
        self._require_amount(amount)
        self._record(OperationType.DAMAGE_PLAYER, player_id, amount=amount)

    def deal_damage_to_creature(self, owner_id: str, instance_id: str, amount: int) -> None:
        self._require_unit(owner_id, instance_id)
        self._require_amount(amount)
        self._record(OperationType.DAMAGE_CREATURE, owner_id, instance_id=instance_id, amount=amount)

    def heal_player(self, player_id: str, amount: int) -> None:
        self._require_player(player_id)
        self._require_amount(amount)
        self._record(OperationType.HEAL_PLAYER, player_id, amount=amount)

    def heal_creature(self, owner_id: str, instance_id: str, amount: int) -> None:
        self._require_unit(owner_id, instance_id)
        self._require_amount(amount)
        self._record(OperationType.HEAL_CREATURE, owner_id, instance_id=instance_id, amount=amount)

    def destroy_creature(self, owner_id: str, instance_id: str) -> None:
        self._require_unit(owner_id, instance_id)
        self._record(OperationType.DESTROY_CREATURE, owner_id, instance_id=instance_id)

    def draw_card(self, player_id: str) -> None:
        self._require_player(player_id)
        self._record(OperationType.DRAW_CARD, player_id)

    def gain_energy(self, player_id: str, amount: int) -> None:
        self._require_player(player_id)
        self._require_amount(amount)
        self._record(OperationType.GAIN_ENERGY, player_id, amount=amount)

    def log(self, message: str) -> None:
        self._record(OperationType.LOG, self.caster_id, message=message)

    def deal_damage(self, target: Target, amount: int) -> None:
        if target.is_player:
            self.deal_damage_to_player(target.player_id, amount)
        else:
            self.deal_damage_to_creature(target.player_id, target.instance_id, amount)

    def heal(self, target: Target, amount: int) -> None:
        if target.is_player:
            self.heal_player(target.player_id, amount)
        else:
            self.heal_creature(target.player_id, target.instance_id, amount)


# ============================================================================
# Step resolver
# ============================================================================

class ResolverState(Enum):
    """State of the effect resolver."""
    READY = "ready"  # No effects pending
    RESOLVING = "resolving"  # Processing steps
    WAITING_CHOICE = "waiting_choice"  # Paused for target selection
    COMPLETED = "completed"  # Effect finished
    CANCELLED = "cancelled"  # Selection abandoned
    ERROR = "error"  # Resolution failed


@dataclass
class PendingTargetChoice:
    """
    A target selection the resolver is waiting on.

    This is handed to the Targeting Resolver (or an automatic chooser).
    """
    choice_id: str
    player_id: str
    selector: TargetSelector
    store_as: str
    source_step_id: str


@dataclass
class EffectContext:
    """
    Context for resolving a list of steps.

    Branches and loop iterations get their own context with a copy of the
    parent's variables.
    """
    effect_id: str
    steps: list[EffectStep]
    source_player_id: str
    current_step_index: int = 0

    # Bound target lists, keyed by variable name (without the "$")
    variables: dict[str, list[Target]] = field(default_factory=dict)


@dataclass
class StepResult:
    """Result of resolving a single step."""
    pending_choice: PendingTargetChoice | None = None
    sub_contexts: list[EffectContext] = field(default_factory=list)
    error: str | None = None

    @property
    def needs_choice(self) -> bool:
        return self.pending_choice is not None


@dataclass
class EffectResolver:
    """
    Resolves a script step by step into staged operations.

    The resolver never sees live state. It reads the staging snapshot and
    writes only to the staging operation log.
    """
    staging: StagingAPI
    state: ResolverState = ResolverState.READY
    effect_stack: list[EffectContext] = field(default_factory=list)
    pending_choice: PendingTargetChoice | None = None
    _choice_counter: int = 0

    def begin_effect(self, effect: Effect) -> PendingTargetChoice | None:
        """
        Begin resolving an effect.

        Returns the first pending choice, or None if the effect completed.
        """
        if self.state not in (ResolverState.READY, ResolverState.COMPLETED):
            raise EffectExecutionError(f"Resolver busy ({self.state.value})")

        self.effect_stack = [
            EffectContext(
                effect_id=effect.effect_id,
                steps=effect.steps,
                source_player_id=self.staging.caster_id,
            )
        ]
        self.state = ResolverState.RESOLVING
        return self._continue_resolution()

    def provide_targets(self, choice_id: str, targets: list[Target]) -> PendingTargetChoice | None:
        """
        Provide the chosen targets and continue resolution.

        Raises:
            EffectExecutionError: If no choice is pending, the id does not
                match, or the targets are not a legal answer
        """
        if not self.pending_choice:
            raise EffectExecutionError("No choice pending")
        if self.pending_choice.choice_id != choice_id:
            raise EffectExecutionError(
                f"Choice ID mismatch: expected {self.pending_choice.choice_id}"
            )
        if not self._validate_choice(targets):
            self.state = ResolverState.ERROR
            raise EffectExecutionError("Invalid target selection")

        context = self.effect_stack[-1]
        context.variables[self.pending_choice.store_as] = list(targets)
        self.pending_choice = None
        self.state = ResolverState.RESOLVING
        return self._continue_resolution()

    def cancel(self) -> None:
        """Abandon resolution; staged operations must be discarded by the caller."""
        self.pending_choice = None
        self.effect_stack.clear()
        self.state = ResolverState.CANCELLED

    def _continue_resolution(self) -> PendingTargetChoice | None:
        """Continue resolving steps until complete or a choice is needed."""
        while self.effect_stack:
            context = self.effect_stack[-1]

            while context.current_step_index < len(context.steps):
                step = context.steps[context.current_step_index]
                result = self._resolve_step(context, step)

                if result.error:
                    self.state = ResolverState.ERROR
                    raise EffectExecutionError(
                        f"{context.effect_id}/{step.step_id}: {result.error}"
                    )

                if result.needs_choice:
                    # Resume after the selection step once targets arrive
                    context.current_step_index += 1
                    self.state = ResolverState.WAITING_CHOICE
                    self.pending_choice = result.pending_choice
                    return self.pending_choice

                context.current_step_index += 1

                if result.sub_contexts:
                    # Push so the first sub-context runs first
                    self.effect_stack.extend(reversed(result.sub_contexts))
                    break
            else:
                self.effect_stack.pop()

        self.state = ResolverState.COMPLETED
        return None

    def _resolve_step(self, context: EffectContext, step: EffectStep) -> StepResult:
        """Resolve a single step."""
        handlers: dict[StepType, Callable[[EffectContext, EffectStep], StepResult]] = {
            StepType.SELECT_TARGETS: self._step_select_targets,
            StepType.DEAL_DAMAGE: self._step_deal_damage,
            StepType.HEAL: self._step_heal,
            StepType.DESTROY: self._step_destroy,
            StepType.DRAW: self._step_draw,
            StepType.GAIN_ENERGY: self._step_gain_energy,
            StepType.LOG: self._step_log,
            StepType.IF_TARGET_TYPE: self._step_if_target_type,
            StepType.FOR_EACH_TARGET: self._step_for_each_target,
        }

        handler = handlers.get(step.step_type)
        if not handler:
            return StepResult(error=f"Unknown step type: {step.step_type}")

        try:
            return handler(context, step)
        except EffectExecutionError as e:
            return StepResult(error=str(e))

    def _step_select_targets(self, context: EffectContext, step: EffectStep) -> StepResult:
        if step.selector is None or not step.store_as:
            return StepResult(error="select_targets requires a selector and store_as")
        self._choice_counter += 1
        return StepResult(
            pending_choice=PendingTargetChoice(
                choice_id=f"{context.effect_id}:{step.step_id}:{self._choice_counter}",
                player_id=context.source_player_id,
                selector=step.selector,
                store_as=step.store_as,
                source_step_id=step.step_id,
            )
        )

    def _step_deal_damage(self, context: EffectContext, step: EffectStep) -> StepResult:
        amount = self._amount(step, "amount")
        for target in self._resolve_targets(context, step.target):
            self.staging.deal_damage(target, amount)
        return StepResult()

    def _step_heal(self, context: EffectContext, step: EffectStep) -> StepResult:
        amount = self._amount(step, "amount")
        for target in self._resolve_targets(context, step.target):
            self.staging.heal(target, amount)
        return StepResult()

    def _step_destroy(self, context: EffectContext, step: EffectStep) -> StepResult:
        for target in self._resolve_targets(context, step.target):
            if target.is_player:
                return StepResult(error="Cannot destroy a player")
            self.staging.destroy_creature(target.player_id, target.instance_id)
        return StepResult()

    def _step_draw(self, context: EffectContext, step: EffectStep) -> StepResult:
        count = self._amount(step, "count", default=1)
        for player_id in self._resolve_players(context, step.target or TargetRef.CASTER):
            for _ in range(count):
                self.staging.draw_card(player_id)
        return StepResult()

    def _step_gain_energy(self, context: EffectContext, step: EffectStep) -> StepResult:
        amount = self._amount(step, "amount")
        for player_id in self._resolve_players(context, step.target or TargetRef.CASTER):
            self.staging.gain_energy(player_id, amount)
        return StepResult()

    def _step_log(self, context: EffectContext, step: EffectStep) -> StepResult:
        message = step.params.get("message")
        if not message:
            return StepResult(error="Log step has no message")
        self.staging.log(str(message))
        return StepResult()

    def _step_if_target_type(self, context: EffectContext, step: EffectStep) -> StepResult:
        """Branch on the kind of the referenced targets (all must match)."""
        try:
            wanted = TargetKind(step.params.get("target_type"))
        except ValueError:
            return StepResult(error=f"Unknown target_type: {step.params.get('target_type')}")

        targets = self._resolve_targets(context, step.target)
        matches = bool(targets) and (
            wanted == TargetKind.ANY or all(t.type == wanted for t in targets)
        )
        branch = step.then_steps if matches else step.else_steps
        if not branch:
            return StepResult()
        return StepResult(sub_contexts=[self._sub_context(context, step, branch)])

    def _step_for_each_target(self, context: EffectContext, step: EffectStep) -> StepResult:
        """Run the loop body once per target, binding it as a one-element list."""
        loop_var = step.loop_variable or "target"
        items = self._lookup_variable(context, step.loop_source)
        sub_contexts = []
        for index, target in enumerate(items):
            sub = self._sub_context(context, step, step.loop_steps, suffix=f"loop_{index}")
            sub.variables[loop_var] = [target]
            sub_contexts.append(sub)
        return StepResult(sub_contexts=sub_contexts)

    def _sub_context(
        self,
        context: EffectContext,
        step: EffectStep,
        steps: list[EffectStep],
        suffix: str = "branch",
    ) -> EffectContext:
        return EffectContext(
            effect_id=f"{context.effect_id}/{step.step_id}_{suffix}",
            steps=steps,
            source_player_id=context.source_player_id,
            variables=dict(context.variables),
        )

    def _amount(self, step: EffectStep, key: str, default: int | None = None) -> int:
        value = step.params.get(key, default)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise EffectExecutionError(f"'{key}' must be a non-negative integer, got {value!r}")
        return value

    def _lookup_variable(self, context: EffectContext, ref: str | None) -> list[Target]:
        if not TargetRef.is_variable(ref):
            raise EffectExecutionError(f"Expected a variable reference, got {ref!r}")
        name = ref[1:]
        if name not in context.variables:
            raise EffectExecutionError(f"Unbound variable: {ref}")
        return list(context.variables[name])

    def _resolve_players(self, context: EffectContext, ref: str | None) -> list[str]:
        """Resolve a reference that must name players."""
        snapshot = self.staging.snapshot
        caster = context.source_player_id
        if ref == TargetRef.CASTER:
            return [caster]
        if ref == TargetRef.OPPONENTS:
            return snapshot.opponents_of(caster)
        if ref == TargetRef.ALL_PLAYERS:
            return list(snapshot.players)
        if TargetRef.is_variable(ref):
            targets = self._lookup_variable(context, ref)
            if any(not t.is_player for t in targets):
                raise EffectExecutionError(f"{ref} must contain only players")
            return [t.player_id for t in targets]
        raise EffectExecutionError(f"Unknown player reference: {ref!r}")

    def _resolve_targets(self, context: EffectContext, ref: str | None) -> list[Target]:
        """Resolve any reference to a list of targets."""
        snapshot = self.staging.snapshot
        caster = context.source_player_id
        if TargetRef.is_variable(ref):
            return self._lookup_variable(context, ref)
        if ref in TargetRef.PLAYER_REFS:
            return [Target.player(pid) for pid in self._resolve_players(context, ref)]
        if ref in TargetRef.UNIT_REFS:
            owners = [caster] if ref == TargetRef.OWN_CREATURES else snapshot.opponents_of(caster)
            return [
                Target.creature(owner, card.instance_id)
                for owner in owners
                for card in snapshot.get_battlefield(owner)
                if snapshot.target_kind_of(card) == TargetKind.CREATURE
            ]
        raise EffectExecutionError(f"Unknown target reference: {ref!r}")

    def _validate_choice(self, targets: list[Target]) -> bool:
        """Check count and legality of a selection against the snapshot."""
        selector = self.pending_choice.selector
        if not targets or len(targets) > selector.target_count:
            return False
        context = TargetingContext(
            mode=TargetingMode.SPELL,
            player_id=self.pending_choice.player_id,
            card_id=self.staging.source_card_id,
        )
        return all(
            validate_target(self.staging.snapshot, selector, context, t)[0] for t in targets
        )


# ============================================================================
# Drivers (phase one)
# ============================================================================

SelectTargets = Callable[[TargetSelector], Awaitable[list[Target]]]
ChooseTargets = Callable[[TargetSelector], list[Target] | None]


async def stage_effect(
    effect: Effect, staging: StagingAPI, select_targets: SelectTargets
) -> list[SpellOperation] | None:
    """
    Run phase one, awaiting a human for every selection step.

    Returns the operation log, or None if a selection was cancelled.
    Raises EffectExecutionError if the script fails.
    """
    resolver = EffectResolver(staging=staging)
    pending = resolver.begin_effect(effect)
    while pending is not None:
        targets = await select_targets(pending.selector)
        if not targets:
            resolver.cancel()
            return None
        pending = resolver.provide_targets(pending.choice_id, targets)
    return list(staging.operations)


def stage_effect_sync(
    effect: Effect, staging: StagingAPI, choose: ChooseTargets
) -> list[SpellOperation] | None:
    """Run phase one without suspending; `choose` answers selections immediately."""
    resolver = EffectResolver(staging=staging)
    pending = resolver.begin_effect(effect)
    while pending is not None:
        targets = choose(pending.selector)
        if not targets:
            resolver.cancel()
            return None
        pending = resolver.provide_targets(pending.choice_id, targets)
    return list(staging.operations)


# ============================================================================
# Replay (phase two)
# ============================================================================

def apply_operations(
    state: GameState,
    operations: list[SpellOperation],
    player_id: str,
    card_id: str | None = None,
) -> int:
    """
    Replay staged operations against live state, in recorded order.

    Operations aimed at a unit that has left play since staging are skipped.
    Returns the number of operations applied.
    """
    applied = 0
    for op in operations:
        if op.op_type == OperationType.DAMAGE_PLAYER:
            ok = mutations.deal_damage_to_player(state, op.player_id, op.amount)
        elif op.op_type == OperationType.DAMAGE_CREATURE:
            ok = mutations.deal_damage_to_creature(state, op.player_id, op.instance_id, op.amount)
        elif op.op_type == OperationType.HEAL_PLAYER:
            ok = mutations.heal_player(state, op.player_id, op.amount)
            if ok:
                mutations.add_game_log_entry(
                    state, op.player_id, "heal", f"Healed for {op.amount} health", card_id
                )
        elif op.op_type == OperationType.HEAL_CREATURE:
            ok = mutations.heal_creature(state, op.player_id, op.instance_id, op.amount)
        elif op.op_type == OperationType.DESTROY_CREATURE:
            ok = mutations.destroy_creature(state, op.player_id, op.instance_id)
        elif op.op_type == OperationType.DRAW_CARD:
            ok = op.player_id in state.hands
            if ok and mutations.draw_card(state, op.player_id) is not None:
                mutations.add_game_log_entry(state, op.player_id, "draw", "Drew a card", card_id)
        elif op.op_type == OperationType.GAIN_ENERGY:
            ok = mutations.gain_energy(state, op.player_id, op.amount)
            if ok:
                mutations.add_game_log_entry(
                    state, op.player_id, "gain_energy", f"Gained {op.amount} energy", card_id
                )
        elif op.op_type == OperationType.LOG:
            mutations.add_game_log_entry(state, player_id, "effect", op.message, card_id)
            ok = True
        else:
            ok = False

        if ok:
            applied += 1
        else:
            logger.info("Skipped stale operation %s (game %s)", op.to_dict(), state.game_id)
    return applied


def commit_spell(
    state: GameState,
    player_id: str,
    card_id: str,
    operations: list[SpellOperation],
) -> bool:
    """
    Pay for a spell and replay its staged operations, all in one change.

    Preconditions are re-checked against the live state; if any fails, a
    "Failed to cast" entry is logged and nothing else changes.
    """
    definition = state.get_card(card_id)
    name = definition.name if definition else card_id

    if (
        state.status != GameStatus.PLAYING
        or state.current_player_id != player_id
        or definition is None
        or not definition.is_spell
        or card_id not in state.get_hand(player_id)
        or not mutations.can_afford(state, player_id, card_id)
    ):
        record_cast_failure(state, player_id, card_id)
        return False

    mutations.remove_card_from_hand(state, player_id, card_id)
    mutations.spend_energy(state, player_id, definition.cost)
    mutations.add_card_to_graveyard(state, card_id)
    mutations.add_game_log_entry(state, player_id, "cast_spell", f"Cast {name}", card_id)
    apply_operations(state, operations, player_id, card_id)
    return True


def record_cast_failure(state: GameState, player_id: str, card_id: str) -> None:
    definition = state.card_library.get(card_id)
    name = definition.name if definition else card_id
    mutations.add_game_log_entry(state, player_id, "cast_failed", f"Failed to cast {name}", card_id)
