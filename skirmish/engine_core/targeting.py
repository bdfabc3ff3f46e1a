"""
Targeting Resolver - Interactive, cancelable target selection.

States: IDLE -> SELECTING -> {CONFIRMED, CANCELLED} -> IDLE

start_targeting() opens a session and returns a future that resolves to
the chosen targets (an empty list means the player cancelled). The
resolver owns no game state; it reads a fresh snapshot through
`get_state` whenever it has to judge legality, so nothing it holds can go
stale while a human is deciding.

Legality rules:
- target kind must match the selector's target_type unless it is ANY
- self-targeting (your own player or units) needs can_target_self
- attacks are further limited by the attacker's attack targeting policy
- the target must exist in the current state
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
import asyncio
import logging

from ..card_schema.card_definition import AttackTargeting, CardDefinition
from ..card_schema.effect_dsl import TargetKind, TargetSelector
from .state import GameState, Target

logger = logging.getLogger(__name__)


class TargetingPhase(Enum):
    """State of the targeting resolver."""
    IDLE = "idle"
    SELECTING = "selecting"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class TargetingMode(Enum):
    """What the selection is for."""
    SPELL = "spell"
    ATTACK = "attack"


class TargetingError(Exception):
    """Raised when the targeting protocol is misused (e.g. two sessions at once)."""


@dataclass
class TargetingContext:
    """Who is targeting, and for what."""
    mode: TargetingMode
    player_id: str
    card_id: str | None = None
    attacker_instance_id: str | None = None
    attack_policy: AttackTargeting | None = None

    @property
    def is_attack(self) -> bool:
        return self.mode == TargetingMode.ATTACK


# ============================================================================
# Legality
# ============================================================================

def validate_target(
    state: GameState,
    selector: TargetSelector,
    context: TargetingContext,
    target: Target,
) -> tuple[bool, str | None]:
    """
    Check a single target against a selector.

    Returns (is_valid, reason). reason is None when valid.
    """
    if target.type == TargetKind.ANY:
        return False, "Invalid target type"

    if selector.target_type != TargetKind.ANY and target.type != selector.target_type:
        return False, f"Must target a {selector.target_type.value}"

    policy = context.attack_policy if context.is_attack else None
    if policy is not None:
        if target.type == TargetKind.PLAYER and not policy.can_target_players:
            return False, "This unit cannot attack players"
        if target.type == TargetKind.CREATURE and not policy.can_target_creatures:
            return False, "This unit cannot attack creatures"
        if target.type == TargetKind.ARTIFACT and not policy.can_target_artifacts:
            return False, "This unit cannot attack artifacts"

    if not selector.can_target_self and target.player_id == context.player_id:
        if target.is_player:
            return False, "Cannot target self"
        return False, "Cannot target your own units"

    if not state.target_exists(target):
        return False, "Target does not exist"

    return True, None


def can_target_player(
    state: GameState, selector: TargetSelector, context: TargetingContext, player_id: str
) -> bool:
    return validate_target(state, selector, context, Target.player(player_id))[0]


def can_target_unit(
    state: GameState, selector: TargetSelector, context: TargetingContext, target: Target
) -> bool:
    return not target.is_player and validate_target(state, selector, context, target)[0]


def get_valid_targets(
    state: GameState, selector: TargetSelector, context: TargetingContext
) -> list[Target]:
    """All legal targets, players first (seat order), then units by battlefield order."""
    candidates = [Target.player(pid) for pid in state.players]
    for player_id in state.players:
        for card in state.get_battlefield(player_id):
            kind = state.target_kind_of(card)
            if kind is not None:
                candidates.append(Target(type=kind, player_id=player_id, instance_id=card.instance_id))
    return [t for t in candidates if validate_target(state, selector, context, t)[0]]


def get_auto_targets(
    state: GameState, selector: TargetSelector, context: TargetingContext
) -> list[Target] | None:
    """Targets to use without prompting, or None if the player must choose."""
    if not selector.auto_target or selector.target_count != 1:
        return None
    valid = get_valid_targets(state, selector, context)
    if len(valid) == 1:
        return valid
    return None


def selector_for_attack(attacker: CardDefinition) -> TargetSelector:
    """The selector used when a unit attacks."""
    return TargetSelector(
        target_count=1,
        target_type=TargetKind.ANY,
        can_target_self=False,
        auto_target=False,
        description=f"Choose any enemy target for {attacker.name} to attack",
    )


# ============================================================================
# Resolver
# ============================================================================

@dataclass
class TargetingResolver:
    """
    Drives one targeting session at a time.

    Usage:
        resolver = TargetingResolver(get_state=store.read)
        future = resolver.start_targeting(selector, context)
        resolver.handle_target_click(Target.player("bob"))
        resolver.confirm_selection()
        targets = await future
    """
    get_state: Callable[[], GameState]
    phase: TargetingPhase = TargetingPhase.IDLE
    selector: TargetSelector | None = None
    context: TargetingContext | None = None
    selection: list[Target] = field(default_factory=list)
    last_outcome: TargetingPhase | None = None
    _future: asyncio.Future | None = None

    @property
    def is_selecting(self) -> bool:
        return self.phase == TargetingPhase.SELECTING

    def start_targeting(
        self, selector: TargetSelector, context: TargetingContext
    ) -> asyncio.Future:
        """
        Open a targeting session. Must be called from a running event loop.

        If the selector allows auto-targeting and exactly one legal target
        exists, the returned future is already resolved and no session is
        opened.
        """
        if self.is_selecting:
            raise TargetingError("A targeting session is already open")

        loop = asyncio.get_running_loop()
        future = loop.create_future()

        auto = get_auto_targets(self.get_state(), selector, context)
        if auto is not None:
            self.last_outcome = TargetingPhase.CONFIRMED
            future.set_result(list(auto))
            return future

        self.phase = TargetingPhase.SELECTING
        self.selector = selector
        self.context = context
        self.selection = []
        self._future = future
        logger.debug("Targeting started for %s (%s)", context.player_id, context.mode.value)
        return future

    def legal_targets(self) -> list[Target]:
        if not self.is_selecting:
            return []
        return get_valid_targets(self.get_state(), self.selector, self.context)

    def handle_target_click(self, target: Target) -> bool:
        """
        Toggle a target in the selection.

        Returns False if the click was ignored (no session, illegal target,
        or selection already full).
        """
        if not self.is_selecting:
            return False

        if target in self.selection:
            self.selection.remove(target)
            return True

        valid, reason = validate_target(self.get_state(), self.selector, self.context, target)
        if not valid:
            logger.debug("Rejected target %s: %s", target, reason)
            return False

        if self.context.is_attack and self.selector.target_count == 1:
            self._finish(TargetingPhase.CONFIRMED, [target])
            return True

        if len(self.selection) < self.selector.target_count:
            self.selection.append(target)
        elif self.selector.target_count == 1:
            self.selection = [target]
        else:
            return False
        return True

    def confirm_selection(self, targets: list[Target] | None = None) -> bool:
        """
        Confirm the accumulated selection, or an explicit list of targets.

        Explicit targets are checked against the same rules as clicks.
        Only valid once the selection is non-empty.
        """
        if not self.is_selecting:
            return False

        chosen = list(targets) if targets is not None else list(self.selection)
        if not chosen or len(chosen) > self.selector.target_count:
            return False
        if len(set(chosen)) != len(chosen):
            return False

        state = self.get_state()
        for target in chosen:
            if not validate_target(state, self.selector, self.context, target)[0]:
                return False

        self._finish(TargetingPhase.CONFIRMED, chosen)
        return True

    def cancel_targeting(self) -> None:
        """Abandon the session. The pending future resolves to no targets."""
        if not self.is_selecting:
            return
        self._finish(TargetingPhase.CANCELLED, [])

    def _finish(self, outcome: TargetingPhase, targets: list[Target]) -> None:
        future = self._future
        self.last_outcome = outcome
        self.phase = TargetingPhase.IDLE
        self.selector = None
        self.context = None
        self.selection = []
        self._future = None
        if future is not None and not future.done():
            future.set_result(targets)
