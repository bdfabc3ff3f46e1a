"""
Effect DSL - Step-Based Card Scripts

This module defines the instruction set that spell and artifact scripts
are written in. Scripts are:
- Plain data: no host-language closures, serializable to JSON
- Step-based: each step is one staged operation or one control construct
- Deterministic: given the same state and target selections, the same
  operations are staged
- Auditable: the operation log produced from a script can be inspected
  before anything is applied

Target references used by steps:
- "$name": a list of targets bound by SELECT_TARGETS or FOR_EACH_TARGET
- "caster": the player resolving the script
- "opponents", "all_players": player groups
- "enemy_creatures", "own_creatures": battlefield units by owner
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StepType(Enum):
    """Types of effect steps."""
    # Interactive
    SELECT_TARGETS = "select_targets"

    # Staged operations
    DEAL_DAMAGE = "deal_damage"
    HEAL = "heal"
    DESTROY = "destroy"
    DRAW = "draw"
    GAIN_ENERGY = "gain_energy"
    LOG = "log"

    # Control flow
    IF_TARGET_TYPE = "if_target_type"
    FOR_EACH_TARGET = "for_each_target"


class TargetKind(Enum):
    """Kinds of things a target can be. ANY is only valid on selectors."""
    PLAYER = "player"
    CREATURE = "creature"
    ARTIFACT = "artifact"
    ANY = "any"


class TargetRef:
    """Symbolic target references understood by the resolver."""
    CASTER = "caster"
    OPPONENTS = "opponents"
    ALL_PLAYERS = "all_players"
    ENEMY_CREATURES = "enemy_creatures"
    OWN_CREATURES = "own_creatures"

    PLAYER_REFS = frozenset({CASTER, OPPONENTS, ALL_PLAYERS})
    UNIT_REFS = frozenset({ENEMY_CREATURES, OWN_CREATURES})

    @staticmethod
    def is_variable(ref: str | None) -> bool:
        return bool(ref) and ref.startswith("$")


@dataclass
class TargetSelector:
    """
    Describes an interactive target selection.

    Examples:
    - TargetSelector(target_count=1, target_type=TargetKind.ANY)
    - TargetSelector(target_type=TargetKind.ARTIFACT, description="Choose an artifact")
    """
    target_count: int = 1
    target_type: TargetKind = TargetKind.ANY
    can_target_self: bool = False
    auto_target: bool = False  # Skip the prompt when exactly one legal target exists
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_count": self.target_count,
            "target_type": self.target_type.value,
            "can_target_self": self.can_target_self,
            "auto_target": self.auto_target,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TargetSelector:
        return cls(
            target_count=data.get("target_count", 1),
            target_type=TargetKind(data.get("target_type", "any")),
            can_target_self=data.get("can_target_self", False),
            auto_target=data.get("auto_target", False),
            description=data.get("description", ""),
        )


@dataclass
class EffectStep:
    """
    A single step in a card script.

    Interpretation of fields depends on step_type:
    - SELECT_TARGETS: selector, store_as
    - DEAL_DAMAGE / HEAL: target, params["amount"]
    - DESTROY: target
    - DRAW: target (player reference, default caster), params["count"]
    - GAIN_ENERGY: target (player reference, default caster), params["amount"]
    - LOG: params["message"]
    - IF_TARGET_TYPE: target, params["target_type"], then_steps, else_steps
    - FOR_EACH_TARGET: loop_source, loop_variable, loop_steps
    """
    step_type: StepType
    step_id: str  # Unique within the effect for debugging/logging

    target: str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    # For selection steps
    selector: TargetSelector | None = None
    store_as: str | None = None

    # For conditional steps
    then_steps: list[EffectStep] = field(default_factory=list)
    else_steps: list[EffectStep] = field(default_factory=list)

    # For loop steps
    loop_variable: str | None = None
    loop_source: str | None = None
    loop_steps: list[EffectStep] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.step_type.value, "id": self.step_id}
        if self.target is not None:
            data["target"] = self.target
        if self.params:
            data["params"] = dict(self.params)
        if self.selector is not None:
            data["selector"] = self.selector.to_dict()
        if self.store_as is not None:
            data["store_as"] = self.store_as
        if self.then_steps:
            data["then"] = [s.to_dict() for s in self.then_steps]
        if self.else_steps:
            data["else"] = [s.to_dict() for s in self.else_steps]
        if self.loop_variable is not None:
            data["loop_variable"] = self.loop_variable
        if self.loop_source is not None:
            data["loop_source"] = self.loop_source
        if self.loop_steps:
            data["loop_steps"] = [s.to_dict() for s in self.loop_steps]
        return data


@dataclass
class Effect:
    """
    A complete card script.

    Spell scripts run when the spell is cast; ability scripts run when
    their trigger fires. Either way the script only stages operations,
    and the engine applies them in one atomic commit.
    """
    effect_id: str
    name: str
    description: str = ""
    steps: list[EffectStep] = field(default_factory=list)

    # Metadata
    source_card_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "effect_id": self.effect_id,
            "name": self.name,
            "description": self.description,
            "source_card_id": self.source_card_id,
            "steps": [s.to_dict() for s in self.steps],
        }

    def walk(self):
        """Yield every step, including nested ones, depth first."""
        stack = list(reversed(self.steps))
        while stack:
            step = stack.pop()
            yield step
            nested = step.then_steps + step.else_steps + step.loop_steps
            stack.extend(reversed(nested))


# ============================================================================
# Parsing
# ============================================================================

def parse_step(data: dict[str, Any]) -> EffectStep:
    """
    Parse an effect step from a dictionary.

    Raises:
        ValueError: If the type is unknown or required fields are missing
    """
    step_type = data.get("type")
    if not step_type:
        raise ValueError("Effect step missing 'type' field")

    try:
        stype = StepType(step_type)
    except ValueError:
        raise ValueError(f"Unknown effect step type: {step_type}")

    step_id = data.get("id")
    if not step_id:
        raise ValueError(f"Effect step of type '{step_type}' missing 'id' field")

    selector = data.get("selector")
    if stype == StepType.SELECT_TARGETS and selector is None:
        raise ValueError(f"Step '{step_id}': select_targets requires a selector")
    if stype == StepType.SELECT_TARGETS and not data.get("store_as"):
        raise ValueError(f"Step '{step_id}': select_targets requires store_as")

    return EffectStep(
        step_type=stype,
        step_id=step_id,
        target=data.get("target"),
        params=dict(data.get("params", {})),
        selector=TargetSelector.from_dict(selector) if selector is not None else None,
        store_as=data.get("store_as"),
        then_steps=[parse_step(s) for s in data.get("then", [])],
        else_steps=[parse_step(s) for s in data.get("else", [])],
        loop_variable=data.get("loop_variable"),
        loop_source=data.get("loop_source"),
        loop_steps=[parse_step(s) for s in data.get("loop_steps", [])],
    )


def parse_effect(data: dict[str, Any]) -> Effect:
    """Parse a complete effect from a dictionary."""
    if "effect_id" not in data:
        raise ValueError("Effect missing 'effect_id' field")
    return Effect(
        effect_id=data["effect_id"],
        name=data.get("name", data["effect_id"]),
        description=data.get("description", ""),
        steps=[parse_step(s) for s in data.get("steps", [])],
        source_card_id=data.get("source_card_id"),
    )


# ============================================================================
# Factory functions for common effect patterns
# ============================================================================

def select_targets_step(
    step_id: str,
    store_as: str = "targets",
    target_type: TargetKind = TargetKind.ANY,
    count: int = 1,
    can_target_self: bool = False,
    auto_target: bool = False,
    description: str = "",
) -> EffectStep:
    """Create an interactive target selection step."""
    return EffectStep(
        step_type=StepType.SELECT_TARGETS,
        step_id=step_id,
        selector=TargetSelector(
            target_count=count,
            target_type=target_type,
            can_target_self=can_target_self,
            auto_target=auto_target,
            description=description,
        ),
        store_as=store_as,
    )


def damage_step(step_id: str, amount: int, target: str = "$targets") -> EffectStep:
    """Create a deal-damage step."""
    return EffectStep(
        step_type=StepType.DEAL_DAMAGE,
        step_id=step_id,
        target=target,
        params={"amount": amount},
    )


def heal_step(step_id: str, amount: int, target: str = "$targets") -> EffectStep:
    """Create a heal step."""
    return EffectStep(
        step_type=StepType.HEAL,
        step_id=step_id,
        target=target,
        params={"amount": amount},
    )


def destroy_step(step_id: str, target: str = "$targets") -> EffectStep:
    """Create a destroy step."""
    return EffectStep(step_type=StepType.DESTROY, step_id=step_id, target=target)


def draw_step(step_id: str, count: int = 1, target: str = TargetRef.CASTER) -> EffectStep:
    """Create a draw step."""
    return EffectStep(
        step_type=StepType.DRAW,
        step_id=step_id,
        target=target,
        params={"count": count},
    )


def gain_energy_step(step_id: str, amount: int, target: str = TargetRef.CASTER) -> EffectStep:
    """Create a gain-energy step."""
    return EffectStep(
        step_type=StepType.GAIN_ENERGY,
        step_id=step_id,
        target=target,
        params={"amount": amount},
    )


def log_step(step_id: str, message: str) -> EffectStep:
    """Create a log step."""
    return EffectStep(step_type=StepType.LOG, step_id=step_id, params={"message": message})


def if_target_type_step(
    step_id: str,
    target: str,
    target_type: TargetKind,
    then_steps: list[EffectStep],
    else_steps: list[EffectStep] | None = None,
) -> EffectStep:
    """Create a branch on the kind of a bound target."""
    return EffectStep(
        step_type=StepType.IF_TARGET_TYPE,
        step_id=step_id,
        target=target,
        params={"target_type": target_type.value},
        then_steps=then_steps,
        else_steps=else_steps or [],
    )


def for_each_target_step(
    step_id: str,
    source: str,
    loop_var: str,
    steps: list[EffectStep],
) -> EffectStep:
    """Create a loop over a bound target list; each item is bound as ${loop_var}."""
    return EffectStep(
        step_type=StepType.FOR_EACH_TARGET,
        step_id=step_id,
        loop_source=source,
        loop_variable=loop_var,
        loop_steps=steps,
    )
