"""
Card Validation - Content checks for card catalogs and scripts.

Validates that:
1. Required fields are present and numeric values are in range
2. Card types carry the fields they need (creatures have attack/health)
3. Scripts are well-formed (bound variables are defined before use)
4. Deck copy tables only reference cards that exist

Content errors are fatal when a catalog or deck is built, so they are
reported here rather than discovered mid-game.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass

from .card_definition import CardDefinition, CardType
from .effect_dsl import Effect, EffectStep, StepType, TargetKind, TargetRef


class CardValidationError(Exception):
    """Raised when catalog validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Card validation failed with {len(errors)} error(s)")


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]

    def raise_for_errors(self) -> None:
        if not self.valid:
            raise CardValidationError(self.errors)


def validate_catalog(catalog: Mapping[str, CardDefinition]) -> ValidationResult:
    """
    Validate every card in a catalog.

    Returns ValidationResult with errors and warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not catalog:
        warnings.append("Catalog is empty")

    for card_id, card in catalog.items():
        if card_id != card.id:
            errors.append(f"Catalog key '{card_id}' does not match card id '{card.id}'")
        errors.extend(_validate_card(card))
        if card.is_spell and card.spell_effect is None:
            warnings.append(f"Spell '{card.id}' has no script and will do nothing")

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def validate_deck_copies(
    copies: Mapping[str, int], catalog: Mapping[str, CardDefinition]
) -> list[str]:
    """Check a copy-count table against a catalog."""
    errors = []
    for card_id, count in copies.items():
        if card_id not in catalog:
            errors.append(f"Deck references unknown card '{card_id}'")
        if count < 0:
            errors.append(f"Deck copy count for '{card_id}' is negative")
    return errors


def _validate_card(card: CardDefinition) -> list[str]:
    """Validate a single card definition."""
    errors = []
    if not card.id:
        errors.append("Card has empty ID")
    if not card.name:
        errors.append(f"Card '{card.id}' has empty name")
    if card.cost < 0:
        errors.append(f"Card '{card.id}' has negative cost")

    if card.enters_battlefield:
        if card.health is None or card.health <= 0:
            errors.append(f"Card '{card.id}' must have positive health")
        if card.attack is not None and card.attack < 0:
            errors.append(f"Card '{card.id}' has negative attack")
    if card.card_type == CardType.CREATURE and card.attack is None:
        errors.append(f"Creature '{card.id}' has no attack value")

    if card.is_spell:
        if card.artifact_abilities:
            errors.append(f"Spell '{card.id}' cannot have triggered abilities")
        if card.attack_targeting is not None:
            errors.append(f"Spell '{card.id}' cannot have an attack targeting policy")
    elif card.spell_effect is not None:
        errors.append(f"Card '{card.id}' has a spell script but is not a spell")

    if card.spell_effect is not None:
        effect_errors = validate_effect_structure(card.spell_effect)
        errors.extend([f"Card '{card.id}': {e}" for e in effect_errors])

    for ability in card.artifact_abilities:
        effect_errors = validate_effect_structure(ability.effect)
        errors.extend([f"Card '{card.id}' ({ability.trigger.value}): {e}" for e in effect_errors])

    return errors


def validate_effect_structure(effect: Effect) -> list[str]:
    """Validate that an effect's steps are well-formed."""
    errors = []

    if not effect.effect_id:
        errors.append("Effect has empty ID")
    if not effect.steps:
        errors.append(f"Effect '{effect.effect_id}' has no steps")

    step_ids = [step.step_id for step in effect.walk()]
    duplicates = {sid for sid in step_ids if step_ids.count(sid) > 1}
    for sid in sorted(duplicates):
        errors.append(f"Effect '{effect.effect_id}' has duplicate step ID '{sid}'")

    errors.extend(_validate_steps(effect.effect_id, effect.steps, set()))
    return errors


def _validate_steps(effect_id: str, steps: list[EffectStep], bound: set[str]) -> list[str]:
    """Validate steps in order, tracking which variables are bound."""
    errors = []
    bound = set(bound)

    for step in steps:
        prefix = f"Effect '{effect_id}' step '{step.step_id}'"

        if step.step_type == StepType.SELECT_TARGETS:
            if step.selector is None:
                errors.append(f"{prefix}: select_targets requires a selector")
            elif step.selector.target_count < 1:
                errors.append(f"{prefix}: target_count must be >= 1")
            if not step.store_as:
                errors.append(f"{prefix}: select_targets requires store_as")
            else:
                bound.add(step.store_as)

        elif step.step_type in (StepType.DEAL_DAMAGE, StepType.HEAL):
            errors.extend(_check_amount(prefix, step.params.get("amount")))
            errors.extend(_check_reference(prefix, step.target, bound, required=True))

        elif step.step_type == StepType.GAIN_ENERGY:
            # Defaults to the caster
            errors.extend(_check_amount(prefix, step.params.get("amount")))
            errors.extend(_check_reference(prefix, step.target, bound, required=False))

        elif step.step_type == StepType.DRAW:
            errors.extend(_check_amount(prefix, step.params.get("count", 1)))
            errors.extend(_check_reference(prefix, step.target, bound, required=False))

        elif step.step_type == StepType.DESTROY:
            errors.extend(_check_reference(prefix, step.target, bound, required=True))

        elif step.step_type == StepType.LOG:
            if not step.params.get("message"):
                errors.append(f"{prefix}: log step has no message")

        elif step.step_type == StepType.IF_TARGET_TYPE:
            errors.extend(_check_reference(prefix, step.target, bound, required=True))
            try:
                TargetKind(step.params.get("target_type"))
            except ValueError:
                errors.append(
                    f"{prefix}: unknown target_type '{step.params.get('target_type')}'"
                )
            if not step.then_steps and not step.else_steps:
                errors.append(f"{prefix}: conditional has no branches")
            errors.extend(_validate_steps(effect_id, step.then_steps, bound))
            errors.extend(_validate_steps(effect_id, step.else_steps, bound))

        elif step.step_type == StepType.FOR_EACH_TARGET:
            errors.extend(_check_reference(prefix, step.loop_source, bound, required=True))
            if not step.loop_variable:
                errors.append(f"{prefix}: loop requires loop_variable")
            if not step.loop_steps:
                errors.append(f"{prefix}: loop has no steps")
            inner = bound | ({step.loop_variable} if step.loop_variable else set())
            errors.extend(_validate_steps(effect_id, step.loop_steps, inner))

    return errors


def _check_amount(prefix: str, amount) -> list[str]:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        return [f"{prefix}: amount must be a non-negative integer, got {amount!r}"]
    return []


def _check_reference(prefix: str, ref: str | None, bound: set[str], required: bool) -> list[str]:
    if ref is None:
        return [f"{prefix}: missing target reference"] if required else []
    if TargetRef.is_variable(ref):
        if ref[1:] not in bound:
            return [f"{prefix}: references unbound variable '{ref}'"]
        return []
    if ref not in TargetRef.PLAYER_REFS | TargetRef.UNIT_REFS:
        return [f"{prefix}: unknown target reference '{ref}'"]
    return []
