"""Card schema - card definitions and the effect script DSL."""

from .card_definition import (
    CardDefinition,
    CardLibrary,
    CardType,
    TriggerType,
    ArtifactAbility,
    AttackTargeting,
    DEFAULT_ATTACK_TARGETING,
)
from .effect_dsl import (
    Effect,
    EffectStep,
    StepType,
    TargetKind,
    TargetRef,
    TargetSelector,
    parse_effect,
    parse_step,
)
from .validation import (
    validate_catalog,
    validate_deck_copies,
    validate_effect_structure,
    ValidationResult,
    CardValidationError,
)

__all__ = [
    "CardDefinition",
    "CardLibrary",
    "CardType",
    "TriggerType",
    "ArtifactAbility",
    "AttackTargeting",
    "DEFAULT_ATTACK_TARGETING",
    "Effect",
    "EffectStep",
    "StepType",
    "TargetKind",
    "TargetRef",
    "TargetSelector",
    "parse_effect",
    "parse_step",
    "validate_catalog",
    "validate_deck_copies",
    "validate_effect_structure",
    "ValidationResult",
    "CardValidationError",
]
