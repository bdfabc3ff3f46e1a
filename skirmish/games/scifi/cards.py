"""
Sci-fi Cards - The standard 15-card catalog.

Card structure:
- Cost (energy)
- Type (creature, spell, artifact)
- Attack/health for units
- A script for spells, triggered abilities for units
- An attack targeting policy for creatures that restrict their defenders
"""

from __future__ import annotations

from ...card_schema.card_definition import (
    ArtifactAbility,
    AttackTargeting,
    CardDefinition,
    CardLibrary,
    CardType,
    TriggerType,
)
from ...card_schema.effect_dsl import (
    Effect,
    TargetKind,
    TargetRef,
    damage_step,
    destroy_step,
    draw_step,
    heal_step,
    select_targets_step,
)


# ============================================================================
# Spell scripts
# ============================================================================

def _damage_spell(card_id: str, name: str, amount: int) -> Effect:
    return Effect(
        effect_id=f"{card_id}_cast",
        name=name,
        description=f"Deal {amount} damage to any target",
        steps=[
            select_targets_step(
                "choose",
                target_type=TargetKind.ANY,
                description=f"Choose a target for {name}",
            ),
            damage_step("hit", amount),
        ],
        source_card_id=card_id,
    )


SYSTEM_CRASH_EFFECT = Effect(
    effect_id="card_012_cast",
    name="System Crash",
    description="Destroy target artifact",
    steps=[
        select_targets_step(
            "choose",
            target_type=TargetKind.ARTIFACT,
            description="Choose an artifact to destroy",
        ),
        destroy_step("destroy"),
    ],
    source_card_id="card_012",
)


# ============================================================================
# Triggered abilities
# ============================================================================

NEURAL_INTERFACE_DRAW = ArtifactAbility(
    trigger=TriggerType.START_TURN,
    effect=Effect(
        effect_id="card_009_start_turn",
        name="Neural Interface",
        description="Draw a card",
        steps=[draw_step("draw", 1)],
        source_card_id="card_009",
    ),
    description="Draw an additional card",
)

FUSION_CORE_PULSE = ArtifactAbility(
    trigger=TriggerType.START_TURN,
    effect=Effect(
        effect_id="card_010_start_turn",
        name="Fusion Core",
        description="Deal 1 damage to each opponent",
        steps=[damage_step("pulse", 1, target=TargetRef.OPPONENTS)],
        source_card_id="card_010",
    ),
    description="Pulse 1 damage to each opponent",
)

# Creatures may carry abilities too
REPAIR_DRONE_HEAL = ArtifactAbility(
    trigger=TriggerType.END_TURN,
    effect=Effect(
        effect_id="card_013_end_turn",
        name="Repair Drone",
        description="Restore 2 health to your creatures",
        steps=[heal_step("repair", 2, target=TargetRef.OWN_CREATURES)],
        source_card_id="card_013",
    ),
    description="Restore 2 health to your creatures",
)


# ============================================================================
# Catalog
# ============================================================================

SCIFI_CARDS: list[CardDefinition] = [
    CardDefinition(
        id="card_001",
        name="Cyber Drone",
        cost=2,
        card_type=CardType.CREATURE,
        attack=2,
        health=1,
        description="A fast reconnaissance unit.",
    ),
    CardDefinition(
        id="card_002",
        name="Plasma Burst",
        cost=3,
        card_type=CardType.SPELL,
        description="Deal 3 energy damage to any target.",
        spell_effect=_damage_spell("card_002", "Plasma Burst", 3),
    ),
    CardDefinition(
        id="card_003",
        name="Steel Sentinel",
        cost=4,
        card_type=CardType.CREATURE,
        attack=2,
        health=6,
        description="An automated defense unit. Cannot attack players.",
        attack_targeting=AttackTargeting(can_target_players=False),
    ),
    CardDefinition(
        id="card_004",
        name="Nano Enhancer",
        cost=2,
        card_type=CardType.ARTIFACT,
        health=2,
        description="Equipped unit gains +2/+1.",
    ),
    CardDefinition(
        id="card_005",
        name="Quantum Destroyer",
        cost=5,
        card_type=CardType.CREATURE,
        attack=4,
        health=3,
        description="A cybernetic war machine from the future.",
        rarity="rare",
    ),
    CardDefinition(
        id="card_006",
        name="Data Spike",
        cost=1,
        card_type=CardType.SPELL,
        description="Hack enemy systems for 1 damage.",
        spell_effect=_damage_spell("card_006", "Data Spike", 1),
    ),
    CardDefinition(
        id="card_007",
        name="Bio-Mech Guardian",
        cost=6,
        card_type=CardType.CREATURE,
        attack=5,
        health=5,
        description="Protects all allied units.",
        rarity="rare",
    ),
    CardDefinition(
        id="card_008",
        name="Energy Shield",
        cost=3,
        card_type=CardType.CREATURE,
        attack=1,
        health=4,
        description="Deflects incoming attacks.",
    ),
    CardDefinition(
        id="card_009",
        name="Neural Interface",
        cost=1,
        card_type=CardType.ARTIFACT,
        health=2,
        description="Draw an additional card each turn.",
        artifact_abilities=(NEURAL_INTERFACE_DRAW,),
    ),
    CardDefinition(
        id="card_010",
        name="Fusion Core",
        cost=4,
        card_type=CardType.ARTIFACT,
        health=3,
        description="Pulses 1 damage to each opponent at the start of your turn.",
        artifact_abilities=(FUSION_CORE_PULSE,),
    ),
    CardDefinition(
        id="card_011",
        name="Assault Bot",
        cost=3,
        card_type=CardType.CREATURE,
        attack=3,
        health=2,
        description="Fast attack unit.",
    ),
    CardDefinition(
        id="card_012",
        name="System Crash",
        cost=4,
        card_type=CardType.SPELL,
        description="Destroy target artifact.",
        spell_effect=SYSTEM_CRASH_EFFECT,
    ),
    CardDefinition(
        id="card_013",
        name="Repair Drone",
        cost=2,
        card_type=CardType.CREATURE,
        attack=1,
        health=3,
        description="Restores 2 health to your creatures at the end of your turn.",
        artifact_abilities=(REPAIR_DRONE_HEAL,),
    ),
    CardDefinition(
        id="card_014",
        name="Photon Cannon",
        cost=5,
        card_type=CardType.SPELL,
        description="Deal 5 damage to target.",
        spell_effect=_damage_spell("card_014", "Photon Cannon", 5),
        rarity="rare",
    ),
    CardDefinition(
        id="card_015",
        name="Stealth Infiltrator",
        cost=2,
        card_type=CardType.CREATURE,
        attack=1,
        health=1,
        description="Slips past defenders. Attacks players only.",
        attack_targeting=AttackTargeting(
            can_target_players=True,
            can_target_creatures=False,
            can_target_artifacts=False,
        ),
    ),
]

CARD_LIBRARY = CardLibrary(SCIFI_CARDS)

# Copies of each card in the standard deck (35 cards)
STANDARD_DECK_COPIES: dict[str, int] = {
    "card_001": 3,  # Cyber Drone
    "card_002": 2,  # Plasma Burst
    "card_003": 2,  # Steel Sentinel
    "card_004": 3,  # Nano Enhancer
    "card_005": 1,  # Quantum Destroyer (rare)
    "card_006": 4,  # Data Spike
    "card_007": 1,  # Bio-Mech Guardian (rare)
    "card_008": 3,  # Energy Shield
    "card_009": 2,  # Neural Interface
    "card_010": 2,  # Fusion Core
    "card_011": 3,  # Assault Bot
    "card_012": 2,  # System Crash
    "card_013": 3,  # Repair Drone
    "card_014": 1,  # Photon Cannon (rare)
    "card_015": 3,  # Stealth Infiltrator
}


def get_card_by_id(card_id: str) -> CardDefinition | None:
    """Get a card definition by ID."""
    return CARD_LIBRARY.get(card_id)
