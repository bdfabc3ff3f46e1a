"""
Card Definitions - Immutable reference data for cards.

A CardDefinition describes a card; it never holds per-game state.
Mutable per-instance values (current health, sapped) live on the
battlefield entry in GameState and refer back here by card id.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from .effect_dsl import Effect, parse_effect


class CardType(Enum):
    """Card types."""
    CREATURE = "creature"
    SPELL = "spell"
    ARTIFACT = "artifact"


class TriggerType(Enum):
    """Lifecycle events that can activate abilities."""
    START_TURN = "start_turn"
    END_TURN = "end_turn"
    PLAY_CARD = "play_card"


@dataclass(frozen=True)
class AttackTargeting:
    """Which kinds of defenders an attacker may choose."""
    can_target_players: bool = True
    can_target_creatures: bool = True
    can_target_artifacts: bool = True

    def to_dict(self) -> dict[str, bool]:
        return {
            "can_target_players": self.can_target_players,
            "can_target_creatures": self.can_target_creatures,
            "can_target_artifacts": self.can_target_artifacts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttackTargeting:
        return cls(
            can_target_players=data.get("can_target_players", True),
            can_target_creatures=data.get("can_target_creatures", True),
            can_target_artifacts=data.get("can_target_artifacts", True),
        )


DEFAULT_ATTACK_TARGETING = AttackTargeting()


@dataclass(frozen=True)
class ArtifactAbility:
    """A triggered ability: run `effect` whenever `trigger` fires for the owner."""
    trigger: TriggerType
    effect: Effect
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger": self.trigger.value,
            "effect": self.effect.to_dict(),
            "description": self.description,
        }


@dataclass(frozen=True)
class CardDefinition:
    """
    Definition of a card.

    attack/health are set for creatures and artifacts. spell_effect is the
    script a spell runs when cast; a spell without one simply goes to the
    graveyard when played.
    """
    id: str
    name: str
    cost: int
    card_type: CardType
    attack: int | None = None
    health: int | None = None
    description: str = ""
    spell_effect: Effect | None = None
    artifact_abilities: tuple[ArtifactAbility, ...] = ()
    attack_targeting: AttackTargeting | None = None
    rarity: str = "common"

    @property
    def is_creature(self) -> bool:
        return self.card_type == CardType.CREATURE

    @property
    def is_spell(self) -> bool:
        return self.card_type == CardType.SPELL

    @property
    def is_artifact(self) -> bool:
        return self.card_type == CardType.ARTIFACT

    @property
    def enters_battlefield(self) -> bool:
        return self.card_type in (CardType.CREATURE, CardType.ARTIFACT)

    @property
    def attack_policy(self) -> AttackTargeting:
        """The attack targeting policy, defaulting to everything allowed."""
        return self.attack_targeting or DEFAULT_ATTACK_TARGETING

    def abilities_for(self, trigger: TriggerType) -> list[ArtifactAbility]:
        return [a for a in self.artifact_abilities if a.trigger == trigger]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cost": self.cost,
            "type": self.card_type.value,
            "attack": self.attack,
            "health": self.health,
            "description": self.description,
            "rarity": self.rarity,
            "spell_effect": self.spell_effect.to_dict() if self.spell_effect else None,
            "artifact_abilities": [a.to_dict() for a in self.artifact_abilities],
            "attack_targeting": (
                self.attack_targeting.to_dict() if self.attack_targeting else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CardDefinition:
        """
        Build a definition from catalog data.

        Raises:
            ValueError: If required fields are missing or values are unknown
        """
        for key in ("id", "name", "cost", "type"):
            if key not in data:
                raise ValueError(f"Card definition missing '{key}' field")

        try:
            card_type = CardType(data["type"])
        except ValueError:
            raise ValueError(f"Card '{data['id']}' has unknown type: {data['type']}")

        abilities = []
        for ability in data.get("artifact_abilities") or []:
            abilities.append(
                ArtifactAbility(
                    trigger=TriggerType(ability["trigger"]),
                    effect=parse_effect(ability["effect"]),
                    description=ability.get("description", ""),
                )
            )

        spell_effect = data.get("spell_effect")
        targeting = data.get("attack_targeting")
        return cls(
            id=data["id"],
            name=data["name"],
            cost=data["cost"],
            card_type=card_type,
            attack=data.get("attack"),
            health=data.get("health"),
            description=data.get("description", ""),
            spell_effect=parse_effect(spell_effect) if spell_effect else None,
            artifact_abilities=tuple(abilities),
            attack_targeting=AttackTargeting.from_dict(targeting) if targeting else None,
            rarity=data.get("rarity", "common"),
        )


class CardLibrary(Mapping):
    """
    Read-only mapping of card id -> CardDefinition.

    A library is resolved once per game and shared by every snapshot of
    that game's state, so copying a state never copies the catalog.
    """

    def __init__(self, definitions: list[CardDefinition] | None = None):
        self._cards: dict[str, CardDefinition] = {d.id: d for d in definitions or []}

    def __getitem__(self, card_id: str) -> CardDefinition:
        return self._cards[card_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    def __repr__(self) -> str:
        return f"CardLibrary({len(self._cards)} cards)"

    def __deepcopy__(self, memo):
        return self

    def __copy__(self):
        return self
