"""
Game State - The shared game document and its invariants.

Design principles:
- One document per game, mutated in place inside a mutation scope
- Snapshots are deep copies; the card library is shared, never copied
- Serializable: to_dict() gives the read-only view exposed to clients
- Per-instance values (health, sapped) live on battlefield entries only

Invariants:
- players is non-empty and fixed for the lifetime of the game
- 0 <= current_player_index < len(players)
- every battlefield entry has current_health > 0
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import logging
import time

from ..card_schema.card_definition import CardDefinition, CardLibrary
from ..card_schema.effect_dsl import TargetKind
from ..config import GameRules

logger = logging.getLogger(__name__)


class GameStatus(Enum):
    """High-level game status."""
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


@dataclass
class PlayerState:
    """Health and energy for one player. Never removed, even at 0 health."""
    player_id: str
    health: int
    max_health: int
    energy: int
    max_energy: int

    @property
    def is_defeated(self) -> bool:
        return self.health <= 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "health": self.health,
            "max_health": self.max_health,
            "energy": self.energy,
            "max_energy": self.max_energy,
        }


@dataclass
class BattlefieldCard:
    """
    A card instance in play.

    Note: This is a runtime instance, not the definition.
    The definition lives in GameState.card_library.
    """
    instance_id: str  # Unique per physical copy in play, never reused
    card_id: str  # References CardDefinition.id
    sapped: bool = False
    current_health: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "instance_id": self.instance_id,
            "card_id": self.card_id,
            "sapped": self.sapped,
            "current_health": self.current_health,
        }


@dataclass
class LogEntry:
    """One entry in the append-only game log."""
    player_id: str
    action: str
    description: str
    card_id: str | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "action": self.action,
            "description": self.description,
            "card_id": self.card_id,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Target:
    """
    Something an effect or attack can be aimed at.

    Equality is structural over (type, player_id, instance_id).
    """
    type: TargetKind
    player_id: str
    instance_id: str | None = None

    @classmethod
    def player(cls, player_id: str) -> Target:
        return cls(type=TargetKind.PLAYER, player_id=player_id)

    @classmethod
    def creature(cls, player_id: str, instance_id: str) -> Target:
        return cls(type=TargetKind.CREATURE, player_id=player_id, instance_id=instance_id)

    @classmethod
    def artifact(cls, player_id: str, instance_id: str) -> Target:
        return cls(type=TargetKind.ARTIFACT, player_id=player_id, instance_id=instance_id)

    @property
    def is_player(self) -> bool:
        return self.type == TargetKind.PLAYER

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "player_id": self.player_id,
            "instance_id": self.instance_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Target:
        kind = TargetKind(data["type"])
        if kind == TargetKind.ANY:
            raise ValueError("A target cannot have type 'any'")
        if kind != TargetKind.PLAYER and not data.get("instance_id"):
            raise ValueError(f"A {kind.value} target requires instance_id")
        return cls(type=kind, player_id=data["player_id"], instance_id=data.get("instance_id"))


@dataclass
class GameState:
    """
    Complete game document at a point in time.

    This is the canonical state that the engine operates on.
    All changes go through the mutation API inside a store change.
    """
    game_id: str
    players: tuple[str, ...]
    card_library: CardLibrary
    rules: GameRules = field(default_factory=GameRules)

    current_player_index: int = 0
    turn: int = 1
    status: GameStatus = GameStatus.WAITING

    # Shared zones
    deck: list[str] = field(default_factory=list)  # Draw order = list order
    graveyard: list[str] = field(default_factory=list)

    # Per-player zones
    player_states: dict[str, PlayerState] = field(default_factory=dict)
    hands: dict[str, list[str]] = field(default_factory=dict)
    battlefields: dict[str, list[BattlefieldCard]] = field(default_factory=dict)

    game_log: list[LogEntry] = field(default_factory=list)

    instance_counter: int = 0
    winner_id: str | None = None

    def __post_init__(self):
        if not self.players:
            raise ValueError("A game needs at least one player")
        self.players = tuple(self.players)
        for player_id in self.players:
            self.hands.setdefault(player_id, [])
            self.battlefields.setdefault(player_id, [])

    @property
    def current_player_id(self) -> str:
        return self.players[self.current_player_index]

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def is_playing(self) -> bool:
        return self.status == GameStatus.PLAYING

    def has_player(self, player_id: str) -> bool:
        return player_id in self.player_states

    def get_player_state(self, player_id: str) -> PlayerState | None:
        return self.player_states.get(player_id)

    def get_hand(self, player_id: str) -> list[str]:
        return self.hands.get(player_id, [])

    def get_battlefield(self, player_id: str) -> list[BattlefieldCard]:
        return self.battlefields.get(player_id, [])

    def opponents_of(self, player_id: str) -> list[str]:
        """Other players in seat order."""
        return [p for p in self.players if p != player_id]

    def find_battlefield_card(self, player_id: str, instance_id: str) -> BattlefieldCard | None:
        for card in self.get_battlefield(player_id):
            if card.instance_id == instance_id:
                return card
        return None

    def get_card(self, card_id: str) -> CardDefinition | None:
        """
        Look up a card definition.

        A missing id is a content error; it is logged and reported as None so
        one bad reference cannot crash a game in progress.
        """
        card = self.card_library.get(card_id)
        if card is None:
            logger.error("Card %s missing from library (game %s)", card_id, self.game_id)
        return card

    def target_kind_of(self, card: BattlefieldCard) -> TargetKind | None:
        """Creature or artifact, from the instance's definition."""
        definition = self.get_card(card.card_id)
        if definition is None:
            return None
        return TargetKind.ARTIFACT if definition.is_artifact else TargetKind.CREATURE

    def target_exists(self, target: Target) -> bool:
        if target.is_player:
            return self.has_player(target.player_id)
        card = self.find_battlefield_card(target.player_id, target.instance_id)
        return card is not None and self.target_kind_of(card) == target.type

    def mint_instance_id(self, card_id: str) -> str:
        """Allocate a fresh instance id; ids are never reused within a game."""
        self.instance_counter += 1
        return f"{card_id}#{self.instance_counter}"

    def clone(self) -> GameState:
        """Deep copy the state (the card library is shared)."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "players": list(self.players),
            "current_player_index": self.current_player_index,
            "turn": self.turn,
            "status": self.status.value,
            "deck_size": len(self.deck),
            "graveyard": list(self.graveyard),
            "player_states": {pid: ps.to_dict() for pid, ps in self.player_states.items()},
            "hands": {pid: list(hand) for pid, hand in self.hands.items()},
            "battlefields": {
                pid: [c.to_dict() for c in cards] for pid, cards in self.battlefields.items()
            },
            "game_log": [e.to_dict() for e in self.game_log],
            "winner_id": self.winner_id,
        }
