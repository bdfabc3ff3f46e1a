"""
Sci-fi Game Setup - Creates initial game state.

This module handles:
- Validating the catalog once per game
- Building and shuffling the shared deck, with a seed for determinism
- Creating the waiting GameState

Dealing opening hands happens when the game is started (START_GAME).
"""

from __future__ import annotations
import logging
import random
import uuid

from ...card_schema.card_definition import CardLibrary
from ...card_schema.validation import validate_catalog
from ...config import GameRules
from ...engine_core.state import GameState
from .cards import CARD_LIBRARY, STANDARD_DECK_COPIES
from .deck import create_deck, shuffle_deck

logger = logging.getLogger(__name__)


def create_game(
    player_ids: list[str],
    rules: GameRules | None = None,
    game_id: str | None = None,
    seed: int | None = None,
    catalog: CardLibrary | None = None,
    deck_copies: dict[str, int] | None = None,
) -> GameState:
    """
    Set up a new game in the waiting status.

    Args:
        player_ids: Seat order; the first player takes the first turn
        rules: Starting values (defaults from the environment)
        game_id: Identifier (random if not provided)
        seed: Seed for deterministic shuffling
        catalog: Card library (the standard sci-fi catalog by default)
        deck_copies: Copy-count table (the standard deck by default)

    Raises:
        ValueError: If no players are given or a player id repeats
        CardValidationError: If the catalog is invalid
        CatalogError: If the deck references unknown cards
    """
    if not player_ids:
        raise ValueError("A game needs at least one player")
    if len(set(player_ids)) != len(player_ids):
        raise ValueError("Player ids must be unique")

    library = catalog if catalog is not None else CARD_LIBRARY
    validation = validate_catalog(library)
    validation.raise_for_errors()
    for warning in validation.warnings:
        logger.warning("Catalog: %s", warning)

    rng = random.Random(seed)
    deck = shuffle_deck(create_deck(deck_copies or STANDARD_DECK_COPIES, library), rng)

    state = GameState(
        game_id=game_id or f"game_{uuid.uuid4().hex[:8]}",
        players=tuple(player_ids),
        card_library=library,
        rules=rules or GameRules.from_env(),
        deck=deck,
    )
    logger.info("Created game %s for %s", state.game_id, ", ".join(player_ids))
    return state
