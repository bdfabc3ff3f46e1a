"""
Sci-fi - The standard card set.

This module contains:
- The 15-card catalog (creatures, spells, artifacts)
- The standard 35-card deck and deck helpers
- Game setup
"""

from .cards import CARD_LIBRARY, SCIFI_CARDS, STANDARD_DECK_COPIES, get_card_by_id
from .deck import CatalogError, create_deck, create_standard_deck, draw_cards, shuffle_deck
from .setup import create_game

__all__ = [
    "CARD_LIBRARY",
    "SCIFI_CARDS",
    "STANDARD_DECK_COPIES",
    "get_card_by_id",
    "CatalogError",
    "create_deck",
    "create_standard_deck",
    "draw_cards",
    "shuffle_deck",
    "create_game",
]
