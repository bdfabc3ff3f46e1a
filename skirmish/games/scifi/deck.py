"""
Deck Construction - Building, shuffling and splitting decks of card ids.

Decks are plain ordered lists of card ids; index 0 is the top card.
"""

from __future__ import annotations
from collections.abc import Mapping
import random

from ...card_schema.card_definition import CardDefinition
from ...card_schema.validation import validate_deck_copies
from .cards import CARD_LIBRARY, STANDARD_DECK_COPIES


class CatalogError(Exception):
    """Raised when a deck references cards the catalog does not define."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def create_deck(
    copies: Mapping[str, int], catalog: Mapping[str, CardDefinition]
) -> list[str]:
    """
    Build an ordered deck from a copy-count table.

    Raises:
        CatalogError: If any id is unknown or a count is negative
    """
    errors = validate_deck_copies(copies, catalog)
    if errors:
        raise CatalogError(errors)

    deck: list[str] = []
    for card_id, count in copies.items():
        deck.extend([card_id] * count)
    return deck


def create_standard_deck(catalog: Mapping[str, CardDefinition] | None = None) -> list[str]:
    """The standard 35-card deck, unshuffled."""
    return create_deck(STANDARD_DECK_COPIES, catalog if catalog is not None else CARD_LIBRARY)


def shuffle_deck(deck: list[str], rng: random.Random | None = None) -> list[str]:
    """Return a uniformly shuffled copy of `deck` (Fisher-Yates)."""
    rng = rng or random.Random()
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def draw_cards(deck: list[str], count: int) -> tuple[list[str], list[str]]:
    """Split `deck` into the top `count` ids and the remainder."""
    count = max(0, count)
    return list(deck[:count]), list(deck[count:])
