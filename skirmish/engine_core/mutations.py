"""
Mutation API - Primitive state transitions.

Every function takes the GameState owned by the current mutation scope and
mutates it in place. Functions whose preconditions can fail return False
(or None) and leave the state untouched; they never raise for bad player
input.

Clamping rules:
- health never drops below 0 and never exceeds its maximum
- energy never drops below 0 and never exceeds max energy
- a unit at 0 health leaves the battlefield for the graveyard immediately
"""

from __future__ import annotations
import logging

from .state import GameState, GameStatus, BattlefieldCard, LogEntry, Target

logger = logging.getLogger(__name__)


# ============================================================================
# Log and graveyard
# ============================================================================

def add_game_log_entry(
    state: GameState,
    player_id: str,
    action: str,
    description: str,
    card_id: str | None = None,
) -> LogEntry:
    """Append an entry to the game log."""
    entry = LogEntry(
        player_id=player_id,
        action=action,
        description=description,
        card_id=card_id,
    )
    state.game_log.append(entry)
    return entry


def add_card_to_graveyard(state: GameState, card_id: str) -> None:
    state.graveyard.append(card_id)


# ============================================================================
# Energy
# ============================================================================

def spend_energy(state: GameState, player_id: str, amount: int) -> bool:
    """Spend energy. Fails without mutation if the player cannot pay."""
    player = state.get_player_state(player_id)
    if player is None or amount < 0 or player.energy < amount:
        return False
    player.energy -= amount
    return True


def gain_energy(state: GameState, player_id: str, amount: int) -> bool:
    """Gain energy, clamped to max energy."""
    player = state.get_player_state(player_id)
    if player is None or amount < 0:
        return False
    player.energy = min(player.max_energy, player.energy + amount)
    return True


def restore_energy(state: GameState, player_id: str) -> bool:
    """Refill energy to max."""
    player = state.get_player_state(player_id)
    if player is None:
        return False
    player.energy = player.max_energy
    return True


def increase_max_energy(state: GameState, player_id: str, amount: int = 1) -> bool:
    """Raise max energy, capped by the game's rules."""
    player = state.get_player_state(player_id)
    if player is None or amount < 0:
        return False
    player.max_energy = min(state.rules.max_energy_cap, player.max_energy + amount)
    return True


# ============================================================================
# Hand and deck
# ============================================================================

def remove_card_from_hand(state: GameState, player_id: str, card_id: str) -> bool:
    """Remove the first copy of card_id from the player's hand."""
    hand = state.hands.get(player_id)
    if hand is None or card_id not in hand:
        return False
    hand.remove(card_id)
    return True


def draw_card(state: GameState, player_id: str) -> str | None:
    """
    Move the top of the deck into the player's hand.

    Drawing from an empty deck is a logged no-op, not an error.
    Returns the drawn card id, or None.
    """
    if player_id not in state.hands:
        return None
    if not state.deck:
        add_game_log_entry(state, player_id, "draw", "Deck is empty")
        return None
    card_id = state.deck.pop(0)
    state.hands[player_id].append(card_id)
    return card_id


# ============================================================================
# Players
# ============================================================================

def deal_damage_to_player(state: GameState, player_id: str, amount: int) -> bool:
    """Deal damage to a player, clamped at 0. May end the game."""
    player = state.get_player_state(player_id)
    if player is None or amount < 0:
        return False
    player.health = max(0, player.health - amount)
    if player.health == 0:
        check_game_over(state)
    return True


def heal_player(state: GameState, player_id: str, amount: int) -> bool:
    """Heal a player, clamped to max health."""
    player = state.get_player_state(player_id)
    if player is None or amount < 0:
        return False
    player.health = min(player.max_health, player.health + amount)
    return True


def check_game_over(state: GameState) -> bool:
    """
    Elimination policy: the game finishes as soon as any player is at 0 health.

    The winner is recorded when exactly one player is still standing.
    Returns True if this call finished the game.
    """
    if state.status != GameStatus.PLAYING:
        return False

    defeated = [pid for pid in state.players if state.player_states[pid].is_defeated]
    if not defeated:
        return False

    state.status = GameStatus.FINISHED
    survivors = [pid for pid in state.players if pid not in defeated]
    state.winner_id = survivors[0] if len(survivors) == 1 else None
    for player_id in defeated:
        add_game_log_entry(state, player_id, "game_end", "Player defeated")
    logger.info(
        "Game %s finished on turn %d (winner: %s)", state.game_id, state.turn, state.winner_id
    )
    return True


# ============================================================================
# Battlefield units
# ============================================================================

def _remove_from_battlefield(state: GameState, owner_id: str, card: BattlefieldCard) -> None:
    """Take a unit out of play and put its card in the graveyard."""
    state.battlefields[owner_id].remove(card)
    add_card_to_graveyard(state, card.card_id)
    definition = state.get_card(card.card_id)
    name = definition.name if definition else card.card_id
    add_game_log_entry(state, owner_id, "destroy", f"{name} was destroyed", card.card_id)


def deal_damage_to_creature(
    state: GameState, owner_id: str, instance_id: str, amount: int
) -> bool:
    """Damage a unit. A unit at 0 health is removed immediately."""
    card = state.find_battlefield_card(owner_id, instance_id)
    if card is None or amount < 0:
        return False
    card.current_health = max(0, card.current_health - amount)
    if card.current_health <= 0:
        _remove_from_battlefield(state, owner_id, card)
    return True


def heal_creature(state: GameState, owner_id: str, instance_id: str, amount: int) -> bool:
    """Heal a unit, clamped to its definition's health."""
    card = state.find_battlefield_card(owner_id, instance_id)
    if card is None or amount < 0:
        return False
    definition = state.get_card(card.card_id)
    if definition is None or definition.health is None:
        return False
    card.current_health = min(definition.health, card.current_health + amount)
    return True


def destroy_creature(state: GameState, owner_id: str, instance_id: str) -> bool:
    """Remove a unit regardless of its current health."""
    card = state.find_battlefield_card(owner_id, instance_id)
    if card is None:
        return False
    _remove_from_battlefield(state, owner_id, card)
    return True


def deal_damage(state: GameState, target: Target, amount: int) -> bool:
    if target.is_player:
        return deal_damage_to_player(state, target.player_id, amount)
    return deal_damage_to_creature(state, target.player_id, target.instance_id, amount)


def heal(state: GameState, target: Target, amount: int) -> bool:
    if target.is_player:
        return heal_player(state, target.player_id, amount)
    return heal_creature(state, target.player_id, target.instance_id, amount)


def sap_creature(state: GameState, owner_id: str, instance_id: str) -> bool:
    card = state.find_battlefield_card(owner_id, instance_id)
    if card is None:
        return False
    card.sapped = True
    return True


def refresh_creatures(state: GameState, player_id: str) -> int:
    """Clear sapped on every unit the player controls. Returns how many changed."""
    refreshed = 0
    for card in state.get_battlefield(player_id):
        if card.sapped:
            card.sapped = False
            refreshed += 1
    return refreshed


def heal_creatures(state: GameState, player_id: str, amount: int) -> int:
    """Heal the player's damaged creatures (not artifacts). Returns how many healed."""
    healed = 0
    for card in state.get_battlefield(player_id):
        definition = state.get_card(card.card_id)
        if definition is None or not definition.is_creature or definition.health is None:
            continue
        if card.current_health < definition.health:
            card.current_health = min(definition.health, card.current_health + amount)
            healed += 1
    return healed


# ============================================================================
# Playing cards
# ============================================================================

def can_afford(state: GameState, player_id: str, card_id: str) -> bool:
    player = state.get_player_state(player_id)
    definition = state.card_library.get(card_id)
    return player is not None and definition is not None and player.energy >= definition.cost


def play_card(state: GameState, player_id: str, card_id: str) -> bool:
    """
    Play a card without a script: a creature, an artifact, or a spell with
    no effect.

    Validates turn ownership, affordability and hand membership before
    touching anything. Scripted spells must be cast through the effect
    interpreter and are rejected here.
    """
    if state.status != GameStatus.PLAYING or state.current_player_id != player_id:
        return False

    definition = state.get_card(card_id)
    if definition is None:
        return False
    if definition.is_spell and definition.spell_effect is not None:
        return False
    if card_id not in state.get_hand(player_id) or not can_afford(state, player_id, card_id):
        return False

    spend_energy(state, player_id, definition.cost)
    remove_card_from_hand(state, player_id, card_id)

    if definition.enters_battlefield:
        state.battlefields[player_id].append(
            BattlefieldCard(
                instance_id=state.mint_instance_id(card_id),
                card_id=card_id,
                sapped=False,
                current_health=definition.health or 0,
            )
        )
    else:
        add_card_to_graveyard(state, card_id)

    add_game_log_entry(state, player_id, "play_card", f"Played {definition.name}", card_id)
    return True
