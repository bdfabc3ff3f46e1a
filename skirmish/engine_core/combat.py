"""
Combat Resolver - Attack legality and damage between units and players.

An attacker must be on its owner's battlefield, belong to the current
player, be unsapped, and have positive attack. What it may attack is
limited by its definition's attack targeting policy. Combat between units
is one-directional: only the attacker deals damage.

Attacking saps the attacker but does not end the turn.
"""

from __future__ import annotations
import logging

from ..card_schema.card_definition import CardDefinition
from .state import GameState, GameStatus, BattlefieldCard
from . import mutations

logger = logging.getLogger(__name__)


def ready_attacker(
    state: GameState, attacker_owner: str, attacker_instance_id: str
) -> tuple[BattlefieldCard, CardDefinition] | None:
    """Return (instance, definition) if the unit may attack right now, else None."""
    if state.status != GameStatus.PLAYING or state.current_player_id != attacker_owner:
        return None
    card = state.find_battlefield_card(attacker_owner, attacker_instance_id)
    if card is None or card.sapped:
        return None
    definition = state.get_card(card.card_id)
    if definition is None or not definition.attack or definition.attack <= 0:
        return None
    return card, definition


def attack_player_with_creature(
    state: GameState,
    attacker_owner: str,
    attacker_instance_id: str,
    defender_player_id: str,
    damage: int | None = None,
) -> bool:
    """
    Attack a player.

    `damage` defaults to the attacker's attack value.
    """
    ready = ready_attacker(state, attacker_owner, attacker_instance_id)
    if ready is None:
        return False
    card, definition = ready

    if not definition.attack_policy.can_target_players:
        logger.debug("%s cannot attack players", definition.name)
        return False
    if defender_player_id == attacker_owner or not state.has_player(defender_player_id):
        return False

    amount = definition.attack if damage is None else damage
    if amount <= 0:
        return False

    card.sapped = True
    mutations.add_game_log_entry(
        state,
        attacker_owner,
        "attack",
        f"{definition.name} attacked player for {amount} damage",
        definition.id,
    )
    mutations.deal_damage_to_player(state, defender_player_id, amount)
    return True


def attack_creature_with_creature(
    state: GameState,
    attacker_owner: str,
    attacker_instance_id: str,
    defender_owner: str,
    defender_instance_id: str,
) -> bool:
    """Attack a creature or artifact. The defender does not strike back."""
    ready = ready_attacker(state, attacker_owner, attacker_instance_id)
    if ready is None:
        return False
    card, definition = ready

    if defender_owner == attacker_owner:
        return False
    defender = state.find_battlefield_card(defender_owner, defender_instance_id)
    if defender is None:
        return False
    defender_definition = state.get_card(defender.card_id)
    if defender_definition is None:
        return False

    policy = definition.attack_policy
    if defender_definition.is_artifact and not policy.can_target_artifacts:
        return False
    if defender_definition.is_creature and not policy.can_target_creatures:
        return False

    card.sapped = True
    mutations.add_game_log_entry(
        state,
        attacker_owner,
        "attack",
        f"{definition.name} attacked {defender_definition.name} for {definition.attack} damage",
        definition.id,
    )
    mutations.deal_damage_to_creature(state, defender_owner, defender_instance_id, definition.attack)
    return True
