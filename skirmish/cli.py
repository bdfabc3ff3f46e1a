"""
Skirmish CLI - Command-line interface for the engine.

Usage:
    skirmish cards                 List the card catalog
    skirmish validate              Validate the catalog and the standard deck
    skirmish demo [--seed N]       Play an automated two-player game
    skirmish serve                 Run the HTTP API with uvicorn
"""

import argparse
import asyncio
import logging
import random
import sys

from .config import configure_logging

logger = logging.getLogger(__name__)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Skirmish - Turn-based card game engine",
        prog="skirmish",
    )
    parser.add_argument("--log-level", help="Logging level (default: SKIRMISH_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Cards command
    subparsers.add_parser("cards", help="List the card catalog")

    # Validate command
    subparsers.add_parser("validate", help="Validate the catalog and the standard deck")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Play an automated two-player game")
    demo_parser.add_argument("--seed", type=int, default=None, help="Seed for shuffling and choices")
    demo_parser.add_argument("--max-turns", type=int, default=30, help="Stop after this many rounds")
    demo_parser.add_argument("--players", nargs="+", default=["alice", "bob"], help="Player ids")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.command == "cards":
        cmd_cards(args)
    elif args.command == "validate":
        cmd_validate(args)
    elif args.command == "demo":
        cmd_demo(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_cards(args):
    """List the card catalog."""
    from .games.scifi.cards import CARD_LIBRARY, STANDARD_DECK_COPIES

    for card in CARD_LIBRARY.values():
        stats = ""
        if card.enters_battlefield:
            stats = f" {card.attack or 0}/{card.health}"
        copies = STANDARD_DECK_COPIES.get(card.id, 0)
        print(f"{card.id}  {card.name:<20} {card.card_type.value:<9} cost {card.cost}{stats}  x{copies}")
        if card.description:
            print(f"          {card.description}")


def cmd_validate(args):
    """Validate the catalog and the standard deck."""
    from .card_schema.validation import validate_catalog, validate_deck_copies
    from .games.scifi.cards import CARD_LIBRARY, STANDARD_DECK_COPIES

    result = validate_catalog(CARD_LIBRARY)
    errors = list(result.errors) + validate_deck_copies(STANDARD_DECK_COPIES, CARD_LIBRARY)

    print(f"Cards: {len(CARD_LIBRARY)}")
    print(f"Standard deck: {sum(STANDARD_DECK_COPIES.values())} cards")

    if result.warnings:
        print("\nWarnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if errors:
        print("\nErrors:")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)

    print("Catalog is valid")


def cmd_demo(args):
    """Play an automated game and print the log."""
    from .engine_core.state import GameStatus
    from .games.scifi.setup import create_game

    state = create_game(args.players, seed=args.seed)
    final = asyncio.run(_run_demo(state, random.Random(args.seed), args.max_turns))

    for entry in final.game_log:
        print(f"[{entry.player_id}] {entry.description}")

    print()
    for player_id in final.players:
        player = final.get_player_state(player_id)
        print(f"{player_id}: {player.health}/{player.max_health} health")
    if final.status == GameStatus.FINISHED:
        print(f"Winner: {final.winner_id or 'none'}")
    else:
        print(f"Stopped after {args.max_turns} rounds")


async def _run_demo(state, rng, max_turns):
    from .engine_core.action import ActionType
    from .engine_core.engine import GameEngine
    from .engine_core.state import GameStatus
    from .engine_core.store import InMemoryDocumentStore

    engine = GameEngine(InMemoryDocumentStore(state))
    engine.start_game()

    while engine.state.status == GameStatus.PLAYING and engine.state.turn <= max_turns:
        player_id = engine.state.current_player_id
        for _ in range(10):
            choices = [a for a in engine.legal_actions() if a.action_type != ActionType.END_TURN]
            if not choices:
                break
            action = rng.choice(choices)
            payload = action.payload
            if action.action_type == ActionType.PLAY_CARD:
                result = await _play_with_auto_targets(engine, player_id, payload.card_id, rng)
            else:
                result = engine.attack_target(player_id, payload.attacker_instance_id, payload.target)
            if not result.success:
                logger.debug("Demo action failed: %s", result.error)
            if engine.state.status != GameStatus.PLAYING:
                break
        if engine.state.status == GameStatus.PLAYING:
            engine.end_turn(player_id)

    return engine.state


async def _play_with_auto_targets(engine, player_id, card_id, rng):
    """Play a card, answering any selection with a random enemy target."""
    task = asyncio.create_task(engine.play_card(player_id, card_id))
    while not task.done():
        targeting = engine.targeting
        if targeting.is_selecting:
            enemies = [t for t in targeting.legal_targets() if t.player_id != player_id]
            if enemies:
                targeting.handle_target_click(rng.choice(enemies))
                targeting.confirm_selection()
            else:
                targeting.cancel_targeting()
        await asyncio.sleep(0)
    return task.result()


def cmd_serve(args):
    """Run the HTTP API."""
    try:
        import uvicorn
    except ImportError:
        print("uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)

    from .api.app import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
