"""
Mantis CLI - Command-line interface for the engine.

Usage:
    mantis serve [--host H] [--port P]           Run the HTTP/WebSocket API
    mantis simulate [--players N] [--seed S]     Play a bot-only game locally
"""

import argparse
import random
import sys

from .config import Settings
from .logging_setup import configure_logging


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Mantis - Real-time card matching engine",
        prog="mantis",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from MANTIS_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    # Simulate command
    sim_parser = subparsers.add_parser("simulate", help="Play a game between bots")
    sim_parser.add_argument("--players", type=int, default=4, help="Number of bots (2-6)")
    sim_parser.add_argument(
        "--difficulty",
        action="append",
        choices=["easy", "medium", "hard"],
        help="Bot difficulty; repeat to set seats in order (default medium)",
    )
    sim_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "serve":
        cmd_serve(args, settings)
    elif args.command == "simulate":
        sys.exit(cmd_simulate(args, settings))
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args, settings: Settings):
    """Run the API with uvicorn."""
    import uvicorn
    from .api import create_app

    app = create_app(settings=settings)
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


def cmd_simulate(args, settings: Settings) -> int:
    """
    Play a local game where every seat is a bot.

    Runs the full client path: pending bot actions, optimistic flips,
    hint playback and reconciliation, on a virtual clock.
    """
    from .engine_core.engine import ActionEngine, wall_clock_ms
    from .engine_core.errors import MantisError
    from .engine_core.rules import MAX_PLAYERS, MIN_PLAYERS, determine_tiebreaker, find_winner
    from .engine_core.state import GameStatus
    from .session import GameClient, GameManager, LocalPlayerConfig, LogicalScheduler
    from .store import InMemoryGameStore

    if not MIN_PLAYERS <= args.players <= MAX_PLAYERS:
        print(f"Error: players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")
        return 1

    difficulties = args.difficulty or ["medium"]
    rng = random.Random(args.seed)
    scheduler = LogicalScheduler(start_ms=wall_clock_ms())
    store = InMemoryGameStore()
    engine = ActionEngine(store, clock=lambda: scheduler.now, rng=rng, settings=settings)
    manager = GameManager(store, engine, rng=rng)

    configs = [
        LocalPlayerConfig(
            name=f"Bot {i + 1}",
            is_bot=True,
            bot_difficulty=difficulties[i % len(difficulties)],
        )
        for i in range(args.players)
    ]
    room_code = manager.create_local_game(configs, controller_id="cli")
    client = GameClient(store, engine, room_code, "cli", scheduler=scheduler, settings=settings)
    client.connect()
    manager.start_game(room_code)

    turns = 0
    stalled_ms = 0
    while client.visible.status == GameStatus.PLAYING:
        if not client.visible.draw_pile and client.actions_enabled:
            break
        try:
            result = client.run_pending_bot_action()
        except MantisError as e:
            print(f"Error: {e}")
            return 1
        if result is None:
            scheduler.advance(100)
            stalled_ms += 100
            if stalled_ms > 2 * settings.bot_action_ttl_ms:
                print("Error: no bot action became due; client view is out of sync")
                return 1
            continue
        stalled_ms = 0
        turns += 1
        hint = result.animation_hint
        print(f"{turns:4d}. {hint.player_id} {hint.sequence.value} {hint.color} {list(hint.affected_card_ids)}")

    scheduler.run_until_idle()
    game = store.get(room_code)
    winner = find_winner(game)
    ending = ""
    if winner is None:
        # deck ran out before anyone reached the threshold
        winner = determine_tiebreaker(game.players)
        ending = " (deck exhausted)"

    print(f"\nGame {room_code} finished after {turns} turns{ending}")
    for player in game.players:
        print(f"  {player.name:8s} ({player.bot_difficulty}) score={player.score_count} tank={len(player.tank)}")
    if winner:
        print(f"Winner: {winner.name}")
    return 0


if __name__ == "__main__":
    main()
