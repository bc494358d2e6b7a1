"""
Command-line entry point.

  piperchess health
  piperchess move "<FEN>" --thinking-ms 2000
  piperchess play --opponent random --engine-color black --pgn-out game.pgn
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import SETTINGS
from .engine_client import EngineClient
from .match import MatchConfig, MatchRunner
from .opponents import RandomOpponent, RemoteEngineOpponent

log = logging.getLogger("piperchess.cli")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="piperchess", description="Client for the Piperlove chess-engine API.")
    ap.add_argument("--api-base", default=None, help=f"Engine API base URL (default: {SETTINGS.api_base})")
    ap.add_argument("--log-level", default="WARNING", help="Python logging level (e.g., INFO, DEBUG)")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("health", help="Check whether the engine service reports healthy")

    mv = sub.add_parser("move", help="Ask the engine for the best move in a position")
    mv.add_argument("fen", help="Position in FEN notation")
    mv.add_argument("--thinking-ms", type=int, default=None, help="Thinking time in ms (clamped to 100-60000)")

    play = sub.add_parser("play", help="Play one game against the engine")
    play.add_argument("--opponent", choices=["random", "engine"], default="random", help="Opponent type")
    play.add_argument("--engine-color", choices=["white", "black"], default="white", help="Which side the engine plays")
    play.add_argument("--max-plies", type=int, default=200)
    play.add_argument("--thinking-ms", type=int, default=None, help="Engine thinking time per move in ms")
    play.add_argument("--fen", default=None, help="Optional starting position")
    play.add_argument("--seed", type=int, default=None, help="Seed for the random opponent")
    play.add_argument("--pgn-out", default=None, help="Optional path to write PGN at end")
    return ap


def _cmd_health(client: EngineClient) -> int:
    healthy = client.check_health()
    print("ok" if healthy else "down")
    return 0 if healthy else 1


def _cmd_move(client: EngineClient, args: argparse.Namespace) -> int:
    res = client.request_move(args.fen, args.thinking_ms)
    print(json.dumps(res.to_dict(), indent=2))
    return 0 if res.success else 1


def _cmd_play(client: EngineClient, args: argparse.Namespace) -> int:
    engine = RemoteEngineOpponent(client, thinking_ms=args.thinking_ms)
    opp = RemoteEngineOpponent(client, thinking_ms=args.thinking_ms) if args.opponent == "engine" else RandomOpponent(seed=args.seed)
    cfg = MatchConfig(max_plies=args.max_plies, engine_color=args.engine_color, thinking_ms=args.thinking_ms, starting_fen=args.fen)
    try:
        try:
            runner = MatchRunner(engine, opp, cfg)
        except ValueError as e:
            print(f"Invalid starting position: {e}", file=sys.stderr)
            return 2
        log.info("Starting game: engine=%s vs %s max_plies=%d", args.engine_color, args.opponent, args.max_plies)
        result = runner.play()
        pgn = runner.pgn()

        print("Result:", result)
        print("Termination:", runner.termination_reason)
        print("Metrics:", runner.metrics())
        print("PGN:\n", pgn)

        if args.pgn_out:
            with open(args.pgn_out, "w", encoding="utf-8") as f:
                f.write(pgn)
            log.info("Wrote PGN to %s", args.pgn_out)
    finally:
        opp.close()
    return 0 if runner.termination_reason != "engine_error" else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    with EngineClient(args.api_base) as client:
        if args.command == "health":
            return _cmd_health(client)
        if args.command == "move":
            return _cmd_move(client, args)
        return _cmd_play(client, args)


if __name__ == "__main__":
    sys.exit(main())
