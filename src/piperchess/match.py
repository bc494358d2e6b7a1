"""
Single-game runner against the remote engine.

- MatchConfig: knobs for max plies, engine side, thinking time and starting position.
- MatchRunner: alternates the remote engine and an opponent on a python-chess Board,
  records per-ply engine stats, decides the termination reason and exports PGN.

Rules, legality and game-over detection are python-chess's; the engine is only asked for moves.
"""
from __future__ import annotations

import datetime
import logging
import statistics
import time
from dataclasses import dataclass
from typing import Optional

import chess
import chess.pgn

from .opponents import EngineMoveError, RemoteEngineOpponent


@dataclass
class MatchConfig:
    max_plies: int = 200
    engine_color: str = "white"  # 'white' | 'black'
    thinking_ms: Optional[int] = None
    starting_fen: Optional[str] = None


class MatchRunner:
    def __init__(self, engine: RemoteEngineOpponent, opponent, cfg: MatchConfig | None = None):
        self.log = logging.getLogger("MatchRunner")
        self.engine = engine
        self.opp = opponent
        self.cfg = cfg or MatchConfig()
        if self.cfg.engine_color not in ("white", "black"):
            raise ValueError(f"engine_color must be 'white' or 'black', got {self.cfg.engine_color!r}")
        if self.cfg.thinking_ms is not None:
            self.engine.thinking_ms = self.cfg.thinking_ms
        self.board = chess.Board(self.cfg.starting_fen) if self.cfg.starting_fen else chess.Board()
        self.records: list[dict] = []
        self.termination_reason: str | None = None
        self._result_override: str | None = None
        self.start_ts = time.time()

    def _engine_is_white(self) -> bool:
        return self.cfg.engine_color == "white"

    def _engine_to_move(self) -> bool:
        return self.board.turn == (chess.WHITE if self._engine_is_white() else chess.BLACK)

    def _loss_for(self, engine_side: bool) -> str:
        """Result string where the engine side (or the opponent side) loses."""
        engine_white = self._engine_is_white()
        loser_white = engine_white if engine_side else not engine_white
        return "0-1" if loser_white else "1-0"

    def _end(self, reason: str, result: str) -> None:
        self.termination_reason = reason
        self._result_override = result

    # ---------------- Turns -----------------
    def _engine_turn(self, ply: int) -> bool:
        try:
            mv = self.engine.choose(self.board)
        except EngineMoveError as e:
            self.records.append({"actor": "ENGINE", "uci": None, "san": None, "ok": False,
                                 "ms": e.result.latency_ms, "error": str(e)})
            self.log.error("Engine failed at ply %d: %s", ply + 1, e)
            self._end("engine_error", self._loss_for(engine_side=True))
            return False
        res = self.engine.last_result
        rec = {"actor": "ENGINE", "uci": mv.uci(), "san": None, "ok": mv in self.board.legal_moves,
               "ms": res.latency_ms if res else None,
               "score": res.score if res else None,
               "depth": res.depth if res else None,
               "nodes": res.nodes if res else None}
        self.records.append(rec)
        if not rec["ok"]:
            self.log.error("Engine returned illegal move %s at ply %d", mv.uci(), ply + 1)
            self._end("illegal_engine_move", self._loss_for(engine_side=True))
            return False
        rec["san"] = self.board.san(mv)
        self.board.push(mv)
        self.log.debug("Ply %d ENGINE %s score=%s depth=%s", ply + 1, rec["san"], rec["score"], rec["depth"])
        return True

    def _opp_turn(self, ply: int) -> bool:
        t0 = time.perf_counter()
        try:
            mv = self.opp.choose(self.board)
        except EngineMoveError as e:
            self.records.append({"actor": "OPP", "uci": None, "san": None, "ok": False,
                                 "ms": e.result.latency_ms, "error": str(e)})
            self.log.error("Opponent failed at ply %d: %s", ply + 1, e)
            self._end("opponent_error", self._loss_for(engine_side=False))
            return False
        ms = int((time.perf_counter() - t0) * 1000)
        rec = {"actor": "OPP", "uci": mv.uci(), "san": None, "ok": mv in self.board.legal_moves, "ms": ms}
        self.records.append(rec)
        if not rec["ok"]:
            self.log.error("Opponent returned illegal move %s at ply %d", mv.uci(), ply + 1)
            self._end("illegal_opponent_move", self._loss_for(engine_side=False))
            return False
        rec["san"] = self.board.san(mv)
        self.board.push(mv)
        self.log.debug("Ply %d OPP %s", ply + 1, rec["san"])
        return True

    def play(self) -> str:
        ply = 0
        while not self.board.is_game_over() and ply < self.cfg.max_plies:
            ok = self._engine_turn(ply) if self._engine_to_move() else self._opp_turn(ply)
            if not ok:
                break
            ply += 1
        if self.termination_reason is None:
            if self.board.is_game_over():
                self.termination_reason = "normal_game_end"
            else:
                # draw by truncation
                self._end("max_plies_reached", "1/2-1/2")
        result = self.status()
        self.log.info("Game finished result=%s reason=%s plies=%d", result, self.termination_reason, ply)
        return result

    # ---------------- Status / Metrics / PGN -----------------
    def status(self) -> str:
        if self._result_override:
            return self._result_override
        if self.board.is_game_over():
            return self.board.result()
        return "*"

    def metrics(self) -> dict:
        engine_moves = [r for r in self.records if r["actor"] == "ENGINE"]
        latencies = [r["ms"] for r in engine_moves if r.get("ms") is not None]
        depths = [r["depth"] for r in engine_moves if isinstance(r.get("depth"), (int, float))]
        return {
            "plies_total": len(self.records),
            "plies_engine": len(engine_moves),
            "engine_failures": sum(1 for r in engine_moves if not r.get("ok")),
            "latency_ms_avg": statistics.mean(latencies) if latencies else 0,
            "latency_ms_max": max(latencies) if latencies else 0,
            "depth_avg": statistics.mean(depths) if depths else 0,
            "result": self.status(),
            "termination_reason": self.termination_reason,
            "duration_s": round(time.time() - self.start_ts, 2),
            "opponent_label": getattr(self.opp, "name", type(self.opp).__name__),
        }

    def pgn(self) -> str:
        game = chess.pgn.Game.from_board(self.board)
        engine_name = getattr(self.engine, "name", "Engine")
        opp_name = getattr(self.opp, "name", "Opponent")
        game.headers["Event"] = "Remote engine match"
        game.headers["Date"] = datetime.date.today().strftime("%Y.%m.%d")
        game.headers["White"] = engine_name if self._engine_is_white() else opp_name
        game.headers["Black"] = opp_name if self._engine_is_white() else engine_name
        game.headers["Result"] = self.status()
        if self.termination_reason:
            game.comment = f"Termination: {self.termination_reason}"
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=bool(self.termination_reason))
        return game.accept(exporter)
