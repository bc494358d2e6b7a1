"""
Move sources for a game on a python-chess Board.

- RemoteEngineOpponent: asks the remote engine for a move via EngineClient.
- RandomOpponent: uniformly random legal move, a fast sparring partner for the engine.

Both expose name, choose(board) -> chess.Move and close().
"""
from __future__ import annotations

import random
from typing import Optional

import chess

from .engine_client import EngineClient, EngineResult


class EngineMoveError(RuntimeError):
    """The remote engine did not produce a usable move."""

    def __init__(self, result: EngineResult):
        super().__init__(result.error or "engine returned no move")
        self.result = result


class RemoteEngineOpponent:
    name: str = "Piperlove"

    def __init__(self, client: EngineClient, thinking_ms: Optional[int] = None, owns_client: bool = False):
        self.client = client
        self.thinking_ms = thinking_ms
        self.owns_client = owns_client
        self.last_result: Optional[EngineResult] = None

    def choose(self, board: chess.Board) -> chess.Move:
        res = self.client.request_move(board.fen(), self.thinking_ms)
        self.last_result = res
        if not res.success:
            raise EngineMoveError(res)
        try:
            return chess.Move.from_uci(res.move)
        except ValueError:
            raise EngineMoveError(EngineResult.failure(f"Engine returned unparseable move {res.move!r}", res.latency_ms))

    def close(self):
        if self.owns_client:
            self.client.close()


class RandomOpponent:
    name: str = "Random"

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def choose(self, board: chess.Board) -> chess.Move:
        legal = list(board.legal_moves)
        return self._rng.choice(legal) if legal else chess.Move.null()

    def close(self):
        pass
