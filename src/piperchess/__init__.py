"""
piperchess: client for the Piperlove remote chess-engine HTTP API.

Components:
- engine_client: EngineClient/AsyncEngineClient (POST /move, GET /health) returning EngineResult
- notation: pure UCI and square-coordinate helpers
- opponents/match: play one game against the remote engine on a python-chess board
- config: settings.yml / .env / environment loading
"""
from .engine_client import AsyncEngineClient, EngineClient, EngineResult
from .notation import algebraic_to_square, format_move, parse_move, square_to_algebraic

__all__ = [
    "EngineClient",
    "AsyncEngineClient",
    "EngineResult",
    "parse_move",
    "format_move",
    "square_to_algebraic",
    "algebraic_to_square",
]
