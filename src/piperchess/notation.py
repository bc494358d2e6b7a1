"""
Move and square notation helpers.

- parse_move/format_move: split and join UCI strings (e2e4, e7e8q). No legality checks.
- square_to_algebraic/algebraic_to_square: zero-based (row, col) <-> "e4" on an 8x8 board,
  row 0 is rank 8 and col 0 is file a (screen order, white at the bottom).
"""
from __future__ import annotations

from typing import Optional, TypedDict

FILES = "abcdefgh"
RANKS = "12345678"

# "from" is a keyword, so the functional form is required
MoveParts = TypedDict("MoveParts", {"from": str, "to": str, "promotion": Optional[str]})


class Square(TypedDict):
    row: int
    col: int


def parse_move(uci: str) -> MoveParts:
    """Split a UCI move into from/to squares and an optional promotion letter."""
    return {
        "from": uci[0:2],
        "to": uci[2:4],
        "promotion": uci[4] if len(uci) > 4 else None,
    }


def format_move(from_square: str, to_square: str, promotion: Optional[str] = None) -> str:
    """Join squares (and promotion piece, if any) into a lower-case UCI move."""
    uci = from_square.lower() + to_square.lower()
    if promotion:
        uci += promotion.lower()
    return uci


def square_to_algebraic(row: int, col: int) -> str:
    if not (0 <= row < 8 and 0 <= col < 8):
        raise ValueError(f"square out of range: row={row} col={col}")
    return f"{FILES[col]}{8 - row}"


def algebraic_to_square(text: str) -> Square:
    token = text.strip().lower()
    if len(token) != 2 or token[0] not in FILES or token[1] not in RANKS:
        raise ValueError(f"not an algebraic square: {text!r}")
    return {"row": 8 - int(token[1]), "col": FILES.index(token[0])}


__all__ = [
    "MoveParts",
    "Square",
    "parse_move",
    "format_move",
    "square_to_algebraic",
    "algebraic_to_square",
]
