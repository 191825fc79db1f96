"""Applies ``position`` command tokens to a board."""

from __future__ import annotations

from typing import Sequence

import chess

from .errors import IllegalMoveError, ProtocolError

FEN_FIELDS = 6


def load_position(board: chess.Board, tokens: Sequence[str]) -> chess.Board:
    """Return a new board with ``tokens`` applied left to right.

    ``startpos`` resets to the initial position, ``fen`` consumes the FEN
    fields that follow it, ``moves`` is a separator and every other token must
    be a legal UCI move in the position reached so far. ``board`` itself is
    never modified, so a failure leaves the caller's position untouched.
    """
    result = board.copy(stack=True)
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if token == "startpos":
            result.reset()
        elif token == "moves":
            continue
        elif token == "fen":
            fen_fields = []
            while index < len(tokens) and tokens[index] != "moves" and len(fen_fields) < FEN_FIELDS:
                fen_fields.append(tokens[index])
                index += 1
            result = board_from_fen(" ".join(fen_fields))
        else:
            try:
                move = result.parse_uci(token)
            except ValueError as exc:
                raise IllegalMoveError(token, result.fen()) from exc
            result.push(move)
    return result


def board_from_fen(fen: str) -> chess.Board:
    fen = fen.strip()
    if not fen:
        raise ProtocolError("empty FEN")
    try:
        return chess.Board(fen)
    except ValueError as exc:
        raise ProtocolError(f"invalid FEN '{fen}': {exc}") from exc


__all__ = ["board_from_fen", "load_position"]
