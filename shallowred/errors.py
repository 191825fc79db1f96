"""Exceptions raised by the Shallow Red session controller."""

from __future__ import annotations

from typing import Optional


class ShallowRedError(Exception):
    """Base class for controller errors."""


class ProtocolError(ShallowRedError):
    """A command line could not be interpreted (missing or malformed fields)."""


class IllegalMoveError(ProtocolError):
    """A move token cannot be applied to the current position."""

    def __init__(self, token: str, fen: Optional[str] = None) -> None:
        self.token = token
        self.fen = fen
        message = f"illegal move '{token}'"
        if fen:
            message += f" in position {fen}"
        super().__init__(message)


class EngineFailure(ShallowRedError):
    """The decision engine raised while searching."""
