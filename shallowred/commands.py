"""Parsing of UCI input lines into command values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

import chess

from .errors import ProtocolError

INTEGER_GO_FIELDS = ("wtime", "btime", "winc", "binc", "movestogo", "movetime", "depth")
FLAG_GO_FIELDS = ("infinite", "ponder")


@dataclass(frozen=True)
class TimeControls:
    wtime: Optional[int] = None
    btime: Optional[int] = None
    winc: Optional[int] = None
    binc: Optional[int] = None
    movestogo: Optional[int] = None
    movetime: Optional[int] = None
    depth: Optional[int] = None
    infinite: bool = False
    ponder: bool = False

    def remaining_ms(self, turn: chess.Color) -> Optional[int]:
        return self.wtime if turn == chess.WHITE else self.btime

    def as_dict(self) -> Dict[str, Union[int, bool]]:
        parsed: Dict[str, Union[int, bool]] = {}
        for key in INTEGER_GO_FIELDS:
            value = getattr(self, key)
            if value is not None:
                parsed[key] = value
        for key in FLAG_GO_FIELDS:
            if getattr(self, key):
                parsed[key] = True
        return parsed


@dataclass(frozen=True)
class Handshake:
    pass


@dataclass(frozen=True)
class ReadyCheck:
    pass


@dataclass(frozen=True)
class NewGame:
    pass


@dataclass(frozen=True)
class SetPosition:
    tokens: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BeginThinking:
    time_controls: TimeControls = field(default_factory=TimeControls)


@dataclass(frozen=True)
class CancelThinking:
    pass


@dataclass(frozen=True)
class Shutdown:
    pass


@dataclass(frozen=True)
class DebugLoad:
    pass


@dataclass(frozen=True)
class DebugToggle:
    enabled: Optional[bool]


@dataclass(frozen=True)
class Unrecognized:
    name: str
    args: str = ""


Command = Union[
    Handshake,
    ReadyCheck,
    NewGame,
    SetPosition,
    BeginThinking,
    CancelThinking,
    Shutdown,
    DebugLoad,
    DebugToggle,
    Unrecognized,
]


def parse_go_args(args: str) -> TimeControls:
    """Parse the fields of a ``go`` command.

    Unknown tokens are skipped. A known numeric field with a missing or
    non-integer value fails the whole command with :class:`ProtocolError`.
    """
    parsed: Dict[str, Union[int, bool]] = {}
    iterator = iter(args.split())
    for token in iterator:
        key = token.lower()
        if key in INTEGER_GO_FIELDS:
            value_token = next(iterator, None)
            if value_token is None:
                raise ProtocolError(f"go: missing value for '{key}'")
            try:
                parsed[key] = int(value_token)
            except ValueError as exc:
                raise ProtocolError(f"go: '{key}' expects an integer, got '{value_token}'") from exc
        elif key in FLAG_GO_FIELDS:
            parsed[key] = True
    return TimeControls(**parsed)


def _parse_debug_args(args: str) -> DebugToggle:
    setting = args.strip().lower()
    if setting == "on":
        return DebugToggle(True)
    if setting == "off":
        return DebugToggle(False)
    return DebugToggle(None)


def parse_command(line: str) -> Optional[Command]:
    """Classify one input line. Returns ``None`` for blank lines."""
    parts = line.strip().split(None, 1)
    if not parts:
        return None
    name = parts[0].lower()
    args = parts[1] if len(parts) > 1 else ""

    if name == "uci":
        return Handshake()
    if name == "isready":
        return ReadyCheck()
    if name == "ucinewgame":
        return NewGame()
    if name == "position":
        return SetPosition(tuple(args.split()))
    if name == "go":
        return BeginThinking(parse_go_args(args))
    if name == "stop":
        return CancelThinking()
    if name == "quit":
        return Shutdown()
    if name == "debuginternal":
        return DebugLoad()
    if name == "debug":
        return _parse_debug_args(args)
    return Unrecognized(name, args)


__all__ = [
    "BeginThinking",
    "CancelThinking",
    "Command",
    "DebugLoad",
    "DebugToggle",
    "Handshake",
    "NewGame",
    "ReadyCheck",
    "SetPosition",
    "Shutdown",
    "TimeControls",
    "Unrecognized",
    "parse_command",
    "parse_go_args",
]
