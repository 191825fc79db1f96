"""Public package interface for the Shallow Red engine."""

from .cache import TranspositionCache
from .engine import ChessEngine, Session
from .errors import EngineFailure, IllegalMoveError, ProtocolError
from .lifecycle import SearchController, SearchTask
from .position import load_position
from .search import AlphaBetaSearcher, EngineSettings, SearchOutcome, enter_engine
from .timecontrol import allocate, thinking_time

__all__ = [
    "AlphaBetaSearcher",
    "ChessEngine",
    "EngineFailure",
    "EngineSettings",
    "IllegalMoveError",
    "ProtocolError",
    "SearchController",
    "SearchOutcome",
    "SearchTask",
    "Session",
    "TranspositionCache",
    "allocate",
    "enter_engine",
    "load_position",
    "thinking_time",
]
