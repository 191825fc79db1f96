"""UCI session controller for the Shallow Red engine.

:class:`ChessEngine` reads one protocol line at a time, keeps the game state
in a :class:`Session` and hands ``go`` requests to a
:class:`~shallowred.lifecycle.SearchController`, which answers with
``bestmove`` from a background thread while the command loop keeps reading.
"""

from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, TextIO, Type

import chess

from .cache import TranspositionCache
from .cancellation import CancellationHandle, cancellation_pair
from .commands import (
    BeginThinking,
    CancelThinking,
    Command,
    DebugLoad,
    DebugToggle,
    Handshake,
    NewGame,
    ReadyCheck,
    SetPosition,
    Shutdown,
    TimeControls,
    Unrecognized,
    parse_command,
)
from .errors import ProtocolError
from .lifecycle import EngineCall, SearchController, SearchTask
from .position import board_from_fen, load_position
from .protocol import UciWriter, _ensure_line_buffered_stdout
from .search import enter_engine
from .timecontrol import thinking_time

logger = logging.getLogger(__name__)

ENGINE_NAME = "Shallow Red"
ENGINE_VERSION = "0.1"
DEFAULT_STOP_TIMEOUT = 5.0


@dataclass
class Session:
    """Game state owned by the command loop."""

    board: chess.Board = field(default_factory=chess.Board)
    moves_played: int = 0
    active_cancellation: Optional[CancellationHandle] = None
    active_search: Optional[SearchTask] = None

    @property
    def searching(self) -> bool:
        return self.active_cancellation is not None

    def reset(self) -> None:
        self.board = chess.Board()
        self.moves_played = 0


class ChessEngine:
    def __init__(
        self,
        *,
        writer: Optional[UciWriter] = None,
        cache: Optional[TranspositionCache] = None,
        engine: EngineCall = enter_engine,
        max_depth: Optional[int] = None,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
        debug: bool = False,
    ) -> None:
        self.engine_name = ENGINE_NAME
        self.engine_version = ENGINE_VERSION
        self.session = Session()
        self.writer = writer or UciWriter()
        self.cache = cache
        self.max_depth = max_depth
        self.stop_timeout = stop_timeout
        self.debug = debug
        self.running = True
        self._awaiting_debug_state = False

        # Guards session fields shared with search completion callbacks
        self.state_lock = threading.Lock()
        self.controller = SearchController(self.writer, engine, debug_log=self._log_debug)

        self.dispatch_table: Dict[Type[Command], Callable[..., None]] = {
            Handshake: self.handle_uci,
            ReadyCheck: self.handle_isready,
            NewGame: self.handle_ucinewgame,
            SetPosition: self.handle_position,
            BeginThinking: self.handle_go,
            CancelThinking: self.handle_stop,
            Shutdown: self.handle_quit,
            DebugLoad: self.handle_debuginternal,
            DebugToggle: self.handle_debug,
            Unrecognized: self.handle_unknown,
        }

    @property
    def board(self) -> chess.Board:
        return self.session.board

    @property
    def moves_played(self) -> int:
        return self.session.moves_played

    def _log_debug(self, message: str) -> None:
        if not self.debug:
            return
        self.writer.info(message)

    # ------------------------------------------------------------------
    # Command loop
    # ------------------------------------------------------------------
    def start(self, stream: Optional[TextIO] = None) -> None:
        _ensure_line_buffered_stdout()
        self.command_loop(stream)

    def command_loop(self, stream: Optional[TextIO] = None) -> None:
        source = stream if stream is not None else sys.stdin
        while self.running:
            line = source.readline()
            if not line:
                logger.info("Input closed")
                break
            try:
                self.handle_line(line)
            except Exception as exc:
                logger.exception("Error processing command %r", line.strip())
                self.writer.info(f"Error processing command: {exc}")
        if self.running:
            self.shutdown()

    def handle_line(self, line: str) -> bool:
        """Process one input line. Returns ``False`` once the session has ended."""
        line = line.rstrip("\r\n")
        logger.info("Received << %s", line)
        try:
            if self._awaiting_debug_state:
                self._awaiting_debug_state = False
                self._load_debug_state(line)
                return self.running

            command = parse_command(line)
            if command is None:
                return self.running
            self.dispatch_table[type(command)](command)
        except ProtocolError as exc:
            logger.warning("Rejected %r: %s", line.strip(), exc)
            self._log_debug(f"Rejected command: {exc}")
        return self.running

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def handle_uci(self, _: Handshake) -> None:
        with self.state_lock:
            self.session.moves_played = 0
        self.writer.send(f"id name {self.engine_name} {self.engine_version}\nuciok")

    def handle_isready(self, _: ReadyCheck) -> None:
        self.writer.send("readyok")

    def handle_ucinewgame(self, _: NewGame) -> None:
        with self.state_lock:
            self.session.reset()
        if self.cache is not None:
            self.cache.request_clear()
        self._log_debug("New game started, board reset to initial position")

    def handle_position(self, command: SetPosition) -> None:
        with self.state_lock:
            self.session.board = load_position(self.session.board, command.tokens)
            fen = self.session.board.fen()
        self._log_debug(f"setpos {fen}")

    def handle_go(self, command: BeginThinking) -> None:
        controls = command.time_controls
        with self.state_lock:
            if self.session.searching:
                logger.warning("go ignored: a search is already running")
                self.writer.info("search already running; send stop first")
                return

            board = self.session.board.copy(stack=True)
            budget = self._time_budget(board.turn, controls)
            handle, signal = cancellation_pair()
            self.session.active_cancellation = handle
            self.session.active_search = self.controller.spawn(
                board,
                budget,
                signal,
                self.cache,
                max_depth=controls.depth if controls.depth is not None else self.max_depth,
                on_finished=lambda _task, handle=handle: self._search_finished(handle),
            )
            self.session.moves_played += 1
            moves_played = self.session.moves_played

        logger.info(
            "go accepted: budget=%s moves_played=%d controls=%s",
            "none" if budget is None else f"{budget:.3f}s",
            moves_played,
            controls.as_dict(),
        )

    def handle_stop(self, _: Optional[CancelThinking] = None) -> None:
        with self.state_lock:
            handle = self.session.active_cancellation
            task = self.session.active_search
        if handle is None:
            logger.debug("stop ignored; no search running")
            return
        handle.cancel()
        logger.info("Stop signal sent")
        self._await_search(handle, task)

    def handle_quit(self, _: Optional[Shutdown] = None) -> None:
        self.shutdown()

    def handle_debuginternal(self, _: DebugLoad) -> None:
        self._awaiting_debug_state = True

    def handle_debug(self, command: DebugToggle) -> None:
        if command.enabled is None:
            self.writer.info("Invalid debug setting. Use 'on' or 'off'.")
            return
        self.debug = command.enabled
        self.writer.info(f"Debug:{self.debug}")

    def handle_unknown(self, command: Unrecognized) -> None:
        logger.debug("Ignoring unrecognized command '%s'", command.name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def shutdown(self) -> None:
        self.handle_stop()
        self.running = False
        logger.info("Engine shutting down")

    def _time_budget(self, turn: chess.Color, controls: TimeControls) -> Optional[float]:
        if controls.infinite:
            return None
        if controls.movetime is not None:
            return max(controls.movetime, 0) / 1000.0
        remaining_ms = controls.remaining_ms(turn)
        if remaining_ms is None:
            if controls.depth is not None:
                return None
            side = "wtime" if turn == chess.WHITE else "btime"
            raise ProtocolError(f"go: missing '{side}' for the side to move")
        return thinking_time(self.session.moves_played, max(remaining_ms, 0) / 1000.0)

    def _search_finished(self, handle: CancellationHandle) -> None:
        with self.state_lock:
            if self.session.active_cancellation is handle:
                self.session.active_cancellation = None
                self.session.active_search = None

    def _await_search(self, handle: CancellationHandle, task: Optional[SearchTask]) -> None:
        if task is not None and not task.join(self.stop_timeout):
            logger.warning("search %s still running %.1fs after stop", task.name, self.stop_timeout)
            return
        self._search_finished(handle)

    def _load_debug_state(self, fen: str) -> None:
        board = board_from_fen(fen)
        with self.state_lock:
            self.session.board = board
        self._log_debug(f"debug position {board.fen()}")


__all__ = ["ChessEngine", "ENGINE_NAME", "ENGINE_VERSION", "Session"]
