"""Background search invocations.

A :class:`SearchController` starts one thread per ``go``. The thread makes a
single call into the decision engine and reports the result as a
``bestmove`` line. Cancellation is cooperative: the engine polls the
signal it is handed, and the controller never kills a thread.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import chess

from .cache import TranspositionCache
from .cancellation import CancellationSignal
from .errors import EngineFailure
from .protocol import UciWriter
from .search import EngineSettings, SearchOutcome, enter_engine

logger = logging.getLogger(__name__)

NO_MOVE = "(none)"

EngineCall = Callable[[chess.Board, EngineSettings], SearchOutcome]


class SearchTask:
    """Handle on one outstanding search thread."""

    def __init__(self, name: str, run: Callable[["SearchTask"], None]) -> None:
        self._thread = threading.Thread(target=run, args=(self,), name=name, daemon=True)
        self.outcome: Optional[SearchOutcome] = None
        self.error: Optional[EngineFailure] = None
        self.bestmove: Optional[str] = None

    def start(self) -> None:
        self._thread.start()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the search to finish. Returns ``True`` once it has."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def name(self) -> str:
        return self._thread.name


class SearchController:
    def __init__(
        self,
        writer: UciWriter,
        engine: EngineCall = enter_engine,
        *,
        debug_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.writer = writer
        self.engine = engine
        self._debug_log = debug_log or (lambda *_: None)
        self._counter = 0

    def spawn(
        self,
        board: chess.Board,
        time_budget: Optional[float],
        signal: CancellationSignal,
        cache: Optional[TranspositionCache] = None,
        *,
        max_depth: Optional[int] = None,
        on_finished: Optional[Callable[[SearchTask], None]] = None,
    ) -> SearchTask:
        settings = EngineSettings(time_limit=time_budget, stop_signal=signal, cache=cache)
        if max_depth is not None:
            settings.max_depth = max(1, max_depth)

        self._counter += 1
        snapshot = board.copy(stack=True)
        task = SearchTask(
            f"shallowred-search-{self._counter}",
            lambda current: self._run(current, snapshot, settings, on_finished),
        )
        task.start()
        return task

    def _run(
        self,
        task: SearchTask,
        board: chess.Board,
        settings: EngineSettings,
        on_finished: Optional[Callable[[SearchTask], None]],
    ) -> None:
        logger.info(
            "Running search on board %s, time_limit=%s max_depth=%d",
            board.fen(),
            "none" if settings.time_limit is None else f"{settings.time_limit:.3f}s",
            settings.max_depth,
        )
        started = time.perf_counter()
        move_text = NO_MOVE
        try:
            outcome = self.engine(board, settings)
            if not isinstance(outcome, SearchOutcome):
                raise EngineFailure(f"engine returned {outcome!r} instead of a search outcome")
            result_text = outcome.move.uci() if outcome.move is not None else NO_MOVE
            logger.info(
                "Search finished: move=%s score=%d depth=%d nodes=%d time=%.3fs stopped=%s pv=%s",
                result_text,
                outcome.score,
                outcome.depth,
                outcome.nodes,
                outcome.time_spent,
                outcome.stopped,
                " ".join(move.uci() for move in outcome.principal_variation),
            )
            self._debug_log(
                f"depth={outcome.depth} score={outcome.score} nodes={outcome.nodes} "
                f"time={time.perf_counter() - started:.3f}s"
            )
            task.outcome = outcome
            move_text = result_text
        except Exception as exc:
            if isinstance(exc, EngineFailure):
                failure = exc
            else:
                failure = EngineFailure(f"search failed: {exc}")
                failure.__cause__ = exc
            task.error = failure
            logger.exception("Search failed on board %s", board.fen())
            self._debug_log(f"Error generating move: {exc}")
        finally:
            task.bestmove = move_text
            # The session must be idle before the GUI can react to bestmove.
            try:
                if on_finished is not None:
                    on_finished(task)
            finally:
                self.writer.send(f"bestmove {move_text}")


__all__ = ["NO_MOVE", "SearchController", "SearchTask"]
