"""Move search for the Shallow Red engine.

:func:`enter_engine` runs an iterative deepening alpha-beta search with
quiescence, transposition lookups, killer and history move ordering. The
search polls its stop signal and deadline while it runs and, when either
fires, returns the best move of the last fully searched depth.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import chess
from chess import polyglot

from .cache import TT_ALPHA, TT_BETA, TT_EXACT, CacheEntry, TranspositionCache
from .cancellation import CancellationSignal

logger = logging.getLogger(__name__)

MATE_VALUE = 100_000
DEFAULT_MAX_DEPTH = 64
POLL_INTERVAL = 256  # nodes between deadline checks


class _SearchTimeout(Exception):
    """Internal exception used to unwind the search when it must stop."""


@dataclass
class EngineSettings:
    time_limit: Optional[float] = None
    stop_signal: Optional[CancellationSignal] = None
    cache: Optional[TranspositionCache] = None
    max_depth: int = DEFAULT_MAX_DEPTH
    verbose: bool = False


@dataclass
class SearchOutcome:
    move: Optional[chess.Move]
    score: int = 0
    depth: int = 0
    nodes: int = 0
    time_spent: float = 0.0
    principal_variation: Tuple[chess.Move, ...] = ()
    stopped: bool = False


@dataclass
class OrderedMove:
    """Container representing an ordered move and its metadata."""

    move: chess.Move
    is_capture: bool
    is_killer: bool
    is_promotion: bool
    score: int

    @property
    def is_quiet(self) -> bool:
        return not self.is_capture and not self.is_promotion


class AlphaBetaSearcher:
    """Alpha-beta searcher bound to one board and one set of limits.

    Parameters
    ----------
    board:
        Position to search. The searcher pushes and pops moves on it, so
        callers should pass a copy they do not share.
    settings:
        Time limit, stop signal, optional shared cache and depth cap.
    check_extension:
        Additional depth (in plies) granted to checking moves.
    """

    PIECE_VALUES: Dict[int, int] = {
        chess.PAWN: 100,
        chess.KNIGHT: 320,
        chess.BISHOP: 330,
        chess.ROOK: 500,
        chess.QUEEN: 900,
        chess.KING: 20_000,
    }

    def __init__(
        self,
        board: chess.Board,
        settings: Optional[EngineSettings] = None,
        *,
        check_extension: int = 1,
    ) -> None:
        self.board = board
        self.settings = settings or EngineSettings()
        self.check_extension = check_extension

        self._local_table: Dict[int, CacheEntry] = {}
        self.killer_moves: Dict[int, List[Optional[chess.Move]]] = {}
        self.history: Dict[Tuple[bool, int, int], int] = {}
        self.nodes = 0
        self._deadline: Optional[float] = None
        self._root_ply = board.ply()
        self._extension_horizon = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def search(self) -> SearchOutcome:
        """Iterative deepening driver returning the best move found."""

        start = time.perf_counter()
        if self.settings.time_limit is not None:
            self._deadline = start + self.settings.time_limit
        self.nodes = 0

        legal_moves = list(self.board.legal_moves)
        if not legal_moves:
            return SearchOutcome(move=None, time_spent=time.perf_counter() - start)

        best_move: Optional[chess.Move] = None
        best_score = 0
        completed_depth = 0
        stopped = False

        self._root_ply = self.board.ply()
        for depth in range(1, max(1, self.settings.max_depth) + 1):
            # Checks may extend a line to at most twice the nominal depth.
            self._extension_horizon = 2 * depth
            try:
                score, move = self._search_root(depth)
            except _SearchTimeout:
                stopped = True
                break
            if move is not None:
                best_move = move
                best_score = score
                completed_depth = depth
            if self.settings.verbose:
                logger.debug("depth %d score %d move %s nodes %d", depth, score, move, self.nodes)
            if abs(best_score) >= MATE_VALUE - 1000:
                break

        if best_move is None:
            # Stopped before depth one finished; any legal move beats none.
            ordered = self._order_moves(0, None)
            best_move = ordered[0].move if ordered else legal_moves[0]

        return SearchOutcome(
            move=best_move,
            score=best_score,
            depth=completed_depth,
            nodes=self.nodes,
            time_spent=time.perf_counter() - start,
            principal_variation=self._principal_variation(best_move, completed_depth),
            stopped=stopped,
        )

    # ------------------------------------------------------------------
    # Core search methods
    # ------------------------------------------------------------------
    def _search_root(self, depth: int) -> Tuple[int, Optional[chess.Move]]:
        alpha = -MATE_VALUE
        beta = MATE_VALUE
        best_move: Optional[chess.Move] = None
        best_score = -MATE_VALUE

        self._poll()
        tt_entry = self._probe()
        tt_move = tt_entry.move if tt_entry is not None else None

        for ordered in self._order_moves(self.board.ply(), tt_move):
            move = ordered.move
            self.board.push(move)
            try:
                score = -self._alphabeta(depth - 1 + self._check_extension(), -beta, -alpha)
            finally:
                self.board.pop()

            if score > best_score:
                best_score = score
                best_move = move
            if score > alpha:
                alpha = score

        if best_move is not None:
            self._store(depth, best_score, TT_EXACT, best_move)
        return best_score, best_move

    def _alphabeta(self, depth: int, alpha: int, beta: int) -> int:
        self.nodes += 1
        if self.nodes % POLL_INTERVAL == 0:
            self._poll()

        if self.board.is_checkmate():
            return -MATE_VALUE + self.board.ply()
        if self.board.is_stalemate() or self.board.is_insufficient_material() or self.board.is_repetition(3):
            return 0
        if depth <= 0:
            return self._quiescence(alpha, beta)

        alpha_original = alpha
        tt_move = None
        tt_entry = self._probe()
        if tt_entry is not None:
            tt_move = tt_entry.move
            if tt_entry.depth >= depth:
                if tt_entry.flag == TT_EXACT:
                    return tt_entry.value
                if tt_entry.flag == TT_ALPHA and tt_entry.value <= alpha:
                    return tt_entry.value
                if tt_entry.flag == TT_BETA and tt_entry.value >= beta:
                    return tt_entry.value

        best_move: Optional[chess.Move] = None
        best_score = -MATE_VALUE
        ply = self.board.ply()

        for ordered in self._order_moves(ply, tt_move):
            move = ordered.move
            color_to_move = self.board.turn
            self.board.push(move)
            try:
                new_depth = depth - 1 + self._check_extension()
                score = -self._alphabeta(new_depth, -beta, -alpha)
            finally:
                self.board.pop()

            if score >= beta:
                if ordered.is_quiet:
                    self._store_killer(ply, move)
                    self._update_history(color_to_move, move, depth)
                self._store(depth, score, TT_BETA, move)
                return score

            if score > best_score:
                best_score = score
                best_move = move
            if score > alpha:
                alpha = score

        flag = TT_ALPHA if best_score <= alpha_original else TT_EXACT
        if best_move is not None:
            self._store(depth, best_score, flag, best_move)
        return best_score

    def _quiescence(self, alpha: int, beta: int) -> int:
        self.nodes += 1
        if self.nodes % POLL_INTERVAL == 0:
            self._poll()

        stand_pat = self._evaluate()
        if stand_pat >= beta:
            return beta
        if stand_pat > alpha:
            alpha = stand_pat

        for move in self.board.generate_legal_captures():
            self.board.push(move)
            try:
                score = -self._quiescence(-beta, -alpha)
            finally:
                self.board.pop()

            if score >= beta:
                return beta
            if score > alpha:
                alpha = score
        return alpha

    # ------------------------------------------------------------------
    # Move ordering helpers
    # ------------------------------------------------------------------
    def _order_moves(self, ply: int, tt_move: Optional[chess.Move]) -> List[OrderedMove]:
        killers = self.killer_moves.get(ply, [None, None])
        ordered: List[OrderedMove] = []
        for move in self.board.legal_moves:
            is_capture = self.board.is_capture(move)
            is_promotion = move.promotion is not None
            is_killer = not is_capture and move in killers

            score = 0
            if tt_move is not None and move == tt_move:
                score += 1_000_000
            if is_capture:
                captured = self.board.piece_type_at(move.to_square)
                attacker = self.board.piece_type_at(move.from_square)
                score += 500_000
                if captured is not None:
                    score += self.PIECE_VALUES.get(captured, 0)
                if attacker is not None:
                    score -= self.PIECE_VALUES.get(attacker, 0) // 10
            elif is_killer:
                score += 400_000
            elif is_promotion:
                score += 300_000 + self.PIECE_VALUES.get(move.promotion, 0)
            else:
                score += self.history.get((self.board.turn, move.from_square, move.to_square), 0)

            ordered.append(OrderedMove(move, is_capture, is_killer, is_promotion, score))

        ordered.sort(key=lambda item: item.score, reverse=True)
        return ordered

    def _store_killer(self, ply: int, move: chess.Move) -> None:
        killers = self.killer_moves.setdefault(ply, [None, None])
        if move == killers[0]:
            return
        killers[1] = killers[0]
        killers[0] = move

    def _update_history(self, color: bool, move: chess.Move, depth: int) -> None:
        key = (color, move.from_square, move.to_square)
        self.history[key] = self.history.get(key, 0) + depth * depth

    # ------------------------------------------------------------------
    # Evaluation and utility helpers
    # ------------------------------------------------------------------
    def _evaluate(self) -> int:
        score = 0
        for piece_type, value in self.PIECE_VALUES.items():
            score += value * len(self.board.pieces(piece_type, chess.WHITE))
            score -= value * len(self.board.pieces(piece_type, chess.BLACK))
        return score if self.board.turn == chess.WHITE else -score

    def _check_extension(self) -> int:
        if self.check_extension <= 0:
            return 0
        if self.board.ply() - self._root_ply >= self._extension_horizon:
            return 0
        return self.check_extension if self.board.is_check() else 0

    def _poll(self) -> None:
        stop_signal = self.settings.stop_signal
        if stop_signal is not None and stop_signal.is_set():
            raise _SearchTimeout()
        if self._deadline is not None and time.perf_counter() >= self._deadline:
            raise _SearchTimeout()

    def _probe(self) -> Optional[CacheEntry]:
        key = polyglot.zobrist_hash(self.board)
        if self.settings.cache is not None:
            return self.settings.cache.probe(key)
        return self._local_table.get(key)

    def _store(self, depth: int, value: int, flag: int, move: Optional[chess.Move]) -> None:
        entry = CacheEntry(polyglot.zobrist_hash(self.board), depth, value, flag, move)
        if self.settings.cache is not None:
            self.settings.cache.submit(entry)
        else:
            self._local_table[entry.key] = entry

    def _principal_variation(self, first: chess.Move, limit: int) -> Tuple[chess.Move, ...]:
        board = self.board.copy(stack=False)
        line: List[chess.Move] = []
        move: Optional[chess.Move] = first
        while move is not None and len(line) < max(1, limit) and move in board.legal_moves:
            line.append(move)
            board.push(move)
            key = polyglot.zobrist_hash(board)
            if self.settings.cache is not None:
                entry = self.settings.cache.probe(key)
            else:
                entry = self._local_table.get(key)
            move = entry.move if entry is not None else None
        return tuple(line)


def enter_engine(board: chess.Board, settings: EngineSettings) -> SearchOutcome:
    """Search ``board`` within ``settings`` and return the outcome."""
    searcher = AlphaBetaSearcher(board.copy(stack=True), settings)
    return searcher.search()


__all__ = ["AlphaBetaSearcher", "EngineSettings", "OrderedMove", "SearchOutcome", "enter_engine"]
