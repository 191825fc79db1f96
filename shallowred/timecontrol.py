"""Per-move time budgeting."""

from __future__ import annotations

GAME_MOVES_EXPECTED = 45  # nominal game length
MIN_MOVES_LEFT = 10
MIN_THINK_TIME = 1.0  # seconds


def thinking_time(moves_played: int, time_remaining: float) -> float:
    """Return the seconds to spend on the next move.

    Spreads ``time_remaining`` (seconds) over the moves expected to remain,
    always assuming at least ``MIN_MOVES_LEFT`` are left, and never budgets
    less than ``MIN_THINK_TIME``.
    """
    if moves_played < 0:
        raise ValueError("moves_played must be non-negative")
    if time_remaining < 0:
        raise ValueError("time_remaining must be non-negative")

    moves_left = max(GAME_MOVES_EXPECTED - moves_played, MIN_MOVES_LEFT)
    return max(time_remaining / moves_left, MIN_THINK_TIME)


allocate = thinking_time

__all__ = ["GAME_MOVES_EXPECTED", "MIN_MOVES_LEFT", "MIN_THINK_TIME", "allocate", "thinking_time"]
