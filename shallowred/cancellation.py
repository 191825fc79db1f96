"""One-shot cancellation pair for a single search invocation."""

from __future__ import annotations

import threading
from typing import Optional, Tuple


class CancellationSignal:
    """Read side, handed to the background search and the engine."""

    def __init__(self, event: threading.Event) -> None:
        self._event = event

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


class CancellationHandle:
    """Write side, held by the session while the search is outstanding."""

    def __init__(self, event: threading.Event) -> None:
        self._event = event

    def cancel(self) -> bool:
        """Fire the signal. Returns ``False`` if it had already been fired."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def cancellation_pair() -> Tuple[CancellationHandle, CancellationSignal]:
    event = threading.Event()
    return CancellationHandle(event), CancellationSignal(event)


__all__ = ["CancellationHandle", "CancellationSignal", "cancellation_pair"]
