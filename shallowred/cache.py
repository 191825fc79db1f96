"""Transposition cache shared between search invocations.

Lookups take a shared read lock so concurrent searches never block each
other. Structural changes (inserts, evictions, clears) are queued to a
dedicated maintenance thread, which is the only code that takes the
exclusive write lock.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Tuple

import chess
from readerwriterlock import rwlock

logger = logging.getLogger(__name__)

TT_EXACT = 0
TT_ALPHA = 1  # upper bound
TT_BETA = 2  # lower bound

DEFAULT_CAPACITY = 200_000

_CLEAR = "clear"
_STORE = "store"


@dataclass(frozen=True)
class CacheEntry:
    key: int
    depth: int
    value: int
    flag: int
    move: Optional[chess.Move]


class TranspositionCache:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: "OrderedDict[int, CacheEntry]" = OrderedDict()
        self._lock = rwlock.RWLockFair()
        self._requests: "queue.Queue[Optional[Tuple[str, Optional[CacheEntry]]]]" = queue.Queue()
        self._closed = False
        self.hits = 0
        self.probes = 0
        self._stats_lock = threading.Lock()
        self._worker = threading.Thread(
            target=self._maintenance_loop, name="shallowred-cache", daemon=True
        )
        self._worker.start()

    def __len__(self) -> int:
        with self._lock.gen_rlock():
            return len(self._entries)

    def probe(self, key: int) -> Optional[CacheEntry]:
        with self._lock.gen_rlock():
            entry = self._entries.get(key)
        with self._stats_lock:
            self.probes += 1
            if entry is not None:
                self.hits += 1
        return entry

    def submit(self, entry: CacheEntry) -> None:
        if self._closed:
            return
        self._requests.put((_STORE, entry))

    def request_clear(self) -> None:
        if self._closed:
            return
        self._requests.put((_CLEAR, None))

    def wait_idle(self) -> None:
        """Block until every queued maintenance request has been applied."""
        self._requests.join()

    def close(self, timeout: Optional[float] = 2.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._requests.put(None)
        self._worker.join(timeout)

    @property
    def closed(self) -> bool:
        return self._closed

    def _maintenance_loop(self) -> None:
        while True:
            request = self._requests.get()
            try:
                if request is None:
                    return
                kind, entry = request
                if kind == _CLEAR:
                    with self._lock.gen_wlock():
                        self._entries.clear()
                    logger.debug("cache cleared")
                elif entry is not None:
                    self._store(entry)
            finally:
                self._requests.task_done()

    def _store(self, entry: CacheEntry) -> None:
        with self._lock.gen_wlock():
            existing = self._entries.get(entry.key)
            if existing is not None and existing.depth > entry.depth:
                return
            self._entries[entry.key] = entry
            self._entries.move_to_end(entry.key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)


__all__ = ["CacheEntry", "DEFAULT_CAPACITY", "TT_ALPHA", "TT_BETA", "TT_EXACT", "TranspositionCache"]
