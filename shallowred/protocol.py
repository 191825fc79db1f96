"""Output side of the UCI line protocol."""

from __future__ import annotations

import io
import logging
import sys
import threading
from typing import Optional, TextIO

logger = logging.getLogger(__name__)


def _ensure_line_buffered_stdout() -> None:
    stdout = sys.stdout
    if isinstance(stdout, io.TextIOBase) and getattr(stdout, "line_buffering", False):
        return
    buffer = getattr(stdout, "buffer", None)
    if buffer is None:
        return
    sys.stdout = io.TextIOWrapper(buffer, line_buffering=True)


class UciWriter:
    """Serialises protocol lines from the command loop and search threads.

    Writes go to ``stream`` when given, otherwise to whatever ``sys.stdout``
    is at the time of the write.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def send(self, message: str) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        with self._lock:
            for line in message.splitlines():
                logger.info("Sent >> %s", line)
                stream.write(line + "\n")
            stream.flush()

    def info(self, message: str) -> None:
        for line in message.splitlines():
            self.send(f"info string {line}")


__all__ = ["UciWriter", "_ensure_line_buffered_stdout"]
