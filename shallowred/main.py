"""Command line entry point for the Shallow Red UCI engine."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from .cache import DEFAULT_CAPACITY, TranspositionCache
from .engine import ChessEngine

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "shallowred.log"
LOG_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_file: Optional[Path], level: int = logging.INFO) -> None:
    """Append diagnostics to ``log_file``; stdout is reserved for the protocol."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_file is None:
        root_logger.addHandler(logging.NullHandler())
        return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Shallow Red UCI engine", add_help=True)
    parser.add_argument(
        "--log-file",
        default=os.environ.get("SHALLOWRED_LOG_FILE", DEFAULT_LOG_FILE),
        help="Append diagnostics to this file ('-' disables the log)",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("SHALLOWRED_LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Minimum level written to the log file",
    )
    parser.add_argument(
        "--hash-entries",
        type=int,
        default=int(os.environ.get("SHALLOWRED_HASH_ENTRIES", DEFAULT_CAPACITY)),
        help="Capacity of the shared transposition cache",
    )
    parser.add_argument("--max-depth", type=int, default=None, help="Cap on iterative deepening depth")
    parser.add_argument("--debug", action="store_true", help="Start with 'info string' diagnostics on")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    log_file = None if args.log_file == "-" else Path(args.log_file)
    setup_logging(log_file, getattr(logging, args.log_level))
    logger.info("Shallow Red starting")

    cache = TranspositionCache(args.hash_entries)
    try:
        ChessEngine(cache=cache, max_depth=args.max_depth, debug=args.debug).start()
    finally:
        cache.close()
        logger.info("Shallow Red stopped")


if __name__ == "__main__":
    main()
