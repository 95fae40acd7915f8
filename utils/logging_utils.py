from __future__ import annotations

import logging
import os
import sys
from functools import lru_cache

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_target = "stdout"


class ConsoleHandler(logging.StreamHandler):
    """Writes to whichever ``sys.stdout``/``sys.stderr`` is current at emit time."""

    def __init__(self, target: str = "stdout") -> None:
        super().__init__()
        self.target = target

    @property
    def stream(self):
        return getattr(sys, self.target)

    @stream.setter
    def stream(self, value) -> None:
        pass


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or os.getenv("DASHBOARD_LOG_LEVEL") or "INFO").upper()
    return getattr(logging, name, logging.INFO)


@lru_cache(maxsize=64)
def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(_resolve_level(None))
    handler = ConsoleHandler(_target)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def set_log_level(level: str | int, stream: str | None = None) -> None:
    """Apply a level to every logger handed out by get_logger.

    ``stream`` ("stdout" or "stderr") also moves their output; the CLI keeps
    stdout for results only.
    """
    global _target
    if stream is not None:
        if stream not in ("stdout", "stderr"):
            raise ValueError(f"stream must be 'stdout' or 'stderr', got {stream!r}")
        _target = stream
    resolved = _resolve_level(level)
    for name in list(logging.Logger.manager.loggerDict):
        logger = logging.getLogger(name)
        if logger.handlers and not logger.propagate:
            logger.setLevel(resolved)
            for handler in logger.handlers:
                if isinstance(handler, ConsoleHandler):
                    handler.target = _target
