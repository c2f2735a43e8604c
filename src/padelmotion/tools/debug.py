"""Opt-in timing diagnostics, switched on with ``PADELMOTION_DEBUG=1``."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    """True when ``PADELMOTION_DEBUG`` is set to a truthy value."""
    return os.getenv("PADELMOTION_DEBUG", "").strip().lower() in _TRUTHY


@contextmanager
def time_block(label: str, *, log: Optional[logging.Logger] = None) -> Iterator[None]:
    """
    Log how long the wrapped block took, at DEBUG level on ``log``.

    Does nothing unless :func:`debug_enabled` is true when the block is entered.
    """
    if not debug_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        (log or logger).debug("%s took %.3f ms", label, elapsed_ms)


__all__ = ["debug_enabled", "time_block"]
