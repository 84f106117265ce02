"""Timing utilities for performance measurement."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Generator


@contextmanager
def timer() -> Generator[Callable[[], float], None, None]:
    """Context manager yielding a callable that returns elapsed seconds."""
    start_time = time.perf_counter()

    def get_elapsed() -> float:
        return time.perf_counter() - start_time

    yield get_elapsed

