"""Cumulative execution-time accumulator.

Every timed store operation adds its duration here. The accumulator is only
instrumentation: callers may read or reset it, and nothing in the store's
behavior depends on it.
"""

from __future__ import annotations

import functools
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Generator, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


class ExecutionTimer:
    """Thread-safe sum of measured durations.

    Example:
        >>> timer = ExecutionTimer()
        >>> with timer.measure():
        ...     do_work()
        >>> timer.elapsed_ms
        1.234
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0.0
        self._calls = 0

    @contextmanager
    def measure(self) -> Generator[None, None, None]:
        """Add the duration of the ``with`` block to the total."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.add(time.perf_counter() - start)

    def add(self, seconds: float) -> None:
        with self._lock:
            self._total += seconds
            self._calls += 1

    def reset(self) -> None:
        with self._lock:
            self._total = 0.0
            self._calls = 0

    @property
    def elapsed(self) -> float:
        """Total measured time in seconds."""
        return self._total

    @property
    def elapsed_ms(self) -> float:
        return self._total * 1000

    @property
    def calls(self) -> int:
        return self._calls

    def to_dict(self) -> dict[str, Any]:
        return {
            "elapsed_ms": round(self.elapsed_ms, 3),
            "calls": self._calls,
        }


def timed(method: F) -> F:
    """Decorator measuring a method into ``self.timer`` when one is set."""

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        timer: ExecutionTimer | None = getattr(self, "timer", None)
        if timer is None:
            return method(self, *args, **kwargs)
        with timer.measure():
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
