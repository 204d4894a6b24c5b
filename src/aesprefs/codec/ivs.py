"""IV seed sources.

Both the master IV and every entry IV are 64-bit integer seeds (see
:func:`aesprefs.codec.cipher.iv_from_seed`). The default source uses the
wall clock in milliseconds and never hands out the same seed twice, even
when called faster than the clock ticks.
"""

from __future__ import annotations

import secrets
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable


class IVSource(ABC):
    """Produces 64-bit IV seeds."""

    name: str = "base"

    @abstractmethod
    def next(self) -> int:
        """Return a fresh seed."""
        ...


class TimeBasedIVSource(IVSource):
    """Millisecond timestamps, strictly increasing per source instance.

    When the clock has not advanced since the previous call (or went
    backwards), the previous seed plus one is returned instead.
    """

    name = "time"

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            now = self._clock()
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return now


class RandomIVSource(IVSource):
    """Uniformly random signed 64-bit seeds from the OS CSPRNG."""

    name = "random"

    def next(self) -> int:
        return int.from_bytes(secrets.token_bytes(8), "big", signed=True)


_SOURCES: dict[str, type[IVSource]] = {
    TimeBasedIVSource.name: TimeBasedIVSource,
    RandomIVSource.name: RandomIVSource,
}


def get_iv_source(name: str = "time") -> IVSource:
    """Create an IV source by name ("time" or "random").

    Raises:
        ValueError: If the name is unknown.
    """
    key = name.lower().strip()
    if key not in _SOURCES:
        raise ValueError(
            f"Unknown IV source: {name}. Available: {', '.join(sorted(_SOURCES))}"
        )
    return _SOURCES[key]()
