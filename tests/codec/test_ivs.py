"""Tests for IV seed sources."""

import threading
import time

import pytest

from aesprefs.codec.ivs import (
    IVSource,
    RandomIVSource,
    TimeBasedIVSource,
    get_iv_source,
)


class TestTimeBasedIVSource:
    """Tests for the millisecond-clock source."""

    def test_follows_advancing_clock(self):
        """Test seeds equal the clock while it moves forward."""
        ticks = iter([1000, 2000, 3000])
        source = TimeBasedIVSource(clock=lambda: next(ticks))
        assert [source.next() for _ in range(3)] == [1000, 2000, 3000]

    def test_stalled_clock_still_increases(self):
        """Test calls within one millisecond get distinct seeds."""
        source = TimeBasedIVSource(clock=lambda: 1000)
        assert [source.next() for _ in range(3)] == [1000, 1001, 1002]

    def test_clock_going_backwards(self):
        """Test a clock step backwards never repeats a seed."""
        ticks = iter([1000, 500, 1500])
        source = TimeBasedIVSource(clock=lambda: next(ticks))
        assert [source.next() for _ in range(3)] == [1000, 1001, 1500]

    def test_default_clock_is_epoch_millis(self):
        """Test the default clock is wall-clock milliseconds."""
        before = int(time.time() * 1000) - 1000
        seed = TimeBasedIVSource().next()
        after = int(time.time() * 1000) + 1000
        assert before <= seed <= after

    def test_concurrent_calls_unique(self):
        """Test concurrent callers never receive the same seed."""
        source = TimeBasedIVSource(clock=lambda: 42)
        seeds: list[int] = []
        lock = threading.Lock()

        def worker():
            local = [source.next() for _ in range(200)]
            with lock:
                seeds.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seeds) == 1600
        assert len(set(seeds)) == 1600


class TestRandomIVSource:
    """Tests for the CSPRNG source."""

    def test_signed_64_bit_range(self):
        """Test seeds fit a signed 64-bit integer."""
        source = RandomIVSource()
        for _ in range(100):
            assert -(2**63) <= source.next() < 2**63

    def test_seeds_vary(self):
        """Test consecutive seeds differ."""
        source = RandomIVSource()
        assert len({source.next() for _ in range(20)}) == 20


class TestGetIVSource:
    """Tests for the IV source factory."""

    def test_default_is_time(self):
        """Test the default source is time-based."""
        assert isinstance(get_iv_source(), TimeBasedIVSource)

    def test_by_name(self):
        """Test lookup is case-insensitive."""
        assert isinstance(get_iv_source("RANDOM"), RandomIVSource)
        assert isinstance(get_iv_source(" time "), TimeBasedIVSource)

    def test_unknown(self):
        """Test unknown names raise ValueError listing the choices."""
        with pytest.raises(ValueError, match="random, time"):
            get_iv_source("counter")

    def test_returns_new_instances(self):
        """Test each call returns a fresh IVSource."""
        first = get_iv_source("time")
        assert isinstance(first, IVSource)
        assert first is not get_iv_source("time")
