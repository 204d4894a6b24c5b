"""Shared fixtures for aesprefs tests."""

import pytest

from aesprefs.backends import MemoryBackingStore
from aesprefs.base import LogMode
from aesprefs.codec.cipher import AesCbcCipher
from aesprefs.codec.ivs import TimeBasedIVSource
from aesprefs.codec.keys import KeyIndexer
from aesprefs.store import AesPrefs, set_prefs


class StepClock:
    """Deterministic millisecond clock advancing by ``step`` per call."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Isolate the shared memory registry and the default handle per test."""
    MemoryBackingStore.reset_shared()
    set_prefs(None)
    yield
    MemoryBackingStore.reset_shared()
    set_prefs(None)


@pytest.fixture
def cipher():
    return AesCbcCipher("test-password")


@pytest.fixture
def backend():
    return MemoryBackingStore(namespace="test", shared=False)


@pytest.fixture
def step_clock():
    """Factory for deterministic millisecond clocks."""
    return StepClock


@pytest.fixture
def iv_source():
    return TimeBasedIVSource(clock=StepClock())


@pytest.fixture
def indexer(cipher):
    return KeyIndexer(cipher, master_iv=1_600_000_000_000)


@pytest.fixture
def prefs():
    """Initialized handle on a fresh in-memory namespace."""
    handle = AesPrefs(log_mode=LogMode.DEFAULT)
    handle.init("com.example.test", "pw")
    return handle
