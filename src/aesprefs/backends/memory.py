"""In-memory backing store.

Records live in a process-wide dictionary keyed by namespace, so two store
instances bound to the same namespace see the same records, the way a
platform preferences registry behaves within one process. Nothing survives
the process.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, ClassVar

from aesprefs.backends.base import MISSING, BackendConfig, BackingStore


@dataclass
class MemoryConfig(BackendConfig):
    """Configuration for the memory backend.

    Attributes:
        shared: Share records with other instances of the same namespace.
            When False the instance gets a private dictionary.
    """

    shared: bool = True


class MemoryBackingStore(BackingStore[MemoryConfig]):
    """Dictionary-backed store, mainly for tests and short-lived tools.

    Example:
        >>> store = MemoryBackingStore(namespace="com.example.app")
        >>> store.put_int("counter", 3)
        >>> store.get("counter")
        '3'
    """

    name = "memory"

    _registry: ClassVar[dict[str, dict[str, Any]]] = {}
    _registry_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, namespace: str = "default", shared: bool = True, **kwargs: Any) -> None:
        super().__init__(MemoryConfig(namespace=namespace, shared=shared))
        self._data: dict[str, Any] = {}

    @classmethod
    def _default_config(cls) -> MemoryConfig:
        return MemoryConfig()

    @classmethod
    def reset_shared(cls) -> None:
        """Drop every shared namespace."""
        with cls._registry_lock:
            cls._registry.clear()

    def _do_initialize(self) -> None:
        if self._config.shared:
            with self._registry_lock:
                self._data = self._registry.setdefault(self.namespace, {})

    def _read(self, name: str) -> Any:
        return self._data.get(name, MISSING)

    def _write(self, name: str, value: str | int) -> None:
        self._data[name] = value

    def _delete(self, name: str) -> bool:
        return self._data.pop(name, MISSING) is not MISSING

    def _names(self) -> list[str]:
        return list(self._data)

    def _clear(self) -> None:
        self._data.clear()
