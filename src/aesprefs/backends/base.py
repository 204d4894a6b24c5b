"""Backing store contract.

A backing store is a flat, unencrypted, persistent key-value map scoped by a
namespace. It knows nothing about encryption: aesprefs hands it already
encrypted record names and values (text) or plain integers (IV seeds and
array sizes).

Implementations only provide five primitives (``_read``, ``_write``,
``_delete``, ``_names``, ``_clear``); typed access, lazy initialization and
change notification live here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)


#: Called after each change with the record name and its new value
#: (``None`` when the record was removed).
ChangeListener = Callable[[str, Any], None]

MISSING = object()


@dataclass
class BackendConfig:
    """Base configuration for all backing stores.

    Attributes:
        namespace: Identity scope (application/package) of the records.
    """

    namespace: str = "default"


ConfigT = TypeVar("ConfigT", bound=BackendConfig)


class BackingStore(ABC, Generic[ConfigT]):
    """Abstract base class for namespace-scoped key-value stores."""

    name: str = "base"

    def __init__(self, config: ConfigT | None = None) -> None:
        self._config = config or self._default_config()
        self._initialized = False
        self._listeners: list[ChangeListener] = []

    @classmethod
    @abstractmethod
    def _default_config(cls) -> ConfigT:
        """Create default configuration for this backend."""
        pass

    @property
    def config(self) -> ConfigT:
        return self._config

    @property
    def namespace(self) -> str:
        return self._config.namespace

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        """Load or connect the backend. Called automatically on first use."""
        if not self._initialized:
            self._do_initialize()
            self._initialized = True

    @abstractmethod
    def _do_initialize(self) -> None:
        pass

    def close(self) -> None:
        """Release resources. Override in backends that hold any."""
        pass

    def __enter__(self) -> "BackingStore[ConfigT]":
        self.initialize()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    @abstractmethod
    def _read(self, name: str) -> Any:
        """Return the stored value, or ``MISSING`` if absent."""
        pass

    @abstractmethod
    def _write(self, name: str, value: str | int) -> None:
        pass

    @abstractmethod
    def _delete(self, name: str) -> bool:
        """Remove a record. Returns True if it existed."""
        pass

    @abstractmethod
    def _names(self) -> list[str]:
        pass

    @abstractmethod
    def _clear(self) -> None:
        pass

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the record as text, or ``default`` if absent."""
        self.initialize()
        value = self._read(name)
        if value is MISSING:
            return default
        return str(value)

    def put(self, name: str, value: str) -> None:
        """Store a text record."""
        self.initialize()
        self._write(name, str(value))
        self._notify(name, value)

    def get_int(self, name: str, default: int = 0) -> int:
        """Return the record as an integer.

        Absent records and records whose text is not an integer both yield
        ``default``.
        """
        self.initialize()
        value = self._read(name)
        if value is MISSING:
            return default
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(str(value).strip())
        except ValueError:
            return default

    def put_int(self, name: str, value: int) -> None:
        """Store a plain integer record."""
        self.initialize()
        self._write(name, int(value))
        self._notify(name, int(value))

    def contains(self, name: str) -> bool:
        self.initialize()
        return self._read(name) is not MISSING

    def remove(self, name: str) -> bool:
        """Remove one record. Returns True if it existed."""
        self.initialize()
        removed = self._delete(name)
        if removed:
            self._notify(name, None)
        return removed

    def keys(self) -> list[str]:
        """List every record name in the namespace.

        Raises:
            BackendUnavailableError: If the records cannot be enumerated.
        """
        self.initialize()
        return self._names()

    def items(self) -> list[tuple[str, str]]:
        """List every (record name, stored text) pair in the namespace."""
        return [(name, self.get(name, "")) for name in self.keys()]

    def clear(self) -> None:
        """Remove every record in the namespace.

        Raises:
            BackendUnavailableError: If the records cannot be cleared.
        """
        self.initialize()
        names = self._names() if self._listeners else []
        self._clear()
        for name in names:
            self._notify(name, None)

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.contains(name)

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, name: str, value: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(name, value)
            except Exception as e:
                logger.warning(f"Change listener {listener!r} failed for '{name}': {e}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self.namespace!r})"
