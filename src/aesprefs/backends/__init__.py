"""Backing stores for aesprefs.

A backing store holds the already-encrypted records of one namespace.
Built-in backends:

    - "memory": process-local dictionary (default)
    - "filesystem": one JSON document per namespace

Example:
    >>> from aesprefs.backends import get_backend
    >>> store = get_backend("filesystem", base_path="~/.config/myapp", namespace="myapp")
"""

from __future__ import annotations

from typing import Any, Callable

from aesprefs.backends.base import BackendConfig, BackingStore, ChangeListener, MISSING
from aesprefs.backends.filesystem import FileSystemBackingStore, FileSystemConfig
from aesprefs.backends.memory import MemoryBackingStore, MemoryConfig
from aesprefs.base import BackendError

BackendConstructor = Callable[..., BackingStore[Any]]

_backend_registry: dict[str, BackendConstructor] = {
    MemoryBackingStore.name: MemoryBackingStore,
    FileSystemBackingStore.name: FileSystemBackingStore,
}

_ALIASES = {"fs": "filesystem", "file": "filesystem", "mem": "memory"}


def register_backend(name: str) -> Callable[[BackendConstructor], BackendConstructor]:
    """Decorator to register a backing store under a name.

    Example:
        >>> @register_backend("redis")
        ... class RedisBackingStore(BackingStore):
        ...     ...
    """

    def decorator(cls: BackendConstructor) -> BackendConstructor:
        _backend_registry[name.lower().strip()] = cls
        return cls

    return decorator


def get_backend(backend: str = "memory", **kwargs: Any) -> BackingStore[Any]:
    """Create a backing store instance.

    Args:
        backend: Registered backend name.
        **kwargs: Backend options (``namespace``, ``base_path``, ...).

    Raises:
        BackendError: If no backend is registered under that name.
    """
    key = backend.lower().strip()
    key = _ALIASES.get(key, key)
    if key not in _backend_registry:
        raise BackendError(
            key,
            f"Unknown backend. Available backends: {', '.join(list_available_backends())}",
        )
    return _backend_registry[key](**kwargs)


def list_available_backends() -> list[str]:
    return sorted(_backend_registry)


__all__ = [
    "BackendConfig",
    "BackingStore",
    "ChangeListener",
    "MISSING",
    "FileSystemBackingStore",
    "FileSystemConfig",
    "MemoryBackingStore",
    "MemoryConfig",
    "get_backend",
    "register_backend",
    "list_available_backends",
]
