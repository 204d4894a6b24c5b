"""Encrypted preference store.

:class:`AesPrefs` is the entry point of the package. It binds a namespace
and a password to a backing store, resolves the namespace's master IV, and
exposes typed ``put_*``/``get_*`` accessors whose key names and values are
encrypted at rest.

Reads never raise for missing or corrupt data: a missing entry, a wrong
password or text that does not parse as the requested type all return the
caller's default. Writes propagate backing-store errors.

Every public method except the plain read-only properties runs under one
re-entrant lock per handle, so the read-then-write sequences (master IV
bootstrap, ``init_*`` helpers, launch counter) and the temporary log-mode
switches inside them are atomic with respect to other calls on the same
handle. Two handles or two processes sharing a namespace are not coordinated.

Example:
    >>> prefs = AesPrefs()
    >>> prefs.init("com.example.app", "s3cret")
    >>> prefs.put("name", "Ada")
    >>> prefs.get("name", "?")
    'Ada'
    >>> prefs.put_int("volume", 7)
    >>> prefs.get_int("volume", 0)
    7
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generator, Iterable, TypeVar

from aesprefs.backends import BackingStore, ChangeListener, get_backend
from aesprefs.base import (
    APP_LAUNCHES_KEY,
    INSTALLATION_DATE_KEY,
    MASTER_IV_KEY,
    BackendUnavailableError,
    ConfigError,
    LogMode,
    NotInitializedError,
)
from aesprefs.codec.arrays import ArrayCodec
from aesprefs.codec.cipher import AesCbcCipher
from aesprefs.codec.ivs import IVSource, TimeBasedIVSource, get_iv_source
from aesprefs.codec.keys import KeyIndexer
from aesprefs.codec.values import ValueCodec, ValueType
from aesprefs.config import PrefsConfig
from aesprefs.timing import ExecutionTimer, timed

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

BackendFactory = Callable[[str], BackingStore[Any]]


def _locked(method: F) -> F:
    @functools.wraps(method)
    def wrapper(self: "AesPrefs", *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


@dataclass
class _Binding:
    """Everything resolved by ``init`` for one namespace."""

    namespace: str
    backend: BackingStore[Any]
    indexer: KeyIndexer
    values: ValueCodec
    arrays: ArrayCodec


class AesPrefs:
    """Handle on one encrypted namespace of a backing store.

    Args:
        backend: Backend name for :func:`aesprefs.backends.get_backend`, a
            ready :class:`BackingStore`, or a callable mapping a namespace to
            a backing store.
        iv_source: Source of master and entry IVs (time-based by default).
        log_mode: Initial diagnostic verbosity.
        timer: Execution-time accumulator shared with other handles; a
            private one is created when omitted.
        clock: Milliseconds-since-epoch clock used for the installation date.
        **backend_options: Extra arguments for a named backend
            (e.g. ``base_path`` for "filesystem").
    """

    def __init__(
        self,
        backend: str | BackingStore[Any] | BackendFactory = "memory",
        iv_source: IVSource | None = None,
        log_mode: LogMode = LogMode.DEFAULT,
        timer: ExecutionTimer | None = None,
        clock: Callable[[], int] | None = None,
        **backend_options: Any,
    ) -> None:
        self._backend_factory = self._make_factory(backend, backend_options)
        self._iv_source = iv_source or TimeBasedIVSource()
        self._log_mode = log_mode
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._binding: _Binding | None = None
        self._lock = threading.RLock()
        self.timer = timer or ExecutionTimer()

    @staticmethod
    def _make_factory(
        backend: str | BackingStore[Any] | BackendFactory,
        options: dict[str, Any],
    ) -> BackendFactory:
        if isinstance(backend, BackingStore):
            store = backend

            def bound(namespace: str) -> BackingStore[Any]:
                if store.namespace != namespace:
                    raise ConfigError(
                        f"Backend is bound to namespace '{store.namespace}', "
                        f"cannot init '{namespace}'"
                    )
                return store

            return bound
        if isinstance(backend, str):
            return lambda namespace: get_backend(backend, namespace=namespace, **options)
        return backend

    @classmethod
    def from_config(cls, config: PrefsConfig) -> "AesPrefs":
        """Create and initialize a handle from a :class:`PrefsConfig`."""
        config.validate()
        backend_kwargs = config.backend_kwargs()
        backend_kwargs.pop("namespace")
        prefs = cls(
            backend=config.backend,
            iv_source=get_iv_source(config.iv_source),
            log_mode=config.log_mode,
            **backend_kwargs,
        )
        prefs.init(config.namespace, config.password or "")
        return prefs

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @_locked
    def init(self, namespace: str, password: str, log_mode: LogMode | None = None) -> None:
        """Bind a namespace and password, loading or minting the master IV.

        The master IV is read from the ``aes_iv`` record when present and
        reused; otherwise a new one is drawn from the IV source and persisted.
        Calling ``init`` again rebinds the handle.
        """
        if log_mode is not None:
            self._log_mode = log_mode
        if not self._log_mode.is_silent:
            logger.info(f"Initializing encrypted preferences for '{namespace}'")

        cipher = AesCbcCipher(password)
        backend = self._backend_factory(namespace)
        backend.initialize()

        if backend.contains(MASTER_IV_KEY):
            master_iv = backend.get_int(MASTER_IV_KEY, -1)
            if not self._log_mode.is_silent:
                logger.info(f"Reusing master IV of '{namespace}'")
        else:
            master_iv = self._iv_source.next()
            backend.put_int(MASTER_IV_KEY, master_iv)
            if not self._log_mode.is_silent:
                logger.warning(f"No master IV in '{namespace}', persisted a new one")

        indexer = KeyIndexer(cipher, master_iv)
        self._binding = _Binding(
            namespace=namespace,
            backend=backend,
            indexer=indexer,
            values=ValueCodec(backend, cipher, indexer, self._iv_source),
            arrays=ArrayCodec(backend, cipher, indexer, self._iv_source),
        )

    @_locked
    def init_complete_config(
        self,
        namespace: str,
        password: str,
        log_mode: LogMode | None = None,
    ) -> None:
        """``init`` plus launch-counter and installation-date bookkeeping."""
        self.init(namespace, password, log_mode)
        self.init_or_increment_launch_counter()
        self.init_installation_date()

    @_locked
    def close(self) -> None:
        if self._binding is not None:
            self._binding.backend.close()

    def __enter__(self) -> "AesPrefs":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _require(self, operation: str) -> _Binding:
        if self._binding is None:
            raise NotInitializedError(operation)
        return self._binding

    @property
    def is_initialized(self) -> bool:
        return self._binding is not None

    @property
    def namespace(self) -> str:
        return self._require("namespace").namespace

    @property
    def backend(self) -> BackingStore[Any]:
        """The backing store holding the encrypted records."""
        return self._require("backend").backend

    @property
    def master_iv(self) -> int:
        return self._require("master_iv").indexer.master_iv

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    @property
    def log_mode(self) -> LogMode:
        return self._log_mode

    @log_mode.setter
    @_locked
    def log_mode(self, mode: LogMode) -> None:
        self._log_mode = mode

    @_locked
    def set_log_mode(self, mode: LogMode) -> None:
        self._log_mode = mode

    @contextmanager
    def _quiet(self) -> Generator[None, None, None]:
        """Suppress diagnostics of nested accessor calls."""
        previous = self._log_mode
        self._log_mode = LogMode.NONE
        try:
            yield
        finally:
            self._log_mode = previous

    # -------------------------------------------------------------------------
    # Scalar accessors
    # -------------------------------------------------------------------------

    @_locked
    def contains(self, key: str) -> bool:
        """Whether an entry exists for ``key``."""
        return self._require("contains").values.exists(key)

    def _put(self, operation: str, key: str, value: Any, value_type: ValueType) -> None:
        binding = self._require(operation)
        binding.values.put(key, value, value_type)
        if self._log_mode.logs_set:
            logger.debug(f"{operation} {key} <- {value!r}")

    def _get(self, operation: str, key: str, default: Any, value_type: ValueType) -> Any:
        binding = self._require(operation)
        result = binding.values.read(key, value_type)

        if result.missing:
            if not self._log_mode.is_silent:
                logger.warning(f"Key '{key}' not found, returning default {default!r}")
        elif result.error is not None:
            if not self._log_mode.is_silent:
                logger.warning(
                    f"{operation}: cannot decode '{key}' ({result.error}), "
                    f"returning default {default!r}"
                )
        elif self._log_mode.logs_get:
            logger.debug(f"{operation} {key} -> {result.value!r}")

        return result.value_or(default)

    @timed
    @_locked
    def put_value(self, key: str, value: Any, value_type: ValueType) -> None:
        """Store ``value`` as ``value_type``."""
        self._put(f"put_{value_type.value}", key, value, value_type)

    @timed
    @_locked
    def get_value(self, key: str, default: Any, value_type: ValueType) -> Any:
        """Read ``key`` as ``value_type``, or ``default`` if missing or corrupt."""
        return self._get(f"get_{value_type.value}", key, default, value_type)

    @timed
    @_locked
    def put(self, key: str, value: str) -> None:
        self._put("put", key, value, ValueType.STRING)

    @timed
    @_locked
    def get(self, key: str, default: str) -> str:
        return self._get("get", key, default, ValueType.STRING)

    @timed
    @_locked
    def put_int(self, key: str, value: int) -> None:
        """Store a signed 32-bit integer.

        Raises:
            ValueError: If the value is outside the 32-bit range.
        """
        self._put("put_int", key, value, ValueType.INT)

    @timed
    @_locked
    def get_int(self, key: str, default: int) -> int:
        return self._get("get_int", key, default, ValueType.INT)

    @timed
    @_locked
    def put_long(self, key: str, value: int) -> None:
        """Store a signed 64-bit integer.

        Raises:
            ValueError: If the value is outside the 64-bit range.
        """
        self._put("put_long", key, value, ValueType.LONG)

    @timed
    @_locked
    def get_long(self, key: str, default: int) -> int:
        return self._get("get_long", key, default, ValueType.LONG)

    @timed
    @_locked
    def put_float(self, key: str, value: float) -> None:
        self._put("put_float", key, value, ValueType.FLOAT)

    @timed
    @_locked
    def get_float(self, key: str, default: float) -> float:
        return self._get("get_float", key, default, ValueType.FLOAT)

    @timed
    @_locked
    def put_double(self, key: str, value: float) -> None:
        self._put("put_double", key, value, ValueType.DOUBLE)

    @timed
    @_locked
    def get_double(self, key: str, default: float) -> float:
        return self._get("get_double", key, default, ValueType.DOUBLE)

    @timed
    @_locked
    def put_boolean(self, key: str, value: bool) -> None:
        self._put("put_boolean", key, value, ValueType.BOOLEAN)

    @timed
    @_locked
    def get_boolean(self, key: str, default: bool) -> bool:
        """Read a boolean.

        A missing or undecryptable entry yields ``default``; an entry that
        decrypts to anything other than "true" yields ``False``.
        """
        return self._get("get_boolean", key, default, ValueType.BOOLEAN)

    @_locked
    def remove(self, key: str) -> bool:
        """Remove the value and IV records of a scalar entry."""
        return self._require("remove").values.remove(key)

    # -------------------------------------------------------------------------
    # Arrays
    # -------------------------------------------------------------------------

    @timed
    @_locked
    def store_array(self, key: str, values: Iterable[str]) -> None:
        """Store an ordered sequence of strings under ``key``."""
        items = list(values)
        self._require("store_array").arrays.store_array(key, items)
        if self._log_mode.logs_set:
            logger.debug(f"store_array {key} <- {len(items)} items")

    @timed
    @_locked
    def restore_array(self, key: str) -> list[str]:
        """Read the array stored under ``key``.

        Returns ``[]`` when no array exists and also when any element is
        missing or undecryptable; a partial list is never returned.
        """
        result = self._require("restore_array").arrays.read_array(key)
        if result.error is not None and not self._log_mode.is_silent:
            logger.warning(f"restore_array: '{key}' is incomplete ({result.error}), returning []")
        elif result.ok and self._log_mode.logs_get:
            logger.debug(f"restore_array {key} -> {len(result.value or [])} items")
        return result.value_or([])

    # -------------------------------------------------------------------------
    # Set-if-absent helpers
    # -------------------------------------------------------------------------

    def _init_value(self, operation: str, key: str, value: Any, value_type: ValueType) -> bool:
        binding = self._require(operation)
        if binding.values.exists(key):
            if not self._log_mode.is_silent:
                logger.warning(f"{operation} skipped, '{key}' already exists")
            return False

        with self._quiet():
            self.put_value(key, value, value_type)
        if self._log_mode is LogMode.ALL:
            logger.info(f"{operation}: '{key}' set to {value!r}")
        return True

    @_locked
    def init_string(self, key: str, value: str) -> bool:
        """Store ``value`` only if ``key`` has no entry yet.

        Returns:
            True if the value was written.
        """
        return self._init_value("init_string", key, value, ValueType.STRING)

    @_locked
    def init_int(self, key: str, value: int) -> bool:
        return self._init_value("init_int", key, value, ValueType.INT)

    @_locked
    def init_long(self, key: str, value: int) -> bool:
        return self._init_value("init_long", key, value, ValueType.LONG)

    @_locked
    def init_float(self, key: str, value: float) -> bool:
        return self._init_value("init_float", key, value, ValueType.FLOAT)

    @_locked
    def init_double(self, key: str, value: float) -> bool:
        return self._init_value("init_double", key, value, ValueType.DOUBLE)

    @_locked
    def init_boolean(self, key: str, value: bool) -> bool:
        return self._init_value("init_boolean", key, value, ValueType.BOOLEAN)

    # -------------------------------------------------------------------------
    # Launch counter and installation date
    # -------------------------------------------------------------------------

    @_locked
    def init_or_increment_launch_counter(self) -> int:
        """Write 0 on the first launch, otherwise add one.

        Returns:
            The stored counter value.
        """
        binding = self._require("init_or_increment_launch_counter")
        with self._quiet():
            if not binding.values.exists(APP_LAUNCHES_KEY):
                count = 0
            else:
                count = self.get_int(APP_LAUNCHES_KEY, 0) + 1
            self.put_int(APP_LAUNCHES_KEY, count)
        return count

    @_locked
    def get_launch_counter(self) -> int:
        return self.get_int(APP_LAUNCHES_KEY, 0)

    @_locked
    def init_installation_date(self) -> int:
        """Record the current time as installation date unless already set.

        Returns:
            The stored installation date in epoch milliseconds.
        """
        binding = self._require("init_installation_date")
        with self._quiet():
            if not binding.values.exists(INSTALLATION_DATE_KEY):
                self.put_long(INSTALLATION_DATE_KEY, self._clock())
            return self.get_long(INSTALLATION_DATE_KEY, 0)

    @_locked
    def get_installation_date(self) -> int:
        """Installation date in epoch milliseconds (0 if never recorded)."""
        return self.get_long(INSTALLATION_DATE_KEY, 0)

    @_locked
    def format_installation_date(self, fmt: str = DEFAULT_DATE_FORMAT) -> str:
        """Installation date as local time text, or "" if never recorded."""
        with self._quiet():
            millis = self.get_installation_date()
        if not millis:
            return ""
        return datetime.fromtimestamp(millis / 1000).strftime(fmt)

    # -------------------------------------------------------------------------
    # Bulk operations and diagnostics
    # -------------------------------------------------------------------------

    @_locked
    def count_entries(self) -> int:
        """Number of raw records in the namespace.

        This counts records, not settings: each scalar contributes two
        (value and IV), an array of N elements contributes N + 2, and the
        master IV record counts too.
        """
        binding = self._require("count_entries")
        try:
            return len(binding.backend.keys())
        except BackendUnavailableError as e:
            logger.error(f"count_entries failed: {e}")
            return 0

    @_locked
    def get_encrypted_content(self) -> str:
        """Dump every raw record as ``"<name> : <stored value>"`` lines."""
        binding = self._require("get_encrypted_content")
        try:
            records = binding.backend.items()
        except BackendUnavailableError as e:
            logger.error(f"get_encrypted_content failed: {e}")
            return ""
        return "".join(f"{name} : {value}\n" for name, value in records)

    @_locked
    def delete_all(self) -> bool:
        """Remove every record of the namespace, master IV included.

        The handle keeps its in-memory master IV; call ``init`` again to mint
        and persist a new one.

        Returns:
            True on success, False if the backing store could not be cleared.
        """
        binding = self._require("delete_all")
        try:
            binding.backend.clear()
        except BackendUnavailableError as e:
            logger.error(f"delete_all failed: {e}")
            return False
        if not self._log_mode.is_silent:
            logger.info(f"Deleted all records of '{binding.namespace}'")
        return True

    @_locked
    def get_encrypted_key(self, key: str) -> str:
        """The record name ``key`` is stored under."""
        return self._require("get_encrypted_key").indexer.raw_encrypted_key(key)

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    @_locked
    def register_change_listener(self, listener: ChangeListener) -> None:
        """Forward backing-store change events to ``listener``.

        Events carry encrypted record names and stored (encrypted) values.
        """
        self._require("register_change_listener").backend.add_change_listener(listener)

    @_locked
    def unregister_change_listener(self, listener: ChangeListener) -> None:
        self._require("unregister_change_listener").backend.remove_change_listener(listener)

    # -------------------------------------------------------------------------
    # Execution time
    # -------------------------------------------------------------------------

    @_locked
    def get_execution_time(self) -> float:
        """Cumulative time spent in timed accessors, in milliseconds."""
        return self.timer.elapsed_ms

    @_locked
    def reset_execution_time(self) -> None:
        self.timer.reset()

    def __repr__(self) -> str:
        state = f"namespace={self._binding.namespace!r}" if self._binding else "uninitialized"
        return f"AesPrefs({state}, log_mode={self._log_mode.value})"


# =============================================================================
# Default handle
# =============================================================================

_default_prefs: AesPrefs | None = None
_default_lock = threading.Lock()


def get_prefs() -> AesPrefs:
    """Return the process-wide default handle, creating it on first use.

    The default handle still has to be initialized with ``init``.
    """
    global _default_prefs
    with _default_lock:
        if _default_prefs is None:
            _default_prefs = AesPrefs()
        return _default_prefs


def set_prefs(prefs: AesPrefs | None) -> None:
    """Replace (or with ``None``, drop) the process-wide default handle."""
    global _default_prefs
    with _default_lock:
        _default_prefs = prefs
