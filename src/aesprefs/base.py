"""Shared exceptions, enums, and result types for aesprefs.

Every other module imports its error types and the ``LogMode`` switch from
here, so this module has no dependencies inside the package.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


# =============================================================================
# Reserved record names
# =============================================================================

#: Sentinel record holding the namespace's master IV (plain integer).
MASTER_IV_KEY = "aes_iv"

#: Plaintext key of the launch counter entry.
APP_LAUNCHES_KEY = "aes_app_launches"

#: Plaintext key of the installation timestamp entry (epoch millis).
INSTALLATION_DATE_KEY = "aes_inst_date"

#: Suffix of the IV record stored next to each encrypted key name.
IV_SUFFIX = "="

#: Suffix of the element-count record of an array entry.
SIZE_SUFFIX = "_size"


# =============================================================================
# Exceptions
# =============================================================================


class PrefsError(Exception):
    """Base exception for all aesprefs errors."""

    pass


class EncryptionError(PrefsError):
    """Raised when a value or key name cannot be encrypted."""

    pass


class DecryptionError(EncryptionError):
    """Raised when stored ciphertext cannot be turned back into text.

    Covers malformed base64, bad padding (usually a wrong password or a
    wrong IV) and invalid UTF-8 after decryption.
    """

    pass


class BackendError(PrefsError):
    """Base exception for backing store failures."""

    def __init__(self, backend: str, message: str) -> None:
        self.backend = backend
        super().__init__(f"[{backend}] {message}")


class BackendUnavailableError(BackendError):
    """Raised when the backing store cannot enumerate, read or clear records."""

    pass


class NotInitializedError(PrefsError):
    """Raised when an accessor is used before ``init`` bound a namespace."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"Cannot call '{operation}' before init(namespace, password)"
        )


class ConfigError(PrefsError):
    """Invalid aesprefs configuration."""

    pass


# =============================================================================
# Enums
# =============================================================================


class LogMode(str, Enum):
    """Controls which store operations emit diagnostic log records.

    ``NONE`` silences everything except backend failures. ``DEFAULT`` logs
    initialization and missing keys. ``GET`` and ``SET`` additionally log
    reads or writes, ``ALL`` logs both.
    """

    NONE = "none"
    DEFAULT = "default"
    GET = "get"
    SET = "set"
    ALL = "all"

    @classmethod
    def from_string(cls, value: str) -> "LogMode":
        """Convert a case-insensitive name to a LogMode.

        Raises:
            ValueError: If the name does not match any mode.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown log mode '{value}'. Valid modes: {valid}")

    @property
    def is_silent(self) -> bool:
        return self is LogMode.NONE

    @property
    def logs_get(self) -> bool:
        """Whether successful reads are logged."""
        return self in (LogMode.GET, LogMode.ALL)

    @property
    def logs_set(self) -> bool:
        """Whether writes are logged."""
        return self in (LogMode.SET, LogMode.ALL)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class DecodeResult(Generic[T]):
    """Outcome of reading one encrypted entry.

    Exactly one of three states holds: the entry was decoded (``ok``), the
    entry does not exist (``missing``), or it exists but could not be
    decrypted or parsed (``error`` is set).

    Attributes:
        value: The decoded value when ``ok``.
        missing: True if no record exists under the encrypted key name.
        error: The decrypt or parse failure, if any.
    """

    value: T | None = None
    missing: bool = False
    error: Exception | None = None

    @classmethod
    def success(cls, value: T) -> "DecodeResult[T]":
        return cls(value=value)

    @classmethod
    def not_found(cls) -> "DecodeResult[T]":
        return cls(missing=True)

    @classmethod
    def failure(cls, error: Exception) -> "DecodeResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return not self.missing and self.error is None

    def value_or(self, default: T) -> T:
        """Return the decoded value, or ``default`` if missing or failed."""
        if self.ok:
            return self.value  # type: ignore[return-value]
        return default
