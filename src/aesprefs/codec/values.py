"""Typed scalar entries.

A scalar entry is two backing-store records::

    record[encrypt(key, master_iv)]       = encrypt(format(value), entry_iv)
    record[encrypt(key, master_iv) + "="] = entry_iv   (plain integer)

A fresh entry IV is drawn on every write, so rewriting the same value still
changes the stored ciphertext. Reads return a :class:`DecodeResult` and
never raise for missing or corrupt data; collapsing a failed result into a
default is left to the caller.
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Callable

from aesprefs.backends.base import BackingStore
from aesprefs.base import DecodeResult, EncryptionError
from aesprefs.codec.cipher import AesCbcCipher
from aesprefs.codec.ivs import IVSource
from aesprefs.codec.keys import KeyIndexer

INT_MIN, INT_MAX = -(2**31), 2**31 - 1
LONG_MIN, LONG_MAX = -(2**63), 2**63 - 1

_INTEGER = re.compile(r"[+-]?[0-9]+")
_FLOAT = re.compile(
    r"[+-]?(?:NaN|Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)"
)
_FLOAT_SUFFIX = re.compile(r"(?<=[0-9.])[fFdD]$")


# =============================================================================
# Formatting and parsing
# =============================================================================


def _check_range(value: int, low: int, high: int, kind: str) -> int:
    if not low <= value <= high:
        raise ValueError(f"{value} is out of range for {kind} [{low}, {high}]")
    return value


def format_int(value: int) -> str:
    return str(_check_range(int(value), INT_MIN, INT_MAX, "int"))


def format_long(value: int) -> str:
    return str(_check_range(int(value), LONG_MIN, LONG_MAX, "long"))


def format_float(value: float) -> str:
    """Shortest round-trip text; NaN and infinities use their long names."""
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def _parse_integer(text: str, low: int, high: int, kind: str) -> int:
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"Not an {kind}: {text!r}")
    return _check_range(int(text), low, high, kind)


def parse_int(text: str) -> int:
    """Parse a signed 32-bit decimal integer. Whitespace is not allowed."""
    return _parse_integer(text, INT_MIN, INT_MAX, "int")


def parse_long(text: str) -> int:
    """Parse a signed 64-bit decimal integer."""
    return _parse_integer(text, LONG_MIN, LONG_MAX, "long")


def parse_float(text: str) -> float:
    """Parse decimal floating point text.

    Accepts ASCII digits with optional sign, point and exponent, the exact
    words ``NaN`` and ``Infinity``, and a trailing ``f``/``d`` type suffix
    after a digit or point. Surrounding whitespace is ignored. Spellings
    that only Python accepts (``inf``, ``nan``, digit-group underscores,
    non-ASCII digits) are rejected.
    """
    stripped = _FLOAT_SUFFIX.sub("", text.strip())
    if not _FLOAT.fullmatch(stripped):
        raise ValueError(f"Not a float: {text!r}")
    return float(stripped)


def parse_bool(text: str) -> bool:
    """True only for case-insensitive "true"; any other text is False."""
    return text.lower() == "true"


class ValueType(str, Enum):
    """Scalar types an entry can be written and read as."""

    STRING = "string"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"

    def render(self, value: Any) -> str:
        """Render a value as the text that gets encrypted."""
        return _FORMATTERS[self](value)

    def parse(self, text: str) -> Any:
        """Parse decrypted text.

        Raises:
            ValueError: If the text is not valid for this type.
        """
        return _PARSERS[self](text)

    @classmethod
    def from_string(cls, value: str) -> "ValueType":
        aliases = {"str": cls.STRING, "integer": cls.INT, "bool": cls.BOOLEAN}
        key = value.strip().lower()
        if key in aliases:
            return aliases[key]
        return cls(key)


_FORMATTERS: dict[ValueType, Callable[[Any], str]] = {
    ValueType.STRING: str,
    ValueType.INT: format_int,
    ValueType.LONG: format_long,
    ValueType.FLOAT: format_float,
    ValueType.DOUBLE: format_float,
    ValueType.BOOLEAN: format_bool,
}

_PARSERS: dict[ValueType, Callable[[str], Any]] = {
    ValueType.STRING: str,
    ValueType.INT: parse_int,
    ValueType.LONG: parse_long,
    ValueType.FLOAT: parse_float,
    ValueType.DOUBLE: parse_float,
    ValueType.BOOLEAN: parse_bool,
}


# =============================================================================
# Codec
# =============================================================================


class ValueCodec:
    """Reads and writes encrypted scalar entries in a backing store.

    Args:
        backend: Store receiving the encrypted records.
        cipher: Cipher bound to the store password.
        indexer: Key-name encryption under the master IV.
        iv_source: Source of per-write entry IVs.
    """

    def __init__(
        self,
        backend: BackingStore[Any],
        cipher: AesCbcCipher,
        indexer: KeyIndexer,
        iv_source: IVSource,
    ) -> None:
        self._backend = backend
        self._cipher = cipher
        self._indexer = indexer
        self._iv_source = iv_source

    def exists(self, key: str) -> bool:
        """Whether a value record exists under the encrypted name of ``key``."""
        return self._backend.contains(self._indexer.encrypt_key_name(key))

    def put(self, key: str, value: Any, value_type: ValueType = ValueType.STRING) -> int:
        """Encrypt and store ``value`` under ``key``.

        Returns:
            The entry IV used for this write.

        Raises:
            ValueError: If the value does not fit the requested type.
        """
        text = value_type.render(value)
        iv = self._iv_source.next()
        name = self._indexer.encrypt_key_name(key)

        self._backend.put(name, self._cipher.encrypt(text, iv))
        self._backend.put_int(self._indexer.iv_record(key), iv)
        return iv

    def read(self, key: str, value_type: ValueType = ValueType.STRING) -> DecodeResult[Any]:
        """Locate, decrypt and parse the entry stored under ``key``."""
        name = self._indexer.encrypt_key_name(key)
        iv = self._backend.get_int(self._indexer.iv_record(key), 0)

        token = self._backend.get(name)
        if token is None:
            return DecodeResult.not_found()

        try:
            text = self._cipher.decrypt(token, iv)
            return DecodeResult.success(value_type.parse(text))
        except (EncryptionError, ValueError) as e:
            return DecodeResult.failure(e)

    def remove(self, key: str) -> bool:
        """Remove the value and IV records of ``key``."""
        removed = self._backend.remove(self._indexer.encrypt_key_name(key))
        return self._backend.remove(self._indexer.iv_record(key)) or removed
