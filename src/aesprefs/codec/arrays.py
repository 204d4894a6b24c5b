"""Ordered string arrays stored as indexed sub-records.

An array of N strings under ``key`` is N + 2 backing-store records, all
encrypted with one entry IV::

    record[name + "_size"] = N          (plain integer)
    record[name + "="]     = entry_iv   (plain integer)
    record[name + "_" + i] = encrypt(values[i], entry_iv)   for i in [0, N)

where ``name = encrypt(key, master_iv)``. Writes are not atomic: a process
killed during :meth:`ArrayCodec.store_array` can leave the size and element
records out of step. Reads fail fast in that case and return an empty list
rather than a prefix.
"""

from __future__ import annotations

from typing import Any, Iterable

from aesprefs.backends.base import BackingStore
from aesprefs.base import DecodeResult, EncryptionError
from aesprefs.codec.cipher import AesCbcCipher
from aesprefs.codec.ivs import IVSource
from aesprefs.codec.keys import KeyIndexer


class ArrayCodec:
    """Reads and writes encrypted string arrays in a backing store."""

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

    def store_array(self, key: str, values: Iterable[str]) -> int:
        """Encrypt and store ``values`` under ``key``.

        Element records beyond the new size left over from a longer previous
        array are not removed; the size record bounds every read.

        Returns:
            The entry IV shared by all elements.
        """
        items = [str(v) for v in values]
        iv = self._iv_source.next()

        self._backend.put_int(self._indexer.size_record(key), len(items))
        self._backend.put_int(self._indexer.iv_record(key), iv)
        for index, item in enumerate(items):
            self._backend.put(
                self._indexer.element_record(key, index),
                self._cipher.encrypt(item, iv),
            )
        return iv

    def read_array(self, key: str) -> DecodeResult[list[str]]:
        """Read every element of the array stored under ``key``.

        A missing size record reads as an empty array. The first missing or
        undecryptable element makes the whole read fail.
        """
        size = self._backend.get_int(self._indexer.size_record(key), 0)
        iv = self._backend.get_int(self._indexer.iv_record(key), 0)

        values: list[str] = []
        for index in range(size):
            record = self._indexer.element_record(key, index)
            token = self._backend.get(record)
            if token is None:
                return DecodeResult.failure(
                    LookupError(f"element {index} of {size} is missing")
                )
            try:
                values.append(self._cipher.decrypt(token, iv))
            except EncryptionError as e:
                return DecodeResult.failure(e)
        return DecodeResult.success(values)

    def restore_array(self, key: str) -> list[str]:
        """Return the array stored under ``key``, or ``[]`` if it is incomplete."""
        return self.read_array(key).value_or([])

    def size(self, key: str) -> int:
        """Element count recorded for ``key`` (0 if none)."""
        return self._backend.get_int(self._indexer.size_record(key), 0)
