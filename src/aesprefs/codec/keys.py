"""Deterministic encryption of setting names into storage record names.

Key names are always encrypted with the namespace's master IV, never with a
per-call IV, so the same plaintext key maps to the same record name for one
(password, master IV) pair. That is what lets a later read find the record
an earlier write created without keeping a separate index.
"""

from __future__ import annotations

import functools
from typing import Any

from aesprefs.base import IV_SUFFIX, SIZE_SUFFIX
from aesprefs.codec.cipher import AesCbcCipher

DEFAULT_CACHE_SIZE = 1024


class KeyIndexer:
    """Maps plaintext setting names to encrypted record names.

    Args:
        cipher: Cipher bound to the store password.
        master_iv: The namespace's master IV seed.
        cache_size: Most recently used key names kept encrypted in memory.
    """

    def __init__(
        self,
        cipher: AesCbcCipher,
        master_iv: int,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        self._cipher = cipher
        self._master_iv = master_iv
        self._encrypt = functools.lru_cache(maxsize=cache_size)(self._encrypt_uncached)

    @property
    def master_iv(self) -> int:
        return self._master_iv

    def _encrypt_uncached(self, key: str) -> str:
        return self._cipher.encrypt(key, self._master_iv)

    def encrypt_key_name(self, key: str) -> str:
        """Return the record name holding the value of ``key``."""
        return self._encrypt(key)

    def cache_info(self) -> Any:
        """Hit/miss statistics of the key-name cache."""
        return self._encrypt.cache_info()

    def raw_encrypted_key(self, key: str) -> str:
        """Return the encrypted key name with the IV sentinel trimmed.

        The IV record name is the encrypted key plus a one-character
        sentinel; trimming it yields the value record name.
        """
        return self.iv_record(key)[: -len(IV_SUFFIX)]

    def iv_record(self, key: str) -> str:
        """Record name of the entry IV of ``key``."""
        return self.encrypt_key_name(key) + IV_SUFFIX

    def size_record(self, key: str) -> str:
        """Record name of the element count of array ``key``."""
        return self.encrypt_key_name(key) + SIZE_SUFFIX

    def element_record(self, key: str, index: int) -> str:
        """Record name of element ``index`` of array ``key``."""
        return f"{self.encrypt_key_name(key)}_{index}"
