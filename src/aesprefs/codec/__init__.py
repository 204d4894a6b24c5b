"""Encryption and encoding of aesprefs records.

    - cipher: AES-256-CBC text cipher keyed by a password
    - ivs: 64-bit IV seed sources
    - keys: deterministic key-name encryption under the master IV
    - values: typed scalar entries with per-write IVs
    - arrays: string arrays as indexed sub-records
"""

from aesprefs.codec.arrays import ArrayCodec
from aesprefs.codec.cipher import AesCbcCipher, decrypt, derive_key, encrypt, iv_from_seed
from aesprefs.codec.ivs import IVSource, RandomIVSource, TimeBasedIVSource, get_iv_source
from aesprefs.codec.keys import KeyIndexer
from aesprefs.codec.values import ValueCodec, ValueType

__all__ = [
    "AesCbcCipher",
    "ArrayCodec",
    "IVSource",
    "KeyIndexer",
    "RandomIVSource",
    "TimeBasedIVSource",
    "ValueCodec",
    "ValueType",
    "decrypt",
    "derive_key",
    "encrypt",
    "get_iv_source",
    "iv_from_seed",
]
