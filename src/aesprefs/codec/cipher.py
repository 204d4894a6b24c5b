"""AES-256-CBC text cipher used for both key names and values.

The password is hashed once with SHA-256 and the digest is used directly as
the AES-256 key. The IV is built from a 64-bit integer seed written
big-endian into the first 8 bytes of a 16-byte zero buffer, so the IV space
is 2**64 and its entropy comes entirely from how the caller picks the seed.

Ciphertext is base64-encoded (standard alphabet, padded, no line breaks) so
it can be stored as text in any backing store.

Example:
    >>> cipher = AesCbcCipher("secret")
    >>> token = cipher.encrypt("hello", 1700000000000)
    >>> cipher.decrypt(token, 1700000000000)
    'hello'
"""

from __future__ import annotations

import base64
import binascii
import hashlib

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from aesprefs.base import DecryptionError, EncryptionError

KEY_SIZE = 32  # AES-256
BLOCK_SIZE = 16
SEED_SIZE = 8


def derive_key(password: str) -> bytes:
    """Derive the AES-256 key from a password (single SHA-256 pass, no salt)."""
    return hashlib.sha256(password.encode("utf-8")).digest()


def iv_from_seed(seed: int) -> bytes:
    """Build the 16-byte CBC IV for a signed 64-bit seed.

    Raises:
        EncryptionError: If the seed does not fit in a signed 64-bit integer.
    """
    try:
        head = int(seed).to_bytes(SEED_SIZE, "big", signed=True)
    except OverflowError as e:
        raise EncryptionError(f"IV seed out of 64-bit range: {seed}") from e
    return head + bytes(BLOCK_SIZE - SEED_SIZE)


class AesCbcCipher:
    """Encrypts and decrypts text with a password-derived AES-256-CBC key.

    The key is derived once at construction; each call only builds the IV.
    """

    def __init__(self, password: str) -> None:
        if not isinstance(password, str):
            raise EncryptionError("Password must be a string")
        self._key = derive_key(password)

    def _cipher(self, seed: int) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(iv_from_seed(seed)))

    def encrypt(self, plaintext: str, seed: int) -> str:
        """Encrypt text and return it base64-encoded.

        Args:
            plaintext: Text to encrypt.
            seed: 64-bit IV seed.

        Returns:
            Base64 ciphertext.

        Raises:
            EncryptionError: If the text cannot be encoded or encrypted.
        """
        try:
            data = plaintext.encode("utf-8")
        except (AttributeError, UnicodeEncodeError) as e:
            raise EncryptionError(f"Cannot encode value for encryption: {e}") from e

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(data) + padder.finalize()

        encryptor = self._cipher(seed).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(ciphertext).decode("ascii")

    def decrypt(self, token: str, seed: int) -> str:
        """Decrypt base64 ciphertext produced by :meth:`encrypt`.

        Args:
            token: Base64 ciphertext.
            seed: The 64-bit IV seed the text was encrypted with.

        Returns:
            The plaintext.

        Raises:
            DecryptionError: If the token is malformed, the padding is wrong
                (wrong password or IV) or the result is not UTF-8.
        """
        try:
            ciphertext = base64.b64decode(token)
        except (binascii.Error, TypeError, ValueError) as e:
            raise DecryptionError(f"Malformed ciphertext: {e}") from e

        if not ciphertext or len(ciphertext) % BLOCK_SIZE:
            raise DecryptionError(
                f"Ciphertext length {len(ciphertext)} is not a positive "
                f"multiple of {BLOCK_SIZE}"
            )

        try:
            decryptor = self._cipher(seed).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionError(f"Bad padding: {e}") from e

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(f"Decrypted bytes are not UTF-8: {e}") from e


def encrypt(password: str, plaintext: str, seed: int) -> str:
    """Encrypt ``plaintext`` under ``password`` with the IV built from ``seed``."""
    return AesCbcCipher(password).encrypt(plaintext, seed)


def decrypt(password: str, token: str, seed: int) -> str:
    """Decrypt ``token`` under ``password`` with the IV built from ``seed``."""
    return AesCbcCipher(password).decrypt(token, seed)
