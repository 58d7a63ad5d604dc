"""Symmetric encryption of stored kubeconfig documents.

AES-256-CBC with PKCS7 padding.  Every call to ``encrypt`` draws a fresh
128-bit IV, so encrypting the same document twice never yields the same
ciphertext.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import structlog
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher as _AESCipher
from cryptography.hazmat.primitives.ciphers import algorithms, modes

from trivyglass.errors import DecryptionError

_log = structlog.get_logger(component="crypto")

IV_BYTES = 16
KEY_BYTES = 32
_BLOCK_BITS = algorithms.AES.block_size


@dataclass(frozen=True)
class EncryptedPayload:
    """Ciphertext plus the IV it was produced with."""

    ciphertext: bytes
    iv: bytes


class Cipher:
    """Encrypts and decrypts credential documents with one process-wide key."""

    def __init__(self, key: bytes, using_default_key: bool = False) -> None:
        if len(key) != KEY_BYTES:
            raise ValueError(f"Encryption key must be {KEY_BYTES} bytes, got {len(key)}")
        self._key = key
        if using_default_key:
            _log.warning(
                "encryption_key_default_in_use",
                detail="ENCRYPTION_KEY is unset; stored credentials use the built-in development key",
            )

    def encrypt(self, plaintext: str) -> EncryptedPayload:
        iv = os.urandom(IV_BYTES)
        padder = padding.PKCS7(_BLOCK_BITS).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = _AESCipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        return EncryptedPayload(ciphertext=encryptor.update(padded) + encryptor.finalize(), iv=iv)

    def decrypt(self, ciphertext: bytes, iv: bytes) -> str:
        """Decrypt *ciphertext*.

        Raises:
            DecryptionError: the IV has the wrong size, the ciphertext is not
                block aligned, the padding is invalid (wrong key or corrupted
                data) or the plaintext is not UTF-8.
        """
        try:
            decryptor = _AESCipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            raise DecryptionError(f"Failed to decrypt credential: {exc}") from exc
