"""
AES-GCM encryption for stored OAuth access tokens.

Stored format: base64(iv[12 bytes] + ciphertext-with-tag). The key is the
configured string, right-padded with "0" or truncated to 32 bytes.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

IV_LENGTH = 12
KEY_LENGTH = 32


def derive_key(encryption_key: str) -> bytes:
    return encryption_key.ljust(KEY_LENGTH, "0").encode("utf-8")[:KEY_LENGTH]


class TokenCipher:
    """
    Encrypts and decrypts access tokens with one configured key.

    Example:
        cipher = TokenCipher("my-secret")
        stored = cipher.encrypt("abc123")
        assert cipher.decrypt(stored) == "abc123"
    """

    def __init__(self, encryption_key: str):
        self._aesgcm = AESGCM(derive_key(encryption_key))

    def encrypt(self, token: str) -> str:
        iv = os.urandom(IV_LENGTH)
        ciphertext = self._aesgcm.encrypt(iv, token.encode("utf-8"), None)
        return base64.b64encode(iv + ciphertext).decode("ascii")

    def decrypt(self, stored: str) -> str:
        """
        Decrypt a stored token.

        Rows written before encryption was enabled hold plaintext, so a
        value that does not decrypt is returned unchanged.
        """
        try:
            combined = base64.b64decode(stored, validate=True)
            if len(combined) <= IV_LENGTH:
                raise ValueError("ciphertext too short")
            plaintext = self._aesgcm.decrypt(combined[:IV_LENGTH], combined[IV_LENGTH:], None)
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError, binascii.Error, UnicodeDecodeError):
            logger.warning("[tokens] Stored token did not decrypt; using it as plaintext")
            return stored


def encrypt_token(token: str, encryption_key: str | None) -> str:
    """Encrypt when a key is configured, else store as-is."""
    if not encryption_key:
        return token
    return TokenCipher(encryption_key).encrypt(token)


def decrypt_token(stored: str, encryption_key: str | None) -> str:
    if not encryption_key:
        return stored
    return TokenCipher(encryption_key).decrypt(stored)
