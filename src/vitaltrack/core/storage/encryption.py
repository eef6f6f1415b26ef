"""Fernet-based field encryption for free-text health data at rest.

Log notes and insight narratives are encrypted before they reach SQLite.
Numeric measurements stay in plain columns so the analytics reads can
filter and order them without decrypting anything.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class FieldEncryptor:
    """Encrypts and decrypts JSON-serializable values with Fernet.

    Usage::

        encryptor = FieldEncryptor(key="...")
        token = encryptor.encrypt("slept badly, headache")
        encryptor.decrypt(token)  # "slept badly, headache"
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Args:
            key: A valid Fernet key string. Generate with
                 :meth:`generate_key`.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, data: Any) -> str:
        """Encrypt a JSON-serializable value to a Fernet token string.

        ``None`` encrypts to the empty string so nullable columns stay empty.

        Raises:
            EncryptionError: If serialization fails.
        """
        if data is None:
            return ""
        try:
            plaintext = json.dumps(data, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc
        return self._fernet.encrypt(plaintext).decode("utf-8")

    def decrypt(self, token: str | None) -> Any:
        """Decrypt a Fernet token string back to a Python value.

        Empty or missing tokens decrypt to ``None``.

        Raises:
            EncryptionError: If the token is invalid or was made with another key.
        """
        if not token:
            return None
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        return json.loads(plaintext)

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64 Fernet key."""
        return Fernet.generate_key().decode("utf-8")
