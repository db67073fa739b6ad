"""Symmetric encryption of message bodies at rest."""

from __future__ import annotations

import base64
import hashlib
import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from ephemera.core.settings import settings

logger = logging.getLogger(__name__)


class MessageCipher:
    """Encrypts and decrypts message content with a single configured key.

    The configured secret may be any string; it is stretched with SHA-256 into
    a Fernet key so operators are not forced to manage base64 key material.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Message encryption key must not be empty")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    @staticmethod
    def generate_key() -> str:
        """Return a fresh random secret suitable for ``MESSAGE_ENCRYPTION_KEY``."""
        return Fernet.generate_key().decode()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` and return an ASCII token.

        Args:
            plaintext: Message text to protect

        Returns:
            URL-safe base64 Fernet token
        """
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str | bytes) -> str | bytes:
        """Decrypt a token produced by :meth:`encrypt`.

        Anything that is not a valid token for this key (corrupt rows, legacy
        plaintext, another key's output) is returned unchanged so the message
        can still be displayed.

        Args:
            ciphertext: Stored token

        Returns:
            The plaintext, or ``ciphertext`` itself if it cannot be decrypted
        """
        try:
            token = ciphertext.encode("ascii") if isinstance(ciphertext, str) else ciphertext
            return self._fernet.decrypt(token).decode("utf-8")
        except (InvalidToken, ValueError, TypeError):
            # UnicodeEncodeError/UnicodeDecodeError are ValueErrors.
            logger.debug("Returning undecryptable message content unchanged")
            return ciphertext


@lru_cache(maxsize=1)
def get_message_cipher() -> MessageCipher:
    """Return the process-wide cipher built from settings."""
    return MessageCipher(settings.message_encryption_key)
