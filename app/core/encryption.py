"""Fernet encryption for GitHub tokens stored in user_preferences.

The key must be a 32-byte URL-safe base64 string:
    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

import logging

from cryptography.fernet import Fernet, InvalidToken

from app.config import settings

logger = logging.getLogger(__name__)

FERNET_PREFIX = "gAAAAA"


class TokenEncryption:
    """Encrypts and decrypts linked-account tokens.

    Without a configured key the cipher is disabled and values pass
    through unchanged, so local setups work without extra configuration.
    """

    def __init__(self, key: str | None = None) -> None:
        self._cipher: Fernet | None = None

        key = settings.token_encryption_key if key is None else key
        if key:
            try:
                self._cipher = Fernet(key.encode())
            except (ValueError, TypeError):
                logger.warning("token_encryption_key has invalid format, encryption disabled")
        elif not settings.debug:
            logger.warning(
                "SECURITY: token_encryption_key is not configured. "
                "GitHub tokens will be stored in plaintext."
            )

    @property
    def is_enabled(self) -> bool:
        return self._cipher is not None

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token. Returns the input unchanged when disabled."""
        if self._cipher is None:
            return plaintext
        return self._cipher.encrypt(plaintext.encode()).decode()

    def decrypt(self, stored: str) -> str:
        """Decrypt a stored token.

        Values written before a key was configured are plaintext; those are
        returned as-is so existing links keep working.
        """
        if self._cipher is None:
            return stored

        try:
            return self._cipher.decrypt(stored.encode()).decode()
        except InvalidToken:
            if stored.startswith(FERNET_PREFIX):
                # Encrypted with a different key: unusable, surface it
                raise
            logger.debug("Stored token is not encrypted, returning plaintext value")
            return stored


token_encryption = TokenEncryption()
