"""Provider-token ciphers (pluggable encryption at rest).

NoOpTokenCipher stores tokens as-is; FernetTokenCipher encrypts them with a
key derived from TOKEN_ENCRYPTION_KEY via PBKDF2-HMAC-SHA256.
"""

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.core.config import Settings
from app.infrastructure.exceptions import TokenCipherError


class NoOpTokenCipher:
    """Identity cipher: tokens are stored in plaintext."""

    def encrypt(self, plaintext: str | None) -> str | None:
        return plaintext

    def decrypt(self, stored: str | None) -> str | None:
        return stored


class FernetTokenCipher:
    """Encrypt/decrypt provider tokens using Fernet (key derived from a secret)."""

    def __init__(self, secret: str, salt: str) -> None:
        self._fernet = Fernet(self._derive_key(secret, salt))

    @staticmethod
    def _derive_key(secret: str, salt: str) -> bytes:
        """Derive 32-byte urlsafe key from secret + salt via PBKDF2-HMAC-SHA256."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt.encode(),
            iterations=100_000,
        )
        return base64.urlsafe_b64encode(kdf.derive(secret.encode()))

    def encrypt(self, plaintext: str | None) -> str | None:
        if plaintext is None:
            return None
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, stored: str | None) -> str | None:
        """Decrypt a stored value.

        Raises:
            TokenCipherError: If the value was not produced with this key.
        """
        if stored is None:
            return None
        try:
            return self._fernet.decrypt(stored.encode()).decode()
        except InvalidToken as e:
            raise TokenCipherError() from e


def build_token_cipher(settings: Settings) -> NoOpTokenCipher | FernetTokenCipher:
    """Return the cipher selected by settings.token_cipher."""
    if settings.token_cipher == "fernet":
        return FernetTokenCipher(
            settings.token_encryption_key.get_secret_value(),
            settings.token_encryption_salt,
        )
    return NoOpTokenCipher()
