"""Fernet encryption for refresh tokens stored in ``account_sessions``."""

from cryptography.fernet import Fernet


class TokenEncryptor:
    """Seals refresh tokens before they reach the database.

    Access tokens are short-lived and stored as-is; only the long-lived
    refresh token is encrypted. Ciphertext differs on every call, so an
    encrypted column can never be used in a WHERE clause.
    """

    def __init__(self, key: str) -> None:
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as exc:
            raise ValueError("TOKEN_ENCRYPTION_KEY must be a url-safe base64-encoded 32-byte Fernet key") from exc

    def encrypt(self, refresh_token: str) -> str:
        return self._fernet.encrypt(refresh_token.encode()).decode()

    def decrypt(self, stored: str) -> str:
        """Return the plaintext refresh token.

        Raises:
            cryptography.fernet.InvalidToken: If *stored* was sealed with another key or tampered with.
        """
        return self._fernet.decrypt(stored.encode()).decode()
