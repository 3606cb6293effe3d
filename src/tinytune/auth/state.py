"""OAuth state parameter management for CSRF protection."""

import hashlib
import hmac
import secrets
import time


class OAuthStateManager:
    """Generates and verifies HMAC-signed OAuth state parameters.

    The state is ``{timestamp}.{nonce}.{signature}``; the signature covers
    timestamp and nonce, so nothing needs to be kept server-side between
    ``/auth/login`` and ``/auth/callback``.
    """

    def __init__(self, key: str, ttl_seconds: int) -> None:
        self._key = key
        self._ttl_seconds = ttl_seconds

    def generate(self) -> str:
        """Generate a fresh signed state parameter."""
        data = f"{int(time.time())}.{secrets.token_urlsafe(12)}"
        return f"{data}.{self._sign(data)}"

    def verify(self, state: str) -> bool:
        """Verify the HMAC signature and TTL of a state parameter."""
        data, sep, sig = state.rpartition(".")
        if not sep or not data:
            return False
        if not hmac.compare_digest(sig, self._sign(data)):
            return False
        try:
            issued = int(data.split(".", 1)[0])
        except ValueError:
            return False
        return (time.time() - issued) <= self._ttl_seconds

    def _sign(self, data: str) -> str:
        return hmac.new(self._key.encode(), data.encode(), hashlib.sha256).hexdigest()
