"""Domain exceptions for the auth module."""


class OAuthError(Exception):
    """Base exception for OAuth errors."""


class InvalidStateError(OAuthError):
    """OAuth state parameter validation failed (CSRF protection)."""


class SpotifyAPIError(OAuthError):
    """Spotify API returned an error response during the login flow."""

    def __init__(self, action: str, status_code: int, detail: str) -> None:
        self.action = action
        self.spotify_status_code = status_code
        self.detail = detail
        super().__init__(f"Spotify API error during {action}: HTTP {status_code} - {detail}")


# --- Token refresher outcomes ---


class RefreshDenied(Exception):
    """The token endpoint rejected the refresh token; the account must re-authenticate."""

    def __init__(self, account_id: str, detail: str) -> None:
        self.account_id = account_id
        self.detail = detail
        super().__init__(f"Token refresh denied for account {account_id}: {detail}")


class UpstreamUnavailable(Exception):
    """Transient failure talking to the token endpoint (network, timeout, 429, 5xx)."""

    def __init__(self, account_id: str, detail: str) -> None:
        self.account_id = account_id
        self.detail = detail
        super().__init__(f"Token endpoint unavailable for account {account_id}: {detail}")


# --- Auth gate outcomes surfaced to callers ---


class AuthExpired(Exception):
    """The session can no longer produce a valid token; re-login is required."""

    def __init__(self, account_id: str, detail: str = "Re-authentication required") -> None:
        self.account_id = account_id
        self.detail = detail
        super().__init__(f"Authorization expired for account {account_id}: {detail}")


class TemporarilyUnavailable(Exception):
    """An upstream dependency failed transiently; the request can be retried later."""

    def __init__(self, account_id: str, detail: str) -> None:
        self.account_id = account_id
        self.detail = detail
        super().__init__(f"Temporarily unavailable for account {account_id}: {detail}")
