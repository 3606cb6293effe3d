"""Session record value object."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """Snapshot of one account's token material as stored.

    ``issued_at`` and ``ttl_seconds`` describe the current access token;
    all token fields are ``None`` for a logged-out placeholder.
    """

    account_id: str
    access_token: str | None = field(default=None, repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    issued_at: datetime | None = None
    ttl_seconds: int | None = None
    version: int = 0
    display_name: str | None = None
    email: str | None = None

    @property
    def expires_at(self) -> datetime | None:
        if self.issued_at is None or self.ttl_seconds is None:
            return None
        return self.issued_at + timedelta(seconds=self.ttl_seconds)

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)

    def is_expired(self, now: datetime) -> bool:
        """True once ``now >= issued_at + ttl_seconds`` or when there is no access token."""
        expires_at = self.expires_at
        return self.access_token is None or expires_at is None or now >= expires_at

    def needs_refresh(self, now: datetime, buffer_seconds: int = 0) -> bool:
        """True when the token is expired or will expire within *buffer_seconds*."""
        expires_at = self.expires_at
        if self.access_token is None or expires_at is None:
            return True
        return now >= expires_at - timedelta(seconds=buffer_seconds)
