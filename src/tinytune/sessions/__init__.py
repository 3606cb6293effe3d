"""Session store — durable per-account token records."""

from tinytune.sessions.exceptions import SessionNotFound
from tinytune.sessions.models import SessionRecord
from tinytune.sessions.store import SessionStore

__all__ = ["SessionNotFound", "SessionRecord", "SessionStore"]
