"""Session store — keyed persistence of one token record per account."""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any

from cryptography.fernet import InvalidToken
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tinytune.crypto import TokenEncryptor
from tinytune.db.base import ensure_utc
from tinytune.db.models import AccountSession
from tinytune.sessions.exceptions import SessionNotFound
from tinytune.sessions.models import SessionRecord

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_UPSERT_FIELDS = frozenset({"display_name", "email", "access_token", "refresh_token", "issued_at", "ttl_seconds"})


class SessionStore:
    """Reads and writes :class:`SessionRecord` objects.

    Every operation runs in its own transaction obtained from
    *session_factory* (typically ``DatabaseManager.session``), so each write
    touches exactly one row atomically. Refresh tokens are encrypted at rest.
    """

    def __init__(self, session_factory: SessionFactory, encryptor: TokenEncryptor) -> None:
        self._session_factory = session_factory
        self._encryptor = encryptor

    async def get(self, account_id: str) -> SessionRecord:
        """Return the record for *account_id*.

        Raises:
            SessionNotFound: If no record exists.
        """
        record = await self.find(account_id)
        if record is None:
            raise SessionNotFound(account_id)
        return record

    async def find(self, account_id: str) -> SessionRecord | None:
        """Return the record for *account_id*, or ``None``."""
        async with self._session_factory() as session:
            row = await self._load(account_id, session)
            return self._to_record(row) if row is not None else None

    async def upsert(self, account_id: str, **fields: Any) -> SessionRecord:
        """Insert or update the record for *account_id*.

        Only the given *fields* are written; others keep their stored values.
        ``refresh_token`` is accepted in plaintext and encrypted here.
        """
        unknown = set(fields) - _UPSERT_FIELDS
        if unknown:
            raise ValueError(f"Unknown session fields: {sorted(unknown)}")

        try:
            return await self._upsert_once(account_id, fields)
        except IntegrityError:
            # Lost an insert race on the unique account_id; the row exists now.
            logger.debug("Concurrent insert for account %s, retrying as update", account_id)
            return await self._upsert_once(account_id, fields)

    async def apply_refresh(
        self,
        account_id: str,
        *,
        expected_version: int,
        access_token: str,
        ttl_seconds: int,
        issued_at: datetime,
        refresh_token: str | None = None,
    ) -> SessionRecord | None:
        """Write refreshed token material if the record is unchanged since it was read.

        The refresh token column is only touched when *refresh_token* is given
        (the provider rotated it). Returns the updated record, or ``None`` when
        the stored version no longer matches *expected_version*.
        """
        values: dict[str, Any] = {
            "access_token": access_token,
            "ttl_seconds": ttl_seconds,
            "issued_at": issued_at,
            "version": AccountSession.version + 1,
        }
        if refresh_token:
            values["encrypted_refresh_token"] = self._encryptor.encrypt(refresh_token)

        async with self._session_factory() as session:
            result = await session.execute(
                update(AccountSession)
                .where(AccountSession.account_id == account_id, AccountSession.version == expected_version)
                .values(**values)
            )
            if result.rowcount == 0:  # type: ignore[attr-defined]
                return None
            row = await self._load(account_id, session)
            return self._to_record(row) if row is not None else None

    async def clear(self, account_id: str) -> None:
        """Unset all token fields, keeping the record as a placeholder.

        Idempotent; clearing an unknown account is a no-op.
        """
        async with self._session_factory() as session:
            await session.execute(
                update(AccountSession)
                .where(AccountSession.account_id == account_id)
                .values(
                    access_token=None,
                    encrypted_refresh_token=None,
                    issued_at=None,
                    ttl_seconds=None,
                    version=AccountSession.version + 1,
                )
            )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _upsert_once(self, account_id: str, fields: dict[str, Any]) -> SessionRecord:
        async with self._session_factory() as session:
            row = await self._load(account_id, session)
            if row is None:
                row = AccountSession(account_id=account_id, version=0)
                session.add(row)
            for name, value in fields.items():
                if name == "refresh_token":
                    row.encrypted_refresh_token = self._encryptor.encrypt(value) if value else None
                else:
                    setattr(row, name, value)
            row.version = (row.version or 0) + 1
            await session.flush()
            return self._to_record(row)

    @staticmethod
    async def _load(account_id: str, session: AsyncSession) -> AccountSession | None:
        result = await session.execute(select(AccountSession).where(AccountSession.account_id == account_id))
        return result.scalar_one_or_none()

    def _to_record(self, row: AccountSession) -> SessionRecord:
        return SessionRecord(
            account_id=row.account_id,
            access_token=row.access_token,
            refresh_token=self._decrypt_refresh_token(row),
            issued_at=ensure_utc(row.issued_at),
            ttl_seconds=row.ttl_seconds,
            version=row.version,
            display_name=row.display_name,
            email=row.email,
        )

    def _decrypt_refresh_token(self, row: AccountSession) -> str | None:
        if not row.encrypted_refresh_token:
            return None
        try:
            return self._encryptor.decrypt(row.encrypted_refresh_token)
        except InvalidToken:
            logger.warning(
                "Stored refresh token for account %s is not decryptable; encryption key may have rotated",
                row.account_id,
            )
            return None
