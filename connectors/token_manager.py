"""
Connection store — upsert / find / delete the per-user connection row.

Rows are keyed by ``(user_id, provider)``; writing twice for the same pair
overwrites the first write.  Token columns hold whatever ``TokenCipher``
produced, never the raw provider token when a key is configured.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from connectors.encryption import LEGACY_PLAINTEXT_REASONS, PassthroughLegacy, TokenCipher
from database.models import UserConnection

logger = logging.getLogger(__name__)


class ConnectionStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _insert(self):
        dialect = self._session.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite_insert(UserConnection)
        return pg_insert(UserConnection)

    async def upsert(
        self,
        user_id: str,
        provider: str,
        username: str,
        encrypted_access: str,
        encrypted_refresh: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> UserConnection:
        """Create or overwrite the connection in a single statement."""
        now = datetime.now(timezone.utc)
        values = {
            "username": username,
            "access_token": encrypted_access,
            "refresh_token": encrypted_refresh,
            "scope": scope,
            "updated_at": now,
        }
        stmt = self._insert().values(
            user_id=user_id,
            provider=provider,
            connected_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "provider"],
            set_=values,
        )
        await self._session.execute(stmt)
        await self._session.flush()

        conn = await self.find_by_user_and_provider(user_id, provider)
        logger.info("Stored %s connection for user %s (%s)", provider, user_id, username)
        return conn

    async def find_by_user_and_provider(
        self, user_id: str, provider: str
    ) -> Optional[UserConnection]:
        result = await self._session.execute(
            select(UserConnection)
            .where(
                UserConnection.user_id == user_id,
                UserConnection.provider == provider,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def delete_by_user_and_provider(self, user_id: str, provider: str) -> bool:
        """Delete the connection if present. Returns whether a row went away."""
        result = await self._session.execute(
            delete(UserConnection).where(
                UserConnection.user_id == user_id,
                UserConnection.provider == provider,
            )
        )
        await self._session.flush()
        return bool(result.rowcount)

    async def get_active_token(
        self,
        user_id: str,
        provider: str,
        cipher: TokenCipher,
    ) -> Optional[str]:
        """
        Return the plaintext access token for the user + provider.

        A legacy plaintext value is re-encrypted in place when a key is
        configured, so later reads find an envelope.
        """
        conn = await self.find_by_user_and_provider(user_id, provider)
        if conn is None:
            return None

        result = cipher.decrypt(conn.access_token)
        if not isinstance(result, PassthroughLegacy):
            return result.plaintext

        if cipher.enabled and result.reason in LEGACY_PLAINTEXT_REASONS:
            conn.access_token = cipher.encrypt(result.raw_value)
            if conn.refresh_token:
                refresh = cipher.decrypt(conn.refresh_token)
                if (
                    isinstance(refresh, PassthroughLegacy)
                    and refresh.reason in LEGACY_PLAINTEXT_REASONS
                ):
                    conn.refresh_token = cipher.encrypt(refresh.raw_value)
            conn.updated_at = datetime.now(timezone.utc)
            await self._session.flush()
            logger.info("Re-encrypted legacy %s token for user %s", provider, user_id)
        elif result.reason == "auth_failed":
            logger.warning(
                "Stored %s token for user %s did not authenticate; returning raw value",
                provider,
                user_id,
            )
        return result.raw_value
