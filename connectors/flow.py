"""
GitHub connect flow — ties the state guard, connector, cipher and store
together.

Connect:
    start → (GitHub consent) → complete
    complete: state check → code check → token exchange → identity lookup
              → encrypt → upsert

Every outcome of ``complete`` clears the state cookie.  Failures become a
dashboard redirect carrying an ``error`` tag; they are never raised to the
route.

Disconnect: read row → best-effort revoke → delete row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import GitHubOAuthConfig
from connectors.base import BaseConnector
from connectors.encryption import TokenCipher
from connectors.errors import (
    AuthorizationCodeMissingError,
    ConnectError,
    ConnectErrorTag,
    PersistenceError,
)
from connectors.github import GitHubConnector
from connectors.revocation import RevocationCoordinator, RevocationOutcome
from connectors.state import CookieAttributes, OAuthStateGuard
from connectors.token_manager import ConnectionStore
from database.models import UserConnection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectStart:
    redirect_url: str
    cookie: CookieAttributes


@dataclass(frozen=True)
class ConnectResult:
    redirect_url: str
    clear_cookie: CookieAttributes
    error_tag: Optional[ConnectErrorTag] = None
    connection: Optional[UserConnection] = None

    @property
    def ok(self) -> bool:
        return self.error_tag is None


class GitHubConnectFlow:
    def __init__(
        self,
        oauth_config: GitHubOAuthConfig,
        *,
        connector: Optional[BaseConnector] = None,
        cipher: Optional[TokenCipher] = None,
        state_guard: Optional[OAuthStateGuard] = None,
    ) -> None:
        self._config = oauth_config
        self.connector = connector or GitHubConnector(oauth_config)
        self.cipher = cipher or TokenCipher(oauth_config.encryption_key)
        self.state_guard = state_guard or OAuthStateGuard(secure=oauth_config.secure_cookies)
        self._revoker = RevocationCoordinator(self.connector, self.cipher)

    @property
    def provider(self) -> str:
        return self.connector.provider_name

    # ── Redirect targets ────────────────────────────────────────────────

    @property
    def signin_url(self) -> str:
        return f"{self._config.app_base_url}/signin"

    def dashboard_url(self, error: Optional[ConnectErrorTag] = None) -> str:
        url = f"{self._config.app_base_url}/dashboard"
        if error is not None:
            url = f"{url}?{urlencode({'error': error.value})}"
        return url

    # ── Connect ─────────────────────────────────────────────────────────

    def start(self) -> ConnectStart:
        state, cookie = self.state_guard.issue()
        return ConnectStart(
            redirect_url=self.connector.build_authorize_url(state),
            cookie=cookie,
        )

    async def complete(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        code: Optional[str],
        echoed_state: Optional[str],
        cookie_state: Optional[str],
    ) -> ConnectResult:
        clear_cookie = self.state_guard.clearing_attributes()
        try:
            connection = await self._complete(
                session,
                user_id,
                code=code,
                echoed_state=echoed_state,
                cookie_state=cookie_state,
            )
        except ConnectError as exc:
            logger.warning(
                "%s connect failed for user %s [%s]: %s",
                self.connector.display_name,
                user_id,
                exc.error_tag.value,
                exc,
            )
            return ConnectResult(
                redirect_url=self.dashboard_url(exc.error_tag),
                clear_cookie=clear_cookie,
                error_tag=exc.error_tag,
            )

        return ConnectResult(
            redirect_url=self.dashboard_url(),
            clear_cookie=clear_cookie,
            connection=connection,
        )

    async def _complete(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        code: Optional[str],
        echoed_state: Optional[str],
        cookie_state: Optional[str],
    ) -> UserConnection:
        self.state_guard.require_valid(echoed_state, cookie_state)
        if not code:
            raise AuthorizationCodeMissingError("Callback has no authorization code")

        grant = await self.connector.exchange_code_for_token(code)
        identity = await self.connector.fetch_identity(grant.access_token)

        encrypted_access = self.cipher.encrypt(grant.access_token)
        encrypted_refresh = (
            self.cipher.encrypt(grant.refresh_token) if grant.refresh_token else None
        )

        store = ConnectionStore(session)
        try:
            connection = await store.upsert(
                user_id,
                self.provider,
                identity.username,
                encrypted_access,
                encrypted_refresh,
                grant.scope,
            )
            await session.commit()
        except Exception as exc:
            logger.exception("Persisting %s connection failed for user %s", self.provider, user_id)
            await session.rollback()
            raise PersistenceError("Could not store the connection") from exc

        logger.info(
            "OAuth connected: user=%s provider=%s account=%s",
            user_id,
            self.provider,
            identity.username,
        )
        return connection

    # ── Disconnect / status ─────────────────────────────────────────────

    async def disconnect(
        self, session: AsyncSession, user_id: str
    ) -> Optional[RevocationOutcome]:
        """
        Revoke (best effort) and delete the user's connection.

        Returns the revocation outcome, or None if there was nothing to
        disconnect.  The row is deleted whatever the outcome.
        """
        store = ConnectionStore(session)
        outcome: Optional[RevocationOutcome] = None

        connection = await store.find_by_user_and_provider(user_id, self.provider)
        if connection is not None:
            outcome = await self._revoker.revoke(connection)
            logger.info(
                "Revocation outcome for %s/%s: %s",
                self.provider,
                user_id,
                outcome.status.value,
            )

        await store.delete_by_user_and_provider(user_id, self.provider)
        await session.commit()
        logger.info("Disconnected %s for user %s", self.provider, user_id)
        return outcome

    async def status(self, session: AsyncSession, user_id: str) -> Dict[str, Any]:
        """
        Connection summary for the dashboard (no tokens).

        Reading the token here moves legacy plaintext rows onto envelopes
        the first time the dashboard loads after a key is configured.
        """
        store = ConnectionStore(session)
        if await store.get_active_token(user_id, self.provider, self.cipher) is not None:
            await session.commit()
        connection = await store.find_by_user_and_provider(user_id, self.provider)
        if connection is None:
            return {"connected": False, "provider": self.provider, "username": None}
        return {
            "connected": True,
            "provider": connection.provider,
            "username": connection.username,
        }
