"""
GitHubConnector — OAuth2 for GitHub accounts.

Covers the four GitHub exchanges of the connect flow: authorize URL,
code-for-token, ``/user`` identity and grant revocation.  Each failure is
raised as the connect error that names it, so the callback can redirect
with a specific tag.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from config.settings import GitHubOAuthConfig
from connectors.base import BaseConnector, ProviderIdentity, TokenGrant
from connectors.errors import IdentityLookupError, RevocationError, TokenExchangeError

logger = logging.getLogger(__name__)

# GitHub OAuth2 endpoints
_GH_AUTH_URL = "https://github.com/login/oauth/authorize"
_GH_TOKEN_URL = "https://github.com/login/oauth/access_token"
_GH_API = "https://api.github.com"


class GitHubConnector(BaseConnector):
    """OAuth2 connector for GitHub."""

    def __init__(
        self,
        oauth_config: GitHubOAuthConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = oauth_config
        self._transport = transport
        self._timeout = httpx.Timeout(oauth_config.http_timeout_seconds)

    @property
    def provider_name(self) -> str:
        return "github"

    @property
    def display_name(self) -> str:
        return "GitHub"

    def is_configured(self) -> bool:
        return bool(self._config.client_id and self._config.client_secret)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def build_authorize_url(self, state: str) -> str:
        params = {
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "scope": self._config.scope,
            "state": state,
        }
        return f"{_GH_AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> TokenGrant:
        """
        Exchange the auth code for tokens.

        GitHub answers some failures with HTTP 200 and an ``error`` field,
        so both the status and the body are checked.
        """
        try:
            async with self._client() as client:
                resp = await client.post(
                    _GH_TOKEN_URL,
                    data={
                        "client_id": self._config.client_id,
                        "client_secret": self._config.client_secret,
                        "code": code,
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"GitHub token request failed: {exc!r}") from exc

        if not resp.is_success:
            raise TokenExchangeError(f"GitHub token endpoint returned HTTP {resp.status_code}")

        data = _json_body(resp)
        if data is None:
            raise TokenExchangeError("GitHub token endpoint returned a non-JSON body")
        if data.get("error"):
            raise TokenExchangeError(
                f"GitHub OAuth error: {data.get('error_description') or data['error']}"
            )
        access_token = data.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise TokenExchangeError("GitHub token response has no access_token")
        refresh_token = data.get("refresh_token") or None
        scope = data.get("scope")
        for field in (refresh_token, scope):
            if field is not None and not isinstance(field, str):
                raise TokenExchangeError("GitHub token response has malformed fields")

        return TokenGrant(access_token=access_token, refresh_token=refresh_token, scope=scope)

    async def fetch_identity(self, access_token: str) -> ProviderIdentity:
        try:
            async with self._client() as client:
                resp = await client.get(
                    f"{_GH_API}/user",
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/vnd.github+json",
                    },
                )
        except httpx.HTTPError as exc:
            raise IdentityLookupError(f"GitHub user lookup failed: {exc!r}") from exc

        if not resp.is_success:
            raise IdentityLookupError(f"GitHub /user returned HTTP {resp.status_code}")

        user = _json_body(resp)
        login = user.get("login") if user else None
        if not login or not isinstance(login, str):
            raise IdentityLookupError("GitHub /user response has no login")
        return ProviderIdentity(username=login)

    async def revoke_token(self, access_token: str) -> None:
        """Revoke the token via GitHub's OAuth application API (204 on success)."""
        try:
            async with self._client() as client:
                resp = await client.request(
                    "DELETE",
                    f"{_GH_API}/applications/{self._config.client_id}/token",
                    auth=(self._config.client_id, self._config.client_secret),
                    json={"access_token": access_token},
                    headers={"Accept": "application/vnd.github+json"},
                )
        except httpx.HTTPError as exc:
            raise RevocationError(f"GitHub revoke request failed: {exc!r}") from exc

        if resp.status_code != 204:
            raise RevocationError(f"GitHub revoke returned HTTP {resp.status_code}")


def _json_body(resp: httpx.Response) -> Optional[Dict[str, Any]]:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
