"""
BaseConnector — abstract interface for OAuth2 connect providers.

GitHub is the only provider today; another provider would subclass this and
implement the same four exchanges.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class TokenGrant(BaseModel):
    """Credential material returned by the code-for-token exchange."""

    access_token: str
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


class ProviderIdentity(BaseModel):
    username: str


class BaseConnector(ABC):
    """Abstract base for OAuth2 connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug stored on the connection row, e.g. 'github'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def build_authorize_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            Anti-forgery value that the provider echoes back on the callback.

        Returns
        -------
        The full URL to redirect the user to.
        """
        ...

    @abstractmethod
    async def exchange_code_for_token(self, code: str) -> TokenGrant:
        """Exchange the authorization code for tokens."""
        ...

    @abstractmethod
    async def fetch_identity(self, access_token: str) -> ProviderIdentity:
        """Look up the account that owns ``access_token``."""
        ...

    @abstractmethod
    async def revoke_token(self, access_token: str) -> None:
        """Revoke the grant at the provider. Raises on failure."""
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    def is_configured(self) -> bool:
        """Return True if client credentials are present."""
        return True
