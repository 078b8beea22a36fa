"""
Exceptions raised inside the GitHub connect flow.

Each class carries the ``error_tag`` the dashboard uses to pick a message.
The flow converts every ``ConnectError`` to a redirect; none reach the browser.
"""

from __future__ import annotations

from enum import Enum


class ConnectErrorTag(str, Enum):
    """Machine-readable values for the ``error`` query parameter."""

    GITHUB_OAUTH = "github_oauth"
    GITHUB_TOKEN = "github_token"
    GITHUB_USER = "github_user"


class ConnectError(Exception):
    """Base class for connect-flow failures."""

    error_tag: ConnectErrorTag = ConnectErrorTag.GITHUB_OAUTH


class ConfigurationError(ConnectError):
    """No usable encryption key (missing, not base64, or not 32 bytes)."""

    error_tag = ConnectErrorTag.GITHUB_TOKEN


class StateMismatchError(ConnectError):
    """Anti-forgery state missing, expired or not matching the cookie."""

    error_tag = ConnectErrorTag.GITHUB_OAUTH


class TokenExchangeError(ConnectError):
    """GitHub refused or failed the code-for-token exchange."""

    error_tag = ConnectErrorTag.GITHUB_TOKEN


class IdentityLookupError(ConnectError):
    """GitHub ``/user`` lookup failed."""

    error_tag = ConnectErrorTag.GITHUB_USER


class RevocationError(ConnectError):
    """Provider-side revocation failed. Logged only, never surfaced."""


class AuthorizationCodeMissingError(ConnectError):
    """Callback arrived without a ``code`` (user denied consent, or a forged hit)."""

    error_tag = ConnectErrorTag.GITHUB_OAUTH


class PersistenceError(ConnectError):
    """The connection row could not be written; reported like a token failure."""

    error_tag = ConnectErrorTag.GITHUB_TOKEN
