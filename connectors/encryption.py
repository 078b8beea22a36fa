"""
Token encryption — encrypt / decrypt OAuth tokens at rest.

Uses AES-256-GCM (``AESGCM`` from the ``cryptography`` library).  A stored
envelope is ``base64(nonce[12] || tag[16] || ciphertext)`` so that decryption
needs nothing but the key.

The key comes from ``GitHubOAuthConfig.encryption_key`` (env var:
``GITHUB_TOKEN_ENCRYPTION_KEY``) and must base64-decode to exactly 32 bytes.
Generate one with::

    openssl rand -base64 32

Without a usable key ``encrypt`` refuses to run, while ``decrypt`` hands
values back untouched.  Tokens stored before encryption was introduced are
plaintext; they come back as ``PassthroughLegacy`` so callers can tell them
apart from real ciphertext and re-encrypt them.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import re
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from connectors.errors import ConfigurationError

logger = logging.getLogger(__name__)

NONCE_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32
MIN_ENVELOPE_LENGTH = NONCE_LENGTH + TAG_LENGTH

# Classic GitHub OAuth tokens: 40 lowercase hex chars, which also parse as base64.
_LEGACY_HEX_TOKEN = re.compile(r"[0-9a-f]{40}")

# Reasons that mean the stored value is plaintext and safe to re-encrypt.
LEGACY_PLAINTEXT_REASONS = frozenset({"not_base64", "too_short", "legacy_hex"})


@dataclass(frozen=True)
class Decrypted:
    plaintext: str


@dataclass(frozen=True)
class PassthroughLegacy:
    """The stored value was not a readable envelope and is returned as-is."""

    raw_value: str
    reason: str  # no_key | legacy_hex | not_base64 | too_short | auth_failed


DecryptResult = Union[Decrypted, PassthroughLegacy]


def _load_key(raw: Optional[str]) -> Optional[bytes]:
    if not raw:
        return None
    try:
        key = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        return None
    if len(key) != KEY_LENGTH:
        return None
    return key


class TokenCipher:
    """AES-256-GCM envelope cipher bound to a single process-wide key."""

    def __init__(self, encryption_key: Optional[str]) -> None:
        self._key = _load_key(encryption_key)
        if encryption_key and self._key is None:
            logger.error(
                "GITHUB_TOKEN_ENCRYPTION_KEY is set but does not decode to %d bytes; "
                "token encryption is disabled",
                KEY_LENGTH,
            )
        elif self._key is None:
            logger.warning(
                "GITHUB_TOKEN_ENCRYPTION_KEY not set — new GitHub connections will be refused. "
                "Generate a key: openssl rand -base64 32"
            )
        self._aesgcm = AESGCM(self._key) if self._key else None

    @property
    def enabled(self) -> bool:
        return self._aesgcm is not None

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a token string for database storage.

        Raises ``ConfigurationError`` if no usable key is configured.
        """
        if self._aesgcm is None:
            raise ConfigurationError(
                "GITHUB_TOKEN_ENCRYPTION_KEY must be set to encrypt tokens "
                "(use: openssl rand -base64 32)"
            )
        nonce = os.urandom(NONCE_LENGTH)
        # AESGCM appends the tag; the envelope stores it ahead of the ciphertext.
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return base64.b64encode(nonce + tag + ciphertext).decode("ascii")

    def decrypt(self, stored: str) -> DecryptResult:
        """Open an envelope. Never raises."""
        if self._aesgcm is None:
            return PassthroughLegacy(stored, "no_key")
        if _LEGACY_HEX_TOKEN.fullmatch(stored):
            return PassthroughLegacy(stored, "legacy_hex")
        try:
            data = base64.b64decode(stored, validate=True)
        except (binascii.Error, ValueError):
            return PassthroughLegacy(stored, "not_base64")
        if len(data) < MIN_ENVELOPE_LENGTH:
            return PassthroughLegacy(stored, "too_short")

        nonce = data[:NONCE_LENGTH]
        tag = data[NONCE_LENGTH:MIN_ENVELOPE_LENGTH]
        ciphertext = data[MIN_ENVELOPE_LENGTH:]
        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
            return Decrypted(plaintext.decode("utf-8"))
        except (InvalidTag, UnicodeDecodeError):
            return PassthroughLegacy(stored, "auth_failed")

    def decrypt_token(self, stored: str) -> str:
        """Plaintext for an envelope, or the stored value unchanged."""
        result = self.decrypt(stored)
        if isinstance(result, Decrypted):
            return result.plaintext
        return result.raw_value
