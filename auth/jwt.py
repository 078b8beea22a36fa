"""
JWT-style session token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256.  Issuing
them belongs to the sign-in layer; the connect flow only reads them.
Secret key is loaded from ``config.session_secret`` (env var: ``SESSION_SECRET``).
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import time
from base64 import b64decode, b64encode
from typing import Optional

from config.settings import config

_TOKEN_EXPIRY_SECONDS = 30 * 24 * 60 * 60


def _sign(raw: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()


def create_token(
    user_id: str,
    *,
    secret: Optional[str] = None,
    expires_in: int = _TOKEN_EXPIRY_SECONDS,
) -> str:
    """Create a signed token containing ``user_id`` and expiry."""
    payload = {"user_id": user_id, "exp": int(time.time()) + expires_in}
    raw = json.dumps(payload).encode()
    return b64encode(raw).decode() + "." + _sign(raw, secret or config.session_secret)


def verify_token(token: str, *, secret: Optional[str] = None) -> str:
    """
    Verify token and return ``user_id``.

    Raises ``ValueError`` on malformed, forged or expired tokens.
    """
    parts = token.split(".", 1)
    if len(parts) != 2:
        raise ValueError("bad format")
    try:
        raw = b64decode(parts[0], validate=True)
    except binascii.Error as exc:
        raise ValueError("bad encoding") from exc
    if not hmac.compare_digest(parts[1], _sign(raw, secret or config.session_secret)):
        raise ValueError("bad signature")
    payload = json.loads(raw)
    if payload.get("exp", 0) < time.time():
        raise ValueError("token expired")
    user_id = payload.get("user_id")
    if not user_id:
        raise ValueError("no user_id")
    return str(user_id)
