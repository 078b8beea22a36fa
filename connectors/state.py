"""
OAuth state guard (CSRF protection for the authorize/callback round trip).

A fresh random state is minted per authorize request and carried in a
short-lived ``github_connect_state`` cookie.  The callback must echo the same
value; the cookie is cleared whatever the outcome.
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from connectors.errors import StateMismatchError

STATE_COOKIE_NAME = "github_connect_state"
STATE_BYTES = 32
STATE_TTL_SECONDS = 600


@dataclass(frozen=True)
class CookieAttributes:
    key: str
    value: str
    max_age: int
    httponly: bool = True
    secure: bool = False
    samesite: str = "lax"
    path: str = "/"

    def as_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``Response.set_cookie``."""
        return {
            "key": self.key,
            "value": self.value,
            "max_age": self.max_age,
            "httponly": self.httponly,
            "secure": self.secure,
            "samesite": self.samesite,
            "path": self.path,
        }


class OAuthStateGuard:
    def __init__(self, *, secure: bool = False, path: str = "/") -> None:
        self._template = CookieAttributes(
            key=STATE_COOKIE_NAME,
            value="",
            max_age=STATE_TTL_SECONDS,
            secure=secure,
            path=path,
        )

    @property
    def cookie_name(self) -> str:
        return self._template.key

    def issue(self) -> Tuple[str, CookieAttributes]:
        """Mint a new state and the cookie that carries it."""
        state = secrets.token_hex(STATE_BYTES)
        return state, replace(self._template, value=state)

    def validate(self, echoed_state: Optional[str], cookie_state: Optional[str]) -> bool:
        """Fail closed: both values present and identical."""
        if not echoed_state or not cookie_state:
            return False
        return hmac.compare_digest(echoed_state.encode(), cookie_state.encode())

    def require_valid(self, echoed_state: Optional[str], cookie_state: Optional[str]) -> None:
        if not self.validate(echoed_state, cookie_state):
            reason = "missing state cookie" if not cookie_state else "state mismatch"
            raise StateMismatchError(f"Invalid OAuth state: {reason}")

    def clearing_attributes(self) -> CookieAttributes:
        """Cookie that expires the state immediately."""
        return replace(self._template, value="", max_age=0)
