"""
Tests for the OAuth state guard.
"""

import pytest

from connectors.errors import ConnectErrorTag, StateMismatchError
from connectors.state import STATE_COOKIE_NAME, OAuthStateGuard


class TestIssue:
    def test_state_is_random_hex(self):
        guard = OAuthStateGuard()
        state, cookie = guard.issue()
        assert len(state) == 64
        int(state, 16)
        assert guard.issue()[0] != state
        assert cookie.value == state

    def test_cookie_attributes(self):
        _, cookie = OAuthStateGuard(secure=True).issue()
        kwargs = cookie.as_kwargs()
        assert kwargs["key"] == STATE_COOKIE_NAME
        assert kwargs["httponly"] is True
        assert kwargs["secure"] is True
        assert kwargs["samesite"] == "lax"
        assert kwargs["path"] == "/"
        assert kwargs["max_age"] == 600

    def test_development_cookie_is_not_secure(self):
        _, cookie = OAuthStateGuard().issue()
        assert cookie.secure is False

    def test_clearing_cookie_expires_immediately(self):
        cookie = OAuthStateGuard(secure=True).clearing_attributes()
        assert cookie.key == STATE_COOKIE_NAME
        assert cookie.max_age == 0
        assert cookie.value == ""
        assert cookie.secure is True


class TestValidate:
    def test_matching_state(self):
        guard = OAuthStateGuard()
        state, _ = guard.issue()
        assert guard.validate(state, state) is True

    @pytest.mark.parametrize(
        "echoed,cookie",
        [
            ("abc", "abd"),
            ("abc", None),
            (None, "abc"),
            ("", ""),
            (None, None),
        ],
    )
    def test_rejects(self, echoed, cookie):
        assert OAuthStateGuard().validate(echoed, cookie) is False

    def test_require_valid_raises(self):
        guard = OAuthStateGuard()
        with pytest.raises(StateMismatchError) as exc_info:
            guard.require_valid("x", "y")
        assert exc_info.value.error_tag is ConnectErrorTag.GITHUB_OAUTH
        guard.require_valid("x", "x")
