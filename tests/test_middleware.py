"""
Tests for the access-log middleware: query redaction and error-tag logging.
"""

import logging

import httpx
import pytest
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from api.middleware import redact_query, redirect_error_tag, register_middleware


def _app() -> FastAPI:
    app = FastAPI()
    register_middleware(app)

    @app.get("/callback")
    async def callback(fail: bool = False):
        target = "http://testserver/dashboard"
        if fail:
            target += "?error=github_oauth"
        return RedirectResponse(target)

    return app


class TestRedactQuery:
    def test_hides_oauth_values(self):
        redacted = redact_query("code=abc&state=xyz&foo=1")
        assert redacted == "code=***&state=***&foo=1"

    def test_hides_token_values(self):
        redacted = redact_query("access_token=gho_x&refresh_token=ghr_y")
        assert "gho_x" not in redacted
        assert "ghr_y" not in redacted

    def test_leaves_other_keys(self):
        assert redact_query("page=2&q=a+b") == "page=2&q=a+b"


class TestRedirectErrorTag:
    def test_reads_error_param(self):
        assert redirect_error_tag("http://x/dashboard?error=github_user") == "github_user"

    @pytest.mark.parametrize("location", [None, "", "http://x/dashboard", "http://x/?page=1"])
    def test_absent(self, location):
        assert redirect_error_tag(location) is None


class TestAccessLog:
    @pytest.mark.asyncio
    async def test_failed_redirect_is_warning_without_secrets(self, caplog):
        transport = httpx.ASGITransport(app=_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            with caplog.at_level(logging.DEBUG, logger="api.middleware"):
                resp = await client.get(
                    "/callback", params={"code": "secret-code", "state": "secret-state", "fail": "1"}
                )

        assert resp.status_code == 307
        assert "X-Process-Time" in resp.headers
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        message = warnings[0].getMessage()
        assert "error=github_oauth" in message
        assert "secret-code" not in caplog.text
        assert "secret-state" not in caplog.text

    @pytest.mark.asyncio
    async def test_success_is_debug(self, caplog):
        transport = httpx.ASGITransport(app=_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            with caplog.at_level(logging.DEBUG, logger="api.middleware"):
                await client.get("/callback", params={"code": "secret-code"})

        records = [r for r in caplog.records if r.name == "api.middleware"]
        assert [r.levelno for r in records] == [logging.DEBUG]
        assert "code=***" in records[0].getMessage()
