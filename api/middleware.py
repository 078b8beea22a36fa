"""
Global middleware: request timing and access logging for the connect routes.

OAuth callbacks carry ``code`` and ``state`` in the query string, so the
access log only ever sees a redacted copy.  Redirects that send the user back
with an ``error`` tag are logged at WARNING so failed connects stand out.
"""

from __future__ import annotations

import logging
import time
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

SENSITIVE_QUERY_KEYS = frozenset({"code", "state", "access_token", "refresh_token"})


def redact_query(query: str) -> str:
    """Replace values of OAuth secrets in a query string with ``***``."""
    pairs = [
        (key, "***" if key in SENSITIVE_QUERY_KEYS else value)
        for key, value in parse_qsl(query, keep_blank_values=True)
    ]
    return urlencode(pairs, safe="*")


def redirect_error_tag(location: Optional[str]) -> Optional[str]:
    """The ``error`` tag of a dashboard redirect, if any."""
    if not location:
        return None
    for key, value in parse_qsl(urlsplit(location).query):
        if key == "error":
            return value
    return None


def register_middleware(app: FastAPI) -> None:
    """Attach app-level middleware."""

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"

        target = request.url.path
        if request.url.query:
            target = f"{target}?{redact_query(request.url.query)}"

        error_tag = redirect_error_tag(response.headers.get("location"))
        if error_tag:
            logger.warning(
                "%s %s → %d error=%s (%.3fs)",
                request.method, target, response.status_code, error_tag, elapsed,
            )
        else:
            logger.debug(
                "%s %s → %d (%.3fs)", request.method, target, response.status_code, elapsed
            )
        return response
