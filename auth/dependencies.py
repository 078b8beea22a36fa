"""
FastAPI dependencies for authentication.

Provides ``db_session`` and ``get_optional_user_id``.  The connect routes
decide themselves what to do with an anonymous caller (redirect to sign-in
or 401), so the user id dependency never raises.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import verify_token
from database.session import get_db_session

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session_token"


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


async def get_optional_user_id(request: Request) -> Optional[str]:
    """
    Return the authenticated ``user_id``, or None for anonymous callers.

    Reads the session cookie first, then an ``Authorization: Bearer`` header.
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("Bearer "):
            token = authorization[7:]
    if not token:
        return None

    try:
        return verify_token(token)
    except ValueError as exc:
        logger.debug("Ignoring invalid session token: %s", exc)
        return None
