"""
GitHub connect routes — authorize redirect, OAuth callback, disconnect.

Route prefix: /api/connect/github
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_optional_user_id
from config.settings import config
from connectors.flow import GitHubConnectFlow
from connectors.state import STATE_COOKIE_NAME

logger = logging.getLogger(__name__)

router = APIRouter(tags=["connectors"])


@lru_cache(maxsize=1)
def get_connect_flow() -> GitHubConnectFlow:
    """Process-wide flow, built once from settings."""
    flow = GitHubConnectFlow(config.github_oauth_config())
    if not flow.connector.is_configured():
        logger.warning("GitHub connector not configured (missing client_id/secret)")
    return flow


def _unauthorized() -> JSONResponse:
    return JSONResponse({"error": "Unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/github")
async def connect_github(
    user_id: Optional[str] = Depends(get_optional_user_id),
    flow: GitHubConnectFlow = Depends(get_connect_flow),
) -> RedirectResponse:
    """Send the user to GitHub's consent screen."""
    if not user_id:
        return RedirectResponse(flow.signin_url)

    start = flow.start()
    response = RedirectResponse(start.redirect_url)
    response.set_cookie(**start.cookie.as_kwargs())
    return response


@router.get("/github/callback")
async def github_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(get_optional_user_id),
    flow: GitHubConnectFlow = Depends(get_connect_flow),
    session: AsyncSession = Depends(db_session),
) -> RedirectResponse:
    """
    OAuth callback — GitHub redirects here after consent.

    Always ends in a redirect: the dashboard on success, the dashboard with
    an ``error`` tag on failure, or sign-in for anonymous callers.
    """
    clear_cookie = flow.state_guard.clearing_attributes()
    if not user_id:
        response = RedirectResponse(flow.signin_url)
        response.set_cookie(**clear_cookie.as_kwargs())
        return response

    result = await flow.complete(
        session,
        user_id,
        code=code,
        echoed_state=state,
        cookie_state=request.cookies.get(STATE_COOKIE_NAME),
    )
    response = RedirectResponse(result.redirect_url)
    response.set_cookie(**result.clear_cookie.as_kwargs())
    return response


@router.delete("/github", response_model=None)
async def disconnect_github(
    user_id: Optional[str] = Depends(get_optional_user_id),
    flow: GitHubConnectFlow = Depends(get_connect_flow),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any] | JSONResponse:
    """Revoke (best effort) and remove the GitHub connection."""
    if not user_id:
        return _unauthorized()
    await flow.disconnect(session, user_id)
    return {"ok": True}


@router.get("/github/status", response_model=None)
async def github_status(
    user_id: Optional[str] = Depends(get_optional_user_id),
    flow: GitHubConnectFlow = Depends(get_connect_flow),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any] | JSONResponse:
    """Whether the user has a GitHub account connected."""
    if not user_id:
        return _unauthorized()
    return await flow.status(session, user_id)
