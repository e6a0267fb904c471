from __future__ import annotations

import asyncio
import secrets
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from cliphub.api import deps
from cliphub.core.auth import create_session_token
from cliphub.core.logging import get_logger

from . import schemas


router = APIRouter(tags=["auth"])
logger = get_logger(component="auth")

STATE_COOKIE = "oauth_state"


@router.get("/login", summary="Start the Discord login flow")
async def login(oauth: deps.OAuthClientDependency) -> RedirectResponse:
    state = secrets.token_urlsafe(16)
    response = RedirectResponse(oauth.authorization_url(state), status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.set_cookie(STATE_COOKIE, state, max_age=600, httponly=True, samesite="lax")
    return response


@router.get("/redirect", summary="Discord login callback")
async def login_redirect(
    request: Request,
    oauth: deps.OAuthClientDependency,
    settings: deps.SettingsDependency,
    code: Optional[str] = None,
    state: Optional[str] = None,
) -> RedirectResponse:
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing authorization code")
    expected_state = request.cookies.get(STATE_COOKIE)
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="login state mismatch")

    access_token = await asyncio.to_thread(oauth.exchange_code, code)
    username = await asyncio.to_thread(oauth.get_username, access_token)
    token = create_session_token(username, settings)
    logger.info("login_succeeded", username=username)

    response = RedirectResponse("/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get("/dashboard", response_model=schemas.DashboardResponse, summary="Current session user")
async def dashboard(user: deps.SessionUserDependency) -> schemas.DashboardResponse:
    return schemas.DashboardResponse(username=user.username)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, summary="Drop the session cookie")
async def logout(settings: deps.SettingsDependency) -> Response:
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.session_cookie_name)
    return response


__all__ = ["router"]
