from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import jwt
import requests
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings
from .errors import AuthError, ProviderError


security = HTTPBearer(auto_error=False)

ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class SessionUser:
    username: str


def create_session_token(username: str, settings: Settings, *, now: datetime | None = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": username,
        "username": username,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=settings.session_ttl_seconds)).timestamp()),
    }
    return jwt.encode(claims, settings.secrets.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str, settings: Settings) -> SessionUser:
    try:
        payload = jwt.decode(token, settings.secrets.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as exc:
        raise AuthError("invalid token") from exc
    username = payload.get("username") or payload.get("sub")
    if not username:
        raise AuthError("invalid token")
    return SessionUser(username=str(username))


class DiscordOAuthClient:
    """Authorization-code flow against Discord, used to identify uploaders."""

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.client_id = settings.discord_client_id
        self.client_secret = settings.secrets.discord_client_secret
        self.redirect_uri = settings.discord_redirect_uri
        self.authorize_url = settings.discord_authorize_url
        self.token_url = settings.discord_token_url
        self.user_url = settings.discord_user_url
        self.timeout_s = settings.provider_timeout_s
        self.session = session or requests.Session()

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "identify",
            "state": state,
        }
        return f"{self.authorize_url}?{urlencode(params)}"

    def exchange_code(self, code: str) -> str:
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }
        try:
            response = self.session.post(self.token_url, data=data, timeout=self.timeout_s)
            response.raise_for_status()
            return response.json()["access_token"]
        except (requests.RequestException, ValueError, KeyError) as exc:
            raise ProviderError(f"unable to exchange login code: {exc}") from exc

    def get_username(self, access_token: str) -> str:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            response = self.session.get(self.user_url, headers=headers, timeout=self.timeout_s)
            response.raise_for_status()
            user = response.json()
            username = user["username"]
        except (requests.RequestException, ValueError, KeyError) as exc:
            raise ProviderError(f"unable to fetch login profile: {exc}") from exc
        discriminator = str(user.get("discriminator") or "0")
        if discriminator != "0":
            return f"{username}#{discriminator}"
        return username


async def get_session_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> SessionUser:
    settings: Settings = request.app.state.settings
    if not settings.auth_enabled:
        return SessionUser(username=ANONYMOUS)

    token = credentials.credentials if credentials else request.cookies.get(settings.session_cookie_name)
    if not token:
        raise AuthError("missing session token")

    user = decode_session_token(token, settings)
    request.state.user = user
    return user


__all__ = [
    "ANONYMOUS",
    "DiscordOAuthClient",
    "SessionUser",
    "create_session_token",
    "decode_session_token",
    "get_session_user",
]
