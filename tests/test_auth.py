from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import jwt
import pytest
import requests
from fastapi.testclient import TestClient

from cliphub.api import deps
from cliphub.core.auth import DiscordOAuthClient, create_session_token, decode_session_token
from cliphub.core.config import get_settings
from cliphub.core.errors import AuthError, ProviderError
from cliphub.main import create_app


class FakeOAuthClient:
    def __init__(self, username: str = "ranger"):
        self.username = username
        self.codes: list[str] = []

    def authorization_url(self, state: str) -> str:
        return f"https://discord.test/authorize?state={state}"

    def exchange_code(self, code: str) -> str:
        self.codes.append(code)
        return f"access-{code}"

    def get_username(self, access_token: str) -> str:
        assert access_token.startswith("access-")
        return self.username


@pytest.fixture()
def oauth_client(app):
    fake = FakeOAuthClient()
    app.dependency_overrides[deps.get_oauth_client] = lambda: fake
    return fake


def test_session_token_round_trip(settings):
    token = create_session_token("ranger#1234", settings)
    assert decode_session_token(token, settings).username == "ranger#1234"


def test_expired_session_token_is_rejected(settings):
    issued = datetime.now(timezone.utc) - timedelta(seconds=settings.session_ttl_seconds + 60)
    token = create_session_token("ranger", settings, now=issued)
    with pytest.raises(AuthError):
        decode_session_token(token, settings)


def test_login_redirects_to_provider_with_state_cookie(client):
    resp = client.get("/login", follow_redirects=False)
    assert resp.status_code == 307
    location = urlparse(resp.headers["location"])
    query = parse_qs(location.query)
    assert location.netloc == "discord.com"
    assert query["scope"] == ["identify"]
    assert query["redirect_uri"] == ["http://testserver/redirect"]
    assert query["state"] == [resp.cookies["oauth_state"]]


def test_login_callback_sets_session_cookie(client, oauth_client, settings):
    client.cookies.set("oauth_state", "state-123")
    resp = client.get("/redirect", params={"code": "abc", "state": "state-123"}, follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"
    assert oauth_client.codes == ["abc"]
    token = resp.cookies[settings.session_cookie_name]
    assert decode_session_token(token, settings).username == "ranger"

    client.cookies.set(settings.session_cookie_name, token)
    dashboard = client.get("/dashboard")
    assert dashboard.status_code == 200
    assert dashboard.json() == {"username": "ranger"}


def test_login_callback_without_code_is_client_error(client, oauth_client):
    resp = client.get("/redirect", follow_redirects=False)
    assert resp.status_code == 400
    assert resp.json() == {"error": "missing authorization code"}
    assert oauth_client.codes == []


def test_login_callback_with_wrong_state_is_client_error(client, oauth_client):
    client.cookies.set("oauth_state", "expected")
    resp = client.get("/redirect", params={"code": "abc", "state": "forged"}, follow_redirects=False)
    assert resp.status_code == 400
    assert resp.json() == {"error": "login state mismatch"}


def test_dashboard_requires_session(client):
    resp = client.get("/dashboard")
    assert resp.status_code == 401
    assert resp.json() == {"error": "missing session token"}


def test_token_signed_with_other_secret_is_rejected(client, settings):
    forged = jwt.encode({"sub": "mallory", "username": "mallory"}, "other-secret", algorithm="HS256")
    resp = client.get("/dashboard", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "invalid token"}


def test_logout_clears_cookie(client):
    resp = client.post("/logout")
    assert resp.status_code == 204
    assert "jwt=" in resp.headers["set-cookie"]


def test_auth_disabled_uploads_use_form_username(monkeypatch, fake_provider):
    monkeypatch.setenv("CLIPHUB_AUTH_ENABLED", "false")
    get_settings.cache_clear()
    application = create_app()
    application.dependency_overrides[deps.get_asset_provider] = lambda: fake_provider

    with TestClient(application) as client:
        resp = client.post(
            "/clips/upload",
            data={"title": "open door", "username": "typed-name"},
            files={"videofile": ("clip.mp4", b"bytes", "video/mp4")},
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["uploaded_by"] == "typed-name"
        assert client.get("/dashboard").json() == {"username": "anonymous"}


class StubResponse:
    def __init__(self, status_code: int, payload):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class StubSession:
    def __init__(self, token_response: StubResponse, user_response: StubResponse | None = None):
        self.token_response = token_response
        self.user_response = user_response
        self.posted: list[dict] = []

    def post(self, url, data=None, timeout=None):
        self.posted.append(data)
        return self.token_response

    def get(self, url, headers=None, timeout=None):
        return self.user_response


def test_discord_client_exchanges_code_and_formats_username(settings):
    session = StubSession(
        StubResponse(200, {"access_token": "tok"}),
        StubResponse(200, {"username": "ranger", "discriminator": "1234"}),
    )
    oauth = DiscordOAuthClient(settings, session=session)

    assert oauth.exchange_code("abc") == "tok"
    assert session.posted[0]["grant_type"] == "authorization_code"
    assert session.posted[0]["redirect_uri"] == "http://testserver/redirect"
    assert oauth.get_username("tok") == "ranger#1234"


def test_discord_client_drops_legacy_zero_discriminator(settings):
    session = StubSession(StubResponse(200, {}), StubResponse(200, {"username": "ranger", "discriminator": "0"}))
    assert DiscordOAuthClient(settings, session=session).get_username("tok") == "ranger"


def test_discord_client_wraps_failed_exchange(settings):
    oauth = DiscordOAuthClient(settings, session=StubSession(StubResponse(400, {"error": "invalid_grant"})))
    with pytest.raises(ProviderError):
        oauth.exchange_code("bad")
