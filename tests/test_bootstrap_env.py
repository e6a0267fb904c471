from __future__ import annotations

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cliphub.core.config import get_settings
from cliphub.main import create_app


pytestmark = pytest.mark.no_default_env


def _write_env(target_dir: Path, *, environment: str, jwt_secret: str | None = "dev-secret") -> Path:
    target_dir.mkdir(parents=True, exist_ok=True)
    lines = [
        f"CLIPHUB_ENV={environment}",
        "CLIPHUB_LOG_LEVEL=debug",
        "CLIPHUB_DB_URL=sqlite+aiosqlite:///./cliphub.db",
        "CLIPHUB_STAGING_ROOT=staging",
        "CLIPHUB_PUBLIC_BASE_URL=http://clips.example",
        "MUX_TOKEN_ID=mux-id",
        "MUX_TOKEN_SECRET=mux-secret",
    ]
    if jwt_secret is not None:
        lines.append(f"CLIPHUB_JWT_SECRET={jwt_secret}")
    env_path = target_dir / ".env"
    env_path.write_text("\n".join(lines))
    return env_path


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    saved = dict(os.environ)
    for key in list(os.environ.keys()):
        if key.startswith("CLIPHUB_") or key in {"DB_CONN_STR", "MUX_TOKEN_ID", "MUX_TOKEN_SECRET", "JWT_SECRET"}:
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    os.environ.clear()
    os.environ.update(saved)


def test_env_file_boots_without_shell_exports(tmp_path: Path):
    _write_env(tmp_path, environment="development")

    settings = get_settings()
    assert settings.environment == "development"
    assert settings.database_url == "sqlite+aiosqlite:///./cliphub.db"
    assert settings.secrets.mux_token_id == "mux-id"
    assert settings.staged_url("abc-clip.mp4") == "http://clips.example/clips/temp/abc-clip.mp4"

    with TestClient(create_app()) as client:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
    assert (tmp_path / "cliphub.db").exists()
    assert (tmp_path / "staging").is_dir()


def test_production_requires_real_jwt_secret(tmp_path: Path):
    _write_env(tmp_path, environment="production", jwt_secret=None)
    with pytest.raises(ValueError):
        get_settings()


def test_production_boots_with_configured_secret(tmp_path: Path):
    _write_env(tmp_path, environment="production", jwt_secret="a-real-secret")
    settings = get_settings()
    assert settings.environment_lower == "production"
    assert settings.secrets.jwt_secret == "a-real-secret"


def test_legacy_connection_string_alias(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DB_CONN_STR", "postgresql+asyncpg://clips:pw@db/clips")
    monkeypatch.setenv("JWT_SECRET", "from-alias")
    settings = get_settings()
    assert settings.database_url == "postgresql+asyncpg://clips:pw@db/clips"
    assert settings.secrets.jwt_secret == "from-alias"


def test_prefixed_variable_wins_over_alias(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CLIPHUB_DATABASE_URL", "sqlite+aiosqlite:///./explicit.db")
    monkeypatch.setenv("DB_CONN_STR", "postgresql+asyncpg://clips:pw@db/clips")
    assert get_settings().database_url == "sqlite+aiosqlite:///./explicit.db"
