from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Secrets(BaseSettings):
    """Credentials loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="CLIPHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for session tokens.")
    mux_token_id: str = Field(default="", description="Mux API access token id.")
    mux_token_secret: str = Field(default="", description="Mux API access token secret.")
    mux_webhook_secret: Optional[str] = Field(default=None, description="Signing secret for Mux webhooks.")
    discord_client_secret: str = Field(default="", description="Discord OAuth client secret.")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Secrets":
        return cls()


class Settings(BaseSettings):
    """Centralised runtime configuration for the clip API."""

    model_config = SettingsConfigDict(
        env_prefix="CLIPHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "cliphub"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./cliphub.db",
        description="SQLAlchemy compatible DSN (postgresql+asyncpg:// in production).",
    )
    auto_create_schema: bool = Field(default=True, description="Create missing tables on startup.")

    listen_host: str = Field(default="0.0.0.0")
    listen_port: int = Field(default=8083)
    public_base_url: str = Field(
        default="http://localhost:8083",
        description="Externally reachable base URL; the provider fetches staged uploads from here.",
    )

    staging_root: Path = Field(default_factory=lambda: Path("clips/temp"), description="Directory for staged uploads.")
    staging_url_path: str = Field(default="/clips/temp", description="URL path the staging directory is served under.")
    max_upload_size_bytes: int = Field(default=40 * 1024 * 1024, description="Hard limit for clip uploads.")
    keep_staged_uploads: bool = Field(
        default=False,
        description=(
            "Keep staged files after provider submission. Mux fetches the staged URL after the create call "
            "returns, so enable this against the real Mux API and expire the directory separately."
        ),
    )

    mux_api_base_url: str = Field(default="https://api.mux.com")
    provider_timeout_s: float = Field(default=30.0, description="Timeout for outbound provider requests.")

    auth_enabled: bool = Field(default=True, description="Guard upload/delete routes behind a session.")
    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for session tokens.")
    session_ttl_seconds: int = Field(default=7 * 24 * 3600)
    session_cookie_name: str = Field(default="jwt")
    cookie_secure: bool = Field(default=False)

    discord_client_id: str = Field(default="")
    discord_authorize_url: str = Field(default="https://discord.com/api/oauth2/authorize")
    discord_token_url: str = Field(default="https://discord.com/api/oauth2/token")
    discord_user_url: str = Field(default="https://discord.com/api/users/@me")
    discord_redirect_path: str = Field(default="/redirect")

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def discord_redirect_uri(self) -> str:
        return self.public_base_url.rstrip("/") + self.discord_redirect_path

    def staged_url(self, key: str) -> str:
        return f"{self.public_base_url.rstrip('/')}{self.staging_url_path}/{key}"


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "CLIPHUB_ENV": "CLIPHUB_ENVIRONMENT",
        "CLIPHUB_DB_URL": "CLIPHUB_DATABASE_URL",
        "DB_CONN_STR": "CLIPHUB_DATABASE_URL",
        "MUX_TOKEN_ID": "CLIPHUB_MUX_TOKEN_ID",
        "MUX_TOKEN_SECRET": "CLIPHUB_MUX_TOKEN_SECRET",
        "DISCORD_CLIENT_ID": "CLIPHUB_DISCORD_CLIENT_ID",
        "DISCORD_CLIENT_SECRET": "CLIPHUB_DISCORD_CLIENT_SECRET",
        "JWT_SECRET": "CLIPHUB_JWT_SECRET",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value and not os.getenv(target):
            os.environ[target] = value

    settings = Settings()
    secrets = Secrets.from_settings(settings)

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")

    settings.secrets = secrets
    return settings


__all__ = ["Secrets", "Settings", "get_settings"]
