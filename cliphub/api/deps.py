from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cliphub.core.auth import DiscordOAuthClient, SessionUser, get_session_user
from cliphub.core.config import Settings
from cliphub.core.provider import AssetProvider
from cliphub.core.storage import Storage
from cliphub.db.repository import ClipRepository, SqlAlchemyClipRepository
from cliphub.services.clip_service import ClipService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover - defensive
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_storage(request: Request) -> Storage:
    storage: Storage = request.app.state.storage
    return storage


def get_app_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def get_asset_provider(request: Request) -> AssetProvider:
    provider: AssetProvider = request.app.state.provider
    return provider


def get_oauth_client(request: Request) -> DiscordOAuthClient:
    client: DiscordOAuthClient = request.app.state.oauth_client
    return client


def get_clip_repository(session: AsyncSession = Depends(get_session)) -> ClipRepository:
    return SqlAlchemyClipRepository(session)


async def get_clip_service(
    settings: Settings = Depends(get_app_settings),
    storage: Storage = Depends(get_storage),
    provider: AssetProvider = Depends(get_asset_provider),
    repository: ClipRepository = Depends(get_clip_repository),
) -> AsyncIterator[ClipService]:
    service = ClipService(settings, storage, provider, repository)
    yield service


ClipServiceDependency = Annotated[ClipService, Depends(get_clip_service)]
SessionUserDependency = Annotated[SessionUser, Depends(get_session_user)]
ProviderDependency = Annotated[AssetProvider, Depends(get_asset_provider)]
SettingsDependency = Annotated[Settings, Depends(get_app_settings)]
OAuthClientDependency = Annotated[DiscordOAuthClient, Depends(get_oauth_client)]


__all__ = [
    "get_session",
    "get_storage",
    "get_app_settings",
    "get_asset_provider",
    "get_oauth_client",
    "get_clip_repository",
    "get_clip_service",
    "ClipServiceDependency",
    "SessionUserDependency",
    "ProviderDependency",
    "SettingsDependency",
    "OAuthClientDependency",
]
