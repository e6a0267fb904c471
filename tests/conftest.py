import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, TypeVar

import pytest
from fastapi.testclient import TestClient

from cliphub.api import deps
from cliphub.core.auth import create_session_token
from cliphub.core.config import get_settings
from cliphub.core.db import Base, create_engine, create_schema, create_session_factory
from cliphub.core.provider import AssetProvider, parse_mux_ready_notification
from cliphub.db.repository import SqlAlchemyClipRepository
from cliphub.domain import ReadyNotification, SubmittedAsset
from cliphub.main import create_app


T = TypeVar("T")


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default environment bootstrap fixture for tests that manage their own .env",
    )


class FakeAssetProvider(AssetProvider):
    """In-memory provider that reads staged uploads straight from disk."""

    def __init__(self, staging_root: Path):
        self.staging_root = staging_root
        self.queued: list[SubmittedAsset] = []
        self.submitted_urls: list[str] = []
        self.staged_payloads: list[bytes] = []
        self.deleted: list[str] = []
        self.submit_error: Exception | None = None
        self.delete_error: Exception | None = None
        self._counter = 0

    def queue(self, playback_id: str, asset_id: str) -> None:
        self.queued.append(SubmittedAsset(playback_id=playback_id, asset_id=asset_id))

    def submit_asset(self, source_url: str) -> SubmittedAsset:
        self.submitted_urls.append(source_url)
        staged = self.staging_root / source_url.rsplit("/", 1)[-1]
        self.staged_payloads.append(staged.read_bytes())
        if self.submit_error is not None:
            raise self.submit_error
        if self.queued:
            return self.queued.pop(0)
        self._counter += 1
        return SubmittedAsset(playback_id=f"pb-{self._counter}", asset_id=f"as-{self._counter}")

    def delete_asset(self, asset_id: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(asset_id)

    def parse_ready_notification(self, payload: Mapping[str, Any]) -> ReadyNotification | None:
        return parse_mux_ready_notification(payload)


async def _create_tables() -> None:
    engine = create_engine(get_settings())
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


async def _drop_tables() -> None:
    engine = create_engine(get_settings())
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    finally:
        await engine.dispose()


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path):
    if request.node.get_closest_marker("no_default_env"):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()
        return
    db_path = tmp_path / "cliphub_test.db"
    staging_root = tmp_path / "staging"

    monkeypatch.setenv("CLIPHUB_ENV", "test")
    monkeypatch.setenv("CLIPHUB_LOG_LEVEL", "debug")
    monkeypatch.setenv("CLIPHUB_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("CLIPHUB_STAGING_ROOT", str(staging_root))
    monkeypatch.setenv("CLIPHUB_PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.setenv("CLIPHUB_JWT_SECRET", "test-secret")
    monkeypatch.setenv("CLIPHUB_MUX_TOKEN_ID", "mux-id")
    monkeypatch.setenv("CLIPHUB_MUX_TOKEN_SECRET", "mux-secret")
    monkeypatch.setenv("CLIPHUB_AUTH_ENABLED", "true")
    monkeypatch.delenv("CLIPHUB_MUX_WEBHOOK_SECRET", raising=False)
    monkeypatch.delenv("CLIPHUB_KEEP_STAGED_UPLOADS", raising=False)

    get_settings.cache_clear()
    asyncio.run(_create_tables())

    yield

    asyncio.run(_drop_tables())
    get_settings.cache_clear()


@pytest.fixture()
def settings(configure_environment):
    return get_settings()


@pytest.fixture()
def fake_provider(settings) -> FakeAssetProvider:
    return FakeAssetProvider(Path(settings.staging_root))


@pytest.fixture()
def app(fake_provider):
    application = create_app()
    application.dependency_overrides[deps.get_asset_provider] = lambda: fake_provider
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def auth_headers(settings) -> dict[str, str]:
    token = create_session_token("tester", settings)
    return {"Authorization": f"Bearer {token}"}


def _run_with_repository(scenario: Callable[[SqlAlchemyClipRepository], Awaitable[T]]) -> T:
    """Run ``scenario`` against a repository on a fresh session and engine."""

    async def _runner() -> T:
        engine = create_engine(get_settings())
        session_factory = create_session_factory(engine)
        try:
            async with session_factory() as session:
                return await scenario(SqlAlchemyClipRepository(session))
        finally:
            await engine.dispose()

    return asyncio.run(_runner())


@pytest.fixture()
def run_with_repository(configure_environment):
    return _run_with_repository
