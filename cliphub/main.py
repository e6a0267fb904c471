from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from cliphub.api import get_api_router
from cliphub.core.auth import DiscordOAuthClient
from cliphub.core.config import Settings, get_settings
from cliphub.core.db import create_engine, create_schema, create_session_factory, verify_connection
from cliphub.core.errors import ClipError
from cliphub.core.logging import configure_logging, get_logger, level_from_name
from cliphub.core.provider import get_asset_provider
from cliphub.core.storage import get_storage


logger = get_logger(component="app")


async def _clip_error_handler(request: Request, exc: ClipError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request_failed", path=request.url.path, error=repr(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "internal server error"})


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(messages) or "invalid request"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(level=level_from_name(settings.log_level))
    storage = get_storage(settings)
    provider = get_asset_provider(settings)
    oauth_client = DiscordOAuthClient(settings)
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Connection or schema failures propagate and abort startup.
        await verify_connection(engine)
        if settings.auto_create_schema:
            await create_schema(engine)
        logger.info("app_started", environment=settings.environment, public_base_url=settings.public_base_url)
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.provider = provider
    app.state.oauth_client = oauth_client
    app.state.engine = engine
    app.state.session_factory = session_factory

    app.add_exception_handler(ClipError, _clip_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(get_api_router())
    app.mount(settings.staging_url_path, StaticFiles(directory=str(settings.staging_root)), name="staged_clips")
    return app


__all__ = ["create_app"]
