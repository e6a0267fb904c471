"""HTTP routing for the clip API."""

from fastapi import APIRouter

from . import routes_auth, routes_clips, routes_system, routes_webhooks


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(routes_system.router)
    router.include_router(routes_clips.router)
    router.include_router(routes_webhooks.router)
    router.include_router(routes_auth.router)
    return router


__all__ = ["get_api_router"]
