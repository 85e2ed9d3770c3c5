from fastapi import APIRouter

from world_server.api.routers import system, uploads, websocket


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(system.router, tags=["system"])
    router.include_router(uploads.router, prefix="/api", tags=["assets"])
    router.include_router(websocket.router, tags=["world"])
    return router


__all__ = [
    "create_api_router",
]
