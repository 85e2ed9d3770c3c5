"""Health, status and public environment routes."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, Response

from world_server.api.deps import get_container
from world_server.core.container import ApplicationContainer
from world_server.schemas import ConnectedUserInfo, HealthResponse, StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_response() -> JSONResponse:
    return JSONResponse(
        HealthResponse(status="error", timestamp=_timestamp()).model_dump(exclude_none=True),
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


@router.get("/env.js", include_in_schema=False)
async def public_env(container: ApplicationContainer = Depends(get_container)) -> Response:
    return Response(container.public_env.script, media_type="application/javascript")


@router.get("/health", response_model=HealthResponse)
async def health(container: ApplicationContainer = Depends(get_container)) -> JSONResponse:
    try:
        payload = HealthResponse(status="ok", timestamp=_timestamp(), uptime=container.uptime())
        return JSONResponse(payload.model_dump())
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("Health check failed: %s", exc)
        return _error_response()


@router.get("/status", response_model=StatusResponse)
async def server_status(container: ApplicationContainer = Depends(get_container)) -> JSONResponse:
    settings = container.settings
    try:
        users = [
            ConnectedUserInfo(**user.to_mapping())
            for user in container.authority.connected_users()
        ]
        payload = StatusResponse(
            uptime=math.floor(container.authority.world_time() + 0.5),
            protected=settings.is_protected,
            connected_users=users,
            world=settings.world,
            commit_hash=settings.commit_hash,
        )
        return JSONResponse(payload.model_dump(by_alias=True))
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("Status failed: %s", exc)
        return _error_response()
