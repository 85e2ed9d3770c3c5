"""WebSocket admission endpoint."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket

from world_server.api.deps import get_ws_container
from world_server.core.container import ApplicationContainer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def world_socket(
    websocket: WebSocket,
    auth_token: Optional[str] = Query(default=None, alias="authToken"),
    container: ApplicationContainer = Depends(get_ws_container),
):
    logger.debug("Upgrade from %s", websocket.client.host if websocket.client else "unknown")
    await container.gateway.admit(websocket, auth_token)
