"""Admission of WebSocket upgrades and handoff to the session authority."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import WebSocket

from .authority import SessionAuthority

logger = logging.getLogger(__name__)

# RFC 6455 "service restart"
CLOSE_SERVICE_RESTART = 1012


class ConnectionGateway:
    """Completes upgrades and passes each channel to the authority exactly once.

    Under ASGI a channel lives as long as its handler task, so the handoff is
    the handler's final awaited call; nothing is kept once it is made.
    """

    def __init__(self, authority: SessionAuthority) -> None:
        self._authority = authority
        self._accepting = True

    @property
    def accepting(self) -> bool:
        return self._accepting

    def close(self) -> None:
        if self._accepting:
            self._accepting = False
            logger.info("Connection gateway closed to new upgrades")

    async def admit(self, websocket: WebSocket, token: Optional[str]) -> None:
        if not self._accepting:
            await websocket.close(code=CLOSE_SERVICE_RESTART)
            return
        await websocket.accept()
        await self._authority.accept(websocket, token)
