"""In-process session registry used when no external world runtime is configured."""
import asyncio
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from world_server.core.config import Settings

from .authority import ConnectedUser

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Keeps admitted channels open and tracks who is connected.

    Inbound frames are consumed but not interpreted; a channel that stays
    silent longer than ``timeout`` seconds is closed.
    """

    def __init__(self, timeout: int = 300, check_interval: int = 30) -> None:
        self.connections: Dict[str, WebSocket] = {}
        self.last_activity: Dict[str, datetime] = {}
        self.monitor_tasks: Dict[str, asyncio.Task] = {}
        self.timeout = timedelta(seconds=timeout)
        self.check_interval = check_interval
        self._started = time.monotonic()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionRegistry":
        return cls(timeout=settings.websocket.idle_timeout, check_interval=settings.websocket.check_interval)

    async def accept(self, channel: WebSocket, token: Optional[str]) -> None:
        session_id = uuid.uuid4().hex
        self.register(session_id, channel)
        try:
            while True:
                message = await channel.receive()
                if message["type"] == "websocket.disconnect":
                    break
                self.touch(session_id)
        except WebSocketDisconnect:
            pass
        except RuntimeError as exc:
            logger.debug("Session %s channel closed: %s", session_id, exc)
        finally:
            await self.disconnect(session_id)

    def register(self, session_id: str, channel: WebSocket) -> None:
        self.connections[session_id] = channel
        self.last_activity[session_id] = _now()
        self._start_idle_monitor(session_id)
        logger.info("Session %s registered", session_id)

    async def disconnect(self, session_id: str) -> None:
        self.connections.pop(session_id, None)
        self.last_activity.pop(session_id, None)
        task = self.monitor_tasks.pop(session_id, None)
        if task and task is not asyncio.current_task():
            task.cancel()
        logger.info("Session %s disconnected", session_id)

    def touch(self, session_id: str) -> None:
        self.last_activity[session_id] = _now()

    def get_online_count(self) -> int:
        return len(self.connections)

    def connected_users(self) -> list[ConnectedUser]:
        return [ConnectedUser(id=session_id) for session_id in list(self.connections)]

    def world_time(self) -> float:
        return time.monotonic() - self._started

    def _start_idle_monitor(self, session_id: str) -> None:
        task = self.monitor_tasks.get(session_id)
        if task:
            task.cancel()
        self.monitor_tasks[session_id] = asyncio.create_task(self._idle_monitor(session_id))

    async def _idle_monitor(self, session_id: str) -> None:
        try:
            while True:
                await asyncio.sleep(self.check_interval)
                last = self.last_activity.get(session_id)
                if last is None:
                    break
                if _now() - last > self.timeout:
                    logger.warning("Session %s idle timeout, closing", session_id)
                    channel = self.connections.get(session_id)
                    if channel is not None:
                        try:
                            await channel.close(code=1001)
                        except Exception as exc:  # pylint: disable=broad-except
                            logger.debug("Failed to close session %s: %s", session_id, exc)
                    break
        except asyncio.CancelledError:
            logger.debug("Idle monitor for session %s cancelled", session_id)


def _now() -> datetime:
    return datetime.now(timezone.utc)
