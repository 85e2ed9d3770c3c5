"""Listener lifecycle and signal-driven shutdown for the whole server."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import signal
import socket
from typing import Iterator, Optional, Sequence

import uvicorn
from fastapi import FastAPI

from world_server.core.config import Settings
from world_server.websocket import ConnectionGateway

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BIND_FAILED = 1


class SupervisorState(str, enum.Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


class _SupervisedServer(uvicorn.Server):
    """uvicorn server whose signals are handled by the supervisor."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class ProcessSupervisor:
    """Runs the ASGI app and sequences ``RUNNING -> SHUTTING_DOWN -> TERMINATED``.

    The first termination signal closes the gateway to new upgrades and asks
    uvicorn to stop; :meth:`run` returns only once uvicorn has closed the
    listening socket and awaited its closure. Repeated signals are ignored.
    """

    def __init__(
        self,
        app: FastAPI,
        settings: Settings,
        gateway: ConnectionGateway,
        *,
        signals: Sequence[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
    ) -> None:
        self.app = app
        self.settings = settings
        self.gateway = gateway
        self.signals = tuple(signals)
        self.state = SupervisorState.RUNNING
        self.server: Optional[_SupervisedServer] = None
        self.listener: Optional[socket.socket] = None
        self.installed_signals: list[signal.Signals] = []

    @property
    def bound_port(self) -> Optional[int]:
        if self.listener is None:
            return None
        return self.listener.getsockname()[1]

    async def run(self) -> int:
        try:
            self.listener = bind_listener(self.settings.host, self.settings.port)
        except OSError as exc:
            logger.error("%s", exc)
            logger.error("failed to launch on port %s", self.settings.port)
            self.state = SupervisorState.TERMINATED
            return EXIT_BIND_FAILED

        config = uvicorn.Config(
            self.app,
            log_level=self.settings.log_level,
            timeout_graceful_shutdown=self.settings.shutdown.graceful_timeout,
            lifespan="on",
        )
        self.server = _SupervisedServer(config)
        if self.state is not SupervisorState.RUNNING:
            # shutdown requested while the listener was being bound
            self.server.should_exit = True
        self.installed_signals = self._install_signal_handlers()
        logger.info("running %s on port %s", self.settings.world, self.bound_port)
        try:
            await self.server.serve(sockets=[self.listener])
        finally:
            self._remove_signal_handlers(self.installed_signals)
            self.listener.close()
            self.state = SupervisorState.TERMINATED
        logger.info("Listener closed, server terminated")
        return EXIT_OK

    def request_shutdown(self, signum: Optional[int] = None) -> None:
        if self.state is not SupervisorState.RUNNING:
            logger.info("Shutdown already in progress, ignoring signal %s", signum)
            return
        self.state = SupervisorState.SHUTTING_DOWN
        logger.info("Received signal %s, shutting down", signum)
        self.gateway.close()
        if self.server is not None:
            self.server.should_exit = True

    async def wait_until_serving(self, poll_interval: float = 0.05) -> None:
        while self.server is None or not self.server.started:
            if self.state is SupervisorState.TERMINATED:
                raise RuntimeError("server terminated before it started serving")
            await asyncio.sleep(poll_interval)

    def _install_signal_handlers(self) -> list[signal.Signals]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in self.signals:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
            except (NotImplementedError, RuntimeError):
                # loop without signal support or not the main thread
                logger.debug("Cannot install handler for %s", sig)
                continue
            installed.append(sig)
        return installed

    @staticmethod
    def _remove_signal_handlers(installed: Sequence[signal.Signals]) -> None:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)


def bind_listener(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


__all__ = ["ProcessSupervisor", "SupervisorState", "bind_listener", "EXIT_OK", "EXIT_BIND_FAILED"]
