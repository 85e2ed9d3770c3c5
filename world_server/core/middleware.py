"""Transport-level guard for the upload endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class UploadGuardMiddleware:
    """Bounds the request body of ``POST path`` and times out stalled uploaders.

    Oversized declared bodies are refused before the application runs.
    Streamed bodies are counted as they arrive and the read is aborted as
    soon as the ceiling is crossed, so the body is never retained in full.
    """

    def __init__(self, app: ASGIApp, *, path: str, max_body: int, read_timeout: float) -> None:
        self.app = app
        self.path = path
        self.max_body = max_body
        self.read_timeout = read_timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"] != self.path:
            await self.app(scope, receive, send)
            return

        declared = _content_length(scope)
        if declared is not None and declared > self.max_body:
            logger.warning("Rejected upload declaring %d bytes (limit %d)", declared, self.max_body)
            response = JSONResponse(
                {"detail": f"upload exceeds {self.max_body} bytes"},
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )
            await response(scope, receive, send)
            return

        received = 0
        body_complete = False

        async def guarded_receive() -> Message:
            nonlocal received, body_complete
            if body_complete:
                return await receive()
            try:
                message = await asyncio.wait_for(receive(), timeout=self.read_timeout)
            except asyncio.TimeoutError as exc:
                logger.warning("Upload stalled for %.1fs after %d bytes", self.read_timeout, received)
                raise HTTPException(status_code=status.HTTP_408_REQUEST_TIMEOUT, detail="upload timed out") from exc
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body:
                    logger.warning("Aborted upload after %d bytes (limit %d)", received, self.max_body)
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"upload exceeds {self.max_body} bytes",
                    )
                body_complete = not message.get("more_body", False)
            return message

        await self.app(scope, guarded_receive, send)


def _content_length(scope: Scope) -> Optional[int]:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


__all__ = ["UploadGuardMiddleware"]
