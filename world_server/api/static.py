"""Static serving for stored assets and the prebuilt client bundle."""

from __future__ import annotations

import os
import time
from email.utils import formatdate
from typing import Any

from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

from world_server.schemas import NotFoundResponse

ONE_YEAR_SECONDS = 31536000
RESERVED_PREFIXES = frozenset({"api", "assets"})
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def not_found_response(scope: Scope) -> JSONResponse:
    payload = NotFoundResponse.for_route(scope.get("method", "GET"), scope["path"])
    return JSONResponse(payload.to_payload(), status_code=404)


class AssetFiles(StaticFiles):
    """Stored assets are content-addressed and never change."""

    def file_response(self, *args: Any, **kwargs: Any) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers["Cache-Control"] = f"public, max-age={ONE_YEAR_SECONDS}, immutable"
        response.headers["Expires"] = formatdate(time.time() + ONE_YEAR_SECONDS, usegmt=True)
        return response

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code == 404:
                return not_found_response(scope)
            raise


class ClientFiles(StaticFiles):
    """Client bundle with entry-document fallback for client-side routing.

    Paths under the reserved ``api/`` and ``assets/`` prefixes never fall
    back to the entry document.
    """

    entry_document = "index.html"

    def __init__(self, *, directory: "os.PathLike[str] | str") -> None:
        super().__init__(directory=directory, check_dir=False)

    def file_response(self, *args: Any, **kwargs: Any) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers.update(NO_CACHE_HEADERS)
        return response

    async def get_response(self, path: str, scope: Scope) -> Response:
        first_segment = path.replace(os.sep, "/").lstrip("/").split("/", 1)[0]
        if first_segment in RESERVED_PREFIXES:
            return not_found_response(scope)
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
        return await super().get_response(self.entry_document, scope)
