import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response

from world_server import __version__
from world_server.api import create_api_router
from world_server.api.static import AssetFiles, ClientFiles
from world_server.core.config import Settings, get_settings
from world_server.core.container import ApplicationContainer
from world_server.core.middleware import UploadGuardMiddleware
from world_server.core.supervisor import ProcessSupervisor
from world_server.websocket import SessionAuthority

logger = logging.getLogger(__name__)


async def _unhandled_error(request: Request, exc: Exception) -> Response:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return Response(status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    *,
    authority: Optional[SessionAuthority] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> FastAPI:
    settings = settings or get_settings()
    container = ApplicationContainer.build(settings, authority=authority, environ=environ)
    prefix = settings.route_prefix

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container.init_storage()
        yield

    app = FastAPI(
        title="World Server",
        description="Asset ingest and connection admission for the world runtime",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        UploadGuardMiddleware,
        path=f"{prefix}/api/upload",
        max_body=settings.upload_body_limit,
        read_timeout=settings.upload.read_timeout,
    )
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(create_api_router(prefix))
    app.mount(f"{prefix}/assets", AssetFiles(directory=settings.assets_dir, check_dir=False), name="assets")
    app.mount(prefix or "/", ClientFiles(directory=settings.public_root), name="client")

    return app


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    supervisor = ProcessSupervisor(app, settings, app.state.container.gateway)
    sys.exit(asyncio.run(supervisor.run()))
