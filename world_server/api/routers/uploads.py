"""Routes for content-addressed asset upload and existence probing."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from world_server.api.deps import get_container
from world_server.core.container import ApplicationContainer
from world_server.modules.assets import InvalidAssetName, PayloadTooLarge
from world_server.schemas import UploadCheckResponse, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=UploadResponse, summary="Upload a single asset")
async def upload_asset(
    file: UploadFile = File(...),
    container: ApplicationContainer = Depends(get_container),
) -> UploadResponse:
    try:
        asset = await container.ingestor.ingest(file)
    except InvalidAssetName as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PayloadTooLarge as exc:
        logger.warning("Upload %s rejected: %s", file.filename, exc)
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc)) from exc
    return UploadResponse(filename=asset.filename)


@router.get("/upload-check", response_model=UploadCheckResponse, summary="Check whether an asset is stored")
async def check_upload(
    filename: str = Query(...),
    container: ApplicationContainer = Depends(get_container),
) -> UploadCheckResponse:
    try:
        exists = container.asset_store.exists(filename)
    except InvalidAssetName as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return UploadCheckResponse(exists=exists)
