"""Bounded multipart upload ingestion into the asset store."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from .models import StoredAsset
from .store import AssetStore, extension_from_filename

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadIngestor:
    store: AssetStore
    max_bytes: int = 100 * 1024 * 1024
    chunk_size: int = 1024 * 1024

    async def ingest(self, upload: UploadFile) -> StoredAsset:
        """Hash and store a single uploaded file, returning its stored name.

        The extension comes from the client filename; the content is hashed
        while it streams so memory stays bounded by ``chunk_size``.
        """
        try:
            extension = extension_from_filename(upload.filename)
            with self.store.writer(extension, max_bytes=self.max_bytes) as writer:
                while True:
                    chunk = await upload.read(self.chunk_size)
                    if not chunk:
                        break
                    writer.write(chunk)
                asset = await run_in_threadpool(writer.commit)
        finally:
            await upload.close()

        logger.debug("Upload %s ingested as %s", upload.filename, asset.filename)
        return asset
