"""Simple dependency container for wiring core services."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Mapping, Optional

from world_server.core.config import Settings
from world_server.core.public_env import PublicEnvironment
from world_server.modules.assets import AssetStore, UploadIngestor
from world_server.websocket import ConnectionGateway, SessionAuthority, SessionRegistry, load_authority


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    public_env: PublicEnvironment
    asset_store: AssetStore
    ingestor: UploadIngestor
    authority: SessionAuthority
    gateway: ConnectionGateway
    started_at: float = field(default_factory=time.monotonic)

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        authority: Optional[SessionAuthority] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ApplicationContainer":
        if authority is None:
            if settings.session_authority:
                authority = load_authority(settings.session_authority, settings)
            else:
                authority = SessionRegistry.from_settings(settings)

        store = AssetStore(settings.assets_dir, settings.incoming_dir)
        return cls(
            settings=settings,
            public_env=PublicEnvironment.capture(settings.base_path, environ),
            asset_store=store,
            ingestor=UploadIngestor(
                store,
                max_bytes=settings.upload.max_bytes,
                chunk_size=settings.upload.chunk_size,
            ),
            authority=authority,
            gateway=ConnectionGateway(authority),
        )

    def init_storage(self) -> None:
        """Ensure the world directory exists and bundled assets are seeded."""
        self.settings.world_dir.mkdir(parents=True, exist_ok=True)
        self.asset_store.ensure_storage()
        if self.settings.core_assets_root is not None:
            self.asset_store.seed_from(self.settings.core_assets_root)

    def uptime(self) -> float:
        return time.monotonic() - self.started_at


__all__ = ["ApplicationContainer"]
