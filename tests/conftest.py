from __future__ import annotations

from typing import Optional

import pytest
from fastapi import WebSocket
from fastapi.testclient import TestClient

from world_server.core.config import Settings, UploadSettings
from world_server.main import create_app
from world_server.websocket import ConnectedUser

PUBLIC_ENVIRON = {
    "PUBLIC_API_URL": "https://api.example.test",
    "PUBLIC_MAX_PLAYERS": "32",
    "ADMIN_CODE": "do-not-leak",
}


class RecordingAuthority:
    """Session authority double that records every handoff."""

    def __init__(self) -> None:
        self.handoffs: list[tuple[WebSocket, Optional[str]]] = []
        self.users = [ConnectedUser(id="user-1", name="Alice", position=(1.0, 2.0, 3.0))]
        self.time = 42.4

    async def accept(self, channel: WebSocket, token: Optional[str]) -> None:
        self.handoffs.append((channel, token))
        await channel.send_text("welcome")

    def connected_users(self) -> list[ConnectedUser]:
        return list(self.users)

    def world_time(self) -> float:
        return self.time


def make_settings(tmp_path, **overrides) -> Settings:
    public_dir = tmp_path / "public"
    public_dir.mkdir(exist_ok=True)
    (public_dir / "index.html").write_text("<html>entry</html>", encoding="utf-8")
    (public_dir / "app.js").write_text("console.log('client')", encoding="utf-8")
    values = dict(
        _env_file=None,
        storage_path=tmp_path / "data",
        storage_dirname="world",
        public_dir=public_dir,
        world="test-world",
        commit_hash="abc123",
        upload=UploadSettings(max_bytes=4096, multipart_overhead=1024),
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def authority() -> RecordingAuthority:
    return RecordingAuthority()


@pytest.fixture
def app(settings, authority):
    return create_app(settings, authority=authority, environ=PUBLIC_ENVIRON)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def assets_dir(settings):
    return settings.assets_dir
