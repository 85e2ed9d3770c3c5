"""FastAPI integration tests covering upload + upload-check flow."""

from __future__ import annotations

import asyncio
import hashlib
import io

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient

from world_server.modules.assets import AssetStore, AssetStoreError, PayloadTooLarge, UploadIngestor

HELLO_SHA256 = "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"


def _upload(client: TestClient, content: bytes, filename: str = "a.txt"):
    return client.post("/api/upload", files={"file": (filename, content, "application/octet-stream")})


def test_upload_and_check_flow(client: TestClient, assets_dir):
    stored_name = f"{HELLO_SHA256}.txt"
    before = client.get("/api/upload-check", params={"filename": stored_name})
    assert before.status_code == 200
    assert before.json() == {"exists": False}

    resp = _upload(client, b"hello world", "a.txt")
    assert resp.status_code == 200
    assert resp.json() == {"filename": stored_name}
    assert (assets_dir / stored_name).read_bytes() == b"hello world"

    after = client.get("/api/upload-check", params={"filename": stored_name})
    assert after.json() == {"exists": True}

    again = _upload(client, b"hello world", "copy-of-a.TXT")
    assert again.status_code == 200
    assert again.json() == {"filename": stored_name}
    assert sorted(path.name for path in assets_dir.iterdir()) == [stored_name]


def test_upload_without_extension_is_rejected(client: TestClient, assets_dir):
    resp = _upload(client, b"data", "README")

    assert resp.status_code == 400
    assert list(assets_dir.iterdir()) == []


def test_upload_requires_a_file_part(client: TestClient):
    resp = client.post("/api/upload", data={"note": "no file here"})

    assert resp.status_code == 422


def test_declared_oversized_body_is_rejected_before_handler(client: TestClient, settings):
    payload = b"x" * (settings.upload_body_limit + 1)

    resp = _upload(client, payload, "big.bin")

    assert resp.status_code == 413
    assert list(settings.assets_dir.iterdir()) == []
    assert list(settings.incoming_dir.iterdir()) == []


def test_file_over_ceiling_within_body_allowance_is_rejected(client: TestClient, settings):
    payload = b"y" * (settings.upload.max_bytes + 100)
    assert len(payload) < settings.upload_body_limit - 512

    resp = _upload(client, payload, "big.bin")

    assert resp.status_code == 413
    assert list(settings.assets_dir.iterdir()) == []
    assert list(settings.incoming_dir.iterdir()) == []


def test_file_at_ceiling_is_accepted(client: TestClient, settings):
    payload = b"z" * settings.upload.max_bytes

    resp = _upload(client, payload, "edge.bin")

    assert resp.status_code == 200
    assert resp.json()["filename"] == f"{hashlib.sha256(payload).hexdigest()}.bin"


@pytest.mark.parametrize("filename", ["../world/db.sqlite", "..", "nested/file.txt"])
def test_upload_check_rejects_paths(client: TestClient, filename: str):
    resp = client.get("/api/upload-check", params={"filename": filename})

    assert resp.status_code == 400


def test_upload_check_requires_filename(client: TestClient):
    assert client.get("/api/upload-check").status_code == 422


def test_storage_failure_is_an_opaque_500(app, monkeypatch):
    def broken_writer(self, extension, max_bytes=None):
        raise AssetStoreError("disk full")

    monkeypatch.setattr(AssetStore, "writer", broken_writer)

    with TestClient(app, raise_server_exceptions=False) as client:
        resp = _upload(client, b"hello world", "a.txt")

    assert resp.status_code == 500
    assert resp.content == b""


def test_concurrent_identical_ingests_store_one_file(tmp_path):
    store = AssetStore(tmp_path / "assets", tmp_path / ".incoming")
    store.ensure_storage()
    ingestor = UploadIngestor(store, max_bytes=1024 * 1024, chunk_size=4096)
    payload = bytes(range(256)) * 512

    async def ingest_all():
        uploads = [UploadFile(io.BytesIO(payload), filename=f"copy-{i}.bin") for i in range(10)]
        return await asyncio.gather(*(ingestor.ingest(upload) for upload in uploads))

    results = asyncio.run(ingest_all())

    expected = f"{hashlib.sha256(payload).hexdigest()}.bin"
    assert {asset.filename for asset in results} == {expected}
    assert sum(asset.created for asset in results) == 1
    assert [path.name for path in store.root.iterdir()] == [expected]
    assert (store.root / expected).stat().st_size == len(payload)


def test_ingestor_enforces_ceiling(tmp_path):
    store = AssetStore(tmp_path / "assets", tmp_path / ".incoming")
    store.ensure_storage()
    ingestor = UploadIngestor(store, max_bytes=10, chunk_size=4)
    upload = UploadFile(io.BytesIO(b"0123456789ABCDEF"), filename="big.bin")

    with pytest.raises(PayloadTooLarge):
        asyncio.run(ingestor.ingest(upload))

    assert list(store.root.iterdir()) == []
    assert list(store.incoming_dir.iterdir()) == []


def test_chunked_oversized_upload_without_length_is_rejected(client: TestClient, settings):
    boundary = "world-server-boundary"
    head = (
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="file"; filename="big.bin"\r\n'
        "Content-Type: application/octet-stream\r\n\r\n"
    ).encode()
    tail = f"\r\n--{boundary}--\r\n".encode()
    chunk = b"c" * 1024

    def body():
        yield head
        for _ in range(settings.upload_body_limit // len(chunk) + 2):
            yield chunk
        yield tail

    resp = client.post(
        "/api/upload",
        content=body(),
        headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
    )

    assert resp.status_code == 413
    assert list(settings.assets_dir.iterdir()) == []
    assert list(settings.incoming_dir.iterdir()) == []
