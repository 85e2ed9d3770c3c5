"""Upload guard driven directly through the ASGI interface."""

from __future__ import annotations

import asyncio

from fastapi import FastAPI, Request

from world_server.core.middleware import UploadGuardMiddleware


def _guarded_app(max_body: int = 100, read_timeout: float = 1.0) -> UploadGuardMiddleware:
    inner = FastAPI()

    @inner.post("/upload")
    async def read_everything(request: Request):
        body = await request.body()
        return {"size": len(body)}

    return UploadGuardMiddleware(inner, path="/upload", max_body=max_body, read_timeout=read_timeout)


def _scope(path: str = "/upload", headers=None) -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": headers or [],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }


def _run(app, scope, chunks, delay: float = 0.0):
    sent = []
    pending = list(chunks)

    async def receive():
        if delay:
            await asyncio.sleep(delay)
        if not pending:
            return {"type": "http.disconnect"}
        body, more = pending.pop(0)
        return {"type": "http.request", "body": body, "more_body": more}

    async def send(message):
        sent.append(message)

    asyncio.run(app(scope, receive, send))
    return next(message["status"] for message in sent if message["type"] == "http.response.start")


def test_body_within_limit_passes_through():
    status = _run(_guarded_app(), _scope(), [(b"a" * 40, True), (b"b" * 40, False)])

    assert status == 200


def test_streamed_body_over_limit_is_cut_off():
    chunks = [(b"x" * 60, True)] * 5

    status = _run(_guarded_app(max_body=100), _scope(), chunks)

    assert status == 413


def test_declared_length_over_limit_is_refused_without_reading():
    status = _run(
        _guarded_app(max_body=100),
        _scope(headers=[(b"content-length", b"5000")]),
        [],
    )

    assert status == 413


def test_stalled_uploader_times_out():
    status = _run(_guarded_app(read_timeout=0.05), _scope(), [(b"late", False)], delay=0.5)

    assert status == 408


def test_other_paths_are_not_guarded():
    inner = FastAPI()

    @inner.post("/other")
    async def other(request: Request):
        return {"size": len(await request.body())}

    app = UploadGuardMiddleware(inner, path="/upload", max_body=10, read_timeout=1.0)

    status = _run(app, _scope("/other"), [(b"z" * 50, False)])

    assert status == 200
