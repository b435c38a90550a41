"""
Shared test fixtures and helpers for the Strix test suite.
"""

import pytest
from typing import List, Optional

import httpx

from strix.config.env import reset_env_loaded
from strix.di.core import Container
from strix.request import Request
from strix.response import Reply


# ============================================================================
# Request Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    for name, value in headers or []:
        raw_headers.append((name.encode("latin-1"), value.encode("latin-1")))
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """Create an ASGI receive callable from body bytes or a chunk list."""
    if chunks:
        messages = [
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
            for i, chunk in enumerate(chunks)
        ]
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive


def make_request(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    body=None,
    path_params: Optional[dict] = None,
) -> Request:
    """Build a Request with an already-parsed body (no receive channel)."""
    scope = make_scope(method=method, path=path, query_string=query_string, headers=headers)
    return Request(scope, path_params=path_params, body=body)


def make_client(app) -> httpx.AsyncClient:
    """httpx client talking to an ASGI app in-process."""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def container():
    return Container()


@pytest.fixture
def reply():
    return Reply()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Every test starts with no .env loaded and a clean working directory."""
    reset_env_loaded()
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("STRIX_ENV", raising=False)
    yield tmp_path
    reset_env_loaded()


# ============================================================================
# Server Helpers
# ============================================================================


class RecordingServer:
    """Stand-in HTTP server that records ``register`` calls."""

    def __init__(self):
        self.registered = []

    def register(self, method, path, handler):
        self.registered.append((method, path, handler))

    def handler_for(self, method, path):
        for m, p, handler in self.registered:
            if (m, p) == (method, path):
                return handler
        raise KeyError(f"{method} {path}")


@pytest.fixture
def server():
    return RecordingServer()
