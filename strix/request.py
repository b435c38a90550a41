"""
Request object built from an ASGI scope.

Wire-level parsing belongs to the ASGI server; this class only exposes the
pieces the pipeline needs. The body is read and decoded at most once, by
the pipeline after guards have passed.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qsl

from .faults.core import Fault, FaultDomain


class BadRequestFault(Fault):
    """The request body could not be decoded."""

    domain = FaultDomain.FLOW
    status = 400

    def __init__(self, message: str):
        super().__init__(
            code="BAD_REQUEST",
            message=message,
            domain=FaultDomain.FLOW,
            public=True,
        )


class Request:
    """
    Request for one HTTP exchange.

    Attributes:
        scope: ASGI scope dict
        path_params: Values matched from the route template
        body: Parsed body (JSON value, form dict, text, or None)
        state: Per-request scratch space for middleware
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Optional[Callable[[], Awaitable[dict]]] = None,
        *,
        path_params: Optional[Dict[str, str]] = None,
        body: Any = None,
    ):
        self.scope = scope
        self._receive = receive
        self.path_params: Dict[str, str] = dict(path_params or {})
        self.body: Any = body
        self.state: Dict[str, Any] = {}

        self._raw_body: Optional[bytes] = None
        self._headers: Optional[Dict[str, str]] = None
        self._query: Optional[Dict[str, Any]] = None
        self._disconnected = False
        self._loaded = False
        self._body_read = asyncio.Event()

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        return self.scope.get("method", "GET")

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def client(self) -> Optional[tuple]:
        """Client address (host, port)."""
        return self.scope.get("client")

    @property
    def headers(self) -> Dict[str, str]:
        """Headers with lower-cased names; repeated headers are comma-joined."""
        if self._headers is None:
            headers: Dict[str, str] = {}
            for raw_name, raw_value in self.scope.get("headers", ()):
                name = raw_name.decode("latin-1").lower()
                value = raw_value.decode("latin-1")
                headers[name] = f"{headers[name]}, {value}" if name in headers else value
            self._headers = headers
        return self._headers

    @property
    def query(self) -> Dict[str, Any]:
        """Query parameters; repeated keys collect into a list."""
        if self._query is None:
            query: Dict[str, Any] = {}
            for key, value in parse_qsl(self.query_string, keep_blank_values=True):
                if key in query:
                    existing = query[key]
                    query[key] = existing + [value] if isinstance(existing, list) else [existing, value]
                else:
                    query[key] = value
            self._query = query
        return self._query

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").split(";")[0].strip().lower()

    # ========================================================================
    # Body
    # ========================================================================

    async def read_body(self) -> bytes:
        """Read the full body from the ASGI receive channel (cached)."""
        if self._raw_body is not None:
            return self._raw_body

        chunks = []
        try:
            if self._receive is not None:
                while True:
                    message = await self._receive()
                    if message["type"] == "http.disconnect":
                        self._disconnected = True
                        break
                    chunks.append(message.get("body", b""))
                    if not message.get("more_body", False):
                        break
        finally:
            self._body_read.set()

        self._raw_body = b"".join(chunks)
        return self._raw_body

    async def load(self) -> None:
        """
        Read and decode the body into ``self.body``.

        Only the first call does any work. A request built without a receive
        channel keeps the ``body`` it was given.

        Raises:
            BadRequestFault: Malformed JSON or non-UTF-8 text
        """
        if self._loaded:
            return
        self._loaded = True
        if self._receive is None:
            return

        raw = await self.read_body()
        if not raw:
            self.body = None
            return

        content_type = self.content_type
        try:
            if content_type == "application/json" or content_type.endswith("+json"):
                self.body = json.loads(raw.decode("utf-8"))
            elif content_type == "application/x-www-form-urlencoded":
                self.body = dict(parse_qsl(raw.decode("utf-8"), keep_blank_values=True))
            else:
                self.body = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise BadRequestFault(f"Invalid UTF-8 in request body: {e}") from e
        except json.JSONDecodeError as e:
            raise BadRequestFault(f"Invalid JSON: {e}") from e

    # ========================================================================
    # Disconnect tracking
    # ========================================================================

    def is_disconnected(self) -> bool:
        """Check if client has disconnected."""
        return self._disconnected

    def mark_disconnected(self) -> None:
        self._disconnected = True

    async def listen_for_disconnect(self) -> None:
        """
        Wait on the receive channel until the client goes away.

        Waits for the body to be read first so the two never share the
        channel.
        """
        if self._receive is None:
            return
        await self._body_read.wait()
        while not self._disconnected:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self._disconnected = True

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
