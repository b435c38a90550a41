"""
Middleware system - composable, async-first request middleware.

A middleware is a class with ``use(request, reply, next)`` or a plain
callable with the same signature. It runs code around the rest of the
pipeline by awaiting ``next()``; not calling ``next`` completes the request
with whatever the middleware put on the reply.
"""

from __future__ import annotations

import inspect
import os
import time
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from .constants import MIDDLEWARE, USE_MIDDLEWARE, AttachMode
from .metadata import store


# (request, reply) -> None; the reply carries the outcome
Handler = Callable[[Any, Any], Awaitable[None]]
Next = Callable[[], Awaitable[None]]


def middleware(cls: Any = None) -> Any:
    """Mark a class as middleware (middleware is injectable)."""
    def decorator(target: type) -> type:
        store.attach(target, MIDDLEWARE, True)
        return target

    if cls is not None:
        return decorator(cls)
    return decorator


def use_middleware(*middlewares: Any):
    """
    Attach middleware to a controller class or a route handler.

    Controller-level middleware wraps method-level middleware.
    """
    def decorator(target: Any) -> Any:
        for ref in middlewares:
            store.attach(target, USE_MIDDLEWARE, ref, AttachMode.APPEND)
        return target
    return decorator


class MiddlewareChain:
    """
    Builds an onion of middleware around a final handler.

    The first middleware is the outermost.
    """

    def __init__(self, middlewares: Optional[Iterable[Any]] = None):
        self.middlewares: List[Any] = list(middlewares or [])

    def add(self, mw: Any) -> None:
        self.middlewares.append(mw)

    def build(self, final_handler: Handler) -> Handler:
        """Build middleware chain wrapping the final handler."""
        handler = final_handler

        # Wrap in reverse order so first middleware is outermost
        for mw in reversed(self.middlewares):
            handler = self._wrap(mw, handler)

        return handler

    @staticmethod
    def _wrap(mw: Any, next_handler: Handler) -> Handler:
        use = mw.use if hasattr(mw, "use") else mw

        async def wrapped(request: Any, reply: Any) -> None:
            async def call_next() -> None:
                await next_handler(request, reply)

            result = use(request, reply, call_next)
            if inspect.isawaitable(result):
                await result

        return wrapped


# Default middleware implementations

class RequestIdMiddleware:
    """Adds a unique request ID to each request and reply."""

    def __init__(self, header_name: str = "X-Request-ID"):
        self.header_name = header_name
        self._lookup = header_name.lower()

    async def use(self, request: Any, reply: Any, next: Next) -> None:
        request_id = request.headers.get(self._lookup) or os.urandom(16).hex()
        request.state["request_id"] = request_id
        reply.header(self.header_name, request_id)
        await next()


class ResponseTimeMiddleware:
    """Adds an ``X-Response-Time`` header with the pipeline duration."""

    def __init__(self, header_name: str = "X-Response-Time"):
        self.header_name = header_name

    async def use(self, request: Any, reply: Any, next: Next) -> None:
        start = time.perf_counter()
        try:
            await next()
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            reply.header(self.header_name, f"{elapsed_ms:.2f}ms")
