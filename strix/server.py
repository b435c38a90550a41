"""
ASGI server - the reference transport compiled routes are registered with.

Route matching (per method):
- Static routes: dict lookup on the normalised path.
- Template routes (``/users/{id}``): segment-wise match, ordered so that a
  static segment beats a parameter at the same position.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from .faults.core import Fault
from .faults.domains import MethodNotAllowedFault, NotFoundFault
from .request import Request
from .response import Reply
from .routing.pipeline import error_body


logger = logging.getLogger("strix.server")

RouteHandler = Callable[[Request, Reply], Awaitable[Reply]]


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def _segments(path: str) -> List[str]:
    return [s for s in path.split("/") if s]


def _is_param(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


class _TemplateRoute:
    __slots__ = ("template", "segments", "handler", "specificity")

    def __init__(self, template: str, handler: RouteHandler):
        self.template = template
        self.segments = _segments(template)
        self.handler = handler
        # 0 sorts before 1: static segments win over parameters position by position
        self.specificity = tuple(1 if _is_param(s) else 0 for s in self.segments)

    def match(self, parts: List[str]) -> Optional[Dict[str, str]]:
        if len(parts) != len(self.segments):
            return None
        params: Dict[str, str] = {}
        for segment, part in zip(self.segments, parts):
            if _is_param(segment):
                params[segment[1:-1]] = part
            elif segment != part:
                return None
        return params


class ASGIServer:
    """
    ASGI application serving compiled routes.

    Implements the ``register(method, path, handler)`` contract expected by
    the route compiler; ``handler(request, reply)`` must return the reply.
    """

    def __init__(self):
        self._static: Dict[str, Dict[str, RouteHandler]] = {}
        self._templates: Dict[str, List[_TemplateRoute]] = {}
        self._on_startup: List[Callable[[], Awaitable[None]]] = []
        self._on_shutdown: List[Callable[[], Awaitable[None]]] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, method: str, path: str, handler: RouteHandler) -> None:
        method = method.upper()
        path = _normalize(path)

        if any(_is_param(s) for s in _segments(path)):
            routes = self._templates.setdefault(method, [])
            routes.append(_TemplateRoute(path, handler))
            routes.sort(key=lambda r: r.specificity)
        else:
            self._static.setdefault(method, {})[path] = handler

        logger.debug("Registered %s %s", method, path)

    def on_startup(self, hook: Callable[[], Awaitable[None]]) -> None:
        self._on_startup.append(hook)

    def on_shutdown(self, hook: Callable[[], Awaitable[None]]) -> None:
        self._on_shutdown.append(hook)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(self, method: str, path: str) -> Optional[Tuple[RouteHandler, Dict[str, str]]]:
        path = _normalize(path)

        handler = self._static.get(method, {}).get(path)
        if handler is not None:
            return handler, {}

        routes = self._templates.get(method)
        if routes:
            parts = _segments(path)
            for route in routes:
                params = route.match(parts)
                if params is not None:
                    return route.handler, params

        return None

    def allowed_methods(self, path: str) -> List[str]:
        methods = set(self._static) | set(self._templates)
        return sorted(m for m in methods if self.match(m, path) is not None)

    # ------------------------------------------------------------------
    # ASGI entry point
    # ------------------------------------------------------------------

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)

    async def handle_http(self, scope: dict, receive: Callable, send: Callable) -> None:
        method = scope.get("method", "GET").upper()
        path = scope.get("path", "/")
        head = method == "HEAD"

        request = Request(scope, receive)
        reply = Reply()

        found = self.match(method, path)
        if found is None and head:
            found = self.match("GET", path)

        if found is None:
            allowed = self.allowed_methods(path)
            if allowed:
                fault: Fault = MethodNotAllowedFault(method, path, allowed)
                reply.header("Allow", ", ".join(allowed))
            else:
                fault = NotFoundFault(method, path)
            reply.json(error_body(fault), status=fault.status)
            await reply.write_to(send, head=head)
            return

        handler, params = found
        request.path_params = params

        watcher = asyncio.ensure_future(request.listen_for_disconnect())
        try:
            await handler(request, reply)
        finally:
            watcher.cancel()

        if request.is_disconnected():
            logger.debug("Client disconnected during %s %s; dropping reply", method, path)
            return

        await reply.write_to(send, head=head)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable) -> None:
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    for hook in self._on_startup:
                        await hook()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    logger.error("Startup error: %s", e, exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                try:
                    for hook in self._on_shutdown:
                        await hook()
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    logger.error("Shutdown error: %s", e, exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                break
