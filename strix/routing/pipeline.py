"""
Request pipeline - executes one compiled route per request.

Order (strictly sequential, short-circuiting):
    middleware -> guards -> body decoding -> parameter extraction
    -> interceptors (before) -> handler -> interceptors (after)
    -> response serialization

Every failure is converted to a reply here; nothing escapes to the host.
"""

import inspect
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..faults.core import Fault
from ..faults.domains import AuthorizationError, InternalServerFault, describe_callable
from ..interceptors import CallHandler
from ..middleware import MiddlewareChain
from ..profiler import RouteMetric
from ..response import Reply
from .params import ArgumentExtractor


logger = logging.getLogger("strix.pipeline")


class ExecutionContext:
    """
    What guards and interceptors see about the current request.

    Guards only get the raw request here; handler arguments are extracted
    after every guard has passed.
    """

    __slots__ = ("request", "reply", "controller_class", "handler", "handler_name", "route")

    def __init__(
        self,
        request: Any,
        reply: Reply,
        controller_class: Optional[type],
        handler: Callable,
        handler_name: str,
        route: str,
    ):
        self.request = request
        self.reply = reply
        self.controller_class = controller_class
        self.handler = handler
        self.handler_name = handler_name
        self.route = route

    def get_request(self) -> Any:
        return self.request

    def get_reply(self) -> Reply:
        return self.reply

    def get_class(self) -> Optional[type]:
        return self.controller_class

    def get_handler(self) -> Callable:
        return self.handler

    def __repr__(self) -> str:
        return f"<ExecutionContext {self.route}>"


def error_body(fault: Fault) -> Dict[str, Any]:
    """Client-facing error payload; private faults hide their message."""
    if not fault.public:
        return {
            "error": {
                "code": fault.code,
                "message": "Internal Server Error",
                "domain": fault.domain.value,
            }
        }

    payload: Dict[str, Any] = {
        "code": fault.code,
        "message": fault.message,
        "domain": fault.domain.value,
    }
    if fault.metadata:
        payload["metadata"] = fault.metadata
    return {"error": payload}


class RequestPipeline:
    """
    The executable chain for one route.

    Calling the pipeline runs it inside a fresh request scope and returns
    the reply; it never raises.
    """

    def __init__(
        self,
        *,
        route: str,
        controller_class: Optional[type],
        handler: Callable,
        handler_name: str,
        extractor: ArgumentExtractor,
        middleware: Sequence[Any] = (),
        guards: Sequence[Any] = (),
        interceptors: Sequence[Any] = (),
        status_code: Optional[int] = None,
        headers: Sequence[tuple] = (),
        container: Any = None,
        method: str = "",
        path: str = "",
        profiler: Any = None,
    ):
        self.route = route
        self.method = method
        self.path = path
        self.profiler = profiler
        self.controller_class = controller_class
        self.handler = handler
        self.handler_name = handler_name
        self.extractor = extractor
        self.guards: List[Any] = list(guards)
        self.interceptors: List[Any] = list(interceptors)
        self.status_code = status_code or 200
        self.headers = tuple(headers)
        self.container = container
        self._chain = MiddlewareChain(middleware).build(self._dispatch)

    async def __call__(self, request: Any, reply: Reply) -> Reply:
        profiling = self.profiler is not None and self.profiler.is_enabled()
        if profiling:
            start_time = time.time()
            started = time.perf_counter()

        if self.container is not None:
            with self.container.request_scope():
                await self._run(request, reply)
        else:
            await self._run(request, reply)

        if profiling:
            self.profiler.record_route_metric(RouteMetric(
                name=f"route:{self.method}:{self.path}",
                duration=(time.perf_counter() - started) * 1000,
                start_time=start_time,
                method=self.method,
                path=self.path,
                status_code=reply.status_code,
            ))
        return reply

    async def _run(self, request: Any, reply: Reply) -> None:
        try:
            await self._chain(request, reply)
        except Exception as exc:
            self._handle_error(exc, reply)

    @staticmethod
    def _disconnected(request: Any) -> bool:
        check = getattr(request, "is_disconnected", None)
        return bool(check()) if callable(check) else False

    async def _dispatch(self, request: Any, reply: Reply) -> None:
        if self._disconnected(request):
            return

        ctx = ExecutionContext(
            request, reply, self.controller_class, self.handler, self.handler_name, self.route,
        )

        await self._check_guards(ctx)
        if self._disconnected(request):
            return

        # the body is decoded only once every guard has passed
        load = getattr(request, "load", None)
        if callable(load):
            await load()
        if self._disconnected(request):
            return

        args = self.extractor.extract(ctx)
        if self._disconnected(request):
            return

        result = await self._intercept(ctx, 0, args)
        if self._disconnected(request):
            logger.debug("Client disconnected before %s replied", self.route)
            return

        self._send_result(reply, result)

    async def _check_guards(self, ctx: ExecutionContext) -> None:
        for guard in self.guards:
            try:
                allowed = guard.can_activate(ctx)
                if inspect.isawaitable(allowed):
                    allowed = await allowed
            except AuthorizationError:
                raise
            except Exception as exc:
                # any other failure, faults included, is a denial
                raise AuthorizationError(
                    f"Guard {describe_callable(guard)} failed",
                    guard=describe_callable(guard),
                ) from exc

            if not allowed:
                raise AuthorizationError(guard=describe_callable(guard))

    async def _intercept(self, ctx: ExecutionContext, index: int, args: List[Any]) -> Any:
        if index == len(self.interceptors):
            return await self._invoke(args)

        call_handler = CallHandler(lambda: self._intercept(ctx, index + 1, args))
        result = self.interceptors[index].intercept(ctx, call_handler)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _invoke(self, args: List[Any]) -> Any:
        result = self.handler(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _send_result(self, reply: Reply, result: Any) -> None:
        if isinstance(result, Reply) or reply.sent:
            return

        reply.status(self.status_code)
        for name, value in self.headers:
            reply.header(name, value)
        reply.send(result)

    def _handle_error(self, exc: Exception, reply: Reply) -> None:
        if isinstance(exc, Fault) and exc.status is not None:
            fault = exc
            if fault.status >= 500:
                logger.error("%s failed: %s", self.route, fault, exc_info=exc)
            else:
                logger.debug("%s rejected: %s", self.route, fault)
        else:
            fault = InternalServerFault(self.route, exc)
            fault.__cause__ = exc
            logger.error("Unhandled error in %s", self.route, exc_info=exc)

        if reply.sent:
            logger.warning("%s failed after the reply was sent; keeping the sent reply", self.route)
            return

        reply.status(fault.status)
        reply.json(error_body(fault))
