"""
Route Compiler - turns controller descriptors into executable handlers.

Runs once per controller at bootstrap. Everything a request needs (final
path, argument extractor, guard/interceptor/middleware instances) is
decided here, so compiled routes never read metadata again.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple

from ..faults.domains import RouteConflictError
from ..utils.urls import join_paths
from .descriptors import ControllerDescriptor, RouteDescriptor, describe_routes
from .params import ArgumentExtractor
from .pipeline import RequestPipeline


logger = logging.getLogger("strix.routing")


@dataclass
class CompiledRoute:
    """
    A route ready for the HTTP server.

    ``handler(request, reply)`` runs the full pipeline and returns the reply.
    """

    method: str
    path: str
    handler: RequestPipeline
    controller: type
    handler_name: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.method, self.path)

    def __repr__(self) -> str:
        return f"<CompiledRoute {self.method} {self.path} -> {self.controller.__name__}.{self.handler_name}>"


class RouteCompiler:
    """
    Compiles controllers against a container and registers them with a server.

    Example:
        compiler = RouteCompiler(container, server, global_prefix="/api")
        for route in compiler.compile(build_controller_descriptor(UsersController)):
            print(route.method, route.path)
    """

    def __init__(
        self,
        container: Any,
        server: Any = None,
        global_prefix: str = "",
        *,
        middleware: Sequence[Any] = (),
        guards: Sequence[Any] = (),
        interceptors: Sequence[Any] = (),
        profiler: Any = None,
    ):
        self.container = container
        self.profiler = profiler
        self.server = server
        self.global_prefix = global_prefix or ""
        self.global_middleware = tuple(middleware)
        self.global_guards = tuple(guards)
        self.global_interceptors = tuple(interceptors)

        self._compiled: Dict[type, List[CompiledRoute]] = {}
        self._routes: Dict[Tuple[str, str], CompiledRoute] = {}

    @property
    def routes(self) -> List[CompiledRoute]:
        return list(self._routes.values())

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def compile(self, descriptor: ControllerDescriptor) -> List[CompiledRoute]:
        """
        Compile with synchronous resolution.

        Raises:
            AsyncResolutionRequiredError: If a controller or guard needs awaiting;
                use ``compile_async`` for those graphs
            RouteConflictError: If another controller owns a method+path
        """
        cached = self._compiled.get(descriptor.controller)
        if cached is not None:
            return list(cached)
        return self._build(descriptor, self._materialize_sync)

    async def compile_async(self, descriptor: ControllerDescriptor) -> List[CompiledRoute]:
        cached = self._compiled.get(descriptor.controller)
        if cached is not None:
            return list(cached)

        # Resolve everything up front so the synchronous build only hits caches.
        instances: Dict[int, Any] = {}
        for ref in self._all_refs(descriptor):
            if id(ref) not in instances:
                instances[id(ref)] = await self._materialize_async(ref)
        instances[id(descriptor.controller)] = await self._materialize_async(descriptor.controller)

        return self._build(descriptor, lambda ref: instances[id(ref)])

    def _build(
        self,
        descriptor: ControllerDescriptor,
        materialize: Callable[[Any], Any],
    ) -> List[CompiledRoute]:
        controller_cls = descriptor.controller
        instance = materialize(controller_cls)

        compiled: List[CompiledRoute] = []
        pending: Dict[Tuple[str, str], CompiledRoute] = {}

        for route in descriptor.routes:
            path = join_paths(self.global_prefix, descriptor.prefix, route.path)
            key = (route.http_method, path)

            owner = self._routes.get(key) or pending.get(key)
            if owner is not None:
                raise RouteConflictError(
                    route.http_method,
                    path,
                    f"{owner.controller.__qualname__}.{owner.handler_name}",
                    f"{controller_cls.__qualname__}.{route.handler_name}",
                )

            compiled_route = CompiledRoute(
                method=route.http_method,
                path=path,
                handler=self._pipeline(descriptor, route, instance, path, materialize),
                controller=controller_cls,
                handler_name=route.handler_name,
            )
            pending[key] = compiled_route
            compiled.append(compiled_route)

        # Register only after every route compiled; a conflict leaves nothing behind.
        for compiled_route in compiled:
            self._routes[compiled_route.key] = compiled_route
            if self.server is not None:
                self.server.register(compiled_route.method, compiled_route.path, compiled_route.handler)
            logger.debug(
                "Mapped %s %s -> %s.%s",
                compiled_route.method, compiled_route.path,
                controller_cls.__name__, compiled_route.handler_name,
            )

        self._compiled[controller_cls] = compiled
        logger.debug("Compiled controller %s", describe_routes(descriptor))
        return list(compiled)

    def _pipeline(
        self,
        descriptor: ControllerDescriptor,
        route: RouteDescriptor,
        instance: Any,
        path: str,
        materialize: Callable[[Any], Any],
    ) -> RequestPipeline:
        handler = getattr(instance, route.handler_name)

        return RequestPipeline(
            route=f"{route.http_method} {path}",
            controller_class=descriptor.controller,
            handler=handler,
            handler_name=route.handler_name,
            extractor=ArgumentExtractor(handler, route.parameters),
            middleware=[materialize(ref) for ref in self._ordered(
                self.global_middleware, descriptor.middleware, route.middleware)],
            guards=[materialize(ref) for ref in self._ordered(
                self.global_guards, descriptor.guards, route.guards)],
            interceptors=[materialize(ref) for ref in self._ordered(
                self.global_interceptors, descriptor.interceptors, route.interceptors)],
            status_code=route.status_code,
            headers=route.headers,
            container=self.container,
            method=route.http_method,
            path=path,
            profiler=self.profiler,
        )

    @staticmethod
    def _ordered(*levels: Sequence[Any]) -> List[Any]:
        """Global refs, then controller-level, then method-level."""
        return [ref for level in levels for ref in level]

    def _all_refs(self, descriptor: ControllerDescriptor) -> List[Any]:
        refs = [
            *self.global_middleware, *self.global_guards, *self.global_interceptors,
            *descriptor.middleware, *descriptor.guards, *descriptor.interceptors,
        ]
        for route in descriptor.routes:
            refs.extend(route.middleware)
            refs.extend(route.guards)
            refs.extend(route.interceptors)
        return refs

    # ------------------------------------------------------------------
    # Ref materialization
    # ------------------------------------------------------------------

    def _ensure_registered(self, cls: type) -> None:
        if not self.container.is_registered(cls):
            self.container.register_class(cls)

    def _materialize_sync(self, ref: Any) -> Any:
        """Classes come from the container; instances and functions pass through."""
        if inspect.isclass(ref):
            self._ensure_registered(ref)
            return self.container.resolve(ref)
        return ref

    async def _materialize_async(self, ref: Any) -> Any:
        if inspect.isclass(ref):
            self._ensure_registered(ref)
            return await self.container.resolve_async(ref)
        return ref

