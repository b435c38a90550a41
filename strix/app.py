"""
Application bootstrap.

``Strix.create`` is the single wiring point:
    env files -> discovery -> scan -> register providers -> compile routes

It owns the metadata store, scanner, container, compiler, server, event bus
and profiler; there is no hidden global container. Each step emits a
``LifecycleEvent`` and is timed as a bootstrap phase. Any bootstrap fault aborts creation, so an
application is either fully wired or not created at all.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, List, Optional, Sequence

from .config.env import load_env_files
from .constants import CONFIG_PROVIDER
from .di.core import Container
from .discovery import discover_modules
from .lifecycle import EventBus, LifecycleEvent
from .metadata import MetadataStore
from .profiler import PerformanceProfiler
from .routing.compiler import CompiledRoute, RouteCompiler
from .routing.descriptors import build_controller_descriptor
from .scanner import ComponentRegistry, ComponentScanner
from .server import ASGIServer


logger = logging.getLogger("strix.app")


@dataclass
class StrixOptions:
    """
    Application options.

    Attributes:
        prefix: Global route prefix (``"/api"``)
        host / port: Bind address used by ``listen``
        packages: Dotted packages to import and scan
        strict_discovery: Abort on any module import failure
        log_level: When set, ``logging.basicConfig`` is called with it
        env_dir: Directory holding ``.env`` files (default: cwd)
        middleware / guards / interceptors: Applied to every route, outermost
        profiling: Record bootstrap phases and per-route timings
    """

    prefix: str = ""
    host: str = "127.0.0.1"
    port: int = 8000
    packages: Sequence[str] = ()
    strict_discovery: bool = False
    log_level: Optional[str] = None
    env_dir: Optional[str] = None
    middleware: List[Any] = field(default_factory=list)
    guards: List[Any] = field(default_factory=list)
    interceptors: List[Any] = field(default_factory=list)
    profiling: bool = True


class Strix:
    """
    A wired application.

    Example:
        ```python
        app = await Strix.create(UsersController, UserService, prefix="/api")
        await app.listen()
        ```

    The instance is itself an ASGI application (it delegates to its server),
    so it can also be handed to uvicorn or httpx directly. ``events`` and
    ``profiler`` are registered in the container under their classes, so
    providers can inject them.
    """

    def __init__(
        self,
        options: Optional[StrixOptions] = None,
        *,
        store: Optional[MetadataStore] = None,
        container: Optional[Container] = None,
        server: Optional[ASGIServer] = None,
        events: Optional[EventBus] = None,
        profiler: Optional[PerformanceProfiler] = None,
    ):
        self.options = options or StrixOptions()
        self.store = store or MetadataStore()
        self.scanner = ComponentScanner(self.store)
        self._container = container or Container()
        self._server = server or ASGIServer()
        self.events = events or EventBus()
        self.profiler = profiler or PerformanceProfiler(enabled=self.options.profiling)
        self._container.register_value(EventBus, self.events)
        self._container.register_value(PerformanceProfiler, self.profiler)
        self.compiler = RouteCompiler(
            self._container,
            self._server,
            self.options.prefix,
            middleware=self.options.middleware,
            guards=self.options.guards,
            interceptors=self.options.interceptors,
            profiler=self.profiler,
        )
        self._closed = False
        self._server.on_shutdown(self.close)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    @classmethod
    async def create(
        cls,
        *components: type,
        options: Optional[StrixOptions] = None,
        **overrides: Any,
    ) -> "Strix":
        """
        Build and wire an application.

        Args:
            *components: Classes to scan in addition to discovered packages
            options: Base options; keyword ``overrides`` replace single fields

        Raises:
            Fault: Any bootstrap fault (duplicate token, cycle, conflicting
                role, route conflict, config validation), after logging it
                at CRITICAL
        """
        options = replace(options or StrixOptions(), **overrides)

        if options.log_level:
            logging.basicConfig(
                level=getattr(logging, options.log_level.upper()),
                format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            )

        app = cls(options)
        try:
            await app._bootstrap(components)
        except Exception as exc:
            logger.critical("Bootstrap aborted: %s", exc)
            raise
        return app

    async def _bootstrap(self, components: Iterable[type]) -> None:
        with self.profiler.bootstrap_phase("total"):
            await self._bootstrap_phases(components)

    async def _bootstrap_phases(self, components: Iterable[type]) -> None:
        phase = self.profiler.bootstrap_phase
        await self.events.emit(LifecycleEvent.BOOTSTRAP, self)

        with phase("env"):
            load_env_files(self.options.env_dir)

        classes: List[type] = list(components)
        with phase("discovery"):
            if self.options.packages:
                classes.extend(discover_modules(
                    self.options.packages, strict=self.options.strict_discovery,
                ))
        await self.events.emit(LifecycleEvent.DISCOVERED, classes)

        with phase("scan"):
            registry = self.scanner.scan(classes)

        with phase("container_init"):
            self._register(registry)
            # Config providers are built eagerly so invalid environments fail startup.
            for token in self._container.config_tokens:
                await self._container.get_config_async(token)
        await self.events.emit(LifecycleEvent.PROVIDERS_REGISTERED, registry)

        with phase("route_registration"):
            compiled: List[CompiledRoute] = []
            for controller_cls in registry.controllers:
                descriptor = build_controller_descriptor(controller_cls, self.store)
                compiled.extend(await self.compiler.compile_async(descriptor))
        for route in compiled:
            await self.events.emit(LifecycleEvent.ROUTE_REGISTERED, route)

        await self.events.emit(LifecycleEvent.READY, self)
        logger.info(
            "Strix ready: %d providers, %d config providers, %d controllers, %d routes",
            len(registry.injectables()),
            len(registry.config_providers),
            len(registry.controllers),
            len(self.compiler.routes),
        )

    def _register(self, registry: ComponentRegistry) -> None:
        for cls in registry.config_providers:
            options = self.store.read(cls, CONFIG_PROVIDER)
            self._container.register_config_provider(options.token, cls)

        for cls in registry.injectables():
            self._container.register_class(cls)

        for cls in registry.controllers:
            self._container.register_class(cls)

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    @property
    def container(self) -> Container:
        return self._container

    @property
    def server(self) -> ASGIServer:
        return self._server

    @property
    def routes(self) -> List[CompiledRoute]:
        return self.compiler.routes

    async def get(self, token: Any) -> Any:
        """Resolve a token from the application container."""
        return await self._container.resolve_async(token)

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        await self._server(scope, receive, send)

    async def listen(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Serve with uvicorn until stopped, then close the application."""
        import uvicorn

        config = uvicorn.Config(
            self._server,
            host=host or self.options.host,
            port=port or self.options.port,
            log_level=(self.options.log_level or "info").lower(),
        )
        server = uvicorn.Server(config)
        logger.info("Starting uvicorn server on %s:%s", config.host, config.port)
        try:
            await server.serve()
        finally:
            await self.close()

    async def close(self) -> None:
        """Emit ``SHUTDOWN`` and run provider shutdown hooks, once."""
        if self._closed:
            return
        self._closed = True
        await self.events.emit(LifecycleEvent.SHUTDOWN, self)
        await self._container.shutdown()
        self.events.clear()
        logger.debug("Strix closed")
