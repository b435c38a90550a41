"""
Controller and route descriptors.

Built once from metadata, frozen afterwards. The compiler consumes these
and never reads metadata again.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..constants import CONTROLLER, GUARDS, HEADERS, HTTP_CODE, INTERCEPTORS, ROUTES, USE_MIDDLEWARE
from ..metadata import MetadataStore, store as default_store
from .decorators import ControllerOptions
from .params import ParamDescriptor, read_params


@dataclass(frozen=True)
class RouteDescriptor:
    """
    One route of a controller.

    Attributes:
        http_method: GET, POST, etc.
        path: Route path relative to the controller prefix
        handler_name: Method name on the controller
        parameters: Marked handler parameters, by index
        guards / interceptors / middleware: Method-level refs, declaration order
        status_code: Status for successful results (None means 200)
        headers: Static response headers
    """

    http_method: str
    path: str
    handler_name: str
    parameters: Tuple[ParamDescriptor, ...] = ()
    guards: Tuple[Any, ...] = ()
    interceptors: Tuple[Any, ...] = ()
    middleware: Tuple[Any, ...] = ()
    status_code: Optional[int] = None
    headers: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ControllerDescriptor:
    """A controller class with its routes and class-level refs."""

    controller: type
    prefix: str
    routes: Tuple[RouteDescriptor, ...]
    guards: Tuple[Any, ...] = ()
    interceptors: Tuple[Any, ...] = ()
    middleware: Tuple[Any, ...] = ()

    @property
    def name(self) -> str:
        return self.controller.__qualname__


def build_controller_descriptor(
    cls: type,
    store: Optional[MetadataStore] = None,
) -> ControllerDescriptor:
    """
    Read a controller's metadata into a descriptor.

    Example:
        descriptor = build_controller_descriptor(UsersController)
        for route in descriptor.routes:
            print(route.http_method, route.path, route.handler_name)
    """
    store = store or default_store
    options: ControllerOptions = store.read(cls, CONTROLLER) or ControllerOptions()

    routes = []
    for name, func in store.methods_with(cls, ROUTES):
        params = read_params(func)
        for spec in store.read(func, ROUTES):
            routes.append(RouteDescriptor(
                http_method=spec.http_method,
                path=spec.path,
                handler_name=name,
                parameters=params,
                guards=tuple(store.read(func, GUARDS)),
                interceptors=tuple(store.read(func, INTERCEPTORS)),
                middleware=tuple(store.read(func, USE_MIDDLEWARE)),
                status_code=store.read(func, HTTP_CODE),
                headers=tuple(store.read(func, HEADERS)),
            ))

    return ControllerDescriptor(
        controller=cls,
        prefix=options.prefix,
        routes=tuple(routes),
        guards=tuple(store.read(cls, GUARDS)),
        interceptors=tuple(store.read(cls, INTERCEPTORS)),
        middleware=tuple(store.read(cls, USE_MIDDLEWARE)),
    )


def describe_routes(descriptor: ControllerDescriptor) -> Dict[str, Any]:
    """Serialize for logging and diagnostics."""
    return {
        "controller": f"{descriptor.controller.__module__}:{descriptor.controller.__name__}",
        "prefix": descriptor.prefix,
        "routes": [
            {"method": r.http_method, "path": r.path, "handler": r.handler_name}
            for r in descriptor.routes
        ],
    }
