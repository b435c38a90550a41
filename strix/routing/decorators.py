"""
Controller and route decorators.

Attach metadata without import-time side effects; the route compiler reads
it back during bootstrap.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, TypeVar, Union

from ..constants import CONTROLLER, HEADERS, HTTP_CODE, ROUTES, AttachMode
from ..metadata import store
from .params import collect_params


F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class ControllerOptions:
    prefix: str = ""


@dataclass(frozen=True)
class RouteSpec:
    http_method: str
    path: str = ""


def controller(prefix: Union[str, type] = "") -> Any:
    """
    Mark a class as a controller.

    Usable bare (``@controller``) or with a prefix (``@controller("/users")``).
    """
    if isinstance(prefix, type):
        store.attach(prefix, CONTROLLER, ControllerOptions())
        return prefix

    def decorator(cls: type) -> type:
        store.attach(cls, CONTROLLER, ControllerOptions(prefix=prefix or ""))
        return cls

    return decorator


class RouteDecorator:
    """
    Base route decorator.

    Attaches a RouteSpec to the handler and records its parameter markers.
    """

    method: str = ""

    def __init__(self, path: str = ""):
        self.path = path or ""

    def __call__(self, func: F) -> F:
        store.attach(func, ROUTES, RouteSpec(self.method, self.path), AttachMode.APPEND)
        collect_params(func)
        return func


class GET(RouteDecorator):
    method = "GET"


class POST(RouteDecorator):
    method = "POST"


class PUT(RouteDecorator):
    method = "PUT"


class PATCH(RouteDecorator):
    method = "PATCH"


class DELETE(RouteDecorator):
    method = "DELETE"


class HEAD(RouteDecorator):
    method = "HEAD"


class OPTIONS(RouteDecorator):
    method = "OPTIONS"


_DECORATORS = {
    "GET": GET,
    "POST": POST,
    "PUT": PUT,
    "PATCH": PATCH,
    "DELETE": DELETE,
    "HEAD": HEAD,
    "OPTIONS": OPTIONS,
}


def route(method: Union[str, List[str]], path: str = "") -> Callable[[F], F]:
    """
    Generic route decorator.

    Example:
        @route(["PUT", "PATCH"], "/:id")
        async def save(self, req: Annotated[Request, Req()]):
            ...
    """
    names = [method] if isinstance(method, str) else list(method)
    unknown = [m for m in names if m.upper() not in _DECORATORS]
    if unknown:
        raise ValueError(f"Unsupported HTTP method(s): {', '.join(unknown)}")
    decorators = [_DECORATORS[m.upper()](path) for m in names]

    def apply(func: F) -> F:
        for decorate in decorators:
            func = decorate(func)
        return func

    return apply


def http_code(status_code: int) -> Callable[[F], F]:
    """Status code for successful responses of this route (default 200)."""
    def decorator(func: F) -> F:
        store.attach(func, HTTP_CODE, status_code)
        return func
    return decorator


def header(name: str, value: str) -> Callable[[F], F]:
    """Static response header; stack for several."""
    def decorator(func: F) -> F:
        store.attach(func, HEADERS, (name, value), AttachMode.APPEND)
        return func
    return decorator
