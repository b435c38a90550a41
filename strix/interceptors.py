"""
Interceptors - wrap handler execution.

``intercept(context, call_handler)`` may run code before and after the
handler and may transform its result. Interceptors nest like an onion:
the first declared is the outermost.
"""

from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from .constants import INTERCEPTOR, INTERCEPTORS, AttachMode
from .metadata import store


class CallHandler:
    """Handle to the rest of the chain (inner interceptors, then the handler)."""

    __slots__ = ("_next",)

    def __init__(self, next_call: Callable[[], Awaitable[Any]]):
        self._next = next_call

    async def handle(self) -> Any:
        return await self._next()


@runtime_checkable
class Interceptor(Protocol):
    def intercept(self, context: Any, call_handler: CallHandler) -> Awaitable[Any]:
        ...


def interceptor(cls: Any = None) -> Any:
    """Mark a class as an interceptor (interceptors are injectable)."""
    def decorator(target: type) -> type:
        store.attach(target, INTERCEPTOR, True)
        return target

    if cls is not None:
        return decorator(cls)
    return decorator


def use_interceptors(*interceptors: Any):
    """
    Attach interceptors to a controller class or a route handler.

    Example:
        @use_interceptors(TimingInterceptor, WrapInterceptor())
        @GET("/")
        async def index(self):
            ...
    """
    def decorator(target: Any) -> Any:
        for ref in interceptors:
            store.attach(target, INTERCEPTORS, ref, AttachMode.APPEND)
        return target
    return decorator
