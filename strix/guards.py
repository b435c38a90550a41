"""
Guards - authorization checks run before parameter extraction.

A guard exposes ``can_activate(context)`` returning a bool or an awaitable
bool. The first falsy result rejects the request with ``AuthorizationError``.
"""

from typing import Any, Awaitable, Protocol, Union, runtime_checkable

from .constants import GUARD, GUARDS, AttachMode
from .metadata import store


@runtime_checkable
class CanActivate(Protocol):
    def can_activate(self, context: Any) -> Union[bool, Awaitable[bool]]:
        ...


def guard(cls: Any = None) -> Any:
    """
    Mark a class as a guard (guards are injectable).

    Example:
        @guard
        class AdminGuard:
            def __init__(self, users: UserService):
                self.users = users

            async def can_activate(self, context):
                return context.request.headers.get("x-role") == "admin"
    """
    def decorator(target: type) -> type:
        store.attach(target, GUARD, True)
        return target

    if cls is not None:
        return decorator(cls)
    return decorator


def use_guards(*guards: Any):
    """
    Attach guards to a controller class or a route handler.

    Controller-level guards run before method-level ones; within a level,
    declaration order is kept. Entries may be classes (resolved through
    the container) or ready instances.
    """
    def decorator(target: Any) -> Any:
        for ref in guards:
            store.attach(target, GUARDS, ref, AttachMode.APPEND)
        return target
    return decorator
