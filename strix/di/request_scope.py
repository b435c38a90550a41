"""
Request scope - per-request instance cache carried by a context variable.

Each asyncio task sees the scope opened by the request it serves, so
concurrent requests never share request-scoped instances.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional


_request_cache_var: ContextVar[Optional[Dict[Any, Any]]] = ContextVar(
    "strix_request_cache",
    default=None,
)


def current_request_cache() -> Optional[Dict[Any, Any]]:
    """
    Get the current request cache.

    Returns:
        Token -> instance map, or None outside a request scope
    """
    return _request_cache_var.get()


def in_request_scope() -> bool:
    return _request_cache_var.get() is not None


@contextmanager
def request_scope() -> Iterator[Dict[Any, Any]]:
    """
    Open a fresh request scope for the enclosed block.

    Example:
        with request_scope():
            a = await container.resolve_async(RequestState)
            b = await container.resolve_async(RequestState)
            assert a is b
    """
    cache: Dict[Any, Any] = {}
    reset_token = _request_cache_var.set(cache)
    try:
        yield cache
    finally:
        _request_cache_var.reset(reset_token)
