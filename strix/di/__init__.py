"""
Strix Dependency Injection

Async-first container with explicit scopes, single registration per token,
cycle detection and request-scoped caches.

Key Features:
- Scopes: singleton, transient, request
- Constructor injection from annotations and ``Inject`` markers
- Property injection with ``Autowired``
- Sync and async factories, ``on_init`` hooks, LIFO ``shutdown``
"""

from .core import Container, ResolveCtx
from .decorators import Autowired, Inject, inject, injectable
from .errors import (
    AsyncResolutionRequiredError,
    CircularDependencyError,
    DIFault,
    DuplicateTokenError,
    InvalidProviderError,
    ProviderInstantiationError,
    ScopeViolationError,
    UnresolvedDependencyError,
)
from .providers import (
    Dependency,
    InjectableOptions,
    PropertyInjection,
    ProviderDescriptor,
    ProviderKind,
    describe_class,
    describe_factory,
    describe_value,
)
from .request_scope import current_request_cache, in_request_scope, request_scope
from .scopes import Scope

__all__ = [
    # Core
    "Container",
    "ResolveCtx",
    "Scope",
    # Descriptors
    "ProviderDescriptor",
    "ProviderKind",
    "Dependency",
    "PropertyInjection",
    "InjectableOptions",
    "describe_class",
    "describe_factory",
    "describe_value",
    # Decorators
    "injectable",
    "Inject",
    "inject",
    "Autowired",
    # Request scope
    "request_scope",
    "current_request_cache",
    "in_request_scope",
    # Errors
    "DIFault",
    "DuplicateTokenError",
    "CircularDependencyError",
    "UnresolvedDependencyError",
    "ProviderInstantiationError",
    "ScopeViolationError",
    "AsyncResolutionRequiredError",
    "InvalidProviderError",
]
