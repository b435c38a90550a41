"""
Strix - metadata-driven dependency injection and request routing for
async Python web applications.

Complete integration of:
- Metadata: Typed, namespaced metadata written by decorators
- Scanner: Role classification of discovered classes
- DI: Scoped container with cycle detection and single registration
- Config: Environment-bound config providers validated with pydantic
- Routing: Compiled controllers, guards, interceptors and middleware
- Faults: Structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Core
# ============================================================================

from .app import Strix, StrixOptions
from .constants import AttachMode, MetadataKey
from .metadata import MetadataEntry, MetadataStore, store
from .request import BadRequestFault, Request
from .response import Reply
from .server import ASGIServer

# ============================================================================
# Discovery & Scanning
# ============================================================================

from .discovery import ModuleDiscovery, discover_modules
from .scanner import ComponentRegistry, ComponentScanner, Role

# ============================================================================
# Lifecycle & Profiling
# ============================================================================

from .lifecycle import EventBus, LifecycleEvent
from .profiler import PerformanceMetric, PerformanceProfiler, RouteMetric

# ============================================================================
# Dependency Injection
# ============================================================================

from .di import (
    Autowired,
    Container,
    Inject,
    ProviderDescriptor,
    Scope,
    inject,
    injectable,
)

# ============================================================================
# Config
# ============================================================================

from .config import (
    AbstractConfigProvider,
    ConfigProperty,
    config_provider,
    load_env_files,
)

# ============================================================================
# Routing, Guards, Interceptors, Middleware
# ============================================================================

from .routing import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    Body,
    CompiledRoute,
    Ctx,
    ExecutionContext,
    Headers,
    Param,
    Query,
    Req,
    Res,
    RouteCompiler,
    build_controller_descriptor,
    controller,
    header,
    http_code,
    route,
)
from .guards import CanActivate, guard, use_guards
from .interceptors import CallHandler, Interceptor, interceptor, use_interceptors
from .middleware import (
    MiddlewareChain,
    RequestIdMiddleware,
    ResponseTimeMiddleware,
    middleware,
    use_middleware,
)

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    AuthorizationError,
    ConflictingRoleError,
    DiscoveryError,
    Fault,
    FaultDomain,
    MetadataConflictError,
    RouteConflictError,
    Severity,
    ValidationError,
)
from .di.errors import (
    AsyncResolutionRequiredError,
    CircularDependencyError,
    DuplicateTokenError,
    ProviderInstantiationError,
    ScopeViolationError,
    UnresolvedDependencyError,
)
from .config.errors import (
    ConfigProviderAlreadyRegisteredError,
    ConfigProviderNotFoundError,
    ConfigValidationError,
    InvalidConfigTokenError,
)

__all__ = [
    "__version__",
    # Core
    "Strix",
    "StrixOptions",
    "AttachMode",
    "MetadataKey",
    "MetadataEntry",
    "MetadataStore",
    "store",
    "Request",
    "BadRequestFault",
    "Reply",
    "ASGIServer",
    # Discovery & scanning
    "ModuleDiscovery",
    "discover_modules",
    "ComponentRegistry",
    "ComponentScanner",
    "Role",
    # Lifecycle & profiling
    "EventBus",
    "LifecycleEvent",
    "PerformanceMetric",
    "PerformanceProfiler",
    "RouteMetric",
    # DI
    "Container",
    "ProviderDescriptor",
    "Scope",
    "Inject",
    "inject",
    "injectable",
    "Autowired",
    # Config
    "AbstractConfigProvider",
    "ConfigProperty",
    "config_provider",
    "load_env_files",
    # Routing
    "controller",
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "HEAD",
    "OPTIONS",
    "route",
    "http_code",
    "header",
    "Body",
    "Query",
    "Param",
    "Headers",
    "Req",
    "Res",
    "Ctx",
    "ExecutionContext",
    "RouteCompiler",
    "CompiledRoute",
    "build_controller_descriptor",
    "CanActivate",
    "guard",
    "use_guards",
    "CallHandler",
    "Interceptor",
    "interceptor",
    "use_interceptors",
    "MiddlewareChain",
    "RequestIdMiddleware",
    "ResponseTimeMiddleware",
    "middleware",
    "use_middleware",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "AuthorizationError",
    "ConflictingRoleError",
    "DiscoveryError",
    "MetadataConflictError",
    "RouteConflictError",
    "ValidationError",
    "AsyncResolutionRequiredError",
    "CircularDependencyError",
    "DuplicateTokenError",
    "ProviderInstantiationError",
    "ScopeViolationError",
    "UnresolvedDependencyError",
    "ConfigProviderAlreadyRegisteredError",
    "ConfigProviderNotFoundError",
    "ConfigValidationError",
    "InvalidConfigTokenError",
]
