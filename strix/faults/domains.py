"""
Strix Faults - Domain-specific fault types.

Provides concrete fault classes for:
- REGISTRY faults (metadata, scanning, discovery)
- ROUTING faults (compilation, matching)
- FLOW faults (per-request parameter and handler failures)
- SECURITY faults (guards)

DI faults live in ``strix.di.errors`` and CONFIG faults in
``strix.config.errors``.
"""

from typing import Any, Callable, List, Optional, Tuple

from .core import Fault, FaultDomain, Severity


def _name_of(obj: Any) -> str:
    return getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None) or str(obj)


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistryFault(Fault):
    """Base class for metadata and component registry faults."""

    domain = FaultDomain.REGISTRY

    def __init__(self, code: str, message: str, *, metadata: Optional[dict[str, Any]] = None):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REGISTRY,
            severity=Severity.FATAL,
            public=False,
            metadata=metadata,
        )


class MetadataConflictError(RegistryFault):
    """A uniqueness-sensitive metadata key was written twice on one subject."""

    def __init__(self, subject: Any, key: str, existing: Any, attempted: Any):
        self.subject = subject
        self.key = key
        self.existing = existing
        self.attempted = attempted
        super().__init__(
            code="METADATA_CONFLICT",
            message=(
                f"Metadata key '{key}' is already set on {_name_of(subject)} "
                f"(existing={existing!r}, attempted={attempted!r})"
            ),
            metadata={"subject": _name_of(subject), "key": key},
        )


class ConflictingRoleError(RegistryFault):
    """A class carries markers for two mutually exclusive roles."""

    def __init__(self, class_name: str, first_marker: str, second_marker: str):
        self.class_name = class_name
        self.first_marker = first_marker
        self.second_marker = second_marker
        super().__init__(
            code="CONFLICTING_ROLE",
            message=(
                f"Class '{class_name}' is marked as both '{first_marker}' and "
                f"'{second_marker}'; a class can only play one role"
            ),
            metadata={
                "class": class_name,
                "markers": [first_marker, second_marker],
            },
        )


class DiscoveryError(RegistryFault):
    """One or more modules failed to import during strict discovery."""

    def __init__(self, failures: List[Tuple[str, BaseException]]):
        self.failures = list(failures)
        listing = "\n".join(f"  - {name}: {exc}" for name, exc in self.failures)
        super().__init__(
            code="DISCOVERY_FAILED",
            message=f"Failed to import {len(self.failures)} module(s):\n{listing}",
            metadata={"modules": [name for name, _ in self.failures]},
        )

    @property
    def module_name(self) -> str:
        return self.failures[0][0] if self.failures else ""

    @property
    def original_error(self) -> Optional[BaseException]:
        return self.failures[0][1] if self.failures else None

    def report(self) -> str:
        """Human-readable report of every failed import."""
        lines = ["Discovery failures:", ""]
        for name, exc in self.failures:
            lines.append(f"  {name}")
            lines.append(f"    {type(exc).__name__}: {exc}")
        return "\n".join(lines)


# ============================================================================
# ROUTING Faults
# ============================================================================

class RouteConflictError(Fault):
    """Two different handlers claim the same method + path."""

    domain = FaultDomain.ROUTING

    def __init__(self, method: str, path: str, existing: str, attempted: str):
        self.method = method
        self.path = path
        self.existing = existing
        self.attempted = attempted
        super().__init__(
            code="ROUTE_CONFLICT",
            message=(
                f"Route {method} {path} is already registered by {existing}; "
                f"cannot register it again for {attempted}"
            ),
            domain=FaultDomain.ROUTING,
            severity=Severity.FATAL,
            metadata={"method": method, "path": path},
        )


class NotFoundFault(Fault):
    """No route matches the request path."""

    domain = FaultDomain.ROUTING
    status = 404

    def __init__(self, method: str, path: str):
        super().__init__(
            code="ROUTE_NOT_FOUND",
            message=f"No route matches {method} {path}",
            domain=FaultDomain.ROUTING,
            public=True,
        )


class MethodNotAllowedFault(Fault):
    """The path exists but not for this HTTP method."""

    domain = FaultDomain.ROUTING
    status = 405

    def __init__(self, method: str, path: str, allowed: List[str]):
        self.allowed = allowed
        super().__init__(
            code="METHOD_NOT_ALLOWED",
            message=f"Method {method} not allowed for {path}",
            domain=FaultDomain.ROUTING,
            public=True,
            metadata={"allowed": allowed},
        )


# ============================================================================
# FLOW Faults
# ============================================================================

class ValidationError(Fault):
    """An extracted handler argument failed validation."""

    domain = FaultDomain.FLOW
    status = 400

    def __init__(self, param: str, detail: Any, *, source: Optional[str] = None):
        self.param = param
        self.detail = detail
        self.source = source
        super().__init__(
            code="VALIDATION_FAILED",
            message=f"Invalid value for parameter '{param}'",
            domain=FaultDomain.FLOW,
            severity=Severity.INFO,
            public=True,
            metadata={"param": param, "source": source, "detail": detail},
        )


class InternalServerFault(Fault):
    """Unstructured failure raised somewhere after the guards passed."""

    domain = FaultDomain.FLOW
    status = 500

    def __init__(self, route: str, cause: BaseException):
        self.route = route
        self.cause = cause
        super().__init__(
            code="INTERNAL_ERROR",
            message=f"Unhandled {type(cause).__name__} while handling {route}: {cause}",
            domain=FaultDomain.FLOW,
            public=False,
            metadata={"route": route},
        )


# ============================================================================
# SECURITY Faults
# ============================================================================

class AuthorizationError(Fault):
    """A guard rejected the request."""

    domain = FaultDomain.SECURITY
    status = 403

    def __init__(
        self,
        message: str = "Forbidden resource",
        *,
        guard: Optional[str] = None,
        status: Optional[int] = None,
    ):
        self.guard = guard
        super().__init__(
            code="FORBIDDEN" if (status or 403) == 403 else "UNAUTHORIZED",
            message=message,
            domain=FaultDomain.SECURITY,
            public=True,
            status=status,
            metadata={"guard": guard} if guard else None,
        )


def describe_callable(fn: Callable) -> str:
    """Readable name for a guard/interceptor/middleware reference."""
    if hasattr(fn, "__qualname__"):
        return fn.__qualname__
    return type(fn).__qualname__
