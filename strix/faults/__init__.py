"""
Strix Faults - Structured fault handling.

Failures in Strix are typed fault signals carrying a stable code, a domain
and, for faults that can reach a client, an HTTP status.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain taxonomy
- Severity: Severity levels

DI faults are re-exported from ``strix.di.errors`` and config faults from
``strix.config.errors`` by the top-level package.
"""

from .core import DOMAIN_DEFAULTS, Fault, FaultDomain, Severity
from .domains import (
    AuthorizationError,
    ConflictingRoleError,
    DiscoveryError,
    InternalServerFault,
    MetadataConflictError,
    MethodNotAllowedFault,
    NotFoundFault,
    RegistryFault,
    RouteConflictError,
    ValidationError,
)

__all__ = [
    # Core
    "Fault",
    "FaultDomain",
    "Severity",
    "DOMAIN_DEFAULTS",
    # Registry
    "RegistryFault",
    "MetadataConflictError",
    "ConflictingRoleError",
    "DiscoveryError",
    # Routing
    "RouteConflictError",
    "NotFoundFault",
    "MethodNotAllowedFault",
    # Flow / security
    "ValidationError",
    "InternalServerFault",
    "AuthorizationError",
]
