"""
Component scanner.

Classifies loaded classes by their role markers. Discovery (importing
modules) is separate; the scanner only reads metadata.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .constants import (
    CONFIG_PROVIDER,
    CONTROLLER,
    GUARD,
    INJECTABLE,
    INJECTABLE_ROLES,
    INTERCEPTOR,
    MIDDLEWARE,
    ROLE_KEYS,
)
from .faults.domains import ConflictingRoleError
from .metadata import MetadataStore, store as default_store


logger = logging.getLogger("strix.scanner")


class Role:
    PROVIDER = "provider"
    CONTROLLER = "controller"
    CONFIG_PROVIDER = "config_provider"
    MIDDLEWARE = "middleware"
    GUARD = "guard"
    INTERCEPTOR = "interceptor"
    UNCLASSIFIED = "unclassified"


_ROLE_BY_KEY = {
    INJECTABLE.name: Role.PROVIDER,
    CONTROLLER.name: Role.CONTROLLER,
    CONFIG_PROVIDER.name: Role.CONFIG_PROVIDER,
    MIDDLEWARE.name: Role.MIDDLEWARE,
    GUARD.name: Role.GUARD,
    INTERCEPTOR.name: Role.INTERCEPTOR,
}


@dataclass
class ComponentRegistry:
    """Insertion-ordered, de-duplicated role lists."""

    providers: List[type] = field(default_factory=list)
    controllers: List[type] = field(default_factory=list)
    config_providers: List[type] = field(default_factory=list)
    middleware: List[type] = field(default_factory=list)
    guards: List[type] = field(default_factory=list)
    interceptors: List[type] = field(default_factory=list)

    def _bucket(self, role: str) -> List[type]:
        return {
            Role.PROVIDER: self.providers,
            Role.CONTROLLER: self.controllers,
            Role.CONFIG_PROVIDER: self.config_providers,
            Role.MIDDLEWARE: self.middleware,
            Role.GUARD: self.guards,
            Role.INTERCEPTOR: self.interceptors,
        }[role]

    def add(self, role: str, cls: type) -> bool:
        bucket = self._bucket(role)
        if cls in bucket:
            return False
        bucket.append(cls)
        return True

    def role_of(self, cls: type) -> str:
        for role in (
            Role.CONTROLLER,
            Role.CONFIG_PROVIDER,
            Role.MIDDLEWARE,
            Role.GUARD,
            Role.INTERCEPTOR,
            Role.PROVIDER,
        ):
            if cls in self._bucket(role):
                return role
        return Role.UNCLASSIFIED

    def injectables(self) -> List[type]:
        """Every class the container should register, in scan order."""
        seen: List[type] = []
        for bucket in (self.providers, self.middleware, self.guards, self.interceptors):
            for cls in bucket:
                if cls not in seen:
                    seen.append(cls)
        return seen

    def __len__(self) -> int:
        return (
            len(self.providers) + len(self.controllers) + len(self.config_providers)
            + len(self.middleware) + len(self.guards) + len(self.interceptors)
        )


class ComponentScanner:
    """
    Classify classes as Provider, Controller, ConfigProvider, Middleware,
    Guard, Interceptor or Unclassified.

    Provider combined with Middleware, Guard or Interceptor is allowed;
    any other pair of role markers raises ``ConflictingRoleError``.
    """

    def __init__(self, store: Optional[MetadataStore] = None):
        self.store = store or default_store
        self.registry = ComponentRegistry()

    def classify(self, cls: type) -> str:
        markers = [key.name for key in ROLE_KEYS if self.store.has(cls, key)]
        if not markers:
            return Role.UNCLASSIFIED

        primary = [m for m in markers if m != INJECTABLE.name]
        if len(primary) > 1:
            raise ConflictingRoleError(cls.__name__, primary[0], primary[1])

        if primary and INJECTABLE.name in markers and primary[0] not in INJECTABLE_ROLES:
            raise ConflictingRoleError(cls.__name__, INJECTABLE.name, primary[0])

        return _ROLE_BY_KEY[primary[0] if primary else INJECTABLE.name]

    def scan(self, classes: Iterable[type]) -> ComponentRegistry:
        """Classify ``classes`` into the registry; re-scanning is a no-op."""
        for cls in classes:
            role = self.classify(cls)
            if role == Role.UNCLASSIFIED:
                continue
            if self.registry.add(role, cls):
                logger.debug("Scanned %s as %s", cls.__qualname__, role)
        return self.registry
