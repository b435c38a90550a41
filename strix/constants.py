"""
Metadata keys shared by decorators and the bootstrap.

Every key carries a namespaced name (``strix:<area>``) so entries written by
plugins never collide with the framework's own.
"""

from dataclasses import dataclass
from enum import Enum


class AttachMode(str, Enum):
    """How a write combines with an existing value."""

    REPLACE = "replace"
    APPEND = "append"


@dataclass(frozen=True)
class MetadataKey:
    """
    A well-known metadata key.

    Attributes:
        name: Namespaced, globally unique key name
        accumulating: Values are appended into an ordered list
        unique: A second REPLACE write on the same subject is rejected
    """

    name: str
    accumulating: bool = False
    unique: bool = False

    def __str__(self) -> str:
        return self.name


# Roles (class subjects)
INJECTABLE = MetadataKey("strix:injectable", unique=True)
CONTROLLER = MetadataKey("strix:controller", unique=True)
CONFIG_PROVIDER = MetadataKey("strix:config:provider", unique=True)
MIDDLEWARE = MetadataKey("strix:middleware", unique=True)
GUARD = MetadataKey("strix:guard", unique=True)
INTERCEPTOR = MetadataKey("strix:interceptor", unique=True)

# Injection (class subjects)
AUTOWIRED = MetadataKey("strix:autowired", accumulating=True)
CONFIG_PROPERTIES = MetadataKey("strix:config:properties", accumulating=True)

# Routing (method subjects, guards/interceptors/middleware also on classes)
ROUTES = MetadataKey("strix:routes", accumulating=True)
GUARDS = MetadataKey("strix:guards", accumulating=True)
INTERCEPTORS = MetadataKey("strix:interceptors", accumulating=True)
USE_MIDDLEWARE = MetadataKey("strix:use:middleware", accumulating=True)
HTTP_CODE = MetadataKey("strix:http:code", unique=True)
HEADERS = MetadataKey("strix:headers", accumulating=True)

# Parameter subjects (method + index)
PARAM = MetadataKey("strix:param", unique=True)


ROLE_KEYS = (INJECTABLE, CONTROLLER, CONFIG_PROVIDER, MIDDLEWARE, GUARD, INTERCEPTOR)

# Roles that are injectable by definition and may share a class with INJECTABLE
INJECTABLE_ROLES = frozenset({MIDDLEWARE.name, GUARD.name, INTERCEPTOR.name})

ENV_VAR = "STRIX_ENV"
DEFAULT_ENV = "development"
