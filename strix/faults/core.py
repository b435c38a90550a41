"""
Fault primitives shared by every Strix subsystem.

A fault is an exception that also carries a stable ``code``, the
``FaultDomain`` it belongs to, a ``Severity`` and, when it can reach a
client, an HTTP ``status``. Subsystems subclass ``Fault`` once per failure
they can report.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """How bad a fault is; FATAL faults abort bootstrap."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Named functional area a fault comes from.

    Domains are plain objects rather than enum members so plugins can
    declare their own (``FaultDomain("billing")``) without touching Strix.
    Two domains with the same name are equal, and a domain also equals its
    name as a string.
    """

    __slots__ = ("name", "description")

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description

    @property
    def value(self) -> str:
        return self.name

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return other.name == self.name
        if isinstance(other, str):
            return other == self.name
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<FaultDomain {self.name}>"


FaultDomain.CONFIG = FaultDomain("config", "Config providers and environment")
FaultDomain.REGISTRY = FaultDomain("registry", "Metadata, scanning and discovery")
FaultDomain.DI = FaultDomain("di", "Provider registration and resolution")
FaultDomain.ROUTING = FaultDomain("routing", "Route compilation and matching")
FaultDomain.FLOW = FaultDomain("flow", "Per-request execution")
FaultDomain.SECURITY = FaultDomain("security", "Guards")


# Bootstrap-time domains are fatal; request-time ones are not.
DOMAIN_DEFAULTS: Dict[FaultDomain, Dict[str, Any]] = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.REGISTRY: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.DI: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.ROUTING: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.FLOW: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.SECURITY: {"severity": Severity.WARN, "retryable": False},
}

_FALLBACK = {"severity": Severity.ERROR, "retryable": False}


class Fault(Exception):
    """
    Structured failure.

    ``code``, ``message``, ``domain`` and ``status`` may be given as class
    attributes on a subclass and omitted from the call; the first three are
    required one way or the other.

    Example:
        ```python
        class UserNotFound(Fault):
            domain = FaultDomain.FLOW
            status = 404

        raise UserNotFound("USER_NOT_FOUND", "No user 123", public=True)
        ```

    ``public`` decides whether ``message`` and ``metadata`` may be shown to
    a client; private faults are reported as a generic server error.
    """

    status: Optional[int] = None

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        status: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        cls = type(self)
        self.code = code or getattr(cls, "code", None)
        self.message = message or getattr(cls, "message", None)
        self.domain = domain or getattr(cls, "domain", None)

        missing = [name for name in ("code", "message", "domain") if getattr(self, name) is None]
        if missing:
            raise TypeError(f"{cls.__name__} requires {', '.join(missing)}")

        super().__init__(self.message)

        defaults = DOMAIN_DEFAULTS.get(self.domain, _FALLBACK)
        self.severity = severity if severity is not None else defaults["severity"]
        self.retryable = defaults["retryable"] if retryable is None else retryable
        self.public = public
        self.metadata: Dict[str, Any] = dict(metadata) if metadata else {}
        if status is not None:
            self.status = status

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.code} domain={self.domain} status={self.status}>"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view for logs."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": str(self.domain),
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "status": self.status,
            "metadata": self.metadata,
        }
